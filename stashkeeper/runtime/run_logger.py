from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence

from stashkeeper.runtime.events import CommandEvent


class CommandLog:
    """
    JSONL record of every git invocation, one line per command.

    The directory is created on the first write, so a configured path costs
    nothing until a command actually runs.
    """

    def __init__(self, log_path: Path):
        self._log_path = log_path

    @property
    def path(self) -> Path:
        return self._log_path

    def record(self, argv: Sequence[str], cwd: Path, returncode: int, stderr: bytes = b"") -> CommandEvent:
        event = CommandEvent(
            timestamp=datetime.now(timezone.utc).isoformat(),
            argv=list(argv),
            cwd=str(cwd),
            returncode=returncode,
            stderr=stderr.decode("utf-8", errors="replace").strip() or None,
        )
        self._log_path.parent.mkdir(parents=True, exist_ok=True)
        with self._log_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(asdict(event), ensure_ascii=False))
            f.write("\n")
        return event
