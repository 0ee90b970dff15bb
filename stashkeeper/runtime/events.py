from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

@dataclass(frozen=True)
class CommandEvent:
    timestamp: str
    argv: List[str]
    cwd: str

    returncode: int
    stderr: Optional[str] = None
