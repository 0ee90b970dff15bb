from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional

from stashkeeper.models import GitOptions
from stashkeeper.runtime.git_tools import CommandRunner, absolute_path, write_tree


class PatchStatus(str, Enum):
    CLEAN = "clean"
    CAPTURED = "captured"


@dataclass(frozen=True)
class PatchResult:
    status: PatchStatus
    path: Optional[Path] = None
    touched_paths: tuple[str, ...] = field(default=())


_DIFF_RE = re.compile(rb"^diff --git a/(.+?) b/(.+?)$", re.MULTILINE)

# diff-index with --exit-code: 0 = no differences, 1 = differences
_NO_DIFF, _HAS_DIFF = 0, 1

DIFF_ARGS = [
    "diff-index",
    "--exit-code",
    "--ignore-submodules",
    "--binary",
    "--no-color",
    "--no-ext-diff",
]


def patch_touched_paths(patch: bytes) -> list[str]:
    paths: list[str] = []
    for m in _DIFF_RE.finditer(patch):
        # a/ and b/ only differ for renames; b/ is where the change lands
        paths.append(m.group(2).decode("utf-8", errors="replace"))
    return paths


def patch_file_path(options: GitOptions, filename: str) -> Path:
    base = absolute_path(options.cwd) if options.cwd else Path.cwd()
    return base / filename


def capture_patch(
    runner: CommandRunner,
    options: Optional[GitOptions],
    filename: str,
) -> PatchResult:
    """
    Write the unstaged changes (index tree vs working tree) to a patch file.

    The bytes git prints are stored verbatim so `git apply` can replay them,
    binary hunks included. A previous patch file with the same name is
    overwritten.
    """
    options = GitOptions.coerce(options)
    tree = write_tree(runner, options)
    if tree is None:
        return PatchResult(status=PatchStatus.CLEAN)

    res = runner.run([*DIFF_ARGS, tree, "--"], options, ok_codes=(_NO_DIFF, _HAS_DIFF))
    if res.returncode == _NO_DIFF:
        return PatchResult(status=PatchStatus.CLEAN)

    path = patch_file_path(options, filename)
    path.write_bytes(res.stdout)
    return PatchResult(
        status=PatchStatus.CAPTURED,
        path=path,
        touched_paths=tuple(patch_touched_paths(res.stdout)),
    )
