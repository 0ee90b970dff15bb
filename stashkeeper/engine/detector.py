from __future__ import annotations

from typing import Optional

from stashkeeper.models import GitOptions
from stashkeeper.runtime.git_tools import CommandRunner, write_tree


def list_unstaged_paths(runner: CommandRunner, options: Optional[GitOptions] = None) -> list[str]:
    """
    Paths whose working-tree content differs from the index.

    Compares against a freshly written index tree; an empty repository (no
    tree) or an identical working tree yields an empty list.
    """
    tree = write_tree(runner, options)
    if tree is None:
        return []
    out = runner.run(["diff-index", "--name-only", tree, "--"], options).text
    return [line for line in out.splitlines() if line]


def has_unstaged_changes(runner: CommandRunner, options: Optional[GitOptions] = None) -> bool:
    return len(list_unstaged_paths(runner, options)) > 0
