from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from stashkeeper.models import GitOptions, OptionsLike
from stashkeeper.runtime.git_tools import CommandRunner, TreeId, work_tree_options, write_tree


class LedgerStateError(RuntimeError):
    pass


@dataclass
class LedgerSession:
    options: GitOptions
    # trees[0] is the index at begin(); later entries come from advance()
    trees: List[TreeId] = field(default_factory=list)
    work_tree: Optional[TreeId] = None


class TreeLedger:
    """
    Stash strategy built only on tree objects, with no patch file.

    begin() records the index (T0) and the full working directory (W) as
    trees and resets the working directory to T0. advance() records the
    index again, e.g. after a hook staged fixes. end() brings W back on
    disk and reads the recorded index on top of it.
    """

    def __init__(self, runner: CommandRunner):
        self._runner = runner

    def begin(self, options: OptionsLike = None) -> LedgerSession:
        options = work_tree_options(self._runner, options)
        ledger = LedgerSession(options=options)

        ledger.trees = [self._require_tree(options)]
        self._runner.run(["add", "."], options)
        ledger.work_tree = self._require_tree(options)

        self._runner.run(["read-tree", ledger.trees[0]], options)
        self._runner.run(["checkout-index", "-af"], options)
        return ledger

    def advance(self, ledger: LedgerSession, options: OptionsLike = None) -> TreeId:
        tree = self._require_tree(GitOptions.coerce(options or ledger.options))
        ledger.trees.append(tree)
        return tree

    def end(self, ledger: LedgerSession, options: OptionsLike = None) -> None:
        if not ledger.work_tree or not ledger.trees:
            raise LedgerStateError("Need a working-tree reference and at least one index tree")
        if options is None:
            options = ledger.options
        else:
            options = work_tree_options(self._runner, options)

        self._runner.run(["read-tree", ledger.work_tree], options)
        self._runner.run(["checkout-index", "-af"], options)

        if len(ledger.trees) == 1:
            self._runner.run(["read-tree", ledger.trees[0]], options)
        else:
            self._runner.run(["read-tree", ledger.trees[1]], options)
        self._runner.run(["checkout-index"], options)

    def _require_tree(self, options: GitOptions) -> TreeId:
        tree = write_tree(self._runner, options)
        if tree is None:
            raise LedgerStateError("git write-tree produced no tree")
        return tree
