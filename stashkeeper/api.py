"""
Entry points for hook runners.

Each call builds its collaborators from load_settings(), so a
stashkeeper.yaml or STASHKEEPER_* environment variables apply everywhere.
Typical use:

    with staged_only({"cwd": repo}) as session:
        run_linters()
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional, Sequence

from stashkeeper.config_loader import load_settings
from stashkeeper.engine.audit import AuditLogger
from stashkeeper.engine.detector import has_unstaged_changes, list_unstaged_paths
from stashkeeper.engine.ledger import LedgerSession, TreeLedger
from stashkeeper.engine.lifecycle import NoPatchError, PatchLifecycle, StashSession
from stashkeeper.engine.state_machine import SessionState
from stashkeeper.models import GitOptions, OptionsLike, Settings
from stashkeeper.runtime.git_tools import CommandResult, CommandRunner, TreeId, git_dir_args, work_tree_options

__all__ = [
    "advance_ledger",
    "begin_ledger",
    "end_ledger",
    "execute",
    "git_dir_args",
    "has_unstaged_files",
    "list_unstaged_files",
    "pop_stash",
    "save_stash",
    "staged_only",
]


def _runner(settings: Optional[Settings] = None) -> CommandRunner:
    return CommandRunner.from_settings(settings or load_settings())


def _lifecycle() -> PatchLifecycle:
    settings = load_settings()
    audit = AuditLogger(settings.audit_log_path) if settings.audit_log_path else None
    return PatchLifecycle(_runner(settings), settings, audit)


def execute(args: Sequence[str], options: OptionsLike = None) -> CommandResult:
    return _runner().run(args, GitOptions.coerce(options))


def list_unstaged_files(options: OptionsLike = None) -> list[str]:
    return list_unstaged_paths(_runner(), GitOptions.coerce(options))


def has_unstaged_files(options: OptionsLike = None) -> bool:
    return has_unstaged_changes(_runner(), GitOptions.coerce(options))


def save_stash(options: OptionsLike = None) -> StashSession:
    return _lifecycle().save(options)


def pop_stash(session: Optional[StashSession], options: OptionsLike = None) -> SessionState:
    """
    Restore the unstaged edits held by `session`, then clean up.

    Returns APPLIED or CONFLICTED (the state restore ended in). Cleanup is
    skipped when restore raises, leaving the stash entry in place.
    """
    if session is None:
        raise NoPatchError("No patch found")
    lifecycle = _lifecycle()
    if options is not None:
        session.options = work_tree_options(lifecycle.runner, options)
    outcome = lifecycle.restore(session)
    lifecycle.cleanup(session)
    return outcome


@contextmanager
def staged_only(options: OptionsLike = None) -> Iterator[StashSession]:
    session = save_stash(options)
    try:
        yield session
    finally:
        if session.state is SessionState.STASHED:
            pop_stash(session)


def begin_ledger(options: OptionsLike = None) -> LedgerSession:
    return TreeLedger(_runner()).begin(options)


def advance_ledger(ledger: LedgerSession, options: OptionsLike = None) -> TreeId:
    return TreeLedger(_runner()).advance(ledger, options)


def end_ledger(ledger: LedgerSession, options: OptionsLike = None) -> None:
    TreeLedger(_runner()).end(ledger, options)
