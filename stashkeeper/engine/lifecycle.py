from __future__ import annotations

import secrets
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from stashkeeper.engine.audit import AuditLogEntry, AuditLogger
from stashkeeper.engine.detector import has_unstaged_changes
from stashkeeper.engine.state_machine import SessionState, resolve_transition
from stashkeeper.models import GitOptions, OptionsLike, Settings
from stashkeeper.runtime.git_tools import CommandError, CommandRunner, work_tree_options
from stashkeeper.runtime.patch_tools import capture_patch


class NoPatchError(RuntimeError):
    pass


def new_session_id() -> str:
    ts = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
    suffix = secrets.token_hex(2)
    return f"{ts}_{suffix}"


@dataclass
class StashSession:
    options: GitOptions
    session_id: str = field(default_factory=new_session_id)
    state: SessionState = SessionState.CLEAN

    patch_path: Optional[Path] = None
    touched_paths: tuple[str, ...] = ()

    # stash entries created by this session that are still on the stack
    owned_stashes: int = 0


class PatchLifecycle:
    """
    Hides unstaged edits while a hook runs, then puts them back.

    save() captures the unstaged diff as a patch file and stashes with
    --keep-index, leaving only staged content on disk. restore() resets the
    working tree to the index (which carries any fixes the hook staged) and
    replays the patch. If the patch no longer applies, the hook's fixes are
    stashed, the original stash is popped and the fix stash tree is read
    into the index, so the user's edits end up in the working tree and the
    hook's fixes in the index. cleanup() drops what is left on the stash
    stack and removes the patch file.
    """

    def __init__(
        self,
        runner: CommandRunner,
        settings: Optional[Settings] = None,
        audit: Optional[AuditLogger] = None,
    ):
        self._runner = runner
        self._settings = settings or Settings()
        self._audit = audit

    @property
    def runner(self) -> CommandRunner:
        return self._runner

    def save(self, options: OptionsLike = None, session: Optional[StashSession] = None) -> StashSession:
        if session is None:
            session = StashSession(options=GitOptions.coerce(options))
        resolve_transition(session.state, SessionState.STASHED)
        session.options = work_tree_options(self._runner, session.options)

        if not has_unstaged_changes(self._runner, session.options):
            return session

        result = capture_patch(self._runner, session.options, self._settings.patch_filename)
        if result.path is None:
            # changes vanished between the two diffs
            return session
        session.patch_path = result.path
        session.touched_paths = result.touched_paths

        try:
            self._runner.run(["stash", "--keep-index"], session.options)
        except CommandError:
            result.path.unlink(missing_ok=True)
            session.patch_path = None
            session.touched_paths = ()
            raise
        session.owned_stashes = 1

        self._move(session, SessionState.STASHED, note=f"{len(result.touched_paths)} file(s) stashed")
        return session

    def restore(self, session: StashSession) -> SessionState:
        if session.patch_path is None:
            raise NoPatchError("No patch found")
        resolve_transition(session.state, SessionState.APPLIED)

        options = session.options
        # drop unstaged hook output; staged fixes survive in the index
        self._runner.run(["checkout", "--", "."], options)
        try:
            self._runner.run(["apply", "--whitespace=nowarn", str(session.patch_path)], options)
        except CommandError as e:
            self._move(
                session,
                SessionState.CONFLICTED,
                note=f"patch does not apply; recovering: {e.stderr.decode('utf-8', errors='replace').strip()}",
            )
            self._recover_conflicts(session)
            return session.state

        self._move(session, SessionState.APPLIED)
        return session.state

    def cleanup(self, session: StashSession) -> None:
        resolve_transition(session.state, SessionState.CLEAN)

        while session.owned_stashes > 0:
            self._runner.run(["stash", "drop"], session.options)
            session.owned_stashes -= 1

        if session.patch_path is not None:
            # the hook may have cleaned untracked files
            session.patch_path.unlink(missing_ok=True)
            session.patch_path = None
        session.touched_paths = ()

        self._move(session, SessionState.CLEAN)

    def _recover_conflicts(self, session: StashSession) -> None:
        options = session.options
        before = self._stash_count(options)
        self._runner.run(["stash"], options)

        if self._stash_count(options) > before:
            session.owned_stashes += 1
            self._runner.run(["stash", "pop", "stash@{1}"], options)
            session.owned_stashes -= 1
            self._runner.run(["read-tree", "-m", "-i", "stash"], options)
        else:
            # hook left nothing to stash; the original entry is still on top
            self._runner.run(["stash", "pop", "stash@{0}"], options)
            session.owned_stashes -= 1

    def _stash_count(self, options: GitOptions) -> int:
        out = self._runner.run(["stash", "list"], options).text
        return len([line for line in out.splitlines() if line])

    def _move(self, session: StashSession, to_state: SessionState, note: str = "") -> None:
        from_state = session.state
        resolve_transition(from_state, to_state)
        session.state = to_state

        if self._audit is not None:
            self._audit.log(
                AuditLogEntry(
                    timestamp=AuditLogger.now_iso(),
                    session_id=session.session_id,
                    from_state=from_state.value,
                    to_state=to_state.value,
                    cwd=str(session.options.cwd or Path.cwd()),
                    patch_path=str(session.patch_path) if session.patch_path else None,
                    note=note,
                )
            )
