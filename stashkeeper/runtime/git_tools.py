from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, NewType, Optional, Sequence

from stashkeeper.models import GitOptions, Settings
from stashkeeper.runtime.run_logger import CommandLog

TreeId = NewType("TreeId", str)


class CommandError(RuntimeError):
    def __init__(self, argv: Sequence[str], returncode: int, stdout: bytes, stderr: bytes):
        self.argv = list(argv)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(
            f"Command failed ({returncode}): {' '.join(self.argv)}\n"
            f"{stderr.decode('utf-8', errors='replace')}"
        )


@dataclass(frozen=True)
class CommandResult:
    argv: list[str]
    returncode: int
    stdout: bytes
    stderr: bytes

    @property
    def text(self) -> str:
        # git prints one trailing newline; callers want the bare value
        return self.stdout.decode("utf-8", errors="replace").rstrip("\n")


def absolute_path(path: Path | str) -> Path:
    p = Path(path)
    return p if p.is_absolute() else p.resolve()


def git_dir_args(git_dir: Path | str | None) -> list[str]:
    if git_dir:
        return ["--git-dir", str(absolute_path(git_dir))]
    return []


class CommandRunner:
    """
    The only place that spawns the git executable.

    `options.cwd` is resolved to an absolute path before the call (defaulting
    to the process cwd) and `options.git_dir` becomes a `--git-dir` prefix so
    commands work from outside the repository root.
    """

    def __init__(self, executable: str = "git", logger: Optional[CommandLog] = None):
        self._executable = executable
        self._logger = logger

    @classmethod
    def from_settings(cls, settings: Settings) -> "CommandRunner":
        logger = CommandLog(settings.run_log_path) if settings.run_log_path else None
        return cls(executable=settings.git_executable, logger=logger)

    def run(
        self,
        args: Sequence[str],
        options: Optional[GitOptions] = None,
        *,
        ok_codes: Iterable[int] = (0,),
    ) -> CommandResult:
        options = GitOptions.coerce(options)
        cwd = absolute_path(options.cwd) if options.cwd else Path.cwd()
        argv = [self._executable, *git_dir_args(options.git_dir), *args]

        proc = subprocess.run(
            argv,
            cwd=str(cwd),
            capture_output=True,
        )

        if self._logger is not None:
            self._logger.record(argv, cwd, proc.returncode, proc.stderr)

        if proc.returncode not in tuple(ok_codes):
            raise CommandError(argv, proc.returncode, proc.stdout, proc.stderr)
        return CommandResult(
            argv=argv,
            returncode=proc.returncode,
            stdout=proc.stdout,
            stderr=proc.stderr,
        )


def write_tree(runner: CommandRunner, options: Optional[GitOptions] = None) -> Optional[TreeId]:
    """Materialize the index as a tree object. None when git prints nothing."""
    tree = runner.run(["write-tree"], options).text.strip()
    return TreeId(tree) if tree else None


def work_tree_options(runner: CommandRunner, options: Optional[GitOptions] = None) -> GitOptions:
    """
    Same options, with cwd moved to the top of the work tree.

    `checkout -- .`, `add .` and `apply` only touch paths below cwd, while
    diff-index and stash cover the whole repository, so sessions always run
    from the top.
    """
    options = GitOptions.coerce(options)
    top = runner.run(["rev-parse", "--show-toplevel"], options).text.strip()
    if not top:
        return options
    return GitOptions(cwd=Path(top), git_dir=options.git_dir)
