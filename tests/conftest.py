import shutil
import subprocess
from pathlib import Path

import pytest

from stashkeeper.config_loader import ENV_OVERRIDES
from stashkeeper.runtime.git_tools import CommandError, CommandResult

BASE = "".join(f"line {i}\n" for i in range(1, 11))

needs_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def with_line(text: str, number: int, replacement: str) -> str:
    lines = text.splitlines(keepends=True)
    lines[number - 1] = replacement + "\n"
    return "".join(lines)


def git(repo: Path, *args: str) -> str:
    proc = subprocess.run(
        ["git", *args],
        cwd=str(repo),
        capture_output=True,
        text=True,
        check=True,
    )
    return proc.stdout


class FakeRunner:
    """
    Records argv and answers from a script.

    `responses` maps an args tuple to (returncode, stdout) or to a list of
    those, consumed one per call. Unknown commands succeed with no output.
    """

    def __init__(self, responses=None):
        self.calls: list[list[str]] = []
        self.responses = dict(responses or {})

    def run(self, args, options=None, *, ok_codes=(0,)):
        args = list(args)
        self.calls.append(args)
        answer = self.responses.get(tuple(args), (0, b""))
        if isinstance(answer, list):
            answer = answer.pop(0)
        code, out = answer
        argv = ["git", *args]
        if code not in tuple(ok_codes):
            raise CommandError(argv, code, out, b"error: scripted failure")
        return CommandResult(argv=argv, returncode=code, stdout=out, stderr=b"")


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch):
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def repo(tmp_path: Path) -> Path:
    root = tmp_path / "repo"
    root.mkdir()
    git(root, "init", "-q")
    git(root, "config", "user.email", "dev@example.com")
    git(root, "config", "user.name", "Dev")
    git(root, "config", "commit.gpgsign", "false")
    (root / "a.txt").write_text(BASE)
    git(root, "add", "a.txt")
    git(root, "commit", "-q", "-m", "init")
    return root
