import json
from pathlib import Path

import pytest

from stashkeeper import api
from stashkeeper.engine.lifecycle import NoPatchError
from stashkeeper.engine.state_machine import SessionState

from conftest import BASE, git, needs_git, with_line


def test_pop_without_save_raises():
    with pytest.raises(NoPatchError):
        api.pop_stash(None)


def test_git_dir_args_exported():
    assert api.git_dir_args(None) == []


@needs_git
def test_execute_runs_in_cwd(repo: Path):
    res = api.execute(["rev-parse", "--is-inside-work-tree"], {"cwd": str(repo)})
    assert res.text == "true"


@needs_git
def test_unstaged_queries(repo: Path):
    opts = {"cwd": str(repo)}
    assert api.has_unstaged_files(opts) is False
    (repo / "a.txt").write_text(with_line(BASE, 4, "edited"))
    assert api.list_unstaged_files(opts) == ["a.txt"]
    assert api.has_unstaged_files(opts) is True


@needs_git
def test_save_pop_then_second_pop_fails(repo: Path):
    edited = with_line(BASE, 4, "edited")
    (repo / "a.txt").write_text(edited)
    opts = {"cwd": str(repo)}

    session = api.save_stash(opts)
    assert (repo / "a.txt").read_text() == BASE
    assert api.pop_stash(session) is SessionState.APPLIED
    assert (repo / "a.txt").read_text() == edited
    assert git(repo, "stash", "list") == ""

    with pytest.raises(NoPatchError):
        api.pop_stash(session)


@needs_git
def test_staged_only_context(repo: Path):
    edited = with_line(BASE, 4, "edited")
    (repo / "a.txt").write_text(edited)

    with api.staged_only({"cwd": str(repo)}) as session:
        assert session.state is SessionState.STASHED
        assert (repo / "a.txt").read_text() == BASE

    assert session.state is SessionState.CLEAN
    assert (repo / "a.txt").read_text() == edited


@needs_git
def test_staged_only_on_clean_tree(repo: Path):
    with api.staged_only({"cwd": str(repo)}) as session:
        assert session.state is SessionState.CLEAN
    assert git(repo, "stash", "list") == ""


@needs_git
def test_settings_from_env_drive_logging(repo: Path, tmp_path: Path, monkeypatch):
    monkeypatch.setenv("STASHKEEPER_AUDIT_LOG", str(tmp_path / "audit.jsonl"))
    monkeypatch.setenv("STASHKEEPER_RUN_LOG", str(tmp_path / "run.jsonl"))
    (repo / "a.txt").write_text(with_line(BASE, 4, "edited"))

    api.pop_stash(api.save_stash({"cwd": str(repo)}))

    audit = [json.loads(line) for line in (tmp_path / "audit.jsonl").read_text().splitlines()]
    assert [r["to_state"] for r in audit] == ["stashed", "applied", "clean"]
    commands = [json.loads(line)["argv"] for line in (tmp_path / "run.jsonl").read_text().splitlines()]
    assert ["git", "stash", "--keep-index"] in commands


@needs_git
def test_ledger_round_trip(repo: Path):
    edited = with_line(BASE, 4, "edited")
    (repo / "a.txt").write_text(edited)
    opts = {"cwd": str(repo)}

    ledger = api.begin_ledger(opts)
    assert (repo / "a.txt").read_text() == BASE
    api.advance_ledger(ledger, opts)
    assert len(ledger.trees) == 2
    api.end_ledger(ledger, opts)
    assert (repo / "a.txt").read_text() == edited


@needs_git
def test_pop_with_subdirectory_options(repo: Path):
    (repo / "sub").mkdir()
    edited = with_line(BASE, 4, "edited")
    (repo / "a.txt").write_text(edited)

    session = api.save_stash({"cwd": str(repo / "sub")})
    assert api.pop_stash(session, {"cwd": str(repo / "sub")}) is SessionState.APPLIED
    assert (repo / "a.txt").read_text() == edited
    assert git(repo, "stash", "list") == ""
