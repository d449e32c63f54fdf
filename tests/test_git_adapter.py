import subprocess
from pathlib import Path

import pytest

from git_clean_branches.errors import GitError, RefParseError
from git_clean_branches.git_adapter import GitRepository, GitStatus, _run_git


def _completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=["git"], returncode=returncode, stdout=stdout, stderr=stderr)


def test_run_git_includes_stderr_details_on_failure(monkeypatch):
    def fake_run(*args, **kwargs):
        return _completed(returncode=128, stderr="fatal: not a git repository")

    monkeypatch.setattr("git_clean_branches.git_adapter.subprocess.run", fake_run)

    try:
        _run_git(["status"])
    except GitError as exc:
        message = str(exc)
        assert "git status" in message
        assert "fatal: not a git repository" in message
    else:
        raise AssertionError("expected GitError to be raised")


def test_run_git_passes_timeout_and_c_locale(monkeypatch):
    seen = {}

    def fake_run(cmd, **kwargs):
        seen["cmd"] = cmd
        seen.update(kwargs)
        return _completed(stdout="true\n")

    monkeypatch.setattr("git_clean_branches.git_adapter.subprocess.run", fake_run)

    assert GitRepository(Path("/repo"), timeout=7).is_work_tree()
    assert seen["cmd"] == ["git", "rev-parse", "--is-inside-work-tree"]
    assert seen["cwd"] == "/repo"
    assert seen["timeout"] == 7
    assert seen["env"]["LC_ALL"] == "C"


def test_safe_delete_of_unmerged_branch_is_condition_not_met(monkeypatch):
    monkeypatch.setattr(
        "git_clean_branches.git_adapter.subprocess.run",
        lambda *args, **kwargs: _completed(
            returncode=1,
            stderr="error: the branch 'topic' is not fully merged.\n",
        ),
    )

    result = GitRepository(Path("/repo")).delete_branch("topic")

    assert result.status is GitStatus.CONDITION_NOT_MET
    assert "not fully merged" in result.message


def test_safe_delete_other_errors_are_failures(monkeypatch):
    monkeypatch.setattr(
        "git_clean_branches.git_adapter.subprocess.run",
        lambda *args, **kwargs: _completed(returncode=1, stderr="error: cannot lock ref 'refs/heads/topic'"),
    )

    result = GitRepository(Path("/repo")).delete_branch("topic")

    assert result.status is GitStatus.FAILED


def test_timeout_maps_to_failed_result(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

    monkeypatch.setattr("git_clean_branches.git_adapter.subprocess.run", fake_run)

    result = GitRepository(Path("/repo"), timeout=2).force_delete_branch("topic")

    assert result.status is GitStatus.FAILED
    assert "timed out after 2s" in result.message


def test_missing_git_binary_raises_for_required_queries(monkeypatch):
    def fake_run(cmd, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", "git")

    monkeypatch.setattr("git_clean_branches.git_adapter.subprocess.run", fake_run)

    with pytest.raises(GitError, match="failed to execute git"):
        GitRepository(Path("/repo")).list_branches()


def test_merge_base_exit_one_means_not_an_ancestor(monkeypatch):
    monkeypatch.setattr(
        "git_clean_branches.git_adapter.subprocess.run",
        lambda *args, **kwargs: _completed(returncode=1),
    )

    assert GitRepository(Path("/repo")).is_ancestor("abc").status is GitStatus.CONDITION_NOT_MET


def test_current_branch_is_none_on_detached_head(monkeypatch):
    monkeypatch.setattr(
        "git_clean_branches.git_adapter.subprocess.run",
        lambda *args, **kwargs: _completed(stdout="\n"),
    )

    assert GitRepository(Path("/repo")).current_branch() is None


def test_list_branches_surfaces_malformed_records(monkeypatch):
    monkeypatch.setattr(
        "git_clean_branches.git_adapter.subprocess.run",
        lambda *args, **kwargs: _completed(stdout="refs/heads/main only-one-field\n"),
    )

    with pytest.raises(RefParseError):
        GitRepository(Path("/repo")).list_branches()
