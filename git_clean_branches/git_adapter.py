"""
Git integration for git-clean-local-branches.

This module is responsible for every interaction with the git CLI:
checking that a directory is a work tree, resolving HEAD, listing
branch refs, testing ancestry and deleting branches. Queries that the
cleaner cannot do without raise GitError; branch-level operations
return a GitResult so callers branch on what happened rather than on
raw exit codes.
"""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

from .config import DEFAULT_GIT_TIMEOUT
from .domain import BranchRef
from .errors import GitError
from .ref_parser import BRANCH_REF_FORMAT, BRANCH_REF_PREFIX, parse_branch_refs

LOG = logging.getLogger(__name__)

NOT_FULLY_MERGED_MARKER = "not fully merged"


class GitStatus(str, Enum):
    OK = "ok"
    CONDITION_NOT_MET = "condition-not-met"
    FAILED = "failed"


@dataclass(frozen=True)
class GitResult:
    """
    Outcome of a single git invocation.

    CONDITION_NOT_MET means git ran fine but answered "no" (an unmerged
    branch for a safe delete, a non-ancestor for merge-base); FAILED
    covers everything else, including timeouts and a missing git binary.
    """

    status: GitStatus
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.status is GitStatus.OK

    @property
    def message(self) -> str:
        return self.stderr.strip() or self.stdout.strip()


def _git_env() -> Dict[str, str]:
    # Diagnostics are matched by text, so keep git's messages untranslated.
    env = os.environ.copy()
    env["LC_ALL"] = "C"
    env["LANG"] = "C"
    return env


def _invoke(
    args: List[str],
    cwd: Optional[Path] = None,
    timeout: float = DEFAULT_GIT_TIMEOUT,
) -> tuple[Optional[subprocess.CompletedProcess[str]], Optional[str]]:
    """
    Run git and return the completed process, or None with a reason.
    """

    cmd = ["git", *args]
    LOG.debug("Running git command: %s (cwd=%s)", " ".join(cmd), cwd)
    try:
        completed = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd is not None else None,
            check=False,
            text=True,
            capture_output=True,
            timeout=timeout,
            env=_git_env(),
        )
    except subprocess.TimeoutExpired:
        return None, f"git command timed out after {timeout:g}s: {' '.join(cmd)}"
    except OSError as exc:
        return None, f"failed to execute git: {exc}"
    return completed, None


def _run_git(
    args: List[str],
    cwd: Optional[Path] = None,
    timeout: float = DEFAULT_GIT_TIMEOUT,
) -> subprocess.CompletedProcess[str]:
    """
    Run a git command that is expected to succeed.

    Raises GitError including git's stderr when it does not.
    """

    completed, reason = _invoke(args, cwd=cwd, timeout=timeout)
    if completed is None:
        raise GitError(reason)

    if completed.returncode != 0:
        LOG.debug("git stderr: %s", completed.stderr)
        detail = completed.stderr.strip()
        message = f"git command failed: git {' '.join(args)}"
        if detail:
            message = f"{message}: {detail}"
        raise GitError(message)

    return completed


def _run_git_result(
    args: List[str],
    cwd: Optional[Path] = None,
    timeout: float = DEFAULT_GIT_TIMEOUT,
    condition_codes: tuple[int, ...] = (),
    condition_marker: Optional[str] = None,
) -> GitResult:
    """
    Run a git command and map its exit status to a GitResult.

    A non-zero exit counts as CONDITION_NOT_MET when its code is listed
    in condition_codes or its stderr contains condition_marker.
    """

    completed, reason = _invoke(args, cwd=cwd, timeout=timeout)
    if completed is None:
        LOG.debug("%s", reason)
        return GitResult(GitStatus.FAILED, stderr=reason or "")

    if completed.returncode == 0:
        return GitResult(GitStatus.OK, completed.stdout, completed.stderr)

    LOG.debug("git stderr: %s", completed.stderr)
    if completed.returncode in condition_codes or (
        condition_marker is not None and condition_marker in completed.stderr
    ):
        return GitResult(GitStatus.CONDITION_NOT_MET, completed.stdout, completed.stderr)
    return GitResult(GitStatus.FAILED, completed.stdout, completed.stderr)


class GitRepository:
    """
    Branch-level view of one git working tree.
    """

    def __init__(self, path: Path, timeout: float = DEFAULT_GIT_TIMEOUT) -> None:
        self.path = path
        self.timeout = timeout

    def __repr__(self) -> str:
        return f"GitRepository({str(self.path)!r})"

    def _git(self, args: List[str]) -> subprocess.CompletedProcess[str]:
        return _run_git(args, cwd=self.path, timeout=self.timeout)

    def is_work_tree(self) -> bool:
        result = _run_git_result(
            ["rev-parse", "--is-inside-work-tree"], cwd=self.path, timeout=self.timeout
        )
        return result.ok and result.stdout.strip() == "true"

    def current_branch(self) -> Optional[str]:
        """
        Return the checked-out branch name, or None on a detached HEAD.
        """

        name = self._git(["branch", "--show-current"]).stdout.strip()
        return name or None

    def head_commit(self) -> Optional[str]:
        """
        Return the commit HEAD points to, or None in an empty repository.
        """

        return self.resolve_commit("HEAD")

    def resolve_commit(self, ref: str) -> Optional[str]:
        result = _run_git_result(
            ["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"],
            cwd=self.path,
            timeout=self.timeout,
        )
        if not result.ok:
            return None
        return result.stdout.strip() or None

    def branch_commit(self, name: str) -> Optional[str]:
        return self.resolve_commit(f"{BRANCH_REF_PREFIX}{name}")

    def list_branches(self) -> List[BranchRef]:
        """
        Return every local branch with its upstream and last-commit metadata.
        """

        output = self._git(
            ["for-each-ref", f"--format={BRANCH_REF_FORMAT}", BRANCH_REF_PREFIX]
        ).stdout
        return parse_branch_refs(output)

    def is_ancestor(self, ancestor: str, descendant: str = "HEAD") -> GitResult:
        # merge-base --is-ancestor exits 1 for "no" and other codes for errors.
        return _run_git_result(
            ["merge-base", "--is-ancestor", ancestor, descendant],
            cwd=self.path,
            timeout=self.timeout,
            condition_codes=(1,),
        )

    def is_merged(self, name: str) -> bool:
        """
        True when the branch tip is reachable from HEAD.
        """

        tip = self.branch_commit(name)
        if tip is None:
            return False
        return self.is_ancestor(tip).ok

    def delete_branch(self, name: str) -> GitResult:
        """
        Safe delete; git refuses with CONDITION_NOT_MET when unmerged.
        """

        return _run_git_result(
            ["branch", "-d", "--", name],
            cwd=self.path,
            timeout=self.timeout,
            condition_marker=NOT_FULLY_MERGED_MARKER,
        )

    def force_delete_branch(self, name: str) -> GitResult:
        """
        Unsafe delete regardless of merge status.
        """

        return _run_git_result(
            ["branch", "-D", "--", name],
            cwd=self.path,
            timeout=self.timeout,
        )
