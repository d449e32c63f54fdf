from pathlib import Path
from typing import Dict, List, Optional, Sequence, Set

import pytest

from git_clean_branches.config import Config
from git_clean_branches.domain import BranchRecord, BranchRef, SECONDS_PER_DAY, TrackingState
from git_clean_branches.git_adapter import GitResult, GitStatus
from git_clean_branches.reporting import Event, Reporter, Sink

NOW = 1_700_000_000.0


def days_ago(days: int, extra_seconds: int = 60) -> int:
    return int(NOW) - days * SECONDS_PER_DAY - extra_seconds


def gone(name: str, days: int = 1, author: str = "Ada Lovelace") -> BranchRef:
    return BranchRef(
        name=name,
        upstream=f"refs/remotes/origin/{name}",
        tracking=TrackingState.GONE,
        commit_time=days_ago(days),
        author=author,
    )


def tracked(name: str, days: int = 1, tracking: TrackingState = TrackingState.IN_SYNC) -> BranchRef:
    return BranchRef(
        name=name,
        upstream=f"refs/remotes/origin/{name}",
        tracking=tracking,
        commit_time=days_ago(days),
        author="Grace Hopper",
    )


class FakeRepository:
    """
    In-memory stand-in for GitRepository.

    Branches listed in merged are removed by a safe delete; the others
    need a force delete. Names in failing make every delete fail.
    """

    def __init__(
        self,
        path: Path,
        refs: Sequence[BranchRef] = (),
        current: Optional[str] = "main",
        head: str = "c0ffee",
        commits: Optional[Dict[str, str]] = None,
        merged: Sequence[str] = (),
        failing: Sequence[str] = (),
        work_tree: bool = True,
    ) -> None:
        self.path = path
        self.refs: List[BranchRef] = list(refs)
        self.current = current
        self.head = head
        self.commits = dict(commits or {})
        self.merged: Set[str] = set(merged)
        self.failing: Set[str] = set(failing)
        self.work_tree = work_tree
        self.safe_deleted: List[str] = []
        self.force_deleted: List[str] = []
        self.delete_attempts: List[str] = []

    def is_work_tree(self) -> bool:
        return self.work_tree

    def current_branch(self) -> Optional[str]:
        return self.current

    def head_commit(self) -> Optional[str]:
        return self.head

    def branch_commit(self, name: str) -> Optional[str]:
        return self.commits.get(name, f"sha-{name}")

    def list_branches(self) -> List[BranchRef]:
        return list(self.refs)

    def is_merged(self, name: str) -> bool:
        return name in self.merged

    def _remove(self, name: str) -> None:
        self.refs = [ref for ref in self.refs if ref.name != name]

    def delete_branch(self, name: str) -> GitResult:
        self.delete_attempts.append(name)
        if name in self.failing:
            return GitResult(GitStatus.FAILED, stderr="error: cannot lock ref")
        if name not in self.merged:
            return GitResult(
                GitStatus.CONDITION_NOT_MET,
                stderr=f"error: the branch '{name}' is not fully merged",
            )
        self._remove(name)
        self.safe_deleted.append(name)
        return GitResult(GitStatus.OK)

    def force_delete_branch(self, name: str) -> GitResult:
        self.delete_attempts.append(name)
        if name in self.failing:
            return GitResult(GitStatus.FAILED, stderr="error: cannot lock ref")
        self._remove(name)
        self.force_deleted.append(name)
        return GitResult(GitStatus.OK)

    @property
    def deleted(self) -> List[str]:
        return self.safe_deleted + self.force_deleted


class ScriptedPrompter:
    def __init__(self, answers: Sequence[bool] = ()) -> None:
        self.answers = list(answers)
        self.questions: List[str] = []

    def confirm(self, question: str) -> bool:
        self.questions.append(question)
        if not self.answers:
            raise AssertionError(f"unexpected prompt: {question}")
        return self.answers.pop(0)


class RecordingSink(Sink):
    def __init__(self) -> None:
        self.events: List[Event] = []
        self.tables: List[List[BranchRecord]] = []

    def emit(self, event: Event) -> None:
        self.events.append(event)

    def branch_table(self, records: Sequence[BranchRecord]) -> None:
        self.tables.append(list(records))

    @property
    def messages(self) -> List[str]:
        return [event.message for event in self.events]


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def reporter(sink) -> Reporter:
    return Reporter([sink])


@pytest.fixture
def make_repo(tmp_path):
    def _make(**kwargs) -> FakeRepository:
        return FakeRepository(tmp_path, **kwargs)

    return _make


@pytest.fixture
def make_config():
    def _make(**kwargs) -> Config:
        return Config(**kwargs)

    return _make


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture(name="gone")
def gone_fixture():
    return gone


@pytest.fixture(name="tracked")
def tracked_fixture():
    return tracked


@pytest.fixture(name="days_ago")
def days_ago_fixture():
    return days_ago


@pytest.fixture
def scripted():
    return ScriptedPrompter
