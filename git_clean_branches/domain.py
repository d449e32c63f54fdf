"""
Core domain models for git-clean-local-branches.

These dataclasses describe branch refs as reported by git, the candidate
branches of one repository pass, and the outcomes of a run. They avoid
any direct git or terminal dependencies so the cleaner can be exercised
against fakes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional

SECONDS_PER_DAY = 86400


class TrackingState(str, Enum):
    """
    Relationship between a local branch and its configured upstream.
    """

    UNTRACKED = "untracked"
    IN_SYNC = "in-sync"
    AHEAD = "ahead"
    BEHIND = "behind"
    DIVERGED = "diverged"
    GONE = "gone"


@dataclass(frozen=True)
class BranchRef:
    """
    One local branch ref with the metadata read from for-each-ref.

    commit_time is None when git could not report a committer date.
    """

    name: str
    upstream: Optional[str]
    tracking: TrackingState
    commit_time: Optional[int]
    author: str

    @property
    def upstream_gone(self) -> bool:
        return self.tracking is TrackingState.GONE


@dataclass(frozen=True)
class BranchRecord:
    """
    A candidate branch of one repository pass.
    """

    name: str
    tracking: TrackingState
    commit_time: int
    author: str
    age_days: int
    is_stale: bool
    is_merged: bool


def age_in_days(commit_time: int, now: float) -> int:
    """
    Whole days elapsed since commit_time, truncated rather than rounded.
    """

    return int(now - commit_time) // SECONDS_PER_DAY


def is_stale(age_days: int, stale_days: int) -> bool:
    # Equal to the threshold is not stale.
    return age_days > stale_days


class BranchOutcome(str, Enum):
    """
    What happened to a single candidate during the deleting phase.
    """

    DELETED_SAFE = "deleted-safe"
    DELETED_FORCE = "deleted-force"
    WOULD_DELETE_SAFE = "would-delete-safe"
    WOULD_DELETE_FORCE = "would-delete-force"
    SKIPPED_STALE = "skipped-stale"
    SKIPPED_PROTECTED = "skipped-protected"
    SKIPPED_REQUIRES_FORCE = "skipped-requires-force"
    SKIPPED_DECLINED = "skipped-declined"
    FAILED = "failed"

    @property
    def is_skip(self) -> bool:
        return self.value.startswith("skipped-")


@dataclass(frozen=True)
class BranchResult:
    name: str
    outcome: BranchOutcome
    detail: Optional[str] = None


class RepositoryStatus(str, Enum):
    """
    Terminal status of one repository pass.
    """

    ALL_CLEAR = "all-clear"
    NOTHING_TO_DELETE = "nothing-to-delete"
    CANCELLED = "cancelled"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class RepositoryResult:
    """
    Outcome of cleaning one repository.

    Only FAILED marks the pass itself as unsuccessful; per-branch
    failures are recorded in branches and do not fail the pass.
    """

    path: Path
    status: RepositoryStatus = RepositoryStatus.ALL_CLEAR
    found: int = 0
    branches: List[BranchResult] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.status is not RepositoryStatus.FAILED

    def count(self, *outcomes: BranchOutcome) -> int:
        return sum(1 for result in self.branches if result.outcome in outcomes)

    @property
    def deleted_safe(self) -> int:
        return self.count(BranchOutcome.DELETED_SAFE)

    @property
    def deleted_force(self) -> int:
        return self.count(BranchOutcome.DELETED_FORCE)

    @property
    def deleted(self) -> int:
        return self.deleted_safe + self.deleted_force

    @property
    def would_delete_safe(self) -> int:
        return self.count(BranchOutcome.WOULD_DELETE_SAFE)

    @property
    def would_delete_force(self) -> int:
        return self.count(BranchOutcome.WOULD_DELETE_FORCE)

    @property
    def skipped(self) -> int:
        return sum(1 for result in self.branches if result.outcome.is_skip)

    @property
    def failed(self) -> int:
        return self.count(BranchOutcome.FAILED)

    def names_with(self, outcome: BranchOutcome) -> List[str]:
        return [result.name for result in self.branches if result.outcome is outcome]


@dataclass
class RunSummary:
    """
    Aggregate of every repository pass in a run.
    """

    results: List[RepositoryResult] = field(default_factory=list)

    @property
    def found(self) -> int:
        return len(self.results)

    @property
    def processed(self) -> int:
        return sum(1 for result in self.results if result.succeeded)

    def add(self, result: RepositoryResult) -> None:
        self.results.append(result)
