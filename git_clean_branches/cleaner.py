"""
Per-repository branch cleanup.

A BranchCleaner walks one repository through

    entered -> scanning -> confirming -> deleting -> reported

with early exits to "reported" when the path is not a repository, when
there are no candidates, when exclude-stale leaves nothing to delete and
when the operator declines. Candidates are local branches whose upstream
is gone; the checked-out branch (or, on a detached HEAD, any branch at
the HEAD commit) never enters consideration.
"""

from __future__ import annotations

import logging
import os
import time
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional

from .config import Config
from .domain import (
    BranchOutcome,
    BranchRecord,
    BranchRef,
    BranchResult,
    RepositoryResult,
    RepositoryStatus,
    age_in_days,
    is_stale,
)
from .errors import GitError
from .git_adapter import GitRepository, GitStatus
from .prompts import Prompter
from .reporting import Reporter

LOG = logging.getLogger(__name__)

SEPARATOR = "━" * 54


class CleanerState(str, Enum):
    ENTERED = "entered"
    SCANNING = "scanning"
    CONFIRMING = "confirming"
    DELETING = "deleting"
    REPORTED = "reported"


class BranchCleaner:
    """
    Clean gone branches in a single repository according to a Config.

    repo is anything with the GitRepository interface, which lets tests
    drive the state machine without a real repository.
    """

    def __init__(
        self,
        repo: GitRepository,
        config: Config,
        reporter: Reporter,
        prompter: Prompter,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.repo = repo
        self.config = config
        self.reporter = reporter
        self.prompter = prompter
        self.clock = clock

        self.state: Optional[CleanerState] = None
        self.history: List[CleanerState] = []
        self.current_branch: Optional[str] = None
        self.detached_head: Optional[str] = None
        self.result = RepositoryResult(path=repo.path)

    # -- state machine -------------------------------------------------

    def run(self) -> RepositoryResult:
        self._transition(CleanerState.ENTERED)
        if not self._enter():
            return self._report()

        self._transition(CleanerState.SCANNING)
        candidates = self._scan()
        if not candidates:
            return self._report()

        self._transition(CleanerState.CONFIRMING)
        if not self._confirm(candidates):
            return self._report()

        self._transition(CleanerState.DELETING)
        self._delete_all(candidates)
        self.result.status = RepositoryStatus.COMPLETED
        return self._report()

    def _transition(self, state: CleanerState) -> None:
        LOG.debug("%s: %s -> %s", self.repo.path, self.state, state.value)
        self.state = state
        self.history.append(state)

    def _fail(self, message: str) -> None:
        self.result.status = RepositoryStatus.FAILED
        self.result.error = message
        LOG.debug("%s: pass failed: %s", self.repo.path, message)
        # A single-repository failure is fatal and reported once by the caller.
        if self.config.multi_repo:
            self.reporter.error(f"Error: {message}", repository=str(self.repo.path))

    # -- entered -------------------------------------------------------

    def _enter(self) -> bool:
        path = self.repo.path
        if not path.is_dir() or not os.access(path, os.R_OK | os.X_OK):
            self._fail(f"Cannot access directory: {path}")
            return False

        if not self.repo.is_work_tree():
            self._fail(f"Not a git repository: {path}")
            return False

        try:
            self.current_branch = self.repo.current_branch()
            if self.current_branch is None:
                self.detached_head = self.repo.head_commit()
                LOG.debug("%s: detached HEAD at %s", path, self.detached_head)
        except GitError as exc:
            self._fail(f"Cannot resolve HEAD in {path}: {exc}")
            return False

        self._announce()
        return True

    def _announce(self) -> None:
        if self.config.multi_repo:
            self.reporter.blank()
            self.reporter.notice(SEPARATOR)
            self.reporter.heading(f"Repository: {self.repo.path.name}")
            self.reporter.notice(f"Path: {self.repo.path}")
            self.reporter.notice(SEPARATOR)
        else:
            self.reporter.heading("=== Git Clean Local Branches ===")
            self.reporter.blank()

    # -- scanning ------------------------------------------------------

    def _is_protected(self, name: str) -> bool:
        if self.current_branch is not None:
            return name == self.current_branch
        if self.detached_head is None:
            return False
        return self.repo.branch_commit(name) == self.detached_head

    def _scan(self) -> Optional[List[BranchRecord]]:
        self.reporter.info("Looking for local branches without remote counterparts...")
        self.reporter.blank()

        try:
            refs = self.repo.list_branches()
        except GitError as exc:
            self._fail(f"Cannot list branches in {self.repo.path}: {exc}")
            return None

        now = self.clock()
        candidates: List[BranchRecord] = []
        for ref in refs:
            record = self._classify(ref, now)
            if record is not None:
                candidates.append(record)

        self.result.found = len(candidates)
        if not candidates:
            self.result.status = RepositoryStatus.ALL_CLEAR
            self.reporter.success("✓ No branches found with deleted remotes")
            if not self.config.multi_repo:
                self.reporter.info(
                    "All your local branches have corresponding remotes or are local-only branches."
                )
            return candidates

        self.reporter.branch_table(candidates)
        self.reporter.blank()
        self.reporter.warning(f"Total: {len(candidates)} branch(es)", found=len(candidates))

        stale = [record for record in candidates if record.is_stale]
        if self.config.exclude_stale and stale:
            self.reporter.warning(
                f"Stale branches (will be excluded from deletion): {len(stale)}"
            )
            self.reporter.notice(
                "ℹ Stale branches are shown for information only (--exclude-stale is set)"
            )
        return candidates

    def _classify(self, ref: BranchRef, now: float) -> Optional[BranchRecord]:
        if not ref.upstream_gone:
            return None

        if self._is_protected(ref.name):
            LOG.debug("%s: not considering checked-out branch %s", self.repo.path, ref.name)
            return None

        if ref.commit_time is None:
            self.reporter.warning(
                f"⚠ Warning: Could not get commit date for branch: {ref.name}",
                branch=ref.name,
            )
            return None

        age = age_in_days(ref.commit_time, now)
        return BranchRecord(
            name=ref.name,
            tracking=ref.tracking,
            commit_time=ref.commit_time,
            author=ref.author,
            age_days=age,
            is_stale=is_stale(age, self.config.stale_days),
            is_merged=self.repo.is_merged(ref.name),
        )

    # -- confirming ----------------------------------------------------

    def _excluded(self, record: BranchRecord) -> bool:
        return self.config.exclude_stale and record.is_stale

    def _confirm(self, candidates: List[BranchRecord]) -> bool:
        deletable = [record for record in candidates if not self._excluded(record)]
        if not deletable:
            self.result.status = RepositoryStatus.NOTHING_TO_DELETE
            self.reporter.blank()
            self.reporter.heading("No branches to delete (all are stale or excluded)")
            return False

        self.reporter.blank()
        if self.config.dry_run:
            self.reporter.warning("Dry run: showing what would be deleted, nothing will be changed")
            return True

        if self.config.auto_confirm:
            self.reporter.warning("Auto-confirm enabled, deleting branches...")
            return True

        if not self.prompter.confirm("Do you want to delete these branches?"):
            self.result.status = RepositoryStatus.CANCELLED
            self.reporter.heading("Cancelled. No branches deleted.")
            return False
        return True

    # -- deleting ------------------------------------------------------

    def _record(self, record: BranchRecord, outcome: BranchOutcome, detail: Optional[str] = None) -> None:
        self.result.branches.append(BranchResult(record.name, outcome, detail))

        fields = {"branch": record.name, "outcome": outcome.value}
        name = record.name
        if outcome is BranchOutcome.DELETED_SAFE:
            self.reporter.success(f"✓ Deleted (safe): {name}", **fields)
        elif outcome is BranchOutcome.DELETED_FORCE:
            self.reporter.success(f"✓ Deleted (force): {name}", **fields)
        elif outcome is BranchOutcome.WOULD_DELETE_SAFE:
            self.reporter.warning(f"Would delete (safe): {name}", **fields)
        elif outcome is BranchOutcome.WOULD_DELETE_FORCE:
            self.reporter.warning(f"Would delete (force): {name}", **fields)
        elif outcome is BranchOutcome.SKIPPED_STALE:
            self.reporter.notice(f"⊗ Skipped (stale): {name}", **fields)
        elif outcome is BranchOutcome.SKIPPED_PROTECTED:
            self.reporter.notice(f"⊗ Skipped (checked out): {name}", **fields)
        elif outcome is BranchOutcome.SKIPPED_REQUIRES_FORCE:
            prefix = "Would skip" if self.config.dry_run else "⊗ Skipped"
            self.reporter.warning(f"{prefix} (would require force to delete): {name}", **fields)
        elif outcome is BranchOutcome.SKIPPED_DECLINED:
            self.reporter.notice(f"⊗ Skipped (user cancelled force delete): {name}", **fields)
        else:
            message = f"✗ Failed to delete: {name}"
            if detail:
                message = f"{message} ({detail})"
            self.reporter.error(message, **fields)

    def _delete_all(self, candidates: List[BranchRecord]) -> None:
        self.reporter.blank()
        for record in candidates:
            if self._excluded(record):
                self._record(record, BranchOutcome.SKIPPED_STALE)
            elif self._is_protected(record.name):
                self._record(record, BranchOutcome.SKIPPED_PROTECTED)
            elif self.config.dry_run:
                self._preview(record)
            else:
                self._delete(record)

    def _preview(self, record: BranchRecord) -> None:
        if record.is_merged:
            self._record(record, BranchOutcome.WOULD_DELETE_SAFE)
        elif self.config.force_delete:
            self._record(record, BranchOutcome.WOULD_DELETE_FORCE)
        else:
            self._record(record, BranchOutcome.SKIPPED_REQUIRES_FORCE)

    def _delete(self, record: BranchRecord) -> None:
        result = self.repo.delete_branch(record.name)
        if result.ok:
            self._record(record, BranchOutcome.DELETED_SAFE)
            return

        if result.status is GitStatus.FAILED:
            self._record(record, BranchOutcome.FAILED, result.message or None)
            return

        # Not fully merged: only the force policy decides from here.
        if self.config.force_delete:
            self._force_delete_by_flag(record)
        elif self.config.auto_confirm:
            self._record(record, BranchOutcome.SKIPPED_REQUIRES_FORCE)
        else:
            self._force_delete_if_confirmed(record)

    def _force_delete_by_flag(self, record: BranchRecord) -> None:
        """
        Unsafe delete authorised up front by --force-delete.
        """

        if not self.config.force_delete:
            self._record(record, BranchOutcome.SKIPPED_REQUIRES_FORCE)
            return
        self._apply_force_delete(record)

    def _force_delete_if_confirmed(self, record: BranchRecord) -> None:
        """
        Unsafe delete authorised by the operator for this branch only.

        Never reached in unattended mode.
        """

        if self.config.auto_confirm:
            self._record(record, BranchOutcome.SKIPPED_REQUIRES_FORCE)
            return

        question = f"Branch '{record.name}' is not fully merged. Force delete?"
        if self.prompter.confirm(question):
            self._apply_force_delete(record)
        else:
            self._record(record, BranchOutcome.SKIPPED_DECLINED)

    def _apply_force_delete(self, record: BranchRecord) -> None:
        result = self.repo.force_delete_branch(record.name)
        if result.ok:
            self._record(record, BranchOutcome.DELETED_FORCE)
        else:
            self._record(record, BranchOutcome.FAILED, result.message or None)

    # -- reported ------------------------------------------------------

    def _report(self) -> RepositoryResult:
        self._transition(CleanerState.REPORTED)
        result = self.result
        if result.status is not RepositoryStatus.COMPLETED:
            return result

        self.reporter.blank()
        if self.config.dry_run:
            self.reporter.heading(
                f"Dry-run: Would have deleted {result.would_delete_safe} branch(es) (safe), "
                f"{result.would_delete_force} branch(es) (force). Skipped: {result.skipped}"
            )
        elif result.deleted or result.skipped or result.failed:
            self.reporter.success(
                f"✓ Done! Deleted {result.deleted} branch(es) "
                f"({result.deleted_safe} safe, {result.deleted_force} force)"
            )
            if result.skipped:
                self.reporter.notice(f"  Skipped {result.skipped} branch(es)")
            if result.failed:
                self.reporter.error(f"  Failed {result.failed} branch(es)")
        else:
            self.reporter.heading("No branches were deleted")
        return result


def clean_repository(
    path: Path,
    config: Config,
    reporter: Reporter,
    prompter: Prompter,
    clock: Callable[[], float] = time.time,
) -> RepositoryResult:
    """
    Run one cleanup pass over the repository at path.
    """

    repo = GitRepository(path, timeout=config.git_timeout)
    return BranchCleaner(repo, config, reporter, prompter, clock=clock).run()
