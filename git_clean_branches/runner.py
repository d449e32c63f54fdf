"""
High-level orchestration for git-clean-local-branches.

The runner is responsible for:
  - announcing the run and its options in multi-repository mode,
  - asking the scanner for repository roots,
  - invoking the cleaner once per repository, strictly in sequence, and
  - aggregating the per-repository results into a run summary.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Callable, Optional

from .cleaner import clean_repository
from .config import Config
from .domain import RepositoryResult, RunSummary
from .errors import RepositoryError
from .prompts import Prompter
from .reporting import Reporter, utc_timestamp
from .scanner import discover_repositories

LOG = logging.getLogger(__name__)

BANNER_RULE = "═" * 56

CleanFunc = Callable[[Path, Config, Reporter, Prompter], RepositoryResult]


def _announce_multi_repo(config: Config, reporter: Reporter) -> None:
    reporter.heading(f"╔{BANNER_RULE}╗")
    reporter.heading(f"║{'   Git Clean Local Branches - Multi-Repo Mode':<56}║")
    reporter.heading(f"╚{BANNER_RULE}╝")
    reporter.blank()
    reporter.info(f"Started: {utc_timestamp()}")
    reporter.info(f"Target folder: {config.folder}")
    reporter.info(f"Stale threshold: {config.stale_days} days")
    if config.exclude_stale:
        reporter.info("Mode: Exclude stale branches from deletion")
    if config.auto_confirm:
        reporter.warning("Auto-confirm: ENABLED")
    if config.dry_run:
        reporter.warning("Dry-run: ENABLED (nothing will be deleted)")
    if config.log_enabled:
        reporter.info(f"Log file: {config.log_file}")
    if config.force_delete:
        reporter.warning("Force-delete mode: ENABLED")
    if config.recursive:
        reporter.warning("Search mode: Recursive")
        if config.skip_nested:
            reporter.info("Nested repositories: skipped")
    reporter.blank()


def _unreadable_directory_warner(reporter: Reporter) -> Callable[[OSError], None]:
    def _warn(exc: OSError) -> None:
        reporter.warning(
            f"⚠ Cannot read directory, skipping: {exc.filename} ({exc.strerror})",
            directory=exc.filename,
        )

    return _warn


def _summarize(summary: RunSummary, reporter: Reporter) -> None:
    reporter.blank()
    reporter.heading(f"╔{BANNER_RULE}╗")
    reporter.heading(f"║{'   Summary':<56}║")
    reporter.heading(f"╚{BANNER_RULE}╝")
    reporter.info(f"Completed: {utc_timestamp()}")
    reporter.info(f"Total repositories found: {summary.found}", found=summary.found)
    reporter.success(f"Repositories processed: {summary.processed}", processed=summary.processed)

    if summary.found == 0:
        reporter.blank()
        reporter.warning("⚠ No git repositories found in the target folder")
        reporter.warning("  Make sure the folder contains git repositories (with .git directories)")
    reporter.blank()


def run_cleanup(
    config: Config,
    reporter: Reporter,
    prompter: Prompter,
    cwd: Optional[Path] = None,
    clean: Optional[CleanFunc] = None,
) -> RunSummary:
    """
    Entry point for the main CLI command.

    In single-repository mode a failed pass raises RepositoryError since
    there is nothing else to process. In multi-repository mode a failed
    pass is reported as a warning and the run continues.
    """

    LOG.debug("Starting git-clean-local-branches with config: %s", config)
    clean = clean or clean_repository
    summary = RunSummary()

    if not config.multi_repo:
        path = cwd or Path.cwd()
        result = clean(path, config, reporter, prompter)
        summary.add(result)
        if not result.succeeded:
            raise RepositoryError(result.error or f"cannot process repository {path}")
        return summary

    _announce_multi_repo(config, reporter)

    started = time.monotonic()
    on_error = _unreadable_directory_warner(reporter)
    for path in discover_repositories(config, cwd=cwd, on_error=on_error):
        result = clean(path, config, reporter, prompter)
        summary.add(result)
        if not result.succeeded:
            reporter.warning(
                f"⚠ Repository pass failed, continuing: {path}",
                repository=str(path),
            )

    LOG.info(
        "Processed %d/%d repositories in %.1fs",
        summary.processed,
        summary.found,
        time.monotonic() - started,
    )
    _summarize(summary, reporter)
    return summary
