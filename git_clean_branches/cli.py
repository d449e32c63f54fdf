"""
Command-line interface for git-clean-local-branches.

This module is responsible for argument parsing, turning the parsed
flags into an immutable Config, wiring up output sinks and delegating
to the high-level orchestration in the runner module.
"""

from __future__ import annotations

import argparse
import logging
import math
import sys
from pathlib import Path
from typing import List, NoReturn, Optional

from rich.console import Console

from .config import DEFAULT_GIT_TIMEOUT, DEFAULT_STALE_DAYS, Config, default_log_path
from .errors import CleanBranchesError, EnvironmentSetupError, UsageError
from .logging_utils import configure_logging
from .prompts import TerminalPrompter
from .reporting import ConsoleRenderer, Level, PlainLogWriter, Reporter, Sink
from .runner import run_cleanup
from .scanner import normalize_folder

PROG = "git-clean-local-branches"
HELP_FLAGS = ("-h", "--help")

LOG = logging.getLogger(__name__)

# Marks "--log" given without a file name.
_DEFAULT_LOG = "<default>"

EPILOG = """\
examples:
  git-clean-local-branches                        clean the current repository
  git-clean-local-branches -f ~/projects          clean all repositories in ~/projects
  git-clean-local-branches -f ~/projects -y       clean all repositories, auto-confirm
  git-clean-local-branches -s 60                  mark branches older than 60 days as stale
  git-clean-local-branches -x                     show stale branches but don't delete them
  git-clean-local-branches -l cleanup.log         also log all output to cleanup.log
  git-clean-local-branches -f ~/projects -r -n    preview a recursive multi-repository run
"""


class ArgumentParser(argparse.ArgumentParser):
    """
    argparse parser that raises UsageError instead of exiting with status 2.
    """

    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


def _positive_int(raw: str) -> int:
    value = int(raw) if raw.isdigit() else 0
    if value <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer (got: {raw!r})")
    return value


def _positive_float(raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        value = 0.0
    if not (math.isfinite(value) and value > 0):
        raise argparse.ArgumentTypeError(f"must be a positive number of seconds (got: {raw!r})")
    return value


def build_arg_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog=PROG,
        description=(
            "Find local git branches whose remote counterpart has been deleted "
            "and optionally delete them, in one repository or a folder of repositories."
        ),
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )

    parser.add_argument(
        "-f",
        "--folder",
        metavar="PATH",
        help="Run on all git repositories in the specified folder.",
    )
    parser.add_argument(
        "-r",
        "--recursive",
        action="store_true",
        help="Search for git repositories recursively under PATH.",
    )
    parser.add_argument(
        "--skip-nested",
        action="store_true",
        help="With --recursive, do not descend into repositories already found.",
    )
    parser.add_argument(
        "-y",
        "--yes",
        dest="auto_confirm",
        action="store_true",
        help="Auto-confirm deletions (use with caution!). Does not imply --force-delete.",
    )
    parser.add_argument(
        "-s",
        "--stale-days",
        metavar="DAYS",
        type=_positive_int,
        default=DEFAULT_STALE_DAYS,
        help=f"Threshold in days for marking branches stale (default: {DEFAULT_STALE_DAYS}).",
    )
    parser.add_argument(
        "-x",
        "--exclude-stale",
        action="store_true",
        help="Show stale branches but never delete them.",
    )
    parser.add_argument(
        "-l",
        "--log",
        metavar="FILE",
        nargs="?",
        const=_DEFAULT_LOG,
        default=None,
        help=f"Append plain-text log output to FILE (default: {default_log_path()}).",
    )
    parser.add_argument(
        "-n",
        "--dry-run",
        action="store_true",
        help="Show what would be deleted without deleting anything.",
    )
    parser.add_argument(
        "-F",
        "--force-delete",
        action="store_true",
        help="Force delete (git branch -D) branches that are not fully merged.",
    )
    parser.add_argument(
        "--git-timeout",
        metavar="SECONDS",
        type=_positive_float,
        default=DEFAULT_GIT_TIMEOUT,
        help=f"Timeout for each git command (default: {DEFAULT_GIT_TIMEOUT:g}).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase diagnostic verbosity on stderr (can be specified multiple times).",
    )

    return parser


def build_config(args: argparse.Namespace) -> Config:
    """
    Validate parsed flags and freeze them into a Config.
    """

    folder: Optional[Path] = None
    if args.folder is not None:
        if not args.folder.strip():
            raise UsageError("argument -f/--folder: expected a non-empty path")
        folder = normalize_folder(args.folder)
        if not folder.is_dir():
            raise EnvironmentSetupError(f"Folder does not exist: {args.folder}")
    elif args.recursive or args.skip_nested:
        LOG.warning("--recursive/--skip-nested have no effect without --folder")

    log_file: Optional[Path] = None
    if args.log is not None:
        log_file = default_log_path() if args.log == _DEFAULT_LOG else Path(args.log).expanduser()

    return Config(
        stale_days=args.stale_days,
        folder=folder,
        recursive=args.recursive,
        skip_nested=args.skip_nested,
        auto_confirm=args.auto_confirm,
        exclude_stale=args.exclude_stale,
        log_enabled=log_file is not None,
        log_file=log_file,
        dry_run=args.dry_run,
        force_delete=args.force_delete,
        git_timeout=args.git_timeout,
        verbosity=args.verbose,
    )


def build_reporter(config: Config, console: Optional[Console] = None) -> Reporter:
    sinks: List[Sink] = [ConsoleRenderer(console)]
    if config.log_enabled and config.log_file is not None:
        sinks.append(PlainLogWriter(config.log_file))
    return Reporter(sinks)


def _wants_help(argv: List[str]) -> bool:
    for token in argv:
        if token == "--":
            return False
        if token in HELP_FLAGS:
            return True
    return False


def main(argv: Optional[List[str]] = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    parser = build_arg_parser()

    # Help wins over everything else, including invalid values.
    if _wants_help(argv):
        parser.print_help()
        return 0

    reporter: Optional[Reporter] = None
    try:
        args = parser.parse_args(argv)
        configure_logging(verbosity=args.verbose)
        config = build_config(args)
        console = Console(highlight=False)
        reporter = build_reporter(config, console)
        run_cleanup(config, reporter, TerminalPrompter(console))
    except KeyboardInterrupt:
        # Graceful shutdown on Ctrl+C
        return 130
    except CleanBranchesError as exc:
        print(f"{PROG}: error: {exc}", file=sys.stderr)
        if reporter is not None:
            reporter.record(Level.ERROR, f"Error: {exc}")
        if isinstance(exc, UsageError):
            print("Use -h or --help for usage information", file=sys.stderr)
        return 1
    finally:
        if reporter is not None:
            reporter.close()

    return 0


if __name__ == "__main__":  # pragma: no cover - manual invocation
    raise SystemExit(main())
