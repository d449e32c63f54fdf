"""
Custom exception types used across git-clean-local-branches.

Defining explicit error classes makes it easier for the CLI to separate
usage and environment failures (which stop the run before anything is
touched) from per-repository failures (which only fail one pass).
"""

from __future__ import annotations


class CleanBranchesError(Exception):
    """Base class for all git-clean-local-branches specific errors."""


class UsageError(CleanBranchesError):
    """Raised when command-line flags are unknown or carry bad values."""


class EnvironmentSetupError(CleanBranchesError):
    """Raised when the run cannot start, e.g. a missing folder or unwritable log."""


class GitError(CleanBranchesError):
    """Raised when git cannot be executed or a query fails unexpectedly."""


class RefParseError(GitError):
    """Raised when branch ref metadata returned by git is malformed."""


class RepositoryError(CleanBranchesError):
    """Raised when the only repository of a single-repository run cannot be processed."""
