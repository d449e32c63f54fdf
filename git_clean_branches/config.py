"""
Configuration model for git-clean-local-branches.

The CLI constructs a Config instance once and passes it down into the
scanner and cleaner so behavior is adjusted without relying on global
state.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_STALE_DAYS = 30
DEFAULT_GIT_TIMEOUT = 60.0
LOG_FILE_NAME = "git-clean-local-branches.log"


def default_log_path() -> Path:
    """
    Return the log path used when --log is given without a file name.

    The path is derived from where the package is installed rather than
    the invoking shell's current directory.
    """

    return Path(__file__).resolve().parent.parent / LOG_FILE_NAME


@dataclass(frozen=True)
class Config:
    """
    Top-level configuration for a cleanup run.

    folder being set switches the run to multi-repository mode.
    """

    stale_days: int = DEFAULT_STALE_DAYS
    folder: Optional[Path] = None
    recursive: bool = False
    skip_nested: bool = False
    auto_confirm: bool = False
    exclude_stale: bool = False
    log_enabled: bool = False
    log_file: Optional[Path] = None
    dry_run: bool = False
    force_delete: bool = False
    git_timeout: float = DEFAULT_GIT_TIMEOUT
    verbosity: int = 0

    def __post_init__(self) -> None:
        if self.stale_days <= 0:
            raise ValueError(f"stale_days must be a positive integer (got {self.stale_days})")
        if not (math.isfinite(self.git_timeout) and self.git_timeout > 0):
            raise ValueError(f"git_timeout must be a finite positive number (got {self.git_timeout})")

    @property
    def multi_repo(self) -> bool:
        return self.folder is not None
