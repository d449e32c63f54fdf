"""
Diagnostic logging helpers for git-clean-local-branches.

Operator-facing output goes through the reporting module. The stdlib
loggers configured here carry debugging detail only: git commands that
were run, stderr of failed calls and branches excluded from consideration.
"""

from __future__ import annotations

import logging
import sys

DIAGNOSTIC_FORMAT = "%(levelname)s %(name)s: %(message)s"


def level_for_verbosity(verbosity: int) -> int:
    """
    Map a -v count to a logging level.

    verbosity == 0 -> WARNING
    verbosity == 1 -> INFO
    verbosity >= 2 -> DEBUG
    """

    if verbosity <= 0:
        return logging.WARNING
    if verbosity == 1:
        return logging.INFO
    return logging.DEBUG


def configure_logging(verbosity: int) -> None:
    """
    Configure the root logger based on a verbosity count.

    Diagnostics are written to stderr so they never interleave with the
    branch table rendered on stdout.
    """

    logging.basicConfig(
        level=level_for_verbosity(verbosity),
        format=DIAGNOSTIC_FORMAT,
        stream=sys.stderr,
    )
