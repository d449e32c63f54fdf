"""
Operator-facing output for git-clean-local-branches.

Everything the run wants to tell the operator is an Event. The Reporter
fans each event out to independent sinks: a colour console renderer
built on rich, and a plain-text log writer that appends timestamped
lines to the log file through a dedicated stdlib logger. Neither sink
knows about the other, so the log never has colour codes to strip.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from .domain import BranchRecord
from .errors import EnvironmentSetupError

LOG = logging.getLogger(__name__)

AUDIT_LOGGER_NAME = "git_clean_branches.audit"
LOG_STARTED_BANNER = "==== Git Clean Local Branches Log Started ===="
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class Level(str, Enum):
    INFO = "info"
    HEADING = "heading"
    NOTICE = "notice"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Event:
    """
    A single line of operator output with optional structured fields.
    """

    level: Level
    message: str
    fields: Dict[str, Any] = field(default_factory=dict)


def utc_timestamp(epoch: Optional[float] = None) -> str:
    moment = datetime.now(timezone.utc) if epoch is None else datetime.fromtimestamp(epoch, timezone.utc)
    return moment.strftime(TIMESTAMP_FORMAT)


def _stale_marker(record: BranchRecord) -> str:
    return "[STALE]" if record.is_stale else ""


class Sink:
    """
    Receiver of events. Subclasses override what they render.

    interactive sinks write to the operator's terminal; the others only
    keep a record of the run.
    """

    interactive = False

    def emit(self, event: Event) -> None:
        raise NotImplementedError

    def branch_table(self, records: Sequence[BranchRecord]) -> None:
        raise NotImplementedError

    def close(self) -> None:
        pass


class ConsoleRenderer(Sink):
    """
    Render events on a rich Console, coloured by level.
    """

    interactive = True

    STYLES = {
        Level.INFO: None,
        Level.HEADING: "bold blue",
        Level.NOTICE: "cyan",
        Level.SUCCESS: "green",
        Level.WARNING: "yellow",
        Level.ERROR: "red",
    }

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console(highlight=False)

    def emit(self, event: Event) -> None:
        # Text bypasses rich markup so branch names like "fix[1]" print verbatim.
        self.console.print(Text(event.message, style=self.STYLES[event.level] or ""))

    def branch_table(self, records: Sequence[BranchRecord]) -> None:
        table = Table(box=box.SIMPLE, show_lines=False)
        table.add_column("Branch", style="bold", overflow="fold")
        table.add_column("Last commit (UTC)")
        table.add_column("Author", max_width=24, overflow="ellipsis")
        table.add_column("", style="red")
        for record in records:
            table.add_row(
                Text(record.name),
                utc_timestamp(record.commit_time),
                Text(record.author),
                Text(_stale_marker(record)),
            )
        self.console.print(table)


class PlainLogWriter(Sink):
    """
    Append events to a plain-text log file, one "[timestamp] message" line each.

    The file is opened once per run. Timestamps are UTC.
    """

    def __init__(self, path: Path) -> None:
        self.path = path
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        except OSError as exc:
            raise EnvironmentSetupError(f"cannot create or write to log file {path}: {exc}") from exc

        formatter = logging.Formatter("[%(asctime)s] %(message)s", datefmt=TIMESTAMP_FORMAT)
        formatter.converter = time.gmtime
        handler.setFormatter(formatter)

        self._handler = handler
        self._logger = logging.getLogger(AUDIT_LOGGER_NAME)
        self._logger.setLevel(logging.INFO)
        self._logger.propagate = False
        # One log file per run: drop whatever a previous writer left attached.
        for stale in list(self._logger.handlers):
            self._logger.removeHandler(stale)
        self._logger.addHandler(handler)
        LOG.debug("Appending run log to %s", path)
        self._logger.info(LOG_STARTED_BANNER)

    def emit(self, event: Event) -> None:
        if not event.message:
            return
        self._logger.info(event.message)

    def branch_table(self, records: Sequence[BranchRecord]) -> None:
        for record in records:
            line = "%-30s %-25s %-25s %s" % (
                record.name,
                utc_timestamp(record.commit_time),
                record.author[:24],
                _stale_marker(record),
            )
            self._logger.info(line.rstrip())

    def close(self) -> None:
        self._logger.removeHandler(self._handler)
        self._handler.close()


class Reporter:
    """
    Fan out events to every registered sink.
    """

    def __init__(self, sinks: Optional[List[Sink]] = None) -> None:
        self.sinks: List[Sink] = list(sinks or [])

    def emit(self, level: Level, message: str, **fields: Any) -> None:
        event = Event(level=level, message=message, fields=fields)
        for sink in self.sinks:
            sink.emit(event)

    def info(self, message: str, **fields: Any) -> None:
        self.emit(Level.INFO, message, **fields)

    def heading(self, message: str, **fields: Any) -> None:
        self.emit(Level.HEADING, message, **fields)

    def notice(self, message: str, **fields: Any) -> None:
        self.emit(Level.NOTICE, message, **fields)

    def success(self, message: str, **fields: Any) -> None:
        self.emit(Level.SUCCESS, message, **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self.emit(Level.WARNING, message, **fields)

    def error(self, message: str, **fields: Any) -> None:
        self.emit(Level.ERROR, message, **fields)

    def blank(self) -> None:
        self.emit(Level.INFO, "")

    def record(self, level: Level, message: str, **fields: Any) -> None:
        """
        Emit to non-interactive sinks only, for messages the caller shows
        the operator some other way.
        """

        event = Event(level=level, message=message, fields=fields)
        for sink in self.sinks:
            if not sink.interactive:
                sink.emit(event)

    def branch_table(self, records: Sequence[BranchRecord]) -> None:
        for sink in self.sinks:
            sink.branch_table(records)

    def close(self) -> None:
        for sink in self.sinks:
            sink.close()

