"""
Interactive confirmation for git-clean-local-branches.

Questions are answered with a single keypress. On a terminal the key is
read in raw mode without waiting for Enter; otherwise (piped input) the
first character of the next line is used. End of input counts as "no".
"""

from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO

from rich.console import Console

try:
    import termios
    import tty
except ImportError:  # pragma: no cover - Windows
    termios = None  # type: ignore[assignment]
    tty = None  # type: ignore[assignment]

LOG = logging.getLogger(__name__)

AFFIRMATIVE = frozenset({"y", "Y"})


class Prompter:
    """
    Ask a yes/no question and return the answer.
    """

    def confirm(self, question: str) -> bool:
        raise NotImplementedError


class TerminalPrompter(Prompter):
    def __init__(self, console: Optional[Console] = None, stdin: Optional[TextIO] = None) -> None:
        self.console = console or Console(highlight=False)
        self.stdin = stdin or sys.stdin

    def confirm(self, question: str) -> bool:
        self.console.print(f"{question} (y/N): ", end="", markup=False)
        try:
            key = self._read_key()
        except KeyboardInterrupt:
            self.console.print()
            raise
        self.console.print()
        LOG.debug("Prompt %r answered with %r", question, key)
        return key in AFFIRMATIVE

    def _read_key(self) -> str:
        if termios is None or not self.stdin.isatty():
            line = self.stdin.readline()
            return line.strip()[:1]

        fd = self.stdin.fileno()
        try:
            old_settings = termios.tcgetattr(fd)
        except termios.error:
            return self.stdin.readline().strip()[:1]
        try:
            tty.setraw(fd)
            key = self.stdin.read(1)
        finally:
            termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
        if key == "\x03":
            raise KeyboardInterrupt
        return key
