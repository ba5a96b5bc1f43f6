"""
Status line printer for both workflows.

Lines have the form ``[LEVEL] message``. Provisioning and verification use
separate vocabularies with the same structure. Each level maps to a
terminal colour; every line is also written to the log file.
"""

from __future__ import annotations

from enum import Enum

from rich.console import Console
from rich.markup import escape

from pi5setup.core.logger import LoggerProxy

log = LoggerProxy(__name__)


class Level(Enum):
    """Base for the two status vocabularies: value is (tag, rich style)."""

    @property
    def tag(self) -> str:
        return self.value[0]

    @property
    def style(self) -> str:
        return self.value[1]


class ProvisionLevel(Level):
    INFO = ("INFO", "blue")
    SUCCESS = ("SUCCESS", "green")
    WARNING = ("WARNING", "yellow")
    ERROR = ("ERROR", "red")


class VerifyLevel(Level):
    TEST = ("TEST", "blue")
    PASS = ("PASS", "green")
    WARN = ("WARN", "yellow")
    FAIL = ("FAIL", "red")


def format_line(level: Level, message: str) -> str:
    return f"[{level.tag}] {message}"


class StatusPrinter:
    def __init__(self, console: Console | None = None):
        self.console = console or Console(highlight=False, soft_wrap=True, emoji=False)

    def status(self, level: Level, message: str) -> None:
        # Recorded at INFO: the console log handler shows WARNING+ only.
        log.info(format_line(level, message))
        self.console.print(f"[{level.style}]\\[{level.tag}][/] {escape(message)}")

    def banner(self, title: str) -> None:
        self.console.print(f"[bold]{escape(title)}[/]")
        self.console.print("=" * max(len(title), 40))

    def section(self, title: str) -> None:
        rule = "━" * 41
        self.console.print(rule)
        self.console.print(escape(title))
        self.console.print(rule)

    def blank(self) -> None:
        self.console.print()

    def text(self, message: str) -> None:
        self.console.print(escape(message))
