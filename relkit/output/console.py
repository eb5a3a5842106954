"""Where progress messages go.

Release operations and the scenario harness never print. They take a
ConsoleProtocol and report each repository step through it. The CLI hands
them a `RichConsole` writing to stderr, which keeps stdout free for the PR
list and other command results. Tests hand them a `MockConsole` and assert
on what was recorded.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol

from rich.markup import escape

__all__ = [
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "MockConsole",
    "OutputRecord",
]


class Style(Enum):
    """Kind of message; the value is the Rich style used to render it."""

    DEFAULT = ""
    SUCCESS = "green"
    ERROR = "red bold"
    WARNING = "yellow"
    INFO = "cyan"
    DIM = "dim"
    TITLE = "magenta bold"

    def __str__(self) -> str:
        return self.name.lower()


# Leading label for the levelled helpers; MockConsole records it verbatim.
_LABELS: dict[Style, str] = {
    Style.SUCCESS: "OK",
    Style.ERROR: "error:",
    Style.WARNING: "warning:",
    Style.INFO: "info:",
}


class ConsoleProtocol(Protocol):
    def print(self, message: str, style: Style = Style.DEFAULT) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def title(self, message: str) -> None:
        """Banner between phases, e.g. one per scenario."""
        ...

    def newline(self) -> None: ...


class _Levelled(ABC):
    """success/error/warning/info expressed through one `_labelled` hook."""

    @abstractmethod
    def _labelled(self, style: Style, message: str) -> None: ...

    def success(self, message: str) -> None:
        self._labelled(Style.SUCCESS, message)

    def error(self, message: str) -> None:
        self._labelled(Style.ERROR, message)

    def warning(self, message: str) -> None:
        self._labelled(Style.WARNING, message)

    def info(self, message: str) -> None:
        self._labelled(Style.INFO, message)


class RichConsole(_Levelled):
    """Rich-rendered output, on stderr unless told otherwise."""

    def __init__(self, *, stderr: bool = True) -> None:
        from rich.console import Console

        self._console = Console(stderr=stderr)

    def _labelled(self, style: Style, message: str) -> None:
        # Only the label is markup; the message may contain "[...]".
        self._console.print(f"[{style.value}]{_LABELS[style]}[/] {escape(message)}")

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self._console.print(message, style=style.value or None, markup=False)

    def title(self, message: str) -> None:
        from rich.rule import Rule

        self._console.print()
        self._console.print(Rule(escape(message), style=Style.TITLE.value))

    def newline(self) -> None:
        self._console.print()


@dataclass
class OutputRecord:
    message: str
    style: Style


def _no_outputs() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole(_Levelled):
    """Records every message instead of rendering it."""

    outputs: list[OutputRecord] = field(default_factory=_no_outputs)

    def _labelled(self, style: Style, message: str) -> None:
        self.outputs.append(OutputRecord(f"{_LABELS[style]} {message}", style))

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def title(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.TITLE))

    def newline(self) -> None:
        self.outputs.append(OutputRecord("", Style.DEFAULT))

    def clear(self) -> None:
        self.outputs.clear()

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    @property
    def titles(self) -> list[str]:
        return self.of_style(Style.TITLE)

    def of_style(self, style: Style) -> list[str]:
        return [o.message for o in self.outputs if o.style is style]

    def has_error(self) -> bool:
        return self.count(Style.ERROR) > 0

    def find(self, substring: str) -> list[OutputRecord]:
        return [o for o in self.outputs if substring in o.message]

    def count(self, style: Style) -> int:
        return len(self.of_style(style))
