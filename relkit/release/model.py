"""Domain types for the release flow and the deploy-window query."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Literal

VersionBump = Literal["major", "minor", "patch"]


class ChecklistState(StrEnum):
    """Whether main commits flow to staging on the next recreation.

    UNLOCKED: the checklist is open; recreating staging picks up main.
    LOCKED: the checklist is closed; only cherry-picks reach staging.
    """

    UNLOCKED = "unlocked"
    LOCKED = "locked"


@dataclass(frozen=True, slots=True, order=True)
class PullRequestId:
    number: int

    def __str__(self) -> str:
        return str(self.number)


@dataclass(frozen=True, slots=True)
class Commit:
    """An immutable history node.

    Attributes:
        sha: Full commit id
        parents: Parent ids in git order (first parent = merge target)
        message: Full commit message
    """

    sha: str
    parents: tuple[str, ...]
    message: str

    @property
    def subject(self) -> str:
        return self.message.split("\n", 1)[0].strip()

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1
