"""Error types for the release state machine and the resolver."""

from __future__ import annotations

from dataclasses import dataclass

from relkit.git.repository import RepositoryOperationError
from relkit.release.model import ChecklistState


@dataclass(frozen=True, slots=True)
class InvalidRangeError:
    """lower and upper do not describe a forward deploy window."""

    lower: str
    upper: str
    message: str

    def pretty(self) -> str:
        return f"invalid range {self.lower}..{self.upper}: {self.message}"


@dataclass(frozen=True, slots=True)
class VersionConflictError:
    """A version would be reused or would move backwards."""

    version: str
    message: str

    def pretty(self) -> str:
        return f"version conflict on {self.version}: {self.message}"


@dataclass(frozen=True, slots=True)
class TransitionError:
    """The transition is not legal in the current checklist state."""

    state: ChecklistState
    transition: str
    message: str

    def pretty(self) -> str:
        return f"{self.transition} not allowed while {self.state}: {self.message}"


ReleaseError = RepositoryOperationError | VersionConflictError | TransitionError
ResolveError = RepositoryOperationError | InvalidRangeError
