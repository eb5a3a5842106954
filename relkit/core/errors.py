"""Process exit codes for relkit commands.

Deploy tooling branches on these, so the numbers never change: a bad range
(2) is retried with other refs, a repository failure (3) usually means the
remote or a ref is missing.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    OK = 0
    # bad arguments, unreadable or invalid relkit.toml
    USER_ERROR = 1
    # lower ref is not behind upper ref
    RANGE_ERROR = 2
    # git failed: missing ref, conflict, unreachable remote
    REPOSITORY_ERROR = 3
    # version reused or not increasing
    VERSION_ERROR = 4
    SCENARIO_FAILED = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")
