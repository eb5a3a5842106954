"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, NoReturn

import typer

from relkit.core.errors import ErrorCode
from relkit.core.result import Err, Result
from relkit.git.repository import RepositoryOperationError
from relkit.release.errors import InvalidRangeError, VersionConflictError

if TYPE_CHECKING:
    from relkit.cli.context import CLIContext


def error_code_for(error: object) -> ErrorCode:
    """Map an error payload to its process exit code."""
    match error:
        case InvalidRangeError():
            return ErrorCode.RANGE_ERROR
        case RepositoryOperationError():
            return ErrorCode.REPOSITORY_ERROR
        case VersionConflictError():
            return ErrorCode.VERSION_ERROR
        case _:
            # TransitionError, ConfigError
            return ErrorCode.USER_ERROR


def exit_on_error[T, E](result: Result[T, E], ctx: CLIContext) -> T:
    """Unwrap result, or report the error and exit with its code.

    Expects error objects to provide `pretty()`.
    """
    if isinstance(result, Err):
        error = result.error
        pretty = getattr(error, "pretty", None)
        ctx.console.error(pretty() if callable(pretty) else str(error))
        exit_with_code(int(error_code_for(error)))
    return result.value


def exit_with_code(code: int) -> NoReturn:
    """Exit with given code. Explicit helper for clarity."""
    raise typer.Exit(code=code)
