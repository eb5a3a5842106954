"""Ok/Err values returned by every git, release and harness operation.

Nothing in relkit raises for an expected failure. A git error, a missing tag
or a bad range comes back as `Err(payload)` and the caller branches on it:

    sha = repo.rev_parse("1.0.2")
    if isinstance(sha, Err):
        return sha
    use(sha.value)

or, when both sides are handled in place:

    match resolve_refs(repo, "1.0.1", "1.0.2", config):
        case Ok(prs):
            typer.echo(format_pr_list(prs))
        case Err(e):
            console.error(e.pretty())
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Ok[T]:
    value: T

    def map[U](self, f: Callable[[T], U]) -> Ok[U]:
        """Replace the carried value, e.g. raw git stdout by a parsed form."""
        return Ok(f(self.value))

    def map_err(self, f: Callable[..., object]) -> Ok[T]:
        return self


@dataclass(frozen=True, slots=True)
class Err[E]:
    error: E

    def map(self, f: Callable[..., object]) -> Err[E]:
        return self

    def map_err[F](self, f: Callable[[E], F]) -> Err[F]:
        """Re-wrap the payload, e.g. a ProcessError as a repository error."""
        return Err(f(self.error))


type Result[T, E] = Ok[T] | Err[E]
