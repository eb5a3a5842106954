"""Resolve command - list the PRs newly merged between two release refs."""

from __future__ import annotations

from pathlib import Path

import typer

from relkit.cli.commands._helpers import exit_on_error, exit_with_code
from relkit.cli.context import build_context
from relkit.core.errors import ErrorCode
from relkit.git.repository import Repository
from relkit.release.resolver import format_pr_list, resolve_refs


def resolve(
    lower: str = typer.Argument(..., help="Older release (tag, branch or sha)"),
    upper: str = typer.Argument(..., help="Newer release (tag, branch or sha)"),
    repo: Path = typer.Option(Path("."), "--repo", help="Working clone to inspect"),
    config: Path | None = typer.Option(None, "--config", help="Path to relkit.toml"),
    fetch: bool = typer.Option(False, "--fetch", help="Fetch branches and tags first"),
) -> None:
    """Print PR ids merged between LOWER and UPPER, newest first."""
    ctx = build_context(config)
    repository = Repository(repo.expanduser().resolve(), remote=ctx.config.remote.name)
    if not repository.exists():
        ctx.console.error(f"not a git working tree: {repository.path}")
        exit_with_code(int(ErrorCode.REPOSITORY_ERROR))

    if fetch:
        exit_on_error(repository.fetch(tags=True), ctx)

    prs = exit_on_error(resolve_refs(repository, lower, upper, ctx.config), ctx)
    # stdout stays machine-readable; everything else goes to stderr
    typer.echo(format_pr_list(prs))
