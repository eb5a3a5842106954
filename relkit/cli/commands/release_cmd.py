"""Release commands - run single state machine transitions on a working clone."""

from __future__ import annotations

from enum import StrEnum
from pathlib import Path
from typing import cast

import typer

from relkit.cli.commands._helpers import exit_on_error, exit_with_code
from relkit.cli.context import CLIContext, build_context
from relkit.core.errors import ErrorCode
from relkit.git.repository import Repository
from relkit.release.machine import ReleaseStateMachine
from relkit.release.model import ChecklistState, VersionBump

release_app = typer.Typer(add_completion=False, no_args_is_help=True)


class Bump(StrEnum):
    major = "major"
    minor = "minor"
    patch = "patch"


_REPO_OPTION = typer.Option(Path("."), "--repo", help="Working clone to operate on")
_CONFIG_OPTION = typer.Option(None, "--config", help="Path to relkit.toml")


def _machine(
    repo: Path, config: Path | None, *, locked: bool = False
) -> tuple[CLIContext, ReleaseStateMachine]:
    ctx = build_context(config)
    repository = Repository(repo.expanduser().resolve(), remote=ctx.config.remote.name)
    if not repository.exists():
        ctx.console.error(f"not a git working tree: {repository.path}")
        exit_with_code(int(ErrorCode.REPOSITORY_ERROR))
    state = ChecklistState.LOCKED if locked else ChecklistState.UNLOCKED
    machine = ReleaseStateMachine(
        repo=repository, config=ctx.config, console=ctx.console, state=state
    )
    return ctx, machine


@release_app.command("merge-pr")
def merge_pr(
    pr_id: int = typer.Argument(..., help="Pull request number"),
    repo: Path = _REPO_OPTION,
    config: Path | None = _CONFIG_OPTION,
) -> None:
    """Merge branch pr-ID into main and push."""
    ctx, machine = _machine(repo, config)
    exit_on_error(machine.merge_pr(pr_id), ctx)


@release_app.command("bump")
def bump(
    kind: Bump = typer.Argument(Bump.patch, help="Which version component to bump"),
    repo: Path = _REPO_OPTION,
    config: Path | None = _CONFIG_OPTION,
) -> None:
    """Commit a version bump on main and push."""
    ctx, machine = _machine(repo, config)
    version = exit_on_error(machine.bump_version(cast(VersionBump, kind.value)), ctx)
    typer.echo(str(version))


@release_app.command("recreate-staging")
def recreate_staging(
    locked: bool = typer.Option(
        False, "--locked", help="The checklist is locked (refuses to recreate)"
    ),
    repo: Path = _REPO_OPTION,
    config: Path | None = _CONFIG_OPTION,
) -> None:
    """Reset staging to main and force-push it."""
    ctx, machine = _machine(repo, config, locked=locked)
    exit_on_error(machine.recreate_staging(), ctx)


@release_app.command("recreate-production")
def recreate_production(
    repo: Path = _REPO_OPTION,
    config: Path | None = _CONFIG_OPTION,
) -> None:
    """Reset production to staging and force-push it."""
    ctx, machine = _machine(repo, config, locked=True)
    exit_on_error(machine.recreate_production(), ctx)


@release_app.command("cherry-pick")
def cherry_pick(
    pr_id: int = typer.Argument(..., help="Pull request number to expedite"),
    cp_pr_id: int | None = typer.Option(
        None, "--cp-pr", help="Number recorded for the scratch merge (default: ID + 1)"
    ),
    repo: Path = _REPO_OPTION,
    config: Path | None = _CONFIG_OPTION,
) -> None:
    """Merge PR ID, bump patch, and cherry-pick both onto staging."""
    ctx, machine = _machine(repo, config, locked=True)
    exit_on_error(machine.cherry_pick_to_staging(pr_id, cherry_pick_pr_id=cp_pr_id), ctx)


@release_app.command("tag")
def tag(
    branch: str | None = typer.Option(None, "--branch", help="Branch to tag (default: staging)"),
    repo: Path = _REPO_OPTION,
    config: Path | None = _CONFIG_OPTION,
) -> None:
    """Tag a branch tip with its version and push the tag."""
    ctx, machine = _machine(repo, config)
    created = exit_on_error(machine.tag_release(branch), ctx)
    typer.echo(created)
