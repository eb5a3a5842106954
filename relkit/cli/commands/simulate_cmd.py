"""Simulate command - replay the release scenarios against a sandbox remote."""

from __future__ import annotations

import dataclasses
import shutil
import tempfile
from pathlib import Path

import typer

from relkit.cli.commands._helpers import exit_with_code
from relkit.cli.context import build_context
from relkit.core.errors import ErrorCode
from relkit.core.result import Err
from relkit.harness.runner import run_scenarios
from relkit.harness.sandbox import Sandbox


def simulate(
    workdir: Path | None = typer.Option(
        None,
        "--workdir",
        help="Directory for the sandbox (default: a fresh temp dir)",
    ),
    remote: str | None = typer.Option(
        None,
        "--remote",
        help="Rewind and use this remote instead of a local bare repo",
    ),
    keep: bool = typer.Option(False, "--keep", help="Keep the sandbox after the run"),
    config: Path | None = typer.Option(None, "--config", help="Path to relkit.toml"),
) -> None:
    """Run every release scenario and check the PR windows they produce."""
    ctx = build_context(config)
    cfg = ctx.config
    if remote is not None:
        cfg = dataclasses.replace(cfg, remote=dataclasses.replace(cfg.remote, url=remote))

    root = workdir.expanduser().resolve() if workdir else Path(tempfile.mkdtemp(prefix="relkit-"))
    sandbox = Sandbox(work_dir=root, config=cfg, console=ctx.console)

    try:
        result = run_scenarios(sandbox=sandbox, config=cfg, console=ctx.console, keep=keep)
    finally:
        if not keep and workdir is None:
            shutil.rmtree(root, ignore_errors=True)
    if isinstance(result, Err):
        exit_with_code(int(ErrorCode.SCENARIO_FAILED))
