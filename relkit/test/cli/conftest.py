"""Shared fixtures for CLI tests: a stub context and a released working clone."""

from __future__ import annotations

from pathlib import Path

import pytest

from relkit.cli.context import CLIContext
from relkit.core.config import RelkitConfig
from relkit.core.result import Ok
from relkit.harness.sandbox import Sandbox
from relkit.output.console import MockConsole
from relkit.release.machine import ReleaseStateMachine


@pytest.fixture
def cli_ctx(monkeypatch: pytest.MonkeyPatch) -> CLIContext:
    """Context with default config and a MockConsole, used by every command."""
    import relkit.cli.commands.release_cmd as release_cmd
    import relkit.cli.commands.resolve_cmd as resolve_cmd
    import relkit.cli.commands.simulate_cmd as simulate_cmd

    ctx = CLIContext(config=RelkitConfig(), console=MockConsole())
    for module in (resolve_cmd, release_cmd, simulate_cmd):
        monkeypatch.setattr(module, "build_context", lambda config=None: ctx)
    return ctx


@pytest.fixture
def released_clone(tmp_path: Path) -> Path:
    """Clone with tags 1.0.0, 1.0.1 (PR 1) and 1.0.2 (PR 3 cherry-picked)."""
    config = RelkitConfig()
    sandbox = Sandbox(work_dir=tmp_path / "sandbox", config=config, console=MockConsole())
    assert isinstance(sandbox.reset(), Ok)
    checked_out = sandbox.checkout()
    assert isinstance(checked_out, Ok)
    machine = ReleaseStateMachine(repo=checked_out.value, config=config, console=MockConsole())

    steps = [
        machine.tag_release,
        lambda: machine.open_pr(1, {"PR1.txt": "1\n"}, "Changes from PR #1"),
        lambda: machine.merge_pr(1),
        lambda: machine.bump_version("patch"),
        machine.recreate_staging,
        machine.tag_release,
        machine.lock_checklist,
        lambda: machine.open_pr(2, {"PR2.txt": "2\n"}, "Changes from PR #2"),
        lambda: machine.merge_pr(2),
        lambda: machine.open_pr(3, {"PR3.txt": "3\n"}, "Changes from PR #3"),
        lambda: machine.cherry_pick_to_staging(3),
        machine.tag_release,
    ]
    for step in steps:
        assert isinstance(step(), Ok)
    return machine.repo.path
