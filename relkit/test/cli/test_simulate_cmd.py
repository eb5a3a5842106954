from __future__ import annotations

import functools
import shutil
from pathlib import Path

import pytest
from typer.testing import CliRunner

import relkit.cli.commands.simulate_cmd as simulate_cmd
from relkit.cli.app import app
from relkit.cli.context import CLIContext
from relkit.core.errors import ErrorCode
from relkit.core.result import Ok
from relkit.harness.runner import run_scenarios
from relkit.harness.sandbox import Sandbox
from relkit.harness.scenarios import SCENARIOS, Scenario
from relkit.output.console import MockConsole

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git not available")

runner = CliRunner()

BROKEN = Scenario(
    "Scenario #9: A window that never matches",
    lambda ctx: ctx.run_steps(lambda: ctx.assert_prs_merged_between("1.0.0", "1.0.0", [1])),
)


def _console(ctx: CLIContext) -> MockConsole:
    assert isinstance(ctx.console, MockConsole)
    return ctx.console


def test_all_scenarios_pass(tmp_path: Path, cli_ctx: CLIContext) -> None:
    result = runner.invoke(app, ["simulate", "--workdir", str(tmp_path)])

    console = _console(cli_ctx)
    assert result.exit_code == 0, console.text
    assert console.titles == ["Starting setup", *(s.title for s in SCENARIOS)]
    assert console.find("All tests passed! Hooray!")
    assert not (tmp_path / "remote.git").exists()


def test_failing_scenario_exits_with_its_title(
    tmp_path: Path, cli_ctx: CLIContext, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(
        simulate_cmd,
        "run_scenarios",
        functools.partial(run_scenarios, scenarios=(SCENARIOS[0], BROKEN)),
    )

    result = runner.invoke(app, ["simulate", "--workdir", str(tmp_path)])

    console = _console(cli_ctx)
    assert result.exit_code == int(ErrorCode.SCENARIO_FAILED)
    errors = console.find("error: Scenario #9: A window that never matches")
    assert len(errors) == 1
    assert "expected [ '1' ], got []" in errors[0].message
    assert not console.find("All tests passed! Hooray!")


def test_keep_leaves_sandbox(
    tmp_path: Path, cli_ctx: CLIContext, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(
        simulate_cmd,
        "run_scenarios",
        functools.partial(run_scenarios, scenarios=(SCENARIOS[0],)),
    )

    result = runner.invoke(app, ["simulate", "--workdir", str(tmp_path), "--keep"])

    assert result.exit_code == 0, _console(cli_ctx).text
    assert any(tmp_path.iterdir())


def test_default_workdir_is_removed(
    cli_ctx: CLIContext, monkeypatch: pytest.MonkeyPatch
) -> None:
    roots: list[Path] = []

    def fake_run(*, sandbox: Sandbox, **_: object) -> Ok[int]:
        roots.append(sandbox.paths.root)
        return Ok(0)

    monkeypatch.setattr(simulate_cmd, "run_scenarios", fake_run)

    result = runner.invoke(app, ["simulate"])

    assert result.exit_code == 0
    assert len(roots) == 1
    assert not roots[0].exists()
