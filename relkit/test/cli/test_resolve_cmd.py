from __future__ import annotations

import shutil
from pathlib import Path

import pytest
import typer
from typer.testing import CliRunner

from relkit import __version__
from relkit.cli.app import app
from relkit.cli.commands._helpers import error_code_for, exit_on_error
from relkit.cli.context import CLIContext
from relkit.core.config import ConfigError, RelkitConfig
from relkit.core.errors import ErrorCode
from relkit.core.result import Err, Ok
from relkit.git.repository import RepositoryOperationError
from relkit.output.console import MockConsole
from relkit.release.errors import InvalidRangeError, TransitionError, VersionConflictError
from relkit.release.model import ChecklistState

runner = CliRunner()


def test_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert result.stdout.strip() == __version__


def test_error_code_mapping() -> None:
    assert error_code_for(InvalidRangeError("a", "b", "x")) is ErrorCode.RANGE_ERROR
    assert (
        error_code_for(RepositoryOperationError(kind="dirty", command="switch", message="x"))
        is ErrorCode.REPOSITORY_ERROR
    )
    assert error_code_for(VersionConflictError("1.0.0", "x")) is ErrorCode.VERSION_ERROR
    assert (
        error_code_for(TransitionError(ChecklistState.LOCKED, "recreate_staging", "x"))
        is ErrorCode.USER_ERROR
    )
    assert error_code_for(ConfigError("x")) is ErrorCode.USER_ERROR


def test_exit_on_error() -> None:
    ctx = CLIContext(config=RelkitConfig(), console=MockConsole())
    assert exit_on_error(Ok(3), ctx) == 3

    with pytest.raises(typer.Exit) as exc:
        exit_on_error(Err(InvalidRangeError("1.0.2", "1.0.1", "upper is behind")), ctx)
    assert exc.value.exit_code == int(ErrorCode.RANGE_ERROR)
    assert isinstance(ctx.console, MockConsole)
    assert ctx.console.find("invalid range 1.0.2..1.0.1")


def test_resolve_not_a_repo(tmp_path: Path, cli_ctx: CLIContext) -> None:
    result = runner.invoke(app, ["resolve", "1.0.0", "1.0.1", "--repo", str(tmp_path)])
    assert result.exit_code == int(ErrorCode.REPOSITORY_ERROR)


def test_resolve_bad_config(tmp_path: Path) -> None:
    config = tmp_path / "relkit.toml"
    config.write_text('[cherry_pick]\nconflict_strategy = "maybe"\n', encoding="utf-8")
    result = runner.invoke(
        app, ["resolve", "1.0.0", "1.0.1", "--repo", str(tmp_path), "--config", str(config)]
    )
    assert result.exit_code == int(ErrorCode.USER_ERROR)


@pytest.mark.skipif(shutil.which("git") is None, reason="git not available")
class TestResolveAgainstGit:
    @pytest.mark.parametrize(
        ("lower", "upper", "expected"),
        [
            ("1.0.0", "1.0.1", "[ '1' ]"),
            ("1.0.0", "1.0.2", "[ '3', '1' ]"),
            ("1.0.1", "1.0.2", "[ '3' ]"),
            ("1.0.2", "1.0.2", "[]"),
        ],
    )
    def test_prints_window(
        self,
        released_clone: Path,
        cli_ctx: CLIContext,
        lower: str,
        upper: str,
        expected: str,
    ) -> None:
        result = runner.invoke(app, ["resolve", lower, upper, "--repo", str(released_clone)])
        assert result.exit_code == 0
        assert result.stdout.strip() == expected

    def test_fetch(self, released_clone: Path, cli_ctx: CLIContext) -> None:
        result = runner.invoke(
            app, ["resolve", "1.0.1", "1.0.2", "--repo", str(released_clone), "--fetch"]
        )
        assert result.exit_code == 0
        assert result.stdout.strip() == "[ '3' ]"

    def test_invalid_range(self, released_clone: Path, cli_ctx: CLIContext) -> None:
        result = runner.invoke(app, ["resolve", "1.0.1", "1.0.0", "--repo", str(released_clone)])
        assert result.exit_code == int(ErrorCode.RANGE_ERROR)

    def test_reversed_diverged_range(self, released_clone: Path, cli_ctx: CLIContext) -> None:
        """main (carrying PR 2) against the cherry-picked staging tag."""
        result = runner.invoke(app, ["resolve", "main", "1.0.2", "--repo", str(released_clone)])
        assert result.exit_code == int(ErrorCode.RANGE_ERROR)
        assert result.stdout == ""

    def test_unknown_tag(self, released_clone: Path, cli_ctx: CLIContext) -> None:
        result = runner.invoke(app, ["resolve", "1.0.0", "9.9.9", "--repo", str(released_clone)])
        assert result.exit_code == int(ErrorCode.REPOSITORY_ERROR)
