"""relkit command line: `resolve`, `simulate` and the `release` group."""

from __future__ import annotations

import typer

from relkit import __version__
from relkit.cli.commands.release_cmd import release_app
from relkit.cli.commands.resolve_cmd import resolve
from relkit.cli.commands.simulate_cmd import simulate

app = typer.Typer(
    help="Release pipeline tooling for a main/staging/production flow.",
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command()(resolve)
app.command()(simulate)
app.add_typer(release_app, name="release", help="Drive one step of the release flow.")


@app.callback(invoke_without_command=True)
def _root(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(False, "--version", help="Print the relkit version."),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit()


def main() -> None:
    app()
