"""
Root Typer application for the wellwisher CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from wellwisher.cli.scheduler import plan, run

app = Typer(
    name="wellwisher",
    help="wellwisher -- annual event invitations and archive purges.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _package_version() -> str:
    from importlib.metadata import PackageNotFoundError
    from importlib.metadata import version as pkg_version

    try:
        return pkg_version("wellwisher")
    except PackageNotFoundError:
        from wellwisher import __version__

        return __version__


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"wellwisher {_package_version()}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """wellwisher CLI -- run the scheduler and inspect planned tasks."""


@app.command("version")
def version() -> None:
    """Show version and exit."""
    typer.echo(f"wellwisher {_package_version()}")


app.command("run")(run)
app.command("plan")(plan)


if __name__ == "__main__":
    app()
