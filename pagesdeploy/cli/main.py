"""Typer CLI for pages-deploy."""

from __future__ import annotations

from typing import Annotated

import typer

from pagesdeploy.cli._helpers import console

app = typer.Typer(
    name="pages-deploy",
    help="Deploy a static site build to GitHub Pages from an isolated copy.",
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# Callbacks
# ---------------------------------------------------------------------------


def version_callback(value: bool) -> None:
    if value:
        from pagesdeploy import __version__

        console.print(f"pages-deploy {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option("--version", callback=version_callback, is_eager=True),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Enable debug logging"),
    ] = False,
) -> None:
    """pages-deploy: isolation-first GitHub Pages deployment."""
    from pagesdeploy._log import setup_logging

    setup_logging(verbose=verbose)


# ---------------------------------------------------------------------------
# Command registrations
# ---------------------------------------------------------------------------

from pagesdeploy.cli.deploy_cmd import deploy, info  # noqa: E402

app.command()(deploy)
app.command()(info)


def app_entry() -> None:
    """Entry point for the CLI."""
    app()
