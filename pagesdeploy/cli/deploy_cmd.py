"""Deploy and info commands."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from pagesdeploy.cli._helpers import console, load_settings_or_exit, preflight


def deploy(
    yes: Annotated[
        bool, typer.Option("--yes", "-y", help="Run unattended, answering every prompt")
    ] = False,
    dry_run: Annotated[
        bool, typer.Option("--dry-run", "-d", help="Prepare the commit but do not push")
    ] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show detailed output")] = False,
    quiet: Annotated[
        bool, typer.Option("--quiet", "-q", help="Only show errors, warnings, and prompts")
    ] = False,
    framework: Annotated[
        str | None, typer.Option("--framework", help="Framework preset (auto-detected)")
    ] = None,
    build_dir: Annotated[
        str | None, typer.Option("--build-dir", help="Build output directory")
    ] = None,
    branch: Annotated[str | None, typer.Option("--branch", help="Hosting branch name")] = None,
    build_command: Annotated[
        str | None, typer.Option("--build-command", help="Command that builds the site")
    ] = None,
    command_timeout: Annotated[
        int | None,
        typer.Option("--command-timeout", min=1, help="Seconds before build/install is killed"),
    ] = None,
    project_root: Annotated[
        Path | None, typer.Option("--project-root", help="Project directory (default: cwd)")
    ] = None,
) -> None:
    """Build the site and publish it to the hosting branch from an isolated copy."""
    from pagesdeploy._log import setup_logging
    from pagesdeploy.context import create_context
    from pagesdeploy.errors import DeployError
    from pagesdeploy.pipeline import run_guarded

    overrides = {
        "interactive": False if yes else None,
        "dry_run": True if dry_run else None,
        "verbose": True if verbose else None,
        "quiet": True if quiet else None,
        "framework": framework,
        "build_dir": build_dir,
        "branch": branch,
        "build_command": build_command,
        "command_timeout": command_timeout,
    }
    settings = load_settings_or_exit(overrides, project_root)
    setup_logging(verbose=settings.verbose)

    ctx = create_context(settings, console)
    try:
        preflight(ctx)
    except DeployError as e:
        ctx.display.error(str(e))
        raise typer.Exit(e.exit_code) from None

    code = run_guarded(ctx)
    if code != 0:
        raise typer.Exit(code)


def info(
    project_root: Annotated[
        Path | None, typer.Option("--project-root", help="Project directory (default: cwd)")
    ] = None,
) -> None:
    """Show the resolved deployment configuration."""
    settings = load_settings_or_exit({}, project_root)

    table = Table(title="Deployment Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Project root", str(settings.project_root))
    table.add_row("Framework", settings.framework)
    table.add_row("Build command", settings.build_command)
    table.add_row("Build directory", settings.build_dir)
    table.add_row("Hosting branch", f"{settings.remote}/{settings.branch}")
    table.add_row("Mode", "interactive" if settings.interactive else "non-interactive")
    table.add_row("Dry run", "yes" if settings.dry_run else "no")
    console.print(table)
