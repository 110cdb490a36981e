"""Shared CLI helpers: console, settings loading, and pre-flight checks."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

import typer
from rich.console import Console
from rich.markup import escape

from pagesdeploy.errors import DeployError, EnvironmentCheckError
from pagesdeploy.frameworks import read_manifest

if TYPE_CHECKING:
    from pagesdeploy.config import DeploySettings
    from pagesdeploy.context import DeployContext

console = Console()


def load_settings_or_exit(
    overrides: Mapping[str, Any], project_root: Path | None = None
) -> DeploySettings:
    """Resolve settings, printing a one-line error and exiting on bad values."""
    from pagesdeploy.config import load_settings

    try:
        return load_settings(overrides, project_root=project_root)
    except DeployError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(e.exit_code) from None


def preflight(ctx: DeployContext) -> None:
    """Checks that run before any resource is acquired.

    Raises:
        EnvironmentCheckError: If the project manifest is missing.
        DeployError: If the operator declines to continue without a build script.
    """
    settings = ctx.settings
    if not settings.manifest_path.is_file():
        raise EnvironmentCheckError(
            f"No {settings.manifest} found. This tool is designed for Node.js projects."
        )

    scripts = read_manifest(settings.manifest_path).get("scripts")
    if isinstance(scripts, dict) and "build" in scripts:
        return

    ctx.display.warning(f"No build script found in {settings.manifest}")
    if ctx.interactive and not ctx.engine.confirm("Continue anyway?", default=False):
        raise DeployError("Deployment cancelled: no build script")
