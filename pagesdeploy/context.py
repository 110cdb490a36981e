"""Explicit run context threaded through every pipeline component."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from rich.console import Console

from pagesdeploy.config import DeploySettings
from pagesdeploy.confirm import ConfirmationEngine
from pagesdeploy.display import Display
from pagesdeploy.guard import ResourceGuardian
from pagesdeploy.vcs import Git

if TYPE_CHECKING:
    from pagesdeploy.publish import PublishResult


@dataclass
class WorkspaceSnapshot:
    """Private directory owning the archive and, once expanded, the working copy."""

    private_dir: Path
    archive_path: Path
    work_dir: Path | None = None
    site_dir: Path | None = None


@dataclass
class BuildStats:
    duration_s: float = 0.0
    files: int = 0
    size_bytes: int = 0


@dataclass
class DeployContext:
    """Settings are fixed at construction; the remaining fields are run state.

    ``current_step`` is advanced only by the executor; ``guardian`` owns the
    restore point and the disposable resources.
    """

    settings: DeploySettings
    display: Display
    engine: ConfirmationEngine
    guardian: ResourceGuardian
    git: Git
    original_cwd: Path = field(default_factory=Path.cwd)
    repo_url: str = ""
    snapshot: WorkspaceSnapshot | None = None
    build_stats: BuildStats | None = None
    publish_result: PublishResult | None = None
    current_step: int = 0
    total_steps: int = 0

    @property
    def interactive(self) -> bool:
        return self.settings.interactive

    @property
    def original_branch(self) -> str | None:
        return self.guardian.restore_point


def create_context(settings: DeploySettings, console: Console | None = None) -> DeployContext:
    display = Display(console, quiet=settings.quiet)
    git = Git(settings.project_root, timeout=settings.command_timeout or 120)
    return DeployContext(
        settings=settings,
        display=display,
        engine=ConfirmationEngine(settings.interactive, display, cwd=settings.project_root),
        guardian=ResourceGuardian(settings.project_root, display, git=git),
        git=git,
        original_cwd=Path.cwd(),
    )
