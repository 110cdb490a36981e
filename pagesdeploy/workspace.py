"""Isolation manager: snapshot the project into a private directory.

All destructive branch work happens in an expanded copy of the project so the
caller's working tree is never touched.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from pagesdeploy._log import get_logger
from pagesdeploy._paths import create_private_temp_dir
from pagesdeploy.archive import ArchiveStats, create_archive, extract_archive, verify_archive
from pagesdeploy.context import DeployContext, WorkspaceSnapshot
from pagesdeploy.errors import DataError
from pagesdeploy.vcs import Git

logger = get_logger("workspace")

ARCHIVE_NAME = "project.zip"
WORKSPACE_NAME = "workspace"
SITE_NAME = "site"


def allocate_workspace(ctx: DeployContext) -> WorkspaceSnapshot:
    """Create the private directory and register it and its archive path with the guardian."""
    guardian = ctx.guardian
    with guardian.suspension():
        private_dir = create_private_temp_dir(ctx.settings.app_name, ctx.settings.tmp_root)
        guardian.register(private_dir, "temporary directory")
        archive_path = guardian.register(private_dir / ARCHIVE_NAME, "temporary archive")
    logger.debug("Created temporary directory: %s", private_dir)
    logger.debug("Archive will be: %s", archive_path)
    ctx.snapshot = WorkspaceSnapshot(private_dir=private_dir, archive_path=archive_path)
    return ctx.snapshot


def snapshot_project(ctx: DeployContext) -> ArchiveStats:
    """Archive the project tree into the workspace and verify it.

    Raises:
        DataError: If the workspace is missing or the archive fails its integrity check.
    """
    snapshot = require_snapshot(ctx)
    with ctx.guardian.suspension():
        if not snapshot.private_dir.is_dir():
            raise DataError(f"Temporary directory disappeared: {snapshot.private_dir}")
        stats = create_archive(
            ctx.settings.project_root,
            snapshot.archive_path,
            keep=(ctx.settings.build_dir,),
        )
        if not verify_archive(snapshot.archive_path):
            raise DataError("Archive integrity check failed")
    return stats


def expand_snapshot(ctx: DeployContext) -> WorkspaceSnapshot:
    """Extract the archive into ``<private_dir>/workspace`` and validate the copy."""
    snapshot = require_snapshot(ctx)
    if not snapshot.archive_path.is_file():
        raise DataError(f"Project archive not found: {snapshot.archive_path}")
    work_dir = snapshot.private_dir / WORKSPACE_NAME
    extract_archive(snapshot.archive_path, work_dir)
    snapshot.work_dir = work_dir

    if not (work_dir / ".git").is_dir():
        raise DataError("Required directory 'Git repository' not found in the workspace copy")
    if not (work_dir / ctx.settings.build_dir).is_dir():
        raise DataError(
            f"Required directory 'Build output' not found in the workspace copy: "
            f"{ctx.settings.build_dir}"
        )
    if not Git(work_dir).status_ok():
        raise DataError("Git operations failed in extracted environment")
    logger.debug("Extracted environment validated: %s", work_dir)
    return snapshot


def stash_build_output(ctx: DeployContext) -> tuple[Path, Path]:
    """Move the copy's build output beside the workspace so branch switches cannot clobber it.

    Returns ``(work_dir, site_dir)``.
    """
    snapshot = require_snapshot(ctx)
    work_dir = snapshot.work_dir
    if work_dir is None:
        raise DataError("Workspace has not been expanded")
    site_dir = snapshot.private_dir / SITE_NAME
    shutil.move(str(work_dir / ctx.settings.build_dir), str(site_dir))
    snapshot.site_dir = site_dir
    return work_dir, site_dir


def require_snapshot(ctx: DeployContext) -> WorkspaceSnapshot:
    if ctx.snapshot is None:
        raise DataError("Isolated workspace has not been created")
    return ctx.snapshot
