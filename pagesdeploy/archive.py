"""Zip snapshot of a project tree: create, verify, expand."""

from __future__ import annotations

import fnmatch
import os
import zipfile
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from pagesdeploy._log import get_logger
from pagesdeploy.errors import DataError

logger = get_logger("archive")

# Dependency caches, reflogs/remote-tracking refs, log/temp files and
# build-tool caches. Object storage and local refs stay so the copy is a
# working repository.
DEFAULT_EXCLUDES: tuple[str, ...] = (
    "node_modules/*",
    ".git/logs/*",
    ".git/refs/remotes/*",
    "*.log",
    ".DS_Store",
    "Thumbs.db",
    "*.tmp",
    "coverage/*",
    ".nyc_output/*",
    "dist/*",
    ".next/*",
    ".vercel/*",
    ".cache/*",
    "*.swp",
    "*.swo",
)


@dataclass
class ArchiveStats:
    files: int = 0
    size_bytes: int = 0


def is_excluded(rel_path: str, excludes: Iterable[str], keep: Iterable[str] = ()) -> bool:
    """Match a POSIX relative path against exclusion globs.

    Paths under any *keep* prefix are never excluded. Patterns without a
    slash also match the basename anywhere in the tree.
    """
    for prefix in keep:
        prefix = prefix.strip("/")
        if prefix and (rel_path.rstrip("/") == prefix or rel_path.startswith(f"{prefix}/")):
            return False
    basename = rel_path.rstrip("/").rsplit("/", 1)[-1]
    for pattern in excludes:
        if fnmatch.fnmatch(rel_path, pattern):
            return True
        if "/" not in pattern and fnmatch.fnmatch(basename, pattern):
            return True
    return False


def create_archive(
    root: Path,
    archive_path: Path,
    *,
    excludes: Iterable[str] = DEFAULT_EXCLUDES,
    keep: Iterable[str] = (),
) -> ArchiveStats:
    """Snapshot *root* into *archive_path*, honouring *excludes*.

    Raises:
        DataError: If the archive cannot be written.
    """
    excludes = tuple(excludes)
    keep = tuple(keep)
    stats = ArchiveStats()
    archive_resolved = archive_path.resolve()
    try:
        with zipfile.ZipFile(archive_path, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for dirpath, dirnames, filenames in os.walk(root):
                rel_dir = Path(dirpath).relative_to(root).as_posix()
                rel_dir = "" if rel_dir == "." else f"{rel_dir}/"
                dirnames[:] = sorted(
                    d for d in dirnames if not is_excluded(f"{rel_dir}{d}/", excludes, keep)
                )
                for name in sorted(filenames):
                    rel = f"{rel_dir}{name}"
                    full = Path(dirpath) / name
                    if is_excluded(rel, excludes, keep) or full.resolve() == archive_resolved:
                        continue
                    if not full.is_file():
                        logger.debug("Skipping non-regular file: %s", rel)
                        continue
                    zf.write(full, rel)
                    stats.files += 1
    except OSError as e:
        raise DataError(f"Failed to create project archive: {e}") from e
    stats.size_bytes = archive_path.stat().st_size
    logger.debug("Archived %d files into %s", stats.files, archive_path)
    return stats


def verify_archive(archive_path: Path) -> bool:
    """Return True if the archive opens and every member's CRC checks out."""
    try:
        with zipfile.ZipFile(archive_path) as zf:
            bad = zf.testzip()
    except (OSError, zipfile.BadZipFile) as e:
        logger.debug("Archive %s failed to open: %s", archive_path, e)
        return False
    if bad is not None:
        logger.debug("Archive member failed integrity check: %s", bad)
        return False
    return True


def extract_archive(archive_path: Path, dest: Path) -> None:
    """Expand *archive_path* into *dest*, keeping POSIX permission bits.

    Raises:
        DataError: If the archive is unreadable or a member escapes *dest*.
    """
    dest.mkdir(parents=True, exist_ok=True)
    dest_resolved = dest.resolve()
    try:
        with zipfile.ZipFile(archive_path) as zf:
            for info in zf.infolist():
                target = (dest / info.filename).resolve()
                if target != dest_resolved and dest_resolved not in target.parents:
                    raise DataError(f"Archive member escapes workspace: {info.filename}")
                zf.extract(info, dest)
                mode = (info.external_attr >> 16) & 0o777
                if mode:
                    target.chmod(mode)
    except (OSError, zipfile.BadZipFile) as e:
        raise DataError(f"Failed to extract project archive: {e}") from e
