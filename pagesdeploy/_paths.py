"""Secure-path helpers for private working directories."""

from __future__ import annotations

import sys
import tempfile
from pathlib import Path


def ensure_private_dir(path: Path) -> None:
    """Create (or tighten) a directory to mode 0o700."""
    path.mkdir(parents=True, exist_ok=True, mode=0o700)
    if sys.platform != "win32":
        path.chmod(0o700)


def create_private_temp_dir(prefix: str, base: Path | None = None) -> Path:
    """Create a fresh owner-only temporary directory named ``<prefix>.XXXXXX``."""
    if base is not None:
        ensure_private_dir(base)
    path = Path(tempfile.mkdtemp(prefix=f"{prefix}.", dir=str(base) if base else None))
    ensure_private_dir(path)
    return path
