"""Shared test fixtures and helpers."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest
from rich.console import Console

from pagesdeploy.config import DeploySettings
from pagesdeploy.context import DeployContext, create_context

BUILD_COMMAND = "mkdir -p out && printf hello > out/index.html"


def git(path: Path, *args: str) -> str:
    """Run git in *path* and return stripped stdout."""
    result = subprocess.run(
        ["git", "-C", str(path), *args], capture_output=True, check=True, text=True
    )
    return result.stdout.strip()


def create_test_repo(path: Path, branch: str = "main") -> Path:
    """Initialize a git repo with an initial commit at *path*."""
    path.mkdir(parents=True, exist_ok=True)
    subprocess.run(["git", "init", str(path)], capture_output=True, check=True)
    git(path, "symbolic-ref", "HEAD", f"refs/heads/{branch}")
    git(path, "config", "user.email", "test@test.com")
    git(path, "config", "user.name", "Test User")
    git(path, "config", "commit.gpgsign", "false")
    (path / "README.md").write_text("# Hello\n")
    git(path, "add", ".")
    git(path, "commit", "-q", "-m", "initial")
    return path


def make_settings(project_root: Path, **kwargs) -> DeploySettings:
    """Build unattended settings suitable for tests."""
    values = {
        "interactive": False,
        "build_dir": "out",
        "build_command": BUILD_COMMAND,
        "retry_delay": 0,
        "tmp_root": project_root.parent / "private",
    }
    values.update(kwargs)
    return DeploySettings(project_root=project_root, **values)


def make_context(settings: DeploySettings) -> DeployContext:
    return create_context(settings, Console(record=True, width=120))


@pytest.fixture
def origin(tmp_path) -> Path:
    """A bare repository standing in for the hosting remote."""
    path = tmp_path / "origin.git"
    subprocess.run(["git", "init", "--bare", "-q", str(path)], capture_output=True, check=True)
    return path


@pytest.fixture
def project(tmp_path, origin) -> Path:
    """A committed Node-style project with an ``origin`` remote and installed deps."""
    path = create_test_repo(tmp_path / "site")
    (path / "package.json").write_text(
        json.dumps({"name": "site", "scripts": {"build": "echo build"}}, indent=2)
    )
    (path / ".gitignore").write_text("node_modules/\nout/\n")
    (path / "CNAME").write_text("www.example.com\n")
    git(path, "add", ".")
    git(path, "commit", "-q", "-m", "add manifest")
    git(path, "remote", "add", "origin", str(origin))
    git(path, "push", "-q", "origin", "main")
    (path / "node_modules").mkdir()
    return path


@pytest.fixture
def online():
    with patch("pagesdeploy.pipeline.steps.check_internet", return_value=True) as mock:
        yield mock
