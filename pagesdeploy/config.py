"""Deployment settings: CLI flags over environment over dotenv over detection.

Data home respects ``PAGES_DEPLOY_HOME``, then ``XDG_DATA_HOME/pages-deploy``,
and falls back to ``~/.pages-deploy``.
"""

from __future__ import annotations

import os
import re
import sys
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from pagesdeploy import frameworks
from pagesdeploy._log import get_logger
from pagesdeploy.errors import UsageError

logger = get_logger("config")

DEFAULT_BRANCH = "gh-pages"
DEFAULT_APP_NAME = "pages-deploy"

_SAFE_REF_RE = re.compile(r"^[a-zA-Z0-9_./\-]+$")

_TRUTHY = {"true", "1", "yes"}
_FALSY = {"false", "0", "no"}

_CI_ENV_VARS = ("CI", "GITHUB_ACTIONS", "JENKINS_URL")

# Settings field -> environment key.
ENV_KEYS: dict[str, str] = {
    "interactive": "IS_INTERACTIVE",
    "dry_run": "DRY_RUN",
    "verbose": "VERBOSE",
    "quiet": "QUIET",
    "build_dir": "BUILD_DIR",
    "framework": "FRAMEWORK",
    "branch": "GH_PAGES_BRANCH",
    "build_command": "BUILD_COMMAND",
    "install_command": "INSTALL_COMMAND",
    "tmp_root": "PAGES_DEPLOY_TMPDIR",
    "retry_delay": "PAGES_DEPLOY_RETRY_DELAY",
    "command_timeout": "PAGES_DEPLOY_COMMAND_TIMEOUT",
}

_BOOL_FIELDS = {"interactive", "dry_run", "verbose", "quiet"}


def get_home_dir() -> Path:
    """Return the pages-deploy data directory.

    Resolution order:
    1. ``PAGES_DEPLOY_HOME`` environment variable
    2. ``XDG_DATA_HOME/pages-deploy`` (if ``XDG_DATA_HOME`` is set)
    3. ``~/.pages-deploy``
    """
    env = os.environ.get("PAGES_DEPLOY_HOME")
    if env:
        return Path(env)
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg) / "pages-deploy"
    return Path.home() / ".pages-deploy"


def get_global_env_path() -> Path:
    return get_home_dir() / ".env"


class DeploySettings(BaseModel):
    """Process-wide configuration, fixed once the pipeline starts."""

    model_config = ConfigDict(frozen=True)

    project_root: Path
    interactive: bool = True
    dry_run: bool = False
    verbose: bool = False
    quiet: bool = False
    framework: str = frameworks.UNKNOWN
    build_dir: str = frameworks.DEFAULT_BUILD_DIR
    build_command: str = frameworks.DEFAULT_BUILD_COMMAND
    install_command: str = "npm install"
    branch: str = DEFAULT_BRANCH
    remote: str = "origin"
    app_name: str = DEFAULT_APP_NAME
    manifest: str = "package.json"
    dependency_dir: str = "node_modules"
    tmp_root: Path | None = None
    connectivity_url: str = "https://github.com"
    retry_attempts: int = Field(default=3, ge=1)
    retry_delay: float = Field(default=2.0, ge=0)
    command_timeout: int | None = Field(default=None, ge=1)

    @field_validator("branch", "remote")
    @classmethod
    def _validate_ref(cls, value: str) -> str:
        if value.startswith("-"):
            raise ValueError(f"invalid ref '{value}' (must not start with '-')")
        if not _SAFE_REF_RE.match(value):
            raise ValueError(f"invalid ref '{value}' (contains unsafe characters)")
        return value

    @field_validator("framework")
    @classmethod
    def _validate_framework(cls, value: str) -> str:
        value = value.strip().lower()
        if value != frameworks.UNKNOWN and value not in frameworks.PRESETS:
            supported = ", ".join(sorted(frameworks.PRESETS))
            raise ValueError(f"unsupported framework '{value}' (supported: {supported})")
        return value

    @field_validator("build_dir")
    @classmethod
    def _validate_build_dir(cls, value: str) -> str:
        if not value or Path(value).is_absolute() or ".." in Path(value).parts:
            raise ValueError(f"build directory must be relative to the project root: '{value}'")
        return value.rstrip("/")

    @property
    def build_path(self) -> Path:
        return self.project_root / self.build_dir

    @property
    def manifest_path(self) -> Path:
        return self.project_root / self.manifest


def parse_bool(value: str | bool, key: str) -> bool:
    """Parse a boolean flag value; anything unrecognised is a usage error."""
    if isinstance(value, bool):
        return value
    normalized = value.strip().lower()
    if normalized in _TRUTHY:
        return True
    if normalized in _FALSY:
        return False
    raise UsageError(f"Invalid boolean for {key}: '{value}' (use true/false/1/0/yes/no)")


def load_dotenv_files(project_root: Path) -> None:
    """Load .env files: project-local first, then global as fallback.

    Uses ``override=False`` so existing env vars always win.
    """
    from dotenv import load_dotenv

    local_env = project_root / ".env"
    if local_env.is_file():
        load_dotenv(local_env, override=False)
    global_env = get_global_env_path()
    if global_env.is_file():
        load_dotenv(global_env, override=False)


def detect_interactive(environ: Mapping[str, str] | None = None) -> bool:
    """Interactive only with a TTY on both ends and outside CI."""
    environ = os.environ if environ is None else environ
    if not (sys.stdin.isatty() and sys.stdout.isatty()):
        logger.debug("Non-interactive mode detected (no TTY)")
        return False
    if any(environ.get(var) for var in _CI_ENV_VARS):
        logger.debug("Non-interactive mode detected (CI environment)")
        return False
    return True


def resolve_project_root(start: Path | None = None) -> Path:
    """Return the repository top level containing *start*, or *start* itself."""
    from pagesdeploy.vcs import Git

    start = (start or Path.cwd()).resolve()
    toplevel = Git(start).toplevel()
    return toplevel if toplevel is not None else start


def load_settings(
    overrides: Mapping[str, Any] | None = None,
    *,
    project_root: Path | None = None,
    environ: Mapping[str, str] | None = None,
    load_env_files: bool = True,
) -> DeploySettings:
    """Build :class:`DeploySettings` from flags, environment, and detection.

    *overrides* holds CLI values; ``None`` entries mean "not given".

    Raises:
        UsageError: If any supplied value is malformed.
    """
    root = resolve_project_root(project_root)
    if load_env_files:
        load_dotenv_files(root)
    environ = os.environ if environ is None else environ

    values: dict[str, Any] = {}
    for field_name, env_key in ENV_KEYS.items():
        raw = environ.get(env_key)
        if raw is None or raw == "":
            continue
        values[field_name] = parse_bool(raw, env_key) if field_name in _BOOL_FIELDS else raw

    for key, value in (overrides or {}).items():
        if value is not None:
            values[key] = value

    if "interactive" not in values:
        values["interactive"] = detect_interactive(environ)

    framework = str(values.get("framework") or "").strip().lower()
    if not framework:
        framework = frameworks.detect_framework(root, values.get("manifest", "package.json"))
    values["framework"] = framework
    values.setdefault("build_dir", frameworks.default_build_dir(framework))
    values.setdefault("build_command", frameworks.default_build_command(framework))

    try:
        return DeploySettings(project_root=root, **values)
    except ValidationError as e:
        raise UsageError(f"Invalid configuration:\n{e}") from e
