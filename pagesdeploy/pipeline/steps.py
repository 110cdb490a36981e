"""The six deployment steps, in pipeline order.

Each step validates its preconditions and fails fast with a descriptive
:class:`~pagesdeploy.errors.DeployError`; none performs its own rollback.
"""

from __future__ import annotations

import contextlib
import shlex
import shutil
import time
from pathlib import Path

import httpx

from pagesdeploy._format import format_duration, format_file_size
from pagesdeploy._log import get_logger
from pagesdeploy._subprocess import SubprocessTimeout, run_shell
from pagesdeploy.context import BuildStats, DeployContext
from pagesdeploy.errors import (
    AttemptFailed,
    DataError,
    DeployError,
    EnvironmentCheckError,
)
from pagesdeploy.frameworks import UNKNOWN, declared_dependencies, framework_package, read_manifest
from pagesdeploy.guard import safe_remove
from pagesdeploy.pipeline.executor import Step
from pagesdeploy.publish import PublishStateMachine
from pagesdeploy.retry import RetryPolicy
from pagesdeploy.vcs import normalize_remote_url, pages_site_url
from pagesdeploy.workspace import (
    allocate_workspace,
    expand_snapshot,
    snapshot_project,
    stash_build_output,
)

logger = get_logger("pipeline.steps")


def check_internet(url: str, timeout: float = 5.0) -> bool:
    try:
        with httpx.Client(timeout=timeout, follow_redirects=True) as client:
            client.head(url)
    except httpx.HTTPError as e:
        logger.debug("Connectivity check against %s failed: %s", url, e)
        return False
    return True


def require_tool(name: str, description: str | None = None) -> None:
    if shutil.which(name) is None:
        raise EnvironmentCheckError(
            f"Required tool '{description or name}' not found. Please install it first."
        )


def _build_tool(command: str) -> str | None:
    try:
        parts = shlex.split(command)
    except ValueError:
        return None
    return parts[0] if parts else None


# ---------------------------------------------------------------------------
# Step 1: environment validation
# ---------------------------------------------------------------------------


def validate_environment(ctx: DeployContext) -> None:
    settings, display, git = ctx.settings, ctx.display, ctx.git
    display.status("Validating environment...")

    require_tool("git", "Git version control")
    if not git.is_repository():
        raise EnvironmentCheckError(
            "Not in a git repository! Please run this from your project root."
        )

    raw_url = git.remote_url(settings.remote)
    if not raw_url:
        raise EnvironmentCheckError(
            f"No remote repository found. Please set up a remote '{settings.remote}'."
        )
    if not git.verify_remote(raw_url):
        raise EnvironmentCheckError(
            "Cannot access remote repository. Check your credentials and permissions."
        )
    ctx.repo_url = normalize_remote_url(raw_url)
    ctx.guardian.site_url = pages_site_url(raw_url)

    branch = git.current_branch()
    if not branch:
        raise EnvironmentCheckError(
            "Cannot determine current branch. Are you in detached HEAD state?"
        )
    ctx.guardian.capture_restore_point(branch)

    tool = _build_tool(settings.build_command)
    if tool is None:
        raise EnvironmentCheckError(f"Invalid build command: '{settings.build_command}'")
    require_tool(tool, f"{tool} (build tool)")

    display.info(f"Detected framework: {settings.framework}")
    display.info(f"Build directory: {settings.build_dir}")
    display.info(f"Build command: {settings.build_command}")
    display.info(f"Current branch: {branch}")
    display.info(f"Repository: {ctx.repo_url}")

    if not check_internet(settings.connectivity_url):
        display.warning("No internet connectivity detected")
        if ctx.interactive:
            if not ctx.engine.confirm("No internet detected. Continue anyway?", default=False):
                raise EnvironmentCheckError("Internet connectivity required for deployment")
        else:
            display.warning("Continuing anyway in non-interactive mode")

    display.success("Environment validation completed")


# ---------------------------------------------------------------------------
# Step 2: dependencies
# ---------------------------------------------------------------------------


def install_dependencies(ctx: DeployContext) -> None:
    settings = ctx.settings

    def attempt() -> None:
        try:
            returncode, output = run_shell(
                settings.install_command,
                cwd=str(settings.project_root),
                timeout=settings.command_timeout,
                capture=not settings.verbose,
            )
        except SubprocessTimeout as exc:
            raise AttemptFailed(f"'{settings.install_command}': {exc}") from exc
        if returncode != 0:
            logger.debug("Install output:\n%s", output)
            raise AttemptFailed(f"'{settings.install_command}' exited with {returncode}")

    RetryPolicy(
        max_attempts=settings.retry_attempts,
        delay=settings.retry_delay,
        description="dependency installation",
    ).run(attempt)


def check_dependencies(ctx: DeployContext) -> None:
    settings, display = ctx.settings, ctx.display
    display.status("Checking project dependencies...")

    if not settings.manifest_path.is_file():
        raise EnvironmentCheckError(
            f"Required file '{settings.manifest} configuration' not found: "
            f"{settings.manifest_path}"
        )

    if not (settings.project_root / settings.dependency_dir).is_dir():
        if ctx.interactive:
            if not ctx.engine.confirm("Dependencies not installed. Install now?", default=True):
                raise EnvironmentCheckError("Dependencies required for build process")
            display.info("Installing dependencies...")
        else:
            display.info("Installing dependencies (non-interactive mode)...")
        install_dependencies(ctx)

    package = framework_package(settings.framework)
    if settings.framework != UNKNOWN and package is not None:
        declared = declared_dependencies(read_manifest(settings.manifest_path))
        if package not in declared:
            raise EnvironmentCheckError(
                f"{settings.framework} not found in dependencies. "
                f"Please add '{package}' to {settings.manifest}"
            )

    display.success("Dependencies validated")


# ---------------------------------------------------------------------------
# Step 3: build
# ---------------------------------------------------------------------------


def collect_build_stats(path: Path, duration_s: float) -> BuildStats:
    files = [p for p in path.rglob("*") if p.is_file()]
    return BuildStats(
        duration_s=duration_s,
        files=len(files),
        size_bytes=sum(p.stat().st_size for p in files),
    )


def build_project(ctx: DeployContext) -> None:
    settings, display = ctx.settings, ctx.display
    build_path = settings.build_path
    display.status("Building project for production...")

    if build_path.exists():
        if ctx.interactive:
            if ctx.engine.confirm("Previous build found. Clean it first?", default=True):
                safe_remove(build_path, "previous build directory")
        else:
            display.info("Cleaning previous build (non-interactive mode)...")
            safe_remove(build_path, "previous build directory")

    display.info(f"Running: {settings.build_command}")
    cwd = str(settings.project_root)
    start = time.monotonic()
    returncode, output = run_shell(
        settings.build_command,
        cwd=cwd,
        timeout=settings.command_timeout,
        capture=not settings.verbose,
    )
    if returncode != 0:
        if not settings.verbose:
            logger.debug("Build output:\n%s", output)
            display.error("Build failed! Running with verbose output...")
            returncode, _ = run_shell(
                settings.build_command, cwd=cwd, timeout=settings.command_timeout, capture=False
            )
        raise DataError(f"Build command failed with exit code {returncode}")
    duration = time.monotonic() - start

    if not build_path.is_dir():
        raise DataError(
            f"Required directory 'build output directory' not found: {settings.build_dir}"
        )
    if not any(build_path.iterdir()):
        raise DataError("Build directory is empty! Check your build configuration.")

    stats = collect_build_stats(build_path, duration)
    ctx.build_stats = stats
    display.success(f"Build completed in {format_duration(stats.duration_s)}")
    display.info(f"Generated {stats.files} files ({format_file_size(stats.size_bytes)})")


# ---------------------------------------------------------------------------
# Step 4: isolated workspace
# ---------------------------------------------------------------------------


def create_isolated_workspace(ctx: DeployContext) -> None:
    display = ctx.display
    display.status("Creating isolated workspace...")
    snapshot = allocate_workspace(ctx)

    if ctx.git.has_uncommitted_changes():
        notice = (
            "Warning: The deployment will use the current committed state, "
            "not uncommitted changes."
        )
        if ctx.interactive:
            if not ctx.engine.confirm(
                "Uncommitted changes detected. Continue?", default=True, context=notice
            ):
                raise DeployError("Deployment cancelled: uncommitted changes")
        else:
            display.warning("Uncommitted changes detected. Using committed state for deployment.")

    display.success(f"Temporary workspace created: {snapshot.private_dir}")


# ---------------------------------------------------------------------------
# Step 5: archive
# ---------------------------------------------------------------------------


def create_project_archive(ctx: DeployContext) -> None:
    display = ctx.display
    display.status("Creating project archive...")
    start = time.monotonic()
    stats = snapshot_project(ctx)
    duration = time.monotonic() - start
    display.success(
        f"Archive created in {format_duration(duration)} "
        f"({stats.files} files, {format_file_size(stats.size_bytes)})"
    )


# ---------------------------------------------------------------------------
# Step 6: publish
# ---------------------------------------------------------------------------


def publish_from_isolated_copy(ctx: DeployContext) -> None:
    display = ctx.display
    display.status("Deploying from isolated environment...")
    display.info("Extracting project to temporary workspace...")
    expand_snapshot(ctx)
    work_dir, site_dir = stash_build_output(ctx)

    with contextlib.chdir(work_dir):
        machine = PublishStateMachine(ctx, work_dir, site_dir)
        ctx.publish_result = machine.run()

    display.success("Deployment from isolated environment completed")


def default_steps() -> list[Step]:
    return [
        Step(
            "Environment Validation",
            "Checking git repository, dependencies, and permissions",
            validate_environment,
        ),
        Step(
            "Dependencies Check",
            "Ensuring all required packages are installed",
            check_dependencies,
        ),
        Step("Project Build", "Building production-ready static files", build_project),
        Step(
            "Isolated Workspace",
            "Creating secure temporary environment",
            create_isolated_workspace,
        ),
        Step("Project Archive", "Creating compressed project snapshot", create_project_archive),
        Step(
            "GitHub Pages Deploy",
            "Deploying to GitHub Pages from isolated environment",
            publish_from_isolated_copy,
        ),
    ]
