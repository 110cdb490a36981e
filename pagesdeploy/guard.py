"""Resource guardian: guaranteed, idempotent teardown on every exit path.

The guardian owns the disposable resources of a run (the private directory,
the archive inside it) and the restore point, the branch that was checked out
in the caller's repository before the run began. Releasing switches that
repository back to the restore point if needed, removes the resources, and
prints the final outcome. Release runs exactly once: on leaving the ``with``
block, from the signal handler path, or as an ``atexit`` backstop.
"""

from __future__ import annotations

import atexit
import shutil
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from pagesdeploy._log import get_logger
from pagesdeploy._signal import install_interrupt_handler
from pagesdeploy.display import Display
from pagesdeploy.errors import DeployError, DeployInterrupted
from pagesdeploy.vcs import Git

logger = get_logger("guard")


@dataclass
class TrackedResource:
    path: Path
    description: str


def safe_remove(path: Path, description: str) -> bool:
    """Remove a file or directory tree; failures are logged, never raised."""
    if not path.exists() and not path.is_symlink():
        return False
    logger.debug("Removing %s: %s", description, path)
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except OSError as e:
        logger.warning("Could not remove %s %s: %s", description, path, e)
        return False
    return True


def exit_code_for(exc: BaseException | None) -> int:
    if exc is None:
        return 0
    if isinstance(exc, DeployError):
        return exc.exit_code
    if isinstance(exc, KeyboardInterrupt):
        return 130
    if isinstance(exc, SystemExit):
        if exc.code is None:
            return 0
        return exc.code if isinstance(exc.code, int) else 1
    return 1


class ResourceGuardian:
    def __init__(
        self,
        project_root: Path,
        display: Display | None = None,
        *,
        git: Git | None = None,
    ) -> None:
        self.project_root = project_root
        self.display = display or Display()
        self.git = git or Git(project_root)
        self.restore_point: str | None = None
        self.exit_code: int | None = None
        self.site_url: str | None = None
        self._resources: list[TrackedResource] = []
        self._released = False
        self._suspend_depth = 0
        self._pending_signal: int | None = None
        self._restore_signals: Callable[[], None] | None = None

    @property
    def released(self) -> bool:
        return self._released

    @property
    def resources(self) -> list[TrackedResource]:
        return list(self._resources)

    def capture_restore_point(self, branch: str) -> None:
        """Remember the branch to return to. Once set it is never reassigned."""
        if self.restore_point is not None:
            if branch != self.restore_point:
                logger.warning(
                    "Restore point already captured as '%s'; ignoring '%s'",
                    self.restore_point,
                    branch,
                )
            return
        self.restore_point = branch
        logger.debug("Restore point captured: %s", branch)

    def register(self, path: Path, description: str) -> Path:
        self._resources.append(TrackedResource(path=path, description=description))
        logger.debug("Registered %s: %s", description, path)
        return path

    # -- Suspension ------------------------------------------------------------

    def suspend(self) -> None:
        """Defer interrupts while a resource is half-built."""
        self._suspend_depth += 1
        logger.debug("Auto-release suspended (depth %d)", self._suspend_depth)

    def resume(self) -> None:
        """Re-arm interrupts; a signal that arrived while suspended is raised now."""
        if self._suspend_depth == 0:
            return
        self._suspend_depth -= 1
        logger.debug("Auto-release resumed (depth %d)", self._suspend_depth)
        if self._suspend_depth == 0 and self._pending_signal is not None:
            signum, self._pending_signal = self._pending_signal, None
            raise DeployInterrupted(signum)

    @property
    def suspended(self) -> bool:
        return self._suspend_depth > 0

    @contextmanager
    def suspension(self) -> Iterator[None]:
        self.suspend()
        try:
            yield
        finally:
            self.resume()

    def _on_signal(self, signum: int) -> None:
        if self.suspended:
            logger.debug("Signal %d deferred until the current resource is complete", signum)
            self._pending_signal = signum
            return
        raise DeployInterrupted(signum)

    # -- Release ---------------------------------------------------------------

    def release_all(self, exit_code: int | None = None) -> bool:
        """Restore the original branch, drop resources, report the outcome.

        Returns False when a previous call already released everything.
        """
        if self._released:
            logger.debug("Release already performed; skipping")
            return False
        self._released = True
        # Signals arriving during teardown stay deferred.
        self._suspend_depth += 1
        if exit_code is None:
            exit_code = self.exit_code if self.exit_code is not None else 1
        self.exit_code = exit_code

        logger.debug("Cleanup executing (exit_code: %d)", exit_code)
        self.display.status("Performing cleanup...")
        self._restore_branch()
        for resource in reversed(self._resources):
            safe_remove(resource.path, resource.description)
        self._resources.clear()
        self._report(exit_code)
        self._uninstall()
        return True

    def _restore_branch(self) -> None:
        if not self.restore_point:
            return
        current = self.git.current_branch()
        if current == self.restore_point:
            return
        self.display.status(f"Returning to original branch: {self.restore_point}")
        result = self.git.checkout(self.restore_point)
        if not result.ok:
            logger.warning(
                "Could not switch back to '%s': %s", self.restore_point, result.stderr.strip()
            )

    def _report(self, exit_code: int) -> None:
        if exit_code == 0:
            self.display.success("Deploy completed successfully!")
            if self.site_url:
                self.display.info(f"Your site will be available at: {self.site_url}")
        else:
            self.display.console.print("[red]Deploy failed, but environment is clean[/red]")

    # -- Installation ----------------------------------------------------------

    def install(self) -> None:
        """Install signal handlers and the ``atexit`` backstop."""
        self._restore_signals = install_interrupt_handler(self._on_signal)
        atexit.register(self.release_all)

    def _uninstall(self) -> None:
        atexit.unregister(self.release_all)
        if self._restore_signals is not None:
            self._restore_signals()
            self._restore_signals = None

    def __enter__(self) -> ResourceGuardian:
        self.install()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        code = exit_code_for(exc) if exc is not None else (self.exit_code or 0)
        self.release_all(code)
        return False
