"""Shared subprocess helpers for the external collaborators (git, build tool)."""

from __future__ import annotations

import subprocess

from pagesdeploy._log import get_logger
from pagesdeploy.errors import DeployError

logger = get_logger("subprocess")


class SubprocessTimeout(DeployError):
    """Raised when a subprocess exceeds its timeout."""

    def __init__(self, timeout: int) -> None:
        self.timeout = timeout
        super().__init__(f"Execution timed out after {timeout}s")


def run_subprocess(
    cmd: list[str],
    *,
    timeout: int | None,
    cwd: str | None = None,
) -> subprocess.CompletedProcess[bytes]:
    """Run a subprocess with captured output and timeout."""
    logger.debug("exec: %s (cwd=%s)", " ".join(cmd), cwd or ".")
    return subprocess.run(
        cmd,
        capture_output=True,
        timeout=timeout,
        cwd=cwd,
    )


def run_subprocess_text(
    cmd: list[str],
    *,
    timeout: int | None,
    cwd: str | None = None,
) -> tuple[str, str, int]:
    """Run a subprocess and return ``(stdout, stderr, returncode)`` as decoded text.

    A missing executable is reported as return code 127, like a shell would.

    Raises:
        SubprocessTimeout: If the subprocess exceeds *timeout* seconds.
    """
    try:
        result = run_subprocess(cmd, timeout=timeout, cwd=cwd)
    except subprocess.TimeoutExpired:
        raise SubprocessTimeout(timeout or 0) from None
    except FileNotFoundError as exc:
        return "", str(exc), 127
    return (
        result.stdout.decode("utf-8", errors="replace"),
        result.stderr.decode("utf-8", errors="replace"),
        result.returncode,
    )


def run_shell(
    command: str,
    *,
    cwd: str | None = None,
    timeout: int | None = None,
    capture: bool = True,
) -> tuple[int, str]:
    """Run an ad-hoc command line through the shell.

    Returns ``(returncode, combined_output)``. With ``capture=False`` output
    streams straight to the terminal and the returned text is empty.
    """
    logger.debug("shell: %s (cwd=%s)", command, cwd or ".")
    try:
        result = subprocess.run(
            command,
            shell=True,
            cwd=cwd,
            timeout=timeout,
            capture_output=capture,
        )
    except subprocess.TimeoutExpired:
        raise SubprocessTimeout(timeout or 0) from None
    if not capture:
        return result.returncode, ""
    output = format_subprocess_output(
        result.stdout.decode("utf-8", errors="replace"),
        result.stderr.decode("utf-8", errors="replace"),
    )
    return result.returncode, output


def format_subprocess_output(stdout: str, stderr: str) -> str:
    """Assemble stdout/stderr into a single output string."""
    parts: list[str] = []
    if stdout:
        parts.append(f"STDOUT:\n{stdout}")
    if stderr:
        parts.append(f"STDERR:\n{stderr}")
    return "\n".join(parts) if parts else "(no output)"
