"""Exception hierarchy for the deployment pipeline.

Every fatal condition surfaces as a :class:`DeployError` subclass so the CLI
can print a single human-readable cause before the resource guardian reports
that the workspace was restored.
"""

from __future__ import annotations


class DeployError(Exception):
    """Base exception for pages-deploy errors."""

    exit_code: int = 1


class UsageError(DeployError):
    """Raised for bad flags, bad configuration values, or malformed prompt conditions."""

    exit_code = 2


class EnvironmentCheckError(DeployError):
    """Raised when the host environment cannot support a deployment."""


class DataError(DeployError):
    """Raised when build output or the project snapshot is unusable.

    Retrying without changing inputs cannot succeed, so these are never retried.
    """


class AttemptFailed(DeployError):
    """Raised by a single attempt of a retryable unit of work."""


class RetryExhausted(DeployError):
    """Raised when a bounded retry gives up."""

    def __init__(self, description: str, attempts: int) -> None:
        self.description = description
        self.attempts = attempts
        super().__init__(f"{description} failed after {attempts} attempt(s)")


class NoAnswer(DeployError):
    """Raised when the confirmation engine has no answer to give."""


class InputAttemptsExhausted(DeployError):
    """Raised when a bounded input collector gives up.

    ``default`` holds the value the caller may fall back to.
    """

    def __init__(self, message: str, default: str = "") -> None:
        self.default = default
        super().__init__(message)


class CallbackFailed(DeployError):
    """Raised when a callback prompt returns a non-zero result."""


class DeployInterrupted(DeployError):
    """Raised from the signal handler on SIGINT/SIGTERM."""

    def __init__(self, signum: int) -> None:
        self.signum = signum
        self.exit_code = 128 + signum
        super().__init__(f"Interrupted by signal {signum}")
