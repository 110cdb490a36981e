"""Bounded retry policy shared by dependency install, push, and input collectors."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from pagesdeploy._log import get_logger
from pagesdeploy.errors import AttemptFailed, RetryExhausted

logger = get_logger("retry")

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Run a unit of work up to ``max_attempts`` times with a fixed delay.

    An attempt fails by raising :class:`AttemptFailed`; any other exception
    propagates immediately. ``on_retry`` is called with the attempt number and
    the failure before each wait.
    """

    max_attempts: int = 3
    delay: float = 0.0
    description: str = "operation"

    def run(
        self,
        attempt: Callable[[], T],
        *,
        on_retry: Callable[[int, AttemptFailed], None] | None = None,
    ) -> T:
        last_err: AttemptFailed | None = None
        for number in range(1, self.max_attempts + 1):
            logger.debug("Attempting %s (try %d/%d)", self.description, number, self.max_attempts)
            try:
                result = attempt()
            except AttemptFailed as exc:
                last_err = exc
                if number < self.max_attempts:
                    logger.warning(
                        "%s failed on attempt %d, retrying in %ss: %s",
                        self.description,
                        number,
                        self.delay,
                        exc,
                    )
                    if on_retry is not None:
                        on_retry(number, exc)
                    if self.delay:
                        time.sleep(self.delay)
                continue
            logger.debug("%s succeeded on attempt %d", self.description, number)
            return result

        logger.error(
            "%s failed after %d attempt(s): %s", self.description, self.max_attempts, last_err
        )
        raise RetryExhausted(self.description, self.max_attempts) from last_err
