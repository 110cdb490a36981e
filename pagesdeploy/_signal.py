"""SIGINT/SIGTERM handler with double-signal force-exit."""

from __future__ import annotations

import os
import signal
import sys
import threading
from collections.abc import Callable
from typing import Any

_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def install_interrupt_handler(on_signal: Callable[[int], None]) -> Callable[[], None]:
    """Install a SIGINT/SIGTERM handler and return a function that restores the old ones.

    First signal: calls *on_signal* with the signal number; it may raise to
    unwind the main thread. Second signal: calls ``os._exit(1)`` immediately.

    Outside the main thread nothing is installed and the returned function
    is a no-op.
    """
    if threading.current_thread() is not threading.main_thread():
        return lambda: None

    shutting_down = threading.Event()

    def _handler(signum: int, frame: object) -> None:
        if shutting_down.is_set():
            print("\nForce shutdown.", file=sys.stderr, flush=True)
            os._exit(1)
        shutting_down.set()
        on_signal(signum)

    previous: dict[int, Any] = {}
    for sig in _SIGNALS:
        previous[sig] = signal.getsignal(sig)
        signal.signal(sig, _handler)

    def restore() -> None:
        for sig, handler in previous.items():
            signal.signal(sig, handler if handler is not None else signal.SIG_DFL)

    return restore
