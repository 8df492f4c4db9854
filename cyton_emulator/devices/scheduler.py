"""
Cancellable one-shot and repeating tasks backed by daemon threads.
"""

from __future__ import annotations
import logging
import threading
import time
from typing import Callable, Optional

log = logging.getLogger(__name__)

Task = Callable[[], None]
ErrorCallback = Callable[[Exception], None]


class TaskHandle:
    """Cancel token shared between the scheduler and the task owner."""

    def __init__(self) -> None:
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def wait(self, timeout: float) -> bool:
        """Sleep up to *timeout* seconds; True if cancelled meanwhile."""
        return self._cancelled.wait(timeout)


class ThreadScheduler:
    """
    Runs every task on its own daemon thread.

    A cancelled handle never starts another call, but a call already in
    progress is not interrupted: owners that need a hard stop check their
    own state under a lock inside the task.
    """

    def call_later(self, delay: float, fn: Task) -> TaskHandle:
        handle = TaskHandle()

        def _run() -> None:
            if not handle.wait(delay):
                fn()

        threading.Thread(target=_run, daemon=True, name="call_later").start()
        return handle

    def call_every(
        self, interval: float, fn: Task, on_error: Optional[ErrorCallback] = None
    ) -> TaskHandle:
        """
        Call *fn* every *interval* seconds until the handle is cancelled.

        If *fn* raises, the task is cancelled and *on_error* (if given) is
        called with the exception.
        """
        handle = TaskHandle()

        def _loop() -> None:
            # fixed-rate: deadlines advance by interval, not by elapsed time
            deadline = time.monotonic() + interval
            while not handle.wait(max(0.0, deadline - time.monotonic())):
                try:
                    fn()
                except Exception as ex:
                    log.exception("Repeating task failed; stopping it")
                    handle.cancel()
                    if on_error is not None:
                        on_error(ex)
                    break
                deadline += interval
                now = time.monotonic()
                if now - deadline > interval:
                    # stalled: skip the missed ticks rather than bursting them
                    deadline = now + interval

        threading.Thread(target=_loop, daemon=True, name="call_every").start()
        return handle
