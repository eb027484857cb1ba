"""
Module providing time-dependent utilities.
"""
import threading
import time
from typing import Callable, Optional


class RepeatingTimer:
    """
    Calls a function on a background daemon thread every ``interval`` seconds until cancelled.

    The first call happens one full interval after :meth:`start`. Time spent inside the callback is subtracted from
    the following wait, so calls stay on schedule as long as the callback is shorter than the interval.

    :param interval: Number of seconds between calls.
    :param callback: Function called with no arguments on every tick.
    :param name: Optional name for the underlying thread.
    """

    def __init__(self, interval: float, callback: Callable[[], None], name: Optional[str] = None):
        if interval <= 0:
            raise ValueError(f"Timer interval must be positive, got {interval}.")
        self.interval = interval
        self._callback = callback
        self._cancelled = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    @property
    def is_alive(self) -> bool:
        return self._thread.is_alive()

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    def start(self):
        self._thread.start()

    def cancel(self):
        """
        Stop calling the callback. Does not wait for a call that is already in progress to finish.
        """
        self._cancelled.set()

    def join(self, timeout: Optional[float] = None):
        """
        Wait for the timer thread to exit. Has no effect when called from the timer thread itself.
        """
        if threading.current_thread() is not self._thread and self.is_alive:
            self._thread.join(timeout)

    def _run(self):
        wait_duration = self.interval
        while not self._cancelled.wait(wait_duration):
            tick_start = time.monotonic()
            self._callback()
            elapsed = time.monotonic() - tick_start
            wait_duration = max(0.0, self.interval - elapsed)
