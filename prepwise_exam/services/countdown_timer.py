"""
services/countdown_timer.py

Exam countdown clock.
Default exam duration: 2 hours (7200 seconds), configured through ExamConfig.

The timer is a plain state machine (stopped -> running -> expired). It does
not lock anything itself: the owning ExamSession serializes tick() with user
actions, and run_in_background() only drives the owner's callback once per
interval.
"""

import logging
import threading
from typing import Callable, Optional

from prepwise_exam.models.session_state import TimerState

logger = logging.getLogger(__name__)


def format_time(seconds: int) -> str:
    """
    Render remaining seconds as HH:MM:SS.

    >>> format_time(7200)
    '02:00:00'
    >>> format_time(61)
    '00:01:01'
    """
    seconds = max(0, int(seconds))
    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class CountdownTimer:
    def __init__(self, duration_seconds: int):
        if duration_seconds <= 0:
            raise ValueError("duration_seconds must be positive.")
        self.duration_seconds = duration_seconds
        self._remaining = duration_seconds
        self._state = TimerState.STOPPED
        self._halt = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def remaining_seconds(self) -> int:
        return self._remaining

    def start(self) -> None:
        if self._state is TimerState.STOPPED:
            self._state = TimerState.RUNNING
            self._halt.clear()

    def stop(self) -> None:
        """Halt the clock. Expired stays expired."""
        if self._state is TimerState.RUNNING:
            self._state = TimerState.STOPPED
        self._halt.set()

    def tick(self) -> bool:
        """
        Advance the clock by one second.

        Returns:
            True only on the tick that moves the timer to expired.
        """
        if self._state is not TimerState.RUNNING:
            return False

        self._remaining -= 1
        if self._remaining <= 0:
            self._remaining = 0
            self._state = TimerState.EXPIRED
            self._halt.set()
            return True
        return False

    def run_in_background(self, callback: Callable[[], None], interval: float = 1.0) -> None:
        """
        Call `callback` every `interval` seconds on a daemon thread until the
        timer is stopped or expires. The callback is expected to call tick().
        """
        if self._thread is not None and self._thread.is_alive():
            return

        def _loop():
            while not self._halt.wait(interval):
                try:
                    callback()
                except Exception:
                    logger.exception("Countdown tick failed")
                    self.stop()
                    break
                if self._state is not TimerState.RUNNING:
                    break

        self._thread = threading.Thread(target=_loop, name="exam-countdown", daemon=True)
        self._thread.start()
