"""Sliding-window rate limiter for notifications."""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .stats import StatsCollector

WINDOW_SECONDS = 1.0


class NotificationThrottle:
    """Rate limiter to prevent notification spam.

    Keeps the timestamps of notifications allowed during the trailing
    one-second window ``[now - 1s, now]``. A timestamp leaves the window only
    once it is older than ``now - 1s``. A new notification is allowed only
    while fewer than ``max_per_second`` timestamps remain in that window, so
    no closed one-second interval ever sees more than ``max_per_second``
    notifications.
    """

    def __init__(
        self,
        max_per_second: int,
        stats: StatsCollector | None = None,
        clock=time.monotonic,
    ):
        if max_per_second < 0:
            raise ValueError("max_per_second must not be negative")
        self.max_per_second = max_per_second
        self.stats = stats
        self._clock = clock
        self._fired: deque[float] = deque()
        self._lock = threading.Lock()

    def try_fire(self, now: float | None = None) -> bool:
        """Check whether a notification may be sent now, and record it if so.

        Args:
            now: Timestamp in seconds (defaults to the throttle's clock)

        Returns:
            True if the notification is allowed, False if it is dropped
        """
        with self._lock:
            if now is None:
                now = self._clock()

            cutoff = now - WINDOW_SECONDS
            while self._fired and self._fired[0] < cutoff:
                self._fired.popleft()

            if len(self._fired) < self.max_per_second:
                self._fired.append(now)
                return True

        if self.stats is not None:
            self.stats.record_notification_dropped()
        return False

    def in_window(self, now: float | None = None) -> int:
        """Number of notifications recorded in the window ending at ``now``."""
        with self._lock:
            if now is None:
                now = self._clock()
            cutoff = now - WINDOW_SECONDS
            return sum(1 for t in self._fired if t >= cutoff)
