"""Tests for the notification rate limiter."""

import random

import pytest

from logwatcher.watcher import NotificationThrottle, StatsCollector


class TestNotificationThrottle:
    """Tests for the sliding-window throttle."""

    def test_allows_up_to_limit(self):
        throttle = NotificationThrottle(3)

        assert throttle.try_fire(now=10.0) is True
        assert throttle.try_fire(now=10.1) is True
        assert throttle.try_fire(now=10.2) is True
        assert throttle.try_fire(now=10.3) is False

    def test_window_slides(self):
        """A slot frees up once its timestamp is more than one second old."""
        throttle = NotificationThrottle(2)

        assert throttle.try_fire(now=0.0) is True
        assert throttle.try_fire(now=0.5) is True
        assert throttle.try_fire(now=0.9) is False
        assert throttle.try_fire(now=1.25) is True
        assert throttle.try_fire(now=1.4) is False
        assert throttle.try_fire(now=1.5625) is True

    def test_timestamp_exactly_one_second_old_still_counts(self):
        """Fires at 0.0 and 1.0 would put two in the closed window [0, 1]."""
        throttle = NotificationThrottle(1)

        assert throttle.try_fire(now=0.0) is True
        assert throttle.try_fire(now=1.0) is False
        assert throttle.try_fire(now=1.0009765625) is True

    def test_no_fixed_bucket_reset(self):
        """A burst straddling a second boundary cannot double the rate."""
        throttle = NotificationThrottle(2)

        assert throttle.try_fire(now=0.9) is True
        assert throttle.try_fire(now=0.95) is True
        # A fixed bucket would reset at 1.0 and allow these
        assert throttle.try_fire(now=1.0) is False
        assert throttle.try_fire(now=1.5) is False
        assert throttle.try_fire(now=1.92) is True

    def test_zero_disables_notifications(self):
        throttle = NotificationThrottle(0)
        assert throttle.try_fire(now=0.0) is False

    def test_negative_limit_rejected(self):
        with pytest.raises(ValueError):
            NotificationThrottle(-1)

    def test_denials_counted_in_stats(self):
        stats = StatsCollector()
        throttle = NotificationThrottle(1, stats=stats)

        throttle.try_fire(now=0.0)
        throttle.try_fire(now=0.1)
        throttle.try_fire(now=0.2)

        snapshot = stats.snapshot()
        assert snapshot.notifications_dropped == 2

    def test_uses_clock_when_now_omitted(self):
        ticks = iter([0.0, 0.1, 1.05])
        throttle = NotificationThrottle(1, clock=lambda: next(ticks))

        assert throttle.try_fire() is True
        assert throttle.try_fire() is False
        assert throttle.try_fire() is True

    @pytest.mark.parametrize("limit", [1, 3, 5])
    def test_random_bursts_never_exceed_limit(self, limit):
        """No one-second window ever holds more than the limit."""
        rng = random.Random(limit)
        throttle = NotificationThrottle(limit)
        now = 0.0
        accepted = []
        for _ in range(2000):
            # Binary fractions keep the sums exact
            now += rng.choice([0.0, 0.0009765625, 0.0078125, 0.0625, 0.25])
            if throttle.try_fire(now=now):
                accepted.append(now)

        for i, start in enumerate(accepted):
            in_window = [t for t in accepted[i:] if t <= start + 1.0]
            assert len(in_window) <= limit

    def test_in_window(self):
        throttle = NotificationThrottle(5)
        throttle.try_fire(now=0.0)
        throttle.try_fire(now=0.5)

        assert throttle.in_window(now=0.9) == 2
        assert throttle.in_window(now=1.2) == 1
