"""Counters for processed lines, matches and notifications."""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass, field

from ..metrics import (
    FILE_ERRORS,
    FILES_WATCHED,
    LINES_EXCLUDED,
    LINES_PROCESSED,
    NOTIFICATIONS,
    PATTERN_MATCHES,
    ROTATIONS,
)


@dataclass(frozen=True)
class StatsSnapshot:
    """Point-in-time copy of the counters, safe to hand to reporting code."""

    files_watched: int = 0
    lines_processed: int = 0
    lines_excluded: int = 0
    matches_found: int = 0
    pattern_matches: dict[str, int] = field(default_factory=dict)
    notifications_sent: int = 0
    notifications_dropped: int = 0
    notifications_failed: int = 0
    rotations: int = 0
    file_errors: int = 0


class StatsCollector:
    """Monotonic counters shared by every watched file.

    All mutation goes through one lock; the counters are mirrored into the
    Prometheus metrics as they change.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.files_watched = 0
        self.lines_processed = 0
        self.lines_excluded = 0
        self.matches_found = 0
        self.pattern_matches: Counter[str] = Counter()
        self.notifications_sent = 0
        self.notifications_dropped = 0
        self.notifications_failed = 0
        self.rotations = 0
        self.file_errors = 0

    def set_files_watched(self, count: int) -> None:
        with self._lock:
            self.files_watched = count
        FILES_WATCHED.set(count)

    def record_excluded(self) -> None:
        with self._lock:
            self.lines_excluded += 1
        LINES_EXCLUDED.inc()

    def record_line(self, matched_patterns: list[str] | tuple[str, ...] = ()) -> None:
        """Count one classified (non-excluded) line and its pattern matches."""
        with self._lock:
            self.lines_processed += 1
            if matched_patterns:
                self.matches_found += 1
                self.pattern_matches.update(matched_patterns)
        LINES_PROCESSED.inc()
        for pattern in matched_patterns:
            PATTERN_MATCHES.labels(pattern=pattern).inc()

    def record_notification_sent(self) -> None:
        with self._lock:
            self.notifications_sent += 1
        NOTIFICATIONS.labels(status="sent").inc()

    def record_notification_dropped(self) -> None:
        with self._lock:
            self.notifications_dropped += 1
        NOTIFICATIONS.labels(status="dropped").inc()

    def record_notification_failed(self) -> None:
        with self._lock:
            self.notifications_failed += 1
        NOTIFICATIONS.labels(status="failed").inc()

    def record_rotation(self) -> None:
        with self._lock:
            self.rotations += 1
        ROTATIONS.inc()

    def record_file_error(self) -> None:
        with self._lock:
            self.file_errors += 1
        FILE_ERRORS.inc()

    def snapshot(self) -> StatsSnapshot:
        """Return a consistent copy of every counter."""
        with self._lock:
            return StatsSnapshot(
                files_watched=self.files_watched,
                lines_processed=self.lines_processed,
                lines_excluded=self.lines_excluded,
                matches_found=self.matches_found,
                pattern_matches=dict(self.pattern_matches),
                notifications_sent=self.notifications_sent,
                notifications_dropped=self.notifications_dropped,
                notifications_failed=self.notifications_failed,
                rotations=self.rotations,
                file_errors=self.file_errors,
            )


def format_stats_table(stats: StatsSnapshot) -> str:
    """Format a stats snapshot as a plain-text summary."""
    lines = [
        "Summary:",
        f"  {'Files watched:':<24} {stats.files_watched:>8}",
        f"  {'Lines processed:':<24} {stats.lines_processed:>8}",
        f"  {'Lines excluded:':<24} {stats.lines_excluded:>8}",
        f"  {'Matches found:':<24} {stats.matches_found:>8}",
        f"  {'Notifications sent:':<24} {stats.notifications_sent:>8}",
        f"  {'Notifications dropped:':<24} {stats.notifications_dropped:>8}",
        f"  {'Notifications failed:':<24} {stats.notifications_failed:>8}",
        f"  {'Rotations:':<24} {stats.rotations:>8}",
    ]

    if stats.pattern_matches:
        lines.append("")
        lines.append(f"  {'Pattern':<30} {'Matches':>8}")
        lines.append("  " + "-" * 39)
        for pattern, count in sorted(stats.pattern_matches.items(), key=lambda x: -x[1]):
            lines.append(f"  {pattern:<30} {count:>8}")

    return "\n".join(lines)
