"""Prometheus metrics for logwatcher.

All metrics use the 'logwatcher_' prefix for consistency.
"""

from prometheus_client import Counter, Gauge

FILES_WATCHED = Gauge(
    "logwatcher_files_watched",
    "Number of files being watched",
)

LINES_PROCESSED = Counter(
    "logwatcher_lines_processed_total",
    "Total lines classified (excluded lines are not counted)",
)

LINES_EXCLUDED = Counter(
    "logwatcher_lines_excluded_total",
    "Total lines dropped by an exclude pattern",
)

PATTERN_MATCHES = Counter(
    "logwatcher_pattern_matches_total",
    "Total lines matched, per include pattern",
    ["pattern"],
)

NOTIFICATIONS = Counter(
    "logwatcher_notifications_total",
    "Total notifications by outcome",
    ["status"],  # status: sent, dropped, failed
)

ROTATIONS = Counter(
    "logwatcher_rotations_total",
    "Total file rotations detected",
)

FILE_ERRORS = Counter(
    "logwatcher_file_errors_total",
    "Total transitions of a watched file to unreachable",
)
