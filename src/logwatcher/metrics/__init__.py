"""Prometheus metrics for logwatcher.

Counters are updated by the stats collector as lines are processed; start the
server with ``start_metrics_server(port)`` to expose them on ``/metrics``.
"""

from logwatcher.metrics.counters import (
    FILE_ERRORS,
    FILES_WATCHED,
    LINES_EXCLUDED,
    LINES_PROCESSED,
    NOTIFICATIONS,
    PATTERN_MATCHES,
    ROTATIONS,
)
from logwatcher.metrics.server import start_metrics_server, stop_metrics_server

__all__ = [
    "start_metrics_server",
    "stop_metrics_server",
    "FILES_WATCHED",
    "LINES_PROCESSED",
    "LINES_EXCLUDED",
    "PATTERN_MATCHES",
    "NOTIFICATIONS",
    "ROTATIONS",
    "FILE_ERRORS",
]
