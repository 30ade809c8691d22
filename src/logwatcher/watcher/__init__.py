"""Log tailing pipeline.

Provides rotation-safe file cursors, include/exclude classification,
notification rate limiting, highlighting and the engine that ties them together.
"""

from .cursor import FileAccessError, FileCursor, FileIdentity, RotationEvent
from .engine import DryRunReport, TailEngine
from .highlight import Highlighter
from .notify import (
    DeliveryOutcome,
    DesktopNotifier,
    LogNotifier,
    NotificationDeliveryError,
    NotificationSink,
    WebhookNotifier,
    create_sink,
)
from .patterns import MatchOutcome, PatternKind, PatternSet, PatternSpec
from .stats import StatsCollector, StatsSnapshot, format_stats_table
from .throttle import NotificationThrottle

__all__ = [
    # Engine
    "TailEngine",
    "DryRunReport",
    # Cursor
    "FileCursor",
    "FileIdentity",
    "FileAccessError",
    "RotationEvent",
    # Patterns
    "PatternSet",
    "PatternSpec",
    "PatternKind",
    "MatchOutcome",
    # Throttle
    "NotificationThrottle",
    # Stats
    "StatsCollector",
    "StatsSnapshot",
    "format_stats_table",
    # Output
    "Highlighter",
    # Notifications
    "NotificationSink",
    "DeliveryOutcome",
    "DesktopNotifier",
    "WebhookNotifier",
    "LogNotifier",
    "NotificationDeliveryError",
    "create_sink",
]
