"""Tail engine that follows log files, classifies lines and sends notifications."""

from __future__ import annotations

import os
import threading
import time
from collections import Counter
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import click

from ..config import WatchConfig
from ..logging import get_logger
from .cursor import FileAccessError, FileCursor
from .highlight import Highlighter
from .notify import NotificationSink, create_sink, notification_title, truncate_body
from .patterns import MatchOutcome, PatternSet
from .stats import StatsCollector
from .throttle import NotificationThrottle

log = get_logger(__name__)


@dataclass
class DryRunReport:
    """Outcome of a one-shot pass over existing file content."""

    pattern_counts: dict[str, int] = field(default_factory=dict)
    lines_processed: int = 0
    lines_excluded: int = 0
    failed_files: dict[Path, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed_files


class TailEngine:
    """Follows every configured file and routes each new line.

    In continuous mode each file is polled by its own thread at the configured
    interval. Lines from one file are processed in file order; lines from
    different files interleave in whatever order their threads get to them.
    Stats, throttle and output are shared, and each is serialized by a lock.
    """

    def __init__(
        self,
        config: WatchConfig,
        patterns: PatternSet | None = None,
        sink: NotificationSink | None = None,
        highlighter: Highlighter | None = None,
        stats: StatsCollector | None = None,
        throttle: NotificationThrottle | None = None,
        output: Callable[[str], None] | None = None,
    ):
        """Initialize the engine.

        Args:
            config: Validated configuration
            patterns: Compiled patterns (default: compiled from config)
            sink: Notification backend (default: chosen from config when
                notifications are enabled)
            highlighter: Line renderer (default: colors from config)
            stats: Shared counters
            throttle: Notification rate limiter
            output: Where rendered lines go (default: stdout)
        """
        self.config = config
        self.patterns = patterns or PatternSet.from_config(config)
        self.stats = stats or StatsCollector()
        self.throttle = throttle or NotificationThrottle(
            config.notify_throttle_per_sec, stats=self.stats
        )
        if sink is None and config.notify_enabled and not config.dry_run:
            sink = create_sink(config)
        self.sink = sink
        self.highlighter = highlighter or Highlighter(config.colors, no_color=config.no_color)
        self.output = output or click.echo

        self.cursors: dict[Path, FileCursor] = {}
        self.interrupted = False
        self._notify_patterns = set(config.effective_notify_patterns)
        self._output_lock = threading.Lock()
        self._threads: list[threading.Thread] = []
        self._stop_event = threading.Event()

    # --- Line handling ---

    def process_line(self, path: Path, line: str, dry_run: bool = False) -> MatchOutcome:
        """Classify one line, then count, print and notify as appropriate."""
        outcome = self.patterns.classify(line)
        if outcome.excluded:
            self.stats.record_excluded()
            return outcome

        self.stats.record_line([p.raw_text for p in outcome.matched_patterns])

        show = outcome.matched if dry_run else (outcome.matched or not self.config.quiet)
        if show:
            filename = path.name if self.config.effective_prefix_files else None
            text = self.highlighter.format_line(
                line, outcome.matched_patterns, filename=filename, dry_run=dry_run
            )
            with self._output_lock:
                self.output(text)

        if outcome.matched and not dry_run:
            self._notify(path, outcome)

        return outcome

    def _notify(self, path: Path, outcome: MatchOutcome) -> None:
        if not self.config.notify_enabled or self.sink is None:
            return

        pattern = next(
            (p.raw_text for p in outcome.matched_patterns if p.raw_text in self._notify_patterns),
            None,
        )
        if pattern is None:
            return

        if not self.throttle.try_fire():
            log.debug("Notification throttled", pattern=pattern, path=str(path))
            return

        try:
            result = self.sink.send(
                notification_title(pattern, path.name), truncate_body(outcome.line)
            )
        except Exception:
            # Lines after this one in the batch are still processed
            self.stats.record_notification_failed()
            log.exception("Notification sink raised", pattern=pattern, path=str(path))
            return

        if result.delivered:
            self.stats.record_notification_sent()
        else:
            self.stats.record_notification_failed()
            log.warning(
                "Notification delivery failed",
                pattern=pattern,
                path=str(path),
                reason=result.reason,
            )

    # --- Polling ---

    def open_cursors(self, start_at_end: bool = True) -> dict[Path, FileCursor]:
        """Create one cursor per configured path."""
        self.cursors = {
            path: FileCursor(
                path,
                buffer_size=self.config.buffer_size_bytes,
                max_line_bytes=self.config.max_line_bytes,
                start_at_end=start_at_end,
            )
            for path in self.config.paths
        }
        self.stats.set_files_watched(len(self.cursors))
        return self.cursors

    def poll_cursor(self, cursor: FileCursor) -> int:
        """Poll one file and process its new lines.

        File access problems are reported once when the file becomes
        unreachable and once when it comes back; in between the cursor is
        retried silently.

        Returns:
            Number of lines read
        """
        was_reachable = cursor.reachable
        rotations = cursor.reopen_count

        try:
            lines = list(cursor.poll())
        except FileAccessError as e:
            if was_reachable:
                log.warning("File unavailable, will retry", path=str(e.path), error=e.reason)
                self.stats.record_file_error()
            return 0

        if not was_reachable:
            log.info("File available again", path=str(cursor.path))
        if cursor.reopen_count != rotations:
            self.stats.record_rotation()

        for line in lines:
            self.process_line(cursor.path, line)
        return len(lines)

    def poll_once(self) -> int:
        """Run one sequential tick over every cursor.

        Returns:
            Total number of lines read
        """
        if not self.cursors:
            self.open_cursors()
        return sum(self.poll_cursor(cursor) for cursor in self.cursors.values())

    def _tail_file(self, cursor: FileCursor) -> None:
        """Poll a single file until stopped."""
        interval = self.config.poll_interval_ms / 1000
        while not self._stop_event.is_set():
            try:
                self.poll_cursor(cursor)
            except Exception:
                log.exception("Unexpected error tailing file", path=str(cursor.path))
            self._stop_event.wait(interval)

    def check_files(self) -> list[Path]:
        """Report missing files and return the ones that exist.

        Raises:
            FileAccessError: If none of the configured files is accessible
        """
        available = []
        for path in self.config.paths:
            if path.is_file() and os.access(path, os.R_OK):
                available.append(path)
            else:
                log.warning("File not accessible, will keep retrying", path=str(path))

        if not available:
            first = self.config.paths[0]
            raise FileAccessError(first, "no watched file is accessible")
        return available

    def run(self) -> None:
        """Tail every configured file until stop() or Ctrl-C.

        Raises:
            FileAccessError: If none of the configured files is accessible
        """
        self.check_files()
        self.open_cursors(start_at_end=True)
        log.info("Starting tail", files=[str(p) for p in self.cursors])

        for cursor in self.cursors.values():
            thread = threading.Thread(
                target=self._tail_file,
                args=(cursor,),
                name=f"tail-{cursor.path.name}",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)

        try:
            while not self._stop_event.is_set():
                time.sleep(0.2)
        except KeyboardInterrupt:
            log.info("Received shutdown signal")
            self.interrupted = True
            self.stop()

    def stop(self, timeout: float = 2.0) -> None:
        """Stop polling and wait for in-flight reads to finish."""
        self._stop_event.set()
        for thread in self._threads:
            if thread is not threading.current_thread():
                thread.join(timeout)
        self._threads = []

    # --- Dry run ---

    def dry_run(self) -> DryRunReport:
        """Classify the existing content of every file once.

        No polling, no notifications, and the throttle is never consulted.
        """
        self.stats.set_files_watched(len(self.config.paths))
        counts: Counter[str] = Counter()
        failed: dict[Path, str] = {}

        for path in self.config.paths:
            cursor = FileCursor(
                path,
                buffer_size=self.config.buffer_size_bytes,
                max_line_bytes=self.config.max_line_bytes,
                start_at_end=False,
            )
            try:
                lines = list(cursor.poll()) + cursor.flush()
            except FileAccessError as e:
                log.error("Cannot read file", path=str(path), error=e.reason)
                failed[path] = e.reason
                continue

            for line in lines:
                outcome = self.process_line(path, line, dry_run=True)
                counts.update(p.raw_text for p in outcome.matched_patterns)

        snapshot = self.stats.snapshot()
        return DryRunReport(
            pattern_counts=dict(counts),
            lines_processed=snapshot.lines_processed,
            lines_excluded=snapshot.lines_excluded,
            failed_files=failed,
        )
