"""CLI for logwatcher.

Usage:
    logwatcher watch -f /var/log/app.log -p "ERROR,WARN"
    logwatcher watch -f a.log -f b.log -r -p '\\d{3}' --exclude DEBUG --quiet
    logwatcher watch -f app.log --dry-run
    logwatcher notify-test --notify-backend webhook --webhook-url https://...
"""

from pathlib import Path
from typing import Any

import click

from logwatcher import __version__
from logwatcher.config import (
    DEFAULT_CONFIG_PATH,
    ConfigError,
    WatchConfig,
    parse_color_map,
    split_list,
)
from logwatcher.logging import configure_logging, get_logger
from logwatcher.metrics import start_metrics_server, stop_metrics_server
from logwatcher.watcher import (
    FileAccessError,
    NotificationDeliveryError,
    PatternSet,
    TailEngine,
    create_sink,
    format_stats_table,
)
from logwatcher.watcher.notify import notification_title

log = get_logger(__name__)

EXIT_OK = 0
EXIT_FILE_ACCESS = 1
EXIT_CONFIG = 2
EXIT_NOTIFICATION = 3
EXIT_INTERRUPTED = 130


def info(message: str) -> None:
    click.echo(click.style("Info: ", fg="cyan") + message, err=True)


def load_config(ctx: click.Context, **overrides: Any) -> WatchConfig:
    """Load the config file named on the group, apply overrides, exit 2 on error."""
    try:
        return WatchConfig.from_file(ctx.obj["config_path"], **overrides)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        ctx.exit(EXIT_CONFIG)


@click.group()
@click.version_option(__version__, prog_name="logwatcher")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=False, dir_okay=False, path_type=Path),
    default=DEFAULT_CONFIG_PATH,
    help="YAML config file (command-line options take precedence)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx: click.Context, config_path: Path, verbose: bool) -> None:
    """Real-time log file monitoring with pattern highlighting and notifications."""
    configure_logging("DEBUG" if verbose else "INFO")
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@main.command("watch")
@click.option(
    "--file",
    "-f",
    "files",
    multiple=True,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Log file to watch (repeatable)",
)
@click.option("--pattern", "-p", "patterns", help="Comma-separated patterns to match")
@click.option("--exclude", "-e", "excludes", help="Comma-separated patterns to drop")
@click.option("--regex", "-r", is_flag=True, default=None, help="Treat patterns as regexes")
@click.option(
    "--case-insensitive", "-i", is_flag=True, default=None, help="Case-insensitive matching"
)
@click.option("--color-map", "-c", help='Pattern colors, e.g. "ERROR:red,WARN:yellow"')
@click.option("--notify/--no-notify", default=None, help="Enable notifications")
@click.option("--notify-patterns", help="Comma-separated patterns that notify (default: all)")
@click.option("--notify-throttle", type=int, help="Maximum notifications per second")
@click.option(
    "--notify-backend",
    type=click.Choice(["desktop", "webhook", "log"]),
    help="Where notifications are delivered",
)
@click.option("--webhook-url", envvar="LOGWATCHER_WEBHOOK_URL", help="Webhook URL")
@click.option("--dry-run", "-d", is_flag=True, default=None, help="Scan existing content only")
@click.option("--quiet", "-q", is_flag=True, default=None, help="Suppress non-matching lines")
@click.option("--no-color", is_flag=True, default=None, help="Disable ANSI colors")
@click.option(
    "--prefix-file/--no-prefix-file",
    default=None,
    help="Prefix lines with the file name (default: on for several files)",
)
@click.option("--poll-interval", type=int, help="Polling interval in milliseconds")
@click.option("--buffer-size", type=int, help="Read buffer size in bytes")
@click.option("--metrics-port", type=int, help="Serve Prometheus metrics on this port")
@click.pass_context
def watch(
    ctx: click.Context,
    files: tuple[Path, ...],
    patterns: str | None,
    excludes: str | None,
    regex: bool | None,
    case_insensitive: bool | None,
    color_map: str | None,
    notify: bool | None,
    notify_patterns: str | None,
    notify_throttle: int | None,
    notify_backend: str | None,
    webhook_url: str | None,
    dry_run: bool | None,
    quiet: bool | None,
    no_color: bool | None,
    prefix_file: bool | None,
    poll_interval: int | None,
    buffer_size: int | None,
    metrics_port: int | None,
) -> None:
    """Tail log files and highlight matching lines."""
    config = load_config(
        ctx,
        paths=list(files),
        include_patterns=split_list(patterns),
        exclude_patterns=split_list(excludes),
        regex_mode=regex,
        case_insensitive=case_insensitive,
        color_map=parse_color_map(color_map),
        notify_enabled=notify,
        notify_patterns=split_list(notify_patterns) if notify_patterns is not None else None,
        notify_throttle_per_sec=notify_throttle,
        notify_backend=notify_backend,
        webhook_url=webhook_url,
        dry_run=dry_run,
        quiet=quiet,
        no_color=no_color,
        prefix_files=prefix_file,
        poll_interval_ms=poll_interval,
        buffer_size_bytes=buffer_size,
        metrics_port=metrics_port,
    )
    log.debug("Configuration loaded", paths=[str(p) for p in config.paths])

    # Patterns are compiled before any file is touched
    try:
        pattern_set = PatternSet.from_config(config)
    except ConfigError as e:
        click.echo(f"Configuration error: {e}", err=True)
        ctx.exit(EXIT_CONFIG)

    sink = None
    if config.notify_enabled and not config.dry_run:
        try:
            sink = create_sink(config)
            sink.check()
        except NotificationDeliveryError as e:
            click.echo(f"Notification error: {e}", err=True)
            ctx.exit(EXIT_NOTIFICATION)

    if config.metrics_port:
        start_metrics_server(config.metrics_port)

    info(f"Watching {len(config.paths)} file(s)")
    info(f"Patterns: {', '.join(config.include_patterns)}")
    if config.exclude_patterns:
        info(f"Excluding: {', '.join(config.exclude_patterns)}")
    if sink is not None:
        info(f"Notifications enabled ({config.notify_backend})")
    if config.dry_run:
        info("Dry-run mode: reading existing content only")

    engine = TailEngine(config, patterns=pattern_set, sink=sink)

    if config.dry_run:
        report = engine.dry_run()
        if report.pattern_counts:
            info("Dry-run summary:")
            for pattern in config.include_patterns:
                if pattern in report.pattern_counts:
                    click.echo(f"  {pattern}: {report.pattern_counts[pattern]} matches", err=True)
        else:
            info("No matching lines found")
        info("Dry-run complete. No notifications sent.")
        for path, reason in report.failed_files.items():
            click.echo(f"Error: cannot read {path}: {reason}", err=True)
        ctx.exit(EXIT_OK if report.ok else EXIT_FILE_ACCESS)

    try:
        engine.run()
    except FileAccessError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(EXIT_FILE_ACCESS)
    finally:
        stop_metrics_server()

    click.echo(format_stats_table(engine.stats.snapshot()), err=True)
    ctx.exit(EXIT_INTERRUPTED if engine.interrupted else EXIT_OK)


@main.command("notify-test")
@click.option(
    "--notify-backend",
    type=click.Choice(["desktop", "webhook", "log"]),
    help="Where notifications are delivered",
)
@click.option("--webhook-url", envvar="LOGWATCHER_WEBHOOK_URL", help="Webhook URL")
@click.pass_context
def notify_test(ctx: click.Context, notify_backend: str | None, webhook_url: str | None) -> None:
    """Send a test notification to verify the backend works."""
    config = load_config(
        ctx,
        paths=["test.log"],
        notify_enabled=True,
        notify_backend=notify_backend,
        webhook_url=webhook_url,
    )

    try:
        sink = create_sink(config)
        sink.check()
    except NotificationDeliveryError as e:
        click.echo(f"Notification error: {e}", err=True)
        ctx.exit(EXIT_NOTIFICATION)

    outcome = sink.send(notification_title("TEST", "test.log"), "logwatcher notification test")
    if not outcome.delivered:
        click.echo(f"Notification failed: {outcome.reason}", err=True)
        ctx.exit(EXIT_NOTIFICATION)

    click.echo(f"Test notification sent via {config.notify_backend}")
