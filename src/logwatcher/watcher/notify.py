"""Notification sinks: desktop popups, chat webhooks, or the log."""

from __future__ import annotations

import shutil
import subprocess
import sys
from dataclasses import dataclass
from typing import Protocol

import httpx
import structlog

from ..config import WatchConfig

log = structlog.get_logger()

MAX_BODY_LENGTH = 200


class NotificationDeliveryError(Exception):
    """Raised when a notification backend cannot be used at all."""

    pass


@dataclass(frozen=True)
class DeliveryOutcome:
    """Result of one send attempt."""

    delivered: bool
    reason: str | None = None

    @classmethod
    def ok(cls) -> DeliveryOutcome:
        return cls(delivered=True)

    @classmethod
    def failed(cls, reason: str) -> DeliveryOutcome:
        return cls(delivered=False, reason=reason)


class NotificationSink(Protocol):
    """Anything that can deliver a (title, body) notification."""

    def send(self, title: str, body: str) -> DeliveryOutcome: ...

    def check(self) -> None: ...


def truncate_body(line: str, limit: int = MAX_BODY_LENGTH) -> str:
    """Shorten a line for a notification body, marking the cut with '...'."""
    if len(line) <= limit:
        return line
    return line[: limit - 3] + "..."


def notification_title(pattern: str, filename: str | None = None) -> str:
    if filename:
        return f"{pattern} detected in {filename}"
    return f"{pattern} detected"


class DesktopNotifier:
    """Desktop popups through notify-send (Linux/BSD) or osascript (macOS)."""

    def __init__(self, app_name: str = "logwatcher", timeout_ms: int = 5000):
        self.app_name = app_name
        self.timeout_ms = timeout_ms
        self.platform = sys.platform

    def _command(self, title: str, body: str) -> list[str] | None:
        if self.platform == "darwin":
            osascript = shutil.which("osascript")
            if osascript is None:
                return None
            script = (
                f"display notification {_applescript_str(body)} "
                f"with title {_applescript_str(title)}"
            )
            return [osascript, "-e", script]

        notify_send = shutil.which("notify-send")
        if notify_send is None:
            return None
        return [
            notify_send,
            "--app-name",
            self.app_name,
            "--expire-time",
            str(self.timeout_ms),
            title,
            body,
        ]

    def check(self) -> None:
        """Raise NotificationDeliveryError if no notification command exists."""
        if self._command("", "") is None:
            raise NotificationDeliveryError(
                f"No desktop notification command available on {self.platform}"
            )

    def send(self, title: str, body: str) -> DeliveryOutcome:
        """Show a desktop notification.

        Returns:
            DeliveryOutcome describing whether the popup command succeeded
        """
        # Command-line arguments cannot carry NUL bytes
        command = self._command(title.replace("\x00", ""), body.replace("\x00", ""))
        if command is None:
            return DeliveryOutcome.failed("notification command not found")

        try:
            subprocess.run(
                command,
                check=True,
                capture_output=True,
                timeout=max(self.timeout_ms / 1000, 1.0),
            )
        except subprocess.CalledProcessError as e:
            stderr = e.stderr.decode(errors="replace").strip() if e.stderr else ""
            return DeliveryOutcome.failed(stderr or f"exit status {e.returncode}")
        except subprocess.TimeoutExpired:
            return DeliveryOutcome.failed("notification command timed out")
        except (OSError, ValueError) as e:
            return DeliveryOutcome.failed(str(e))

        log.debug("Desktop notification sent", title=title)
        return DeliveryOutcome.ok()


class WebhookNotifier:
    """Discord-compatible webhook client."""

    def __init__(self, webhook_url: str, username: str = "logwatcher"):
        self.webhook_url = webhook_url
        self.username = username

    def check(self) -> None:
        """Raise NotificationDeliveryError if the URL is unusable."""
        try:
            url = httpx.URL(self.webhook_url)
        except httpx.InvalidURL as e:
            raise NotificationDeliveryError(f"Invalid webhook URL: {e}") from e
        if url.scheme not in ("http", "https"):
            raise NotificationDeliveryError(f"Unsupported webhook URL scheme: {url.scheme}")

    def send(self, title: str, body: str) -> DeliveryOutcome:
        """Post the notification as an embed.

        Returns:
            DeliveryOutcome; HTTP and transport errors become failed outcomes
        """
        payload = {
            "username": self.username,
            "embeds": [
                {
                    "title": title,
                    "description": f"```{body}```",
                }
            ],
        }

        try:
            response = httpx.post(self.webhook_url, json=payload, timeout=10.0)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            log.error("Webhook API error", status=e.response.status_code)
            return DeliveryOutcome.failed(f"HTTP {e.response.status_code}")
        except httpx.RequestError as e:
            log.error("Webhook request failed", error=str(e))
            return DeliveryOutcome.failed(str(e))

        log.debug("Webhook notification sent", title=title)
        return DeliveryOutcome.ok()


class LogNotifier:
    """Writes notifications to the structured log instead of delivering them."""

    def check(self) -> None:
        pass

    def send(self, title: str, body: str) -> DeliveryOutcome:
        log.warning("Notification", title=title, body=body)
        return DeliveryOutcome.ok()


def create_sink(config: WatchConfig) -> NotificationSink:
    """Select the notification backend named in the config."""
    if config.notify_backend == "webhook":
        if not config.webhook_url:
            raise NotificationDeliveryError("webhook_url is required for the webhook backend")
        return WebhookNotifier(config.webhook_url)
    if config.notify_backend == "log":
        return LogNotifier()
    return DesktopNotifier()


def _applescript_str(value: str) -> str:
    return '"' + value.replace("\\", "\\\\").replace('"', '\\"') + '"'
