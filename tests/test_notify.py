"""Tests for notification sinks."""

import subprocess

import httpx
import pytest

from logwatcher.config import WatchConfig
from logwatcher.watcher import (
    DesktopNotifier,
    LogNotifier,
    NotificationDeliveryError,
    WebhookNotifier,
    create_sink,
)
from logwatcher.watcher.notify import notification_title, truncate_body


class TestFormatting:
    """Tests for notification title and body."""

    def test_short_body_unchanged(self):
        assert truncate_body("short line") == "short line"

    def test_long_body_truncated(self):
        body = truncate_body("x" * 250)
        assert len(body) == 200
        assert body.endswith("...")
        assert body[:197] == "x" * 197

    def test_title(self):
        assert notification_title("ERROR", "app.log") == "ERROR detected in app.log"
        assert notification_title("ERROR") == "ERROR detected"


class TestDesktopNotifier:
    """Tests for the desktop notifier."""

    def test_notify_send_command(self, monkeypatch):
        calls = []
        monkeypatch.setattr("shutil.which", lambda name: f"/usr/bin/{name}")
        monkeypatch.setattr(subprocess, "run", lambda cmd, **kw: calls.append(cmd))

        notifier = DesktopNotifier()
        notifier.platform = "linux"
        outcome = notifier.send("ERROR detected", "boom")

        assert outcome.delivered is True
        assert calls[0][0] == "/usr/bin/notify-send"
        assert calls[0][-2:] == ["ERROR detected", "boom"]

    def test_osascript_command_escapes_quotes(self, monkeypatch):
        calls = []
        monkeypatch.setattr("shutil.which", lambda name: f"/usr/bin/{name}")
        monkeypatch.setattr(subprocess, "run", lambda cmd, **kw: calls.append(cmd))

        notifier = DesktopNotifier()
        notifier.platform = "darwin"
        notifier.send("title", 'say "hi"')

        assert calls[0][0] == "/usr/bin/osascript"
        assert '\\"hi\\"' in calls[0][2]

    def test_missing_command(self, monkeypatch):
        monkeypatch.setattr("shutil.which", lambda name: None)
        notifier = DesktopNotifier()

        with pytest.raises(NotificationDeliveryError):
            notifier.check()
        outcome = notifier.send("t", "b")
        assert outcome.delivered is False

    def test_command_failure_is_an_outcome(self, monkeypatch):
        def fail(cmd, **kw):
            raise subprocess.CalledProcessError(1, cmd, stderr=b"no dbus")

        monkeypatch.setattr("shutil.which", lambda name: f"/usr/bin/{name}")
        monkeypatch.setattr(subprocess, "run", fail)

        outcome = DesktopNotifier().send("t", "b")

        assert outcome.delivered is False
        assert outcome.reason == "no dbus"

    def test_nul_bytes_stripped_from_arguments(self, monkeypatch):
        """Lines padded with NULs by copytruncate still produce a valid command."""
        calls = []
        monkeypatch.setattr("shutil.which", lambda name: f"/usr/bin/{name}")
        monkeypatch.setattr(subprocess, "run", lambda cmd, **kw: calls.append(cmd))

        notifier = DesktopNotifier()
        notifier.platform = "linux"
        outcome = notifier.send("ERROR detected", "ERROR with \x00 nul")

        assert outcome.delivered is True
        assert calls[0][-1] == "ERROR with  nul"

    def test_invalid_argument_is_an_outcome(self, monkeypatch):
        def reject(cmd, **kw):
            raise ValueError("embedded null byte")

        monkeypatch.setattr("shutil.which", lambda name: f"/usr/bin/{name}")
        monkeypatch.setattr(subprocess, "run", reject)

        outcome = DesktopNotifier().send("t", "b")

        assert outcome.delivered is False
        assert outcome.reason == "embedded null byte"


class TestWebhookNotifier:
    """Tests for the webhook notifier."""

    def test_posts_embed(self, monkeypatch):
        sent = {}

        def fake_post(url, json, timeout):
            sent["url"] = url
            sent["json"] = json
            return httpx.Response(204, request=httpx.Request("POST", url))

        monkeypatch.setattr(httpx, "post", fake_post)

        outcome = WebhookNotifier("https://hooks.test/abc").send("ERROR detected", "boom")

        assert outcome.delivered is True
        assert sent["url"] == "https://hooks.test/abc"
        assert sent["json"]["embeds"][0]["title"] == "ERROR detected"

    def test_http_error_is_failed_outcome(self, monkeypatch):
        def fake_post(url, json, timeout):
            return httpx.Response(500, request=httpx.Request("POST", url))

        monkeypatch.setattr(httpx, "post", fake_post)

        outcome = WebhookNotifier("https://hooks.test/abc").send("t", "b")

        assert outcome.delivered is False
        assert outcome.reason == "HTTP 500"

    def test_request_error_is_failed_outcome(self, monkeypatch):
        def fake_post(url, json, timeout):
            raise httpx.ConnectError("refused", request=httpx.Request("POST", url))

        monkeypatch.setattr(httpx, "post", fake_post)

        outcome = WebhookNotifier("https://hooks.test/abc").send("t", "b")

        assert outcome.delivered is False
        assert "refused" in outcome.reason

    def test_check_rejects_bad_scheme(self):
        with pytest.raises(NotificationDeliveryError):
            WebhookNotifier("ftp://example.com/hook").check()
        WebhookNotifier("https://example.com/hook").check()


class TestCreateSink:
    """Tests for backend selection."""

    def test_selects_backend(self):
        assert isinstance(create_sink(WatchConfig.build(paths=["a"])), DesktopNotifier)
        assert isinstance(
            create_sink(WatchConfig.build(paths=["a"], notify_backend="log")), LogNotifier
        )
        sink = create_sink(
            WatchConfig.build(paths=["a"], notify_backend="webhook", webhook_url="https://x/y")
        )
        assert isinstance(sink, WebhookNotifier)

    def test_log_notifier_always_delivers(self):
        assert LogNotifier().send("t", "b").delivered is True
