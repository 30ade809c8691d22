"""Tests for the metrics endpoint."""

import httpx

from logwatcher.metrics import start_metrics_server, stop_metrics_server
from logwatcher.metrics.server import metrics_app
from logwatcher.watcher import StatsCollector


def call(path):
    captured = {}

    def start_response(status, headers):
        captured["status"] = status
        captured["headers"] = dict(headers)

    body = b"".join(metrics_app({"PATH_INFO": path, "REQUEST_METHOD": "GET"}, start_response))
    return captured["status"], body


class TestMetricsApp:
    """Tests for the WSGI routing."""

    def test_health(self):
        status, body = call("/health")
        assert status == "200 OK"
        assert body == b"ok"

    def test_unknown_path(self):
        status, _ = call("/nope")
        assert status.startswith("404")

    def test_metrics_include_counters(self):
        StatsCollector().record_line(["ERROR"])

        status, body = call("/metrics")

        assert status.startswith("200")
        assert b"logwatcher_lines_processed_total" in body
        assert b'logwatcher_pattern_matches_total{pattern="ERROR"}' in body


def test_server_serves_and_stops():
    server = start_metrics_server(0)
    try:
        assert start_metrics_server(0) is server
        response = httpx.get(f"http://127.0.0.1:{server.server_port}/health", timeout=5.0)
        assert response.text == "ok"
    finally:
        stop_metrics_server()
