"""HTTP endpoint exposing the watcher's Prometheus metrics."""

import logging
import threading
from collections.abc import Callable, Iterable
from typing import Any
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer, make_server

from prometheus_client import make_wsgi_app

logger = logging.getLogger(__name__)

StartResponse = Callable[[str, list[tuple[str, str]]], Any]

_server_lock = threading.Lock()
_server: WSGIServer | None = None

_prometheus_app = make_wsgi_app()


class _QuietHandler(WSGIRequestHandler):
    """WSGI handler that doesn't log every scrape."""

    def log_message(self, format: str, *args: object) -> None:
        pass


def metrics_app(environ: dict[str, Any], start_response: StartResponse) -> Iterable[bytes]:
    """Route /metrics to prometheus_client and answer /health locally."""
    path = environ.get("PATH_INFO", "/")

    if path == "/metrics":
        return _prometheus_app(environ, start_response)
    if path == "/health":
        start_response("200 OK", [("Content-Type", "text/plain")])
        return [b"ok"]

    start_response("404 Not Found", [("Content-Type", "text/plain")])
    return [b"Not Found"]


def start_metrics_server(port: int, host: str = "127.0.0.1") -> WSGIServer:
    """Serve metrics from a daemon thread.

    Starting twice returns the server that is already running.

    Args:
        port: Port to listen on (0 picks a free port)
        host: Interface to bind

    Returns:
        The running server; ``server.server_port`` holds the bound port
    """
    global _server
    with _server_lock:
        if _server is not None:
            logger.debug("Metrics server already running")
            return _server

        server = make_server(host, port, metrics_app, handler_class=_QuietHandler)
        thread = threading.Thread(target=server.serve_forever, name="metrics-server", daemon=True)
        thread.start()
        logger.info(f"Metrics server listening on {host}:{server.server_port}")
        _server = server
        return server


def stop_metrics_server() -> None:
    """Shut down the metrics server if one is running."""
    global _server
    with _server_lock:
        if _server is None:
            return
        _server.shutdown()
        _server.server_close()
        _server = None
