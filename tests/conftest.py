"""Shared fixtures for logwatcher tests."""

import logging

import pytest
import structlog


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo logging setup done by CLI invocations."""
    yield
    structlog.reset_defaults()
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)


@pytest.fixture
def log_file(tmp_path):
    """An empty log file."""
    path = tmp_path / "app.log"
    path.write_bytes(b"")
    return path
