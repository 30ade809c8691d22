"""Basic tests for logwatcher configuration."""

from pathlib import Path

import pytest

from logwatcher import __version__
from logwatcher.config import ConfigError, WatchConfig, parse_color_map, split_list


def test_version() -> None:
    """Test that version is defined."""
    assert __version__ == "0.1.0"


def test_defaults() -> None:
    """Unset options fall back to the documented defaults."""
    config = WatchConfig.build(paths=["app.log"])

    assert config.paths == [Path("app.log")]
    assert config.include_patterns == ["ERROR", "WARN"]
    assert config.exclude_patterns == []
    assert config.poll_interval_ms == 100
    assert config.buffer_size_bytes == 8192
    assert config.notify_throttle_per_sec == 5
    assert config.effective_notify_patterns == ["ERROR", "WARN"]
    assert config.effective_prefix_files is False


def test_prefix_files_automatic_for_several_paths() -> None:
    config = WatchConfig.build(paths=["a.log", "b.log"])
    assert config.effective_prefix_files is True

    config = WatchConfig.build(paths=["a.log", "b.log"], prefix_files=False)
    assert config.effective_prefix_files is False


def test_from_file_with_overrides(tmp_path: Path) -> None:
    """YAML values load, and non-empty overrides win."""
    config_file = tmp_path / "config.yaml"
    config_file.write_text(
        "paths: [/var/log/app.log]\n"
        "include_patterns: [ERROR, FATAL]\n"
        "exclude_patterns: [healthcheck]\n"
        "case_insensitive: true\n"
        "notify_throttle_per_sec: 2\n"
    )

    config = WatchConfig.from_file(
        config_file,
        include_patterns=[],
        notify_throttle_per_sec=10,
        quiet=None,
    )

    assert config.paths == [Path("/var/log/app.log")]
    assert config.include_patterns == ["ERROR", "FATAL"]
    assert config.exclude_patterns == ["healthcheck"]
    assert config.case_insensitive is True
    assert config.notify_throttle_per_sec == 10
    assert config.quiet is False


def test_from_file_missing_file_uses_overrides(tmp_path: Path) -> None:
    config = WatchConfig.from_file(tmp_path / "absent.yaml", paths=["x.log"])
    assert config.paths == [Path("x.log")]


def test_from_file_invalid_yaml(tmp_path: Path) -> None:
    config_file = tmp_path / "config.yaml"
    config_file.write_text("paths: [unclosed\n")

    with pytest.raises(ConfigError, match="Invalid YAML"):
        WatchConfig.from_file(config_file)


def test_missing_paths_is_config_error() -> None:
    with pytest.raises(ConfigError, match="paths"):
        WatchConfig.build(paths=[])


def test_unknown_color_is_config_error() -> None:
    with pytest.raises(ConfigError, match="Unknown color: purple"):
        WatchConfig.build(paths=["a.log"], color_map={"ERROR": "purple"})


def test_webhook_backend_requires_url() -> None:
    with pytest.raises(ConfigError, match="webhook_url"):
        WatchConfig.build(paths=["a.log"], notify_backend="webhook")


def test_negative_throttle_rejected() -> None:
    with pytest.raises(ConfigError):
        WatchConfig.build(paths=["a.log"], notify_throttle_per_sec=-1)


def test_color_overrides_defaults() -> None:
    config = WatchConfig.build(paths=["a.log"], color_map={"ERROR": "Blue"})
    assert config.colors["ERROR"] == "blue"
    assert config.colors["WARN"] == "yellow"


def test_should_notify_for_pattern() -> None:
    config = WatchConfig.build(
        paths=["a.log"], include_patterns=["ERROR", "WARN"], notify_patterns=["ERROR"]
    )
    assert config.should_notify_for_pattern("ERROR") is True
    assert config.should_notify_for_pattern("WARN") is False

    config = WatchConfig.build(paths=["a.log"], notify_enabled=False)
    assert config.should_notify_for_pattern("ERROR") is False


def test_split_list() -> None:
    assert split_list("ERROR, WARN,,  ") == ["ERROR", "WARN"]
    assert split_list(None) == []


def test_parse_color_map_ignores_malformed_entries() -> None:
    assert parse_color_map("ERROR:red, WARN : yellow") == {"ERROR": "red", "WARN": "yellow"}
    assert parse_color_map("invalid_format") == {}
    assert parse_color_map("a:b:c") == {}
