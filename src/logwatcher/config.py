"""Configuration loading for logwatcher."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

DEFAULT_PATTERNS = ["ERROR", "WARN"]

COLOR_NAMES = ("black", "red", "green", "yellow", "blue", "magenta", "cyan", "white")

# Applied underneath any user color map
DEFAULT_COLOR_MAP = {
    "ERROR": "red",
    "WARN": "yellow",
    "WARNING": "yellow",
    "INFO": "green",
    "DEBUG": "cyan",
    "TRACE": "magenta",
    "FATAL": "red",
    "CRITICAL": "red",
}

DEFAULT_CONFIG_PATH = Path.home() / ".logwatcher" / "config.yaml"


class ConfigError(Exception):
    """Raised when configuration or a pattern is invalid."""

    pass


def split_list(value: str | None) -> list[str]:
    """Split a comma-separated option into trimmed, non-empty items."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def parse_color_map(value: str | None) -> dict[str, str]:
    """Parse "PATTERN:color,PATTERN:color" into a dict.

    Entries that are not exactly one ``pattern:color`` pair are ignored.
    """
    mappings = {}
    for entry in split_list(value):
        parts = entry.split(":")
        if len(parts) != 2:
            continue
        mappings[parts[0].strip()] = parts[1].strip()
    return mappings


class WatchConfig(BaseModel):
    """Everything the tailing pipeline needs, validated once at startup."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    paths: list[Path]
    include_patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_PATTERNS))
    exclude_patterns: list[str] = Field(default_factory=list)
    case_insensitive: bool = False
    regex_mode: bool = False
    poll_interval_ms: int = Field(100, gt=0)
    buffer_size_bytes: int = Field(8192, gt=0)
    quiet: bool = False
    dry_run: bool = False
    notify_enabled: bool = True
    notify_patterns: list[str] | None = None  # None = every include pattern
    notify_throttle_per_sec: int = Field(5, ge=0)

    color_map: dict[str, str] = Field(default_factory=dict)
    no_color: bool = False
    prefix_files: bool | None = None  # None = on when watching several files
    max_pattern_length: int = Field(1024, gt=0)
    max_line_bytes: int = Field(1024 * 1024, gt=0)
    notify_backend: Literal["desktop", "webhook", "log"] = "desktop"
    webhook_url: str | None = None
    metrics_port: int | None = Field(None, gt=0, lt=65536)

    @field_validator("paths")
    @classmethod
    def paths_not_empty(cls, v: list[Path]) -> list[Path]:
        """At least one file must be watched."""
        if not v:
            raise ValueError("at least one file path is required")
        return v

    @field_validator("include_patterns")
    @classmethod
    def include_not_empty(cls, v: list[str]) -> list[str]:
        """Drop blank entries and require at least one pattern."""
        patterns = [p for p in v if p]
        if not patterns:
            raise ValueError("at least one include pattern is required")
        return patterns

    @field_validator("exclude_patterns")
    @classmethod
    def drop_blank_excludes(cls, v: list[str]) -> list[str]:
        return [p for p in v if p]

    @field_validator("color_map")
    @classmethod
    def known_colors(cls, v: dict[str, str]) -> dict[str, str]:
        """Color names must be one of the eight basic terminal colors."""
        normalized = {}
        for pattern, color in v.items():
            name = color.lower()
            if name not in COLOR_NAMES:
                raise ValueError(f"Unknown color: {color}")
            normalized[pattern] = name
        return normalized

    @model_validator(mode="after")
    def webhook_needs_url(self) -> WatchConfig:
        """The webhook backend cannot work without a URL."""
        if self.notify_enabled and self.notify_backend == "webhook" and not self.webhook_url:
            raise ValueError("webhook_url is required when notify_backend is 'webhook'")
        return self

    @property
    def effective_notify_patterns(self) -> list[str]:
        """Patterns allowed to trigger notifications."""
        if self.notify_patterns is None:
            return list(self.include_patterns)
        return list(self.notify_patterns)

    @property
    def effective_prefix_files(self) -> bool:
        if self.prefix_files is None:
            return len(self.paths) > 1
        return self.prefix_files

    @property
    def colors(self) -> dict[str, str]:
        """Default color map with user overrides applied."""
        return {**DEFAULT_COLOR_MAP, **self.color_map}

    def should_notify_for_pattern(self, pattern: str) -> bool:
        """Check if a pattern should trigger notifications."""
        return self.notify_enabled and pattern in self.effective_notify_patterns

    @classmethod
    def build(cls, **values: Any) -> WatchConfig:
        """Validate values into a config, raising ConfigError on failure."""
        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigError(_format_validation_error(e)) from e

    @classmethod
    def from_file(cls, path: Path | None, **overrides: Any) -> WatchConfig:
        """Load configuration from a YAML file, with overrides applied on top.

        Args:
            path: YAML file; a missing file means "defaults only"
            **overrides: Values from the command line; None values are ignored

        Raises:
            ConfigError: If the file cannot be parsed or the result is invalid
        """
        data: dict[str, Any] = {}
        if path is not None and path.exists():
            try:
                with open(path) as f:
                    loaded = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path}: {e}") from e
            if loaded is not None and not isinstance(loaded, dict):
                raise ConfigError(f"Config file {path} must contain a mapping")
            data = loaded or {}

        for key, value in overrides.items():
            if value is None:
                continue
            # Empty lists from unset multi-value CLI options do not override the file
            if isinstance(value, (list, tuple, dict)) and not value:
                continue
            data[key] = value

        return cls.build(**data)


def _format_validation_error(error: ValidationError) -> str:
    """Collapse pydantic errors into one readable line."""
    parts = []
    for err in error.errors():
        location = ".".join(str(p) for p in err["loc"])
        message = err["msg"].removeprefix("Value error, ")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts)
