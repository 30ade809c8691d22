"""Include/exclude pattern classifier for log lines."""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum

from ..config import ConfigError, WatchConfig


class PatternKind(Enum):
    """How a pattern is matched against a line."""

    LITERAL = "literal"  # Substring search
    REGEX = "regex"  # re.search


@dataclass(frozen=True)
class PatternSpec:
    """One compiled pattern. Built at configuration time, never mutated."""

    raw_text: str
    kind: PatternKind
    case_insensitive: bool = False
    color: str | None = None  # Highlight color override
    needle: str = ""  # Literal text, pre-lowercased in case-insensitive mode
    regex: re.Pattern[str] | None = field(default=None, compare=False)

    def matches(self, line: str, folded: str) -> bool:
        """Check the line against this pattern.

        Args:
            line: Line text as read
            folded: Same line, lowercased when case-insensitive (else identical)
        """
        if self.regex is not None:
            return self.regex.search(line) is not None
        return self.needle in folded

    def spans(self, line: str) -> Iterator[tuple[int, int]]:
        """Yield (start, end) of every non-empty match in the line."""
        if self.regex is not None:
            for m in self.regex.finditer(line):
                if m.end() > m.start():
                    yield m.start(), m.end()
            return

        if not self.needle:
            return
        if self.case_insensitive:
            # Positions must index the original line, not its lowercased copy
            for m in re.finditer(re.escape(self.raw_text), line, re.IGNORECASE):
                yield m.start(), m.end()
            return
        start = line.find(self.needle)
        while start != -1:
            end = start + len(self.needle)
            yield start, end
            start = line.find(self.needle, end)


def compile_pattern(
    raw: str,
    regex_mode: bool,
    case_insensitive: bool,
    max_length: int,
    color: str | None = None,
) -> PatternSpec:
    """Compile a single pattern.

    Regex patterns are bounded in length before compilation so that an
    oversized (and potentially catastrophically backtracking) expression is
    rejected at startup rather than discovered while tailing.

    Raises:
        ConfigError: If the pattern is too long or is not a valid regex
    """
    if len(raw) > max_length:
        raise ConfigError(
            f"Pattern exceeds maximum length of {max_length} characters: {raw[:40]}..."
        )

    if not regex_mode:
        return PatternSpec(
            raw_text=raw,
            kind=PatternKind.LITERAL,
            case_insensitive=case_insensitive,
            color=color,
            needle=raw.lower() if case_insensitive else raw,
        )

    flags = re.IGNORECASE if case_insensitive else 0
    try:
        compiled = re.compile(raw, flags)
    except re.error as e:
        raise ConfigError(f"Invalid regex pattern: {raw}: {e}") from e

    return PatternSpec(
        raw_text=raw,
        kind=PatternKind.REGEX,
        case_insensitive=case_insensitive,
        color=color,
        regex=compiled,
    )


@dataclass(frozen=True)
class MatchOutcome:
    """Result of classifying one line."""

    line: str
    excluded: bool = False
    matched_patterns: tuple[PatternSpec, ...] = ()

    @property
    def matched(self) -> bool:
        return bool(self.matched_patterns)


class PatternSet:
    """Immutable include/exclude pattern lists.

    Exclude patterns are evaluated first; a line matching any of them is
    excluded and include patterns are not consulted. Otherwise every include
    pattern is evaluated and all matches are reported in configured order.
    """

    def __init__(
        self,
        include: Iterable[PatternSpec],
        exclude: Iterable[PatternSpec] = (),
        case_insensitive: bool = False,
    ):
        self.include: tuple[PatternSpec, ...] = tuple(include)
        self.exclude: tuple[PatternSpec, ...] = tuple(exclude)
        self.case_insensitive = case_insensitive
        # Lines only need folding when a literal pattern will look at them
        self._fold = case_insensitive and any(
            p.kind is PatternKind.LITERAL for p in self.include + self.exclude
        )

    @classmethod
    def compile(
        cls,
        include: Iterable[str],
        exclude: Iterable[str] = (),
        regex_mode: bool = False,
        case_insensitive: bool = False,
        max_length: int = 1024,
        colors: dict[str, str] | None = None,
    ) -> PatternSet:
        """Compile raw pattern text into a PatternSet.

        Raises:
            ConfigError: If any pattern is invalid or oversized
        """
        colors = colors or {}
        return cls(
            include=[
                compile_pattern(p, regex_mode, case_insensitive, max_length, colors.get(p))
                for p in include
            ],
            exclude=[
                compile_pattern(p, regex_mode, case_insensitive, max_length) for p in exclude
            ],
            case_insensitive=case_insensitive,
        )

    @classmethod
    def from_config(cls, config: WatchConfig) -> PatternSet:
        """Build the pattern set described by a validated config."""
        return cls.compile(
            include=config.include_patterns,
            exclude=config.exclude_patterns,
            regex_mode=config.regex_mode,
            case_insensitive=config.case_insensitive,
            max_length=config.max_pattern_length,
            colors=config.colors,
        )

    def classify(self, line: str) -> MatchOutcome:
        """Classify a line against the exclude and include lists."""
        folded = line.lower() if self._fold else line

        for spec in self.exclude:
            if spec.matches(line, folded):
                return MatchOutcome(line=line, excluded=True)

        matched = tuple(spec for spec in self.include if spec.matches(line, folded))
        return MatchOutcome(line=line, matched_patterns=matched)
