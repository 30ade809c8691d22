"""Terminal highlighting of matched spans."""

from __future__ import annotations

from collections.abc import Sequence

import click

from .patterns import PatternSpec

DRY_RUN_PREFIX = "[DRY-RUN] "


class Highlighter:
    """Wraps matched spans of a line in ANSI color markers.

    The line text itself is never altered; with colors disabled ``render``
    returns it unchanged.
    """

    def __init__(self, colors: dict[str, str] | None = None, no_color: bool = False):
        self.colors = colors or {}
        self.no_color = no_color

    def color_for(self, spec: PatternSpec) -> str | None:
        return spec.color or self.colors.get(spec.raw_text)

    def render(self, line: str, matched_patterns: Sequence[PatternSpec]) -> str:
        """Return the line with every matched span colored.

        When spans from several patterns overlap, the earlier pattern keeps
        the overlapping characters.
        """
        if self.no_color or not matched_patterns:
            return line

        # Color per character position; first pattern to claim a position wins
        owners: list[str | None] = [None] * len(line)
        for spec in matched_patterns:
            color = self.color_for(spec) or "red"
            for start, end in spec.spans(line):
                for i in range(start, min(end, len(line))):
                    if owners[i] is None:
                        owners[i] = color

        parts = []
        i = 0
        while i < len(line):
            color = owners[i]
            j = i
            while j < len(line) and owners[j] == color:
                j += 1
            segment = line[i:j]
            parts.append(click.style(segment, fg=color, bold=True) if color else segment)
            i = j
        return "".join(parts)

    def format_line(
        self,
        line: str,
        matched_patterns: Sequence[PatternSpec] = (),
        filename: str | None = None,
        dry_run: bool = False,
    ) -> str:
        """Render a line for output with its optional prefixes."""
        prefix = ""
        if dry_run and matched_patterns:
            prefix += DRY_RUN_PREFIX
        if filename is not None:
            prefix += f"[{filename}] "
        return prefix + self.render(line, matched_patterns)
