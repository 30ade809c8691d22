"""Rotation-safe incremental reader for a single growing file.

A cursor remembers how far into a file it has read. Each poll stats the path,
detects rotation (the file shrank, or a different file now lives at the path),
reads whatever was appended since the last poll, and hands back the complete
lines. Bytes after the last newline stay buffered until the rest of the line
arrives.

Files are read in binary mode so that offsets stay comparable to ``st_size``.
"""

from __future__ import annotations

import os
import threading
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

import structlog

log = structlog.get_logger()

# Opening a FIFO or device read-only would otherwise block until a writer shows up
_O_NONBLOCK = getattr(os, "O_NONBLOCK", 0)


class FileAccessError(Exception):
    """Raised when a watched file cannot be stat'ed, opened or read."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


@dataclass(frozen=True)
class FileIdentity:
    """What a path pointed at when it was last looked at."""

    device: int
    inode: int
    mtime_ns: int
    size: int

    @classmethod
    def from_stat(cls, st: os.stat_result) -> FileIdentity:
        return cls(
            device=st.st_dev,
            inode=st.st_ino,
            mtime_ns=st.st_mtime_ns,
            size=st.st_size,
        )

    @property
    def has_inode(self) -> bool:
        return self.inode != 0

    def replaced_by(self, current: FileIdentity) -> bool:
        """Check whether ``current`` looks like a different file.

        Uses the device/inode pair when the platform provides one. Without it
        the check is a heuristic: a modification time that moved backwards is
        taken to mean the file was replaced. A replacement that keeps a newer
        mtime and does not shrink the file goes unnoticed.
        """
        if self.has_inode and current.has_inode:
            return (self.device, self.inode) != (current.device, current.inode)
        return current.mtime_ns < self.mtime_ns


@dataclass(frozen=True)
class RotationEvent:
    """A detected rotation. Informational; the cursor has already recovered."""

    path: Path
    reason: str  # "truncated" or "replaced"
    previous_size: int
    current_size: int


class FileCursor:
    """Per-file read state: offset, last size, identity and partial line.

    ``poll`` is serialized per cursor, and it either commits a complete state
    update or leaves the previous state untouched.
    """

    def __init__(
        self,
        path: str | Path,
        buffer_size: int = 8192,
        max_line_bytes: int = 1024 * 1024,
        start_at_end: bool = True,
    ):
        """Initialize the cursor.

        Args:
            path: File to follow
            buffer_size: Bytes requested per read call
            max_line_bytes: Longest partial line kept while waiting for a newline
            start_at_end: Skip content already in the file (tail mode). A file
                that does not exist yet is read from the beginning once it appears.
        """
        self.path = Path(path)
        self.buffer_size = buffer_size
        self.max_line_bytes = max_line_bytes
        self.offset = 0
        self.last_size = 0
        self.identity: FileIdentity | None = None
        self.partial_line_buffer = b""
        self.reopen_count = 0
        self.reachable = True
        self.last_error: FileAccessError | None = None
        self.last_rotation: RotationEvent | None = None
        self._lock = threading.Lock()

        if start_at_end:
            self._seek_to_end()

    def _seek_to_end(self) -> None:
        try:
            st = os.stat(self.path)
        except OSError:
            return
        self.identity = FileIdentity.from_stat(st)
        self.offset = self.last_size = st.st_size

    def poll(self) -> Iterator[str]:
        """Read everything appended since the last poll.

        Returns:
            Iterator over the complete lines read, in file order, without
            their line terminators

        Raises:
            FileAccessError: If the file is missing or unreadable; the cursor
                keeps its previous offset and identity and can be polled again
        """
        with self._lock:
            lines = self._read_new_lines()
        return iter(lines)

    def flush(self) -> list[str]:
        """Return the buffered partial line, if any, as a final line."""
        with self._lock:
            if not self.partial_line_buffer:
                return []
            line = _decode(self.partial_line_buffer)
            self.partial_line_buffer = b""
            return [line]

    def _read_new_lines(self) -> list[str]:
        try:
            st = os.stat(self.path)
        except OSError as e:
            raise self._unreachable(e) from e

        current = FileIdentity.from_stat(st)
        rotation = self._detect_rotation(current)

        if rotation is not None:
            offset, partial = 0, b""
        else:
            offset, partial = self.offset, self.partial_line_buffer

        data = b""
        if current.size > offset:
            try:
                data = self._read_range(offset, current.size)
            except BlockingIOError:
                data = b""
            except OSError as e:
                raise self._unreachable(e) from e

        lines, partial = self._split(partial + data)

        # Commit
        self.offset = offset + len(data)
        self.last_size = current.size
        self.identity = current
        self.partial_line_buffer = partial
        self.reachable = True
        self.last_error = None
        if rotation is not None:
            self.reopen_count += 1
            self.last_rotation = rotation
            log.info(
                "File rotation detected",
                path=str(self.path),
                reason=rotation.reason,
                previous_size=rotation.previous_size,
                current_size=rotation.current_size,
            )

        return lines

    def _detect_rotation(self, current: FileIdentity) -> RotationEvent | None:
        if self.identity is None:
            return None
        if self.identity.replaced_by(current):
            reason = "replaced"
        elif current.size < self.last_size or current.size < self.offset:
            reason = "truncated"
        else:
            return None
        return RotationEvent(
            path=self.path,
            reason=reason,
            previous_size=self.last_size,
            current_size=current.size,
        )

    def _read_range(self, start: int, end: int) -> bytes:
        """Read bytes [start, end), stopping early if the file comes up short."""
        fd = os.open(self.path, os.O_RDONLY | _O_NONBLOCK)
        with open(fd, "rb", buffering=0) as f:
            f.seek(start)
            chunks = []
            remaining = end - start
            while remaining > 0:
                chunk = f.read(min(self.buffer_size, remaining))
                if not chunk:
                    break
                chunks.append(chunk)
                remaining -= len(chunk)
        return b"".join(chunks)

    def _split(self, buffer: bytes) -> tuple[list[str], bytes]:
        *complete, rest = buffer.split(b"\n")
        lines = [_decode(raw) for raw in complete]

        if len(rest) > self.max_line_bytes:
            log.warning(
                "Partial line exceeds limit, emitting it without a newline",
                path=str(self.path),
                size=len(rest),
                limit=self.max_line_bytes,
            )
            # Keep a trailing incomplete character for the next read
            cut = _complete_utf8_length(rest)
            lines.append(_decode(rest[:cut]))
            rest = rest[cut:]

        return lines, rest

    def _unreachable(self, error: OSError) -> FileAccessError:
        err = FileAccessError(self.path, error.strerror or str(error))
        self.reachable = False
        self.last_error = err
        return err


def _complete_utf8_length(raw: bytes) -> int:
    """Length of ``raw`` without a trailing incomplete UTF-8 sequence."""
    for back in range(1, min(4, len(raw)) + 1):
        byte = raw[-back]
        if byte & 0xC0 == 0x80:  # continuation byte
            continue
        if byte >= 0xF0:
            needed = 4
        elif byte >= 0xE0:
            needed = 3
        elif byte >= 0xC0:
            needed = 2
        else:
            needed = 1
        return len(raw) - back if needed > back else len(raw)
    return len(raw)


def _decode(raw: bytes) -> str:
    if raw.endswith(b"\r"):
        raw = raw[:-1]
    return raw.decode("utf-8", errors="replace")
