"""Destinations a router can fan bytes out to.

There are exactly two shapes, both exposing ``ingest(data) -> int``:

- ``TerminalMirror`` writes bytes unchanged so redraws keep animating.
- ``FileSink`` turns the stream into clean, durable log lines.

Neither raises on a failed write once open, including a write to a handle
someone else closed: the failure is logged and the remaining destinations
keep receiving output.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import BinaryIO, Optional, Union

from .errors import DestinationError
from .log import get_logger
from .progress import is_progress
from .reassembler import LineReassembler
from .stripper import strip

logger = get_logger(__name__)


def _report_write_error(name: str, exc: Exception, already_failed: bool) -> None:
    if already_failed:
        logger.debug("write to %s failed again: %s", name, exc)
    else:
        logger.warning("write to %s failed, continuing with other destinations: %s", name, exc)


@dataclass
class TerminalMirror:
    """Raw passthrough to an interactive terminal handle."""

    handle: BinaryIO
    name: str = "terminal"
    _failed: bool = field(default=False, init=False, repr=False)

    def ingest(self, data: bytes) -> int:
        try:
            self.handle.write(data)
            self.handle.flush()
        except (OSError, ValueError) as exc:
            _report_write_error(self.name, exc, self._failed)
            self._failed = True
        return len(data)


class FileSink:
    """Per-file pipeline: reassemble, sanitize, classify, write.

    With ``sanitize`` off, carriage-return reassembly still happens so a
    redrawn progress bar is not persisted once per frame, but lines are
    written exactly as reassembled.
    """

    def __init__(self, handle: BinaryIO, path: str, sanitize: bool = True):
        self.path = path
        self.sanitize = sanitize
        self._handle = handle
        self._lines = LineReassembler()
        self._last_line: Optional[bytes] = None
        self._lines_written = 0
        self._failed = False
        self._closed = False

    @classmethod
    def open(cls, path: str, sanitize: bool = True) -> "FileSink":
        """Create (or truncate) ``path`` and wrap it in a sink."""
        try:
            handle = open(path, "wb")
        except OSError as exc:
            raise DestinationError(path, exc.strerror or str(exc)) from exc
        return cls(handle, path, sanitize=sanitize)

    @property
    def last_line(self) -> Optional[bytes]:
        """Most recent line seen, including ones held back as progress."""
        return self._last_line

    @property
    def lines_written(self) -> int:
        return self._lines_written

    @property
    def closed(self) -> bool:
        return self._closed

    def ingest(self, data: bytes) -> int:
        """Accept a chunk. Always reports the whole chunk as consumed."""
        if self._closed:
            return len(data)
        for line in self._lines.ingest(data):
            self._emit(line)
        self._sync_buffer()
        return len(data)

    def _emit(self, line: bytes) -> None:
        if self.sanitize:
            line = strip(line)
            if not line:
                return
            if is_progress(line):
                self._last_line = line
                return
        self._write_line(line)
        self._last_line = line

    def _write_line(self, line: bytes) -> None:
        try:
            self._handle.write(line + b"\n")
            self._lines_written += 1
        except (OSError, ValueError) as exc:
            _report_write_error(self.path, exc, self._failed)
            self._failed = True

    def _sync_buffer(self) -> None:
        try:
            self._handle.flush()
        except (OSError, ValueError) as exc:
            _report_write_error(self.path, exc, self._failed)
            self._failed = True

    def flush(self) -> None:
        """Write the unterminated tail (if any) and commit to disk."""
        if self._closed:
            return
        tail = self._lines.drain()
        if tail is not None:
            self._emit(tail)
        self._sync_buffer()
        try:
            os.fsync(self._handle.fileno())
        except (OSError, ValueError) as exc:
            _report_write_error(self.path, exc, self._failed)
            self._failed = True

    def close(self) -> None:
        """Flush and release the file. Later calls do nothing."""
        if self._closed:
            return
        try:
            self.flush()
        finally:
            self._closed = True
            try:
                self._handle.close()
            except OSError as exc:
                logger.warning("closing %s failed: %s", self.path, exc)
        logger.debug("closed %s after %d lines", self.path, self._lines_written)


Destination = Union[TerminalMirror, FileSink]
