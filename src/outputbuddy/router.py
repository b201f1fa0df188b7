"""Fan-out of the child's stdout/stderr to terminal mirrors and file sinks.

Registration happens once, before output starts. After the first
``dispatch`` the destination lists are fixed for the life of the process.

A single lock covers both streams: each chunk is delivered to every one of
its destinations before the next chunk, from either stream, is looked at.
A slow destination therefore delays both streams.
"""

from __future__ import annotations

import os
import threading
from enum import Enum
from typing import BinaryIO, Dict, Iterable, List

from .errors import RouterError
from .log import get_logger
from .sink import Destination, FileSink, TerminalMirror

logger = get_logger(__name__)


class Stream(Enum):
    """Which child descriptor a chunk came from."""
    OUT = "stdout"
    ERR = "stderr"


class Router:
    """Delivers each chunk to every destination registered for its stream."""

    def __init__(self) -> None:
        self._destinations: Dict[Stream, List[Destination]] = {s: [] for s in Stream}
        self._sinks: Dict[str, FileSink] = {}
        self._mirrors: Dict[Stream, TerminalMirror] = {}
        self._lock = threading.Lock()
        self._dispatching = False
        self._closed = False

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def _check_registration(self) -> None:
        if self._dispatching or self._closed:
            raise RouterError("destinations must be registered before output starts")

    def _attach(self, stream: Stream, dest: Destination) -> None:
        targets = self._destinations[stream]
        if not any(d is dest for d in targets):
            targets.append(dest)

    def add_terminal(self, stream: Stream, handle: BinaryIO) -> TerminalMirror:
        """Mirror ``stream`` unchanged to ``handle``; once per stream."""
        self._check_registration()
        mirror = self._mirrors.get(stream)
        if mirror is None:
            mirror = TerminalMirror(handle, name=f"terminal:{stream.value}")
            self._mirrors[stream] = mirror
            self._attach(stream, mirror)
        return mirror

    def add_file(self, path: str, streams: Iterable[Stream], sanitize: bool = True) -> FileSink:
        """Send ``streams`` to the file at ``path``.

        Paths are compared after resolution, so ``./a.log`` and ``a.log``
        share one sink. A second registration keeps the first sink (and its
        sanitize setting) and only adds streams it did not have yet.

        Raises:
            DestinationError: the file cannot be created.
        """
        self._check_registration()
        key = os.path.realpath(path)
        sink = self._sinks.get(key)
        if sink is None:
            sink = FileSink.open(path, sanitize=sanitize)
            self._sinks[key] = sink
            logger.debug("opened %s (sanitize=%s)", path, sanitize)
        for stream in streams:
            self._attach(stream, sink)
        return sink

    @property
    def sinks(self) -> List[FileSink]:
        return list(self._sinks.values())

    def destinations(self, stream: Stream) -> List[Destination]:
        return list(self._destinations[stream])

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------
    def dispatch(self, stream: Stream, data: bytes) -> None:
        """Deliver one chunk to all destinations of ``stream``."""
        if not data:
            return
        with self._lock:
            if self._closed:
                logger.debug("dropping %d bytes of %s after close", len(data), stream.value)
                return
            self._dispatching = True
            for dest in self._destinations[stream]:
                dest.ingest(data)

    def close(self) -> None:
        """Finalize every file sink exactly once. Safe to call repeatedly."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            for sink in self._sinks.values():
                try:
                    sink.close()
                except OSError as exc:
                    logger.warning("finalizing %s failed: %s", sink.path, exc)

    def __enter__(self) -> "Router":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
