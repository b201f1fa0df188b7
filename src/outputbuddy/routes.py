"""Parsing of routing arguments into router registrations.

Each argument names one or two streams and, optionally, a file::

    1 | stdout                   show stdout on the terminal
    2 | stderr                   show stderr on the terminal
    1+2 | 2+1 | stdout+stderr    show both on the terminal
    <streams>=<file>             write the stream(s) to <file>

With no routing arguments both streams go to the default log file and to
the terminal.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import BinaryIO, FrozenSet, List, Optional, Sequence

from .errors import RouteSpecError
from .router import Router, Stream

STREAM_ALIASES = {
    "1": Stream.OUT,
    "stdout": Stream.OUT,
    "2": Stream.ERR,
    "stderr": Stream.ERR,
}
BOTH = frozenset({Stream.OUT, Stream.ERR})


@dataclass(frozen=True)
class RouteSpec:
    """One routing argument: which streams go where (``path=None`` is the terminal)."""

    streams: FrozenSet[Stream]
    path: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.path is None

    @property
    def combined(self) -> bool:
        return self.streams == BOTH


def parse_streams(text: str) -> FrozenSet[Stream]:
    parts = text.split("+")
    streams = set()
    for part in parts:
        stream = STREAM_ALIASES.get(part.strip())
        if stream is None:
            raise RouteSpecError(f"unknown stream '{part}' in '{text}' (use 1, 2, stdout or stderr)")
        streams.add(stream)
    return frozenset(streams)


def parse_route(arg: str) -> RouteSpec:
    """Parse a single routing argument such as ``2+1=out.log`` or ``1``."""
    if "=" in arg:
        stream_part, path = arg.split("=", 1)
        if not path:
            raise RouteSpecError(f"missing file name in '{arg}'")
        return RouteSpec(parse_streams(stream_part), path)
    return RouteSpec(parse_streams(arg))


def parse_routes(args: Sequence[str], default_log_file: str = "buddy.log") -> List[RouteSpec]:
    """Parse all routing arguments, falling back to the default routing."""
    if not args:
        return [RouteSpec(BOTH, default_log_file), RouteSpec(BOTH)]
    return [parse_route(arg) for arg in args]


def _default_terminal(stream: Stream) -> BinaryIO:
    return sys.stdout.buffer if stream is Stream.OUT else sys.stderr.buffer


def build_router(
    routes: Sequence[RouteSpec],
    sanitize: bool = True,
    stdout: Optional[BinaryIO] = None,
    stderr: Optional[BinaryIO] = None,
) -> Router:
    """Open every destination named by ``routes``.

    Files already opened are closed again if a later one fails.

    Raises:
        DestinationError: a file cannot be created.
    """
    terminals = {Stream.OUT: stdout, Stream.ERR: stderr}
    router = Router()
    try:
        for route in routes:
            # stdout before stderr, whatever order the streams were written in
            ordered = [s for s in Stream if s in route.streams]
            if route.is_terminal:
                for stream in ordered:
                    handle = terminals[stream]
                    router.add_terminal(stream, handle if handle is not None else _default_terminal(stream))
            else:
                router.add_file(route.path, ordered, sanitize=sanitize)
    except Exception:
        router.close()
        raise
    return router
