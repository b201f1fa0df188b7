"""Exception types raised by outputbuddy.

Only setup-time problems are raised to the caller. Write failures on an
already-open destination are logged by the destination itself and never
leave ``Router.dispatch``.
"""

from __future__ import annotations


class OutputBuddyError(Exception):
    """Base class for all outputbuddy errors."""


class RouteSpecError(OutputBuddyError):
    """A routing argument could not be understood."""


class DestinationError(OutputBuddyError):
    """A destination file could not be opened for writing."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"cannot open {path}: {reason}")
        self.path = path
        self.reason = reason


class RouterError(OutputBuddyError):
    """The router was used outside its registration/dispatch lifecycle."""


class LaunchError(OutputBuddyError):
    """The child process could not be started."""
