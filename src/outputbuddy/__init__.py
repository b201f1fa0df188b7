"""
outputbuddy - tee a command's output to the terminal and to clean log files.

The terminal gets the child's bytes untouched, so colors and progress bars
keep working. Log files get reassembled lines with control sequences,
spinner glyphs and progress redraws removed.
"""

__version__ = "2.1.0"

from .errors import DestinationError, LaunchError, OutputBuddyError, RouteSpecError, RouterError
from .progress import is_progress
from .reassembler import LineReassembler
from .router import Router, Stream
from .sink import FileSink, TerminalMirror
from .stripper import strip

__all__ = [
    "__version__",
    "DestinationError",
    "FileSink",
    "LaunchError",
    "LineReassembler",
    "OutputBuddyError",
    "RouteSpecError",
    "Router",
    "RouterError",
    "Stream",
    "TerminalMirror",
    "is_progress",
    "strip",
]
