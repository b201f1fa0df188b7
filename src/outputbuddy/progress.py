"""Heuristic detection of progress readouts that should not be persisted.

The rules are deliberately narrow and tuned to common build and test-runner
output. The digit prefix rule also matches ordinary numbered lists
("2. Step two:"), which is a known false positive kept for compatibility.
"""

from __future__ import annotations

# Elapsed-time status lines such as "2.5s Run tests" / "12s Build app"
ELAPSED_MARKERS = (b"s Run", b"s Build")
FRACTION_PREFIXES = ("0.", "1.", "2.", "3.")


def is_progress(line: bytes) -> bool:
    """Return True if a sanitized line looks like a transient progress update."""
    for marker in ELAPSED_MARKERS:
        if marker in line:
            return True
    # trimmed as text so NBSP and other Unicode spaces count as whitespace
    text = line.decode("utf-8", errors="surrogateescape")
    return text.strip().startswith(FRACTION_PREFIXES)
