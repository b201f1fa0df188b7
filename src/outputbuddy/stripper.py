"""Removal of terminal control sequences and spinner glyphs from a line.

Operates on raw bytes so that multi-byte text is never split or re-encoded
unless it is actually being removed. Truncated sequences are handled on a
best-effort basis:

- CSI (``ESC [`` ... letter) without a final letter is removed to the end.
- OSC (``ESC ]`` ... BEL or ``ESC \\``) without a terminator stops the OSC
  pass and the remainder is left as it is. Existing log consumers rely on
  this output, so it is not "fixed" here.
- Any other ``ESC`` is dropped together with the byte after it.
"""

from __future__ import annotations

import re

ESC = 0x1B
CSI_INTRO = b"\x1b["
OSC_INTRO = b"\x1b]"
BEL = b"\x07"
ST = b"\x1b\\"

# Braille patterns block, used as animation frames by several spinner libraries
_BRAILLE_RE = re.compile("[\u2800-\u28ff]")


def _is_letter(b: int) -> bool:
    return 0x41 <= b <= 0x5A or 0x61 <= b <= 0x7A


def remove_csi(data: bytearray) -> None:
    """Delete every ``ESC [ params letter`` run in place."""
    start = data.find(CSI_INTRO)
    while start != -1:
        end = start + 2
        while end < len(data):
            b = data[end]
            end += 1
            if _is_letter(b):
                break
        del data[start:end]
        # Deleting can join an ESC just before ``start`` with a following '['
        start = data.find(CSI_INTRO, max(start - 1, 0))


def remove_osc(data: bytearray) -> None:
    """Delete every terminated ``ESC ] ...`` run in place.

    BEL is preferred over ``ESC \\`` even when the latter comes first.
    """
    start = data.find(OSC_INTRO)
    while start != -1:
        end = data.find(BEL, start)
        if end != -1:
            end += 1
        else:
            end = data.find(ST, start)
            if end == -1:
                return
            end += 2
        del data[start:end]
        start = data.find(OSC_INTRO, max(start - 1, 0))


def remove_lone_escapes(data: bytearray) -> None:
    """Drop each remaining ESC and the byte after it; a trailing ESC stays."""
    idx = data.find(ESC)
    while idx != -1 and idx < len(data) - 1:
        del data[idx:idx + 2]
        idx = data.find(ESC, idx)


def remove_braille(data: bytes) -> bytes:
    """Drop U+2800..U+28FF without touching invalid UTF-8 around them.

    ``surrogateescape`` maps every undecodable byte to its own placeholder
    and back again, so malformed input survives byte-for-byte.
    """
    if b"\xe2" not in data:
        return data
    text = data.decode("utf-8", errors="surrogateescape")
    return _BRAILLE_RE.sub("", text).encode("utf-8", errors="surrogateescape")


def strip(data: bytes) -> bytes:
    """Return ``data`` with control sequences, CRs and Braille glyphs removed.

    An all-whitespace result (Unicode whitespace included) is reported as ``b""`` so callers can suppress
    the line; otherwise surrounding whitespace is kept.
    """
    buf = bytearray(data)
    remove_csi(buf)
    remove_osc(buf)
    remove_lone_escapes(buf)
    cleaned = remove_braille(bytes(buf).replace(b"\r", b""))
    if not cleaned.decode("utf-8", errors="surrogateescape").strip():
        return b""
    return cleaned


def strip_text(text: str) -> str:
    """``strip`` for already-decoded text."""
    raw = text.encode("utf-8", errors="surrogateescape")
    return strip(raw).decode("utf-8", errors="surrogateescape")
