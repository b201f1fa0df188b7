"""Rebuild logical lines from a byte stream delivered in arbitrary chunks.

Terminator rules:
- ``\\n`` finalizes the line in flight.
- ``\\r\\n`` is one terminator and finalizes the line once.
- a bare ``\\r`` throws the line in flight away (a progress bar redrawing
  itself in place).

A ``\\r`` that ends a chunk is held back until the next byte shows whether a
``\\n`` follows, so the result never depends on where chunks were cut.
"""

from __future__ import annotations

from typing import List, Optional

LF = 0x0A
CR = 0x0D


class LineReassembler:
    """Restartable line splitter with carriage-return overwrite semantics."""

    def __init__(self) -> None:
        self._line = bytearray()
        self._pending_cr = False

    @property
    def in_flight(self) -> bytes:
        """Bytes accumulated since the last terminator."""
        return bytes(self._line)

    def _finalize(self, out: List[bytes]) -> None:
        out.append(bytes(self._line))
        self._line.clear()

    def ingest(self, data: bytes) -> List[bytes]:
        """Consume ``data`` and return the lines it completed, in order."""
        lines: List[bytes] = []
        n = len(data)
        pos = 0

        if self._pending_cr and n:
            self._pending_cr = False
            if data[0] == LF:
                self._finalize(lines)
                pos = 1
            else:
                self._line.clear()

        # Positions are cached so each byte is scanned once per chunk.
        next_lf = data.find(b"\n", pos)
        next_cr = data.find(b"\r", pos)

        while pos < n:
            if next_lf != -1 and next_lf < pos:
                next_lf = data.find(b"\n", pos)
            if next_cr != -1 and next_cr < pos:
                next_cr = data.find(b"\r", pos)

            if next_lf == -1 and next_cr == -1:
                self._line += data[pos:]
                break

            if next_cr == -1 or (next_lf != -1 and next_lf < next_cr):
                self._line += data[pos:next_lf]
                self._finalize(lines)
                pos = next_lf + 1
                continue

            self._line += data[pos:next_cr]
            if next_cr + 1 == n:
                self._pending_cr = True
                pos = n
            elif data[next_cr + 1] == LF:
                self._finalize(lines)
                pos = next_cr + 2
            else:
                self._line.clear()
                pos = next_cr + 1

        return lines

    def drain(self) -> Optional[bytes]:
        """Resolve end of stream and return the unterminated tail, if any.

        A held ``\\r`` counts as a bare carriage return. Calling this again
        returns ``None`` until more data is ingested.
        """
        if self._pending_cr:
            self._pending_cr = False
            self._line.clear()
        if not self._line:
            return None
        tail = bytes(self._line)
        self._line.clear()
        return tail
