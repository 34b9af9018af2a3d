"""Total byte reader feeding the operation decoder.

ByteCursor serves primitive values (integers, lengths, text, scalar values)
from an engine-supplied byte buffer. Every read is a total function: a read
that runs past the end yields zero-filled data and marks the cursor
exhausted instead of raising. Exhaustion is terminal and non-fatal; the
decoder uses it to drop the operation being decoded and stop.

Design:
    - The input buffer is never mutated; only the read offset advances
    - Identical input always yields identical values (bit-for-bit replay)
    - No read can raise for any input, including the empty buffer

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

__all__ = ["BOUNDARY_CODE_POINTS", "ByteCursor"]

# Scalar values adjacent to encoding-width changes, the surrogate gap, and
# the ends of the Unicode range.
BOUNDARY_CODE_POINTS: tuple[int, ...] = (
    0x0000,
    0x007F,
    0x0080,
    0x07FF,
    0x0800,
    0xD7FF,
    0xE000,
    0xFFFD,
    0xFEFF,
    0xFFFF,
    0x10000,
    0x10FFFF,
)

_SURROGATE_START = 0xD800
_SURROGATE_COUNT = 0x800
_SCALAR_COUNT = 0x110000 - _SURROGATE_COUNT


class ByteCursor:
    """Read-only, forward-only reader over an immutable byte buffer.

    Example:
        >>> cursor = ByteCursor(b"\\x03abc")
        >>> cursor.take_utf8(255)
        'abc'
        >>> cursor.take_u8() is None
        True
        >>> cursor.exhausted
        True
    """

    __slots__ = ("_data", "_exhausted", "_offset")

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)
        self._offset = 0
        self._exhausted = False

    @property
    def offset(self) -> int:
        """Number of bytes consumed so far."""
        return self._offset

    @property
    def remaining(self) -> int:
        return len(self._data) - self._offset

    @property
    def exhausted(self) -> bool:
        """True once any read has asked for more bytes than remained."""
        return self._exhausted

    def _take(self, count: int) -> bytes:
        """Take up to ``count`` bytes, flagging exhaustion when short."""
        end = self._offset + count
        if end > len(self._data):
            self._exhausted = True
            end = len(self._data)
        chunk = self._data[self._offset : end]
        self._offset = end
        return chunk

    def take_u8(self) -> int | None:
        """Next byte, or None at end of input."""
        chunk = self._take(1)
        return chunk[0] if chunk else None

    def take_int(self, width: int, *, signed: bool = False) -> int:
        """Big-endian integer of ``width`` bytes; missing bytes read as zero."""
        chunk = self._take(width).ljust(width, b"\x00")
        return int.from_bytes(chunk, "big", signed=signed)

    def take_len(self, bound: int) -> int:
        """Length in ``[0, bound]`` read from the narrowest sufficient width.

        One byte serves bounds below 256, two bytes below 65536, eight bytes
        above that. The raw value is reduced modulo ``bound + 1``.
        """
        if bound <= 0:
            return 0
        if bound < 0x100:
            width = 1
        elif bound < 0x10000:
            width = 2
        else:
            width = 8
        return self.take_int(width) % (bound + 1)

    def take_bytes(self, max_bytes: int) -> bytes:
        """Length-prefixed raw bytes; may be invalid UTF-8."""
        return self._take(self.take_len(max_bytes))

    def take_utf8(self, max_bytes: int) -> str:
        """Length-prefixed text of at most ``max_bytes`` UTF-8 bytes.

        Invalid sequences are repaired with U+FFFD; if repair grew the text
        past ``max_bytes`` it is cut back on a scalar-value boundary.
        """
        text = self.take_bytes(max_bytes).decode("utf-8", errors="replace")
        encoded = text.encode("utf-8")
        if len(encoded) > max_bytes:
            text = encoded[:max_bytes].decode("utf-8", errors="ignore")
        return text

    def take_char(self) -> str | None:
        """One Unicode scalar value from four bytes, or None at end of input.

        A top nibble of 0xF selects from BOUNDARY_CODE_POINTS; any other
        value is mapped modulo the scalar-value space with the surrogate
        range skipped.
        """
        if not self.remaining:
            self._exhausted = True
            return None
        raw = self.take_int(4)
        if raw >> 28 == 0xF:
            code_point = BOUNDARY_CODE_POINTS[raw % len(BOUNDARY_CODE_POINTS)]
        else:
            code_point = raw % _SCALAR_COUNT
            if code_point >= _SURROGATE_START:
                code_point += _SURROGATE_COUNT
        return chr(code_point)
