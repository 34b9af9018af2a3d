"""Numeric formatting straight into CompactString storage.

Integers are rendered digit by digit into a scratch buffer sized from the
digit count, then copied into a Repr allocated exactly once. Numbers with up
to INLINE_CAPACITY characters (including the sign) never touch the heap.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

from compactstr.repr import Repr

__all__ = ["format_int"]

_ZERO = 0x30
_MINUS = 0x2D


def _digit_count(magnitude: int) -> int:
    count = 1
    while magnitude >= 10:
        magnitude //= 10
        count += 1
    return count


def format_int(value: int) -> Repr:
    """Render ``value`` in decimal into a new, properly allocated Repr."""
    negative = value < 0
    magnitude = -value if negative else value
    length = _digit_count(magnitude) + negative

    scratch = bytearray(length)
    position = length
    while True:
        magnitude, digit = divmod(magnitude, 10)
        position -= 1
        scratch[position] = _ZERO + digit
        if not magnitude:
            break
    if negative:
        scratch[0] = _MINUS

    repr_ = Repr.with_capacity(length)
    repr_.write(0, bytes(scratch))
    repr_.set_len(length)
    return repr_
