"""OracleString - reference model for differential testing.

A deliberately plain, unoptimized string with the same public surface as
CompactString, used as ground truth by the checker.

Key characteristics:
- Content is an immutable Python ``str``; every mutation rebuilds it
- No inline mode and no borrowed mode; every conversion copies
- Capacity is bookkeeping only, grown like a conventional vector
  (at least doubling, minimum 8) and never allocated
- Byte-offset arguments are validated against the set of scalar-value
  start offsets plus the length, in the same precedence order as the
  Target (see compactstr.errors)

If CompactString produces different content, a different result, or a
different accept / reject decision, that is a potential bug.

Python 3.13+.
"""

from __future__ import annotations

import array
from functools import total_ordering
from typing import TYPE_CHECKING, Self

from compactstr.constants import MAX_CAPACITY
from compactstr.errors import (
    CapacityOverflowError,
    CharBoundaryError,
    OutOfBoundsError,
    Utf8Error,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

__all__ = ["OracleString"]

_MIN_GROWTH = 8


def _from_utf8(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise Utf8Error(e.start) from None


@total_ordering
class OracleString:
    """Simple reference implementation of CompactString."""

    __slots__ = ("_capacity", "_text")

    def __init__(self, text: str = "") -> None:
        self._text = text
        self._capacity = len(text.encode("utf-8"))

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_str(cls, text: str) -> Self:
        return cls(text)

    @classmethod
    def from_static_str(cls, text: str) -> Self:
        """Nothing is ever borrowed; this is an owned copy."""
        return cls(text)

    @classmethod
    def from_utf8(cls, data: bytes | bytearray | memoryview) -> Self:
        return cls(_from_utf8(bytes(data)))

    @classmethod
    def from_utf8_buf(cls, chunks: Iterable[bytes | bytearray | memoryview]) -> Self:
        return cls(_from_utf8(b"".join(bytes(chunk) for chunk in chunks)))

    @classmethod
    def from_byte_array(cls, buffer: array.array[int]) -> Self:
        return cls(_from_utf8(buffer.tobytes()))

    @classmethod
    def from_fill(cls, char: str, count: int) -> Self:
        if len(char.encode("utf-8")) * count > MAX_CAPACITY:
            msg = f"{count} x {char!r} overflows capacity"
            raise CapacityOverflowError(msg)
        return cls(char * count)

    @classmethod
    def from_int(cls, value: int) -> Self:
        return cls(str(value))

    @classmethod
    def with_capacity(cls, capacity: int) -> Self:
        if capacity > MAX_CAPACITY:
            msg = f"capacity {capacity} exceeds {MAX_CAPACITY}"
            raise CapacityOverflowError(msg)
        oracle = cls()
        oracle._capacity = capacity
        return oracle

    def clone(self) -> Self:
        return type(self)(self._text)

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self.as_bytes())

    def is_empty(self) -> bool:
        return not self._text

    def capacity(self) -> int:
        return self._capacity

    def as_bytes(self) -> bytes:
        return self._text.encode("utf-8")

    def __bytes__(self) -> bytes:
        return self.as_bytes()

    def as_str(self) -> str:
        return self._text

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"OracleString({self._text!r}, capacity={self._capacity})"

    def __iter__(self) -> Iterator[str]:
        return iter(self._text)

    def char_indices(self) -> Iterator[tuple[int, str]]:
        offset = 0
        for char in self._text:
            yield offset, char
            offset += len(char.encode("utf-8"))

    def _boundaries(self) -> set[int]:
        """Scalar-value start offsets plus the length."""
        boundaries = {offset for offset, _ in self.char_indices()}
        boundaries.add(len(self))
        return boundaries

    def __eq__(self, other: object) -> bool:
        if isinstance(other, OracleString):
            return self._text == other._text
        if isinstance(other, str):
            return self._text == other
        return NotImplemented

    def __lt__(self, other: object) -> bool:
        if isinstance(other, OracleString):
            return self._text < other._text
        if isinstance(other, str):
            return self._text < other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._text)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _validate_offset(self, index: int) -> None:
        length = len(self)
        if index < 0 or index > length:
            msg = f"byte index {index} is out of bounds of length {length}"
            raise OutOfBoundsError(msg)
        if index not in self._boundaries():
            msg = f"byte index {index} is not a char boundary"
            raise CharBoundaryError(msg)

    def _validate_range(self, start: int, end: int) -> None:
        if start > end:
            msg = f"range start {start} is greater than end {end}"
            raise OutOfBoundsError(msg)
        if end > len(self):
            msg = f"range end {end} is out of bounds of length {len(self)}"
            raise OutOfBoundsError(msg)
        self._validate_offset(start)
        self._validate_offset(end)

    def _char_at(self, index: int) -> int:
        """Position in the str of the scalar value starting at byte ``index``."""
        for position, (offset, _) in enumerate(self.char_indices()):
            if offset == index:
                return position
        return len(self._text)

    def _grow(self, needed: int) -> None:
        if needed > MAX_CAPACITY:
            msg = f"capacity {needed} exceeds {MAX_CAPACITY}"
            raise CapacityOverflowError(msg)
        if needed > self._capacity:
            self._capacity = max(needed, 2 * self._capacity, _MIN_GROWTH)

    def _replace(self, start: int, end: int, text: str) -> str:
        """Replace the already-validated byte range; return the removed text."""
        first, last = self._char_at(start), self._char_at(end)
        removed = self._text[first:last]
        self._grow(len(self) - (end - start) + len(text.encode("utf-8")))
        self._text = self._text[:first] + text + self._text[last:]
        return removed

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def push(self, char: str) -> None:
        self.push_str(char)

    def push_str(self, text: str) -> None:
        self._grow(len(self) + len(text.encode("utf-8")))
        self._text += text

    def extend(self, items: Iterable[str]) -> None:
        for item in items:
            self.push_str(item)

    def insert(self, index: int, char: str) -> None:
        self.insert_str(index, char)

    def insert_str(self, index: int, text: str) -> None:
        self._validate_offset(index)
        self._replace(index, index, text)

    def pop(self) -> str | None:
        if not self._text:
            return None
        char = self._text[-1]
        self._text = self._text[:-1]
        return char

    def remove(self, index: int) -> str:
        length = len(self)
        if index < 0 or index >= length:
            msg = f"cannot remove a char at {index} from length {length}"
            raise OutOfBoundsError(msg)
        self._validate_offset(index)
        position = self._char_at(index)
        char = self._text[position]
        self._text = self._text[:position] + self._text[position + 1 :]
        return char

    def drain(self, start: int, end: int) -> str:
        self._validate_range(start, end)
        return self._replace(start, end, "")

    def replace_range(self, start: int, end: int, text: str) -> None:
        self._validate_range(start, end)
        self._replace(start, end, text)

    def truncate(self, new_len: int) -> None:
        if new_len >= len(self):
            return
        self._validate_offset(new_len)
        self._text = self._text[: self._char_at(new_len)]

    def split_off(self, at: int) -> Self:
        self._validate_offset(at)
        position = self._char_at(at)
        tail = type(self)(self._text[position:])
        self._text = self._text[:position]
        return tail

    def clear(self) -> None:
        self._text = ""

    def reserve(self, additional: int) -> None:
        self._grow(len(self) + additional)

    def shrink_to_fit(self) -> None:
        self._capacity = len(self)

    def shrink_to(self, min_capacity: int) -> None:
        if self._capacity > min_capacity:
            self._capacity = max(len(self), min_capacity)

    def retain(self, predicate: Callable[[str], bool]) -> None:
        self._text = "".join(char for char in self._text if predicate(char))

    def make_ascii_uppercase(self) -> None:
        self._text = "".join(char.upper() if "a" <= char <= "z" else char for char in self._text)

    def repeat(self, times: int) -> Self:
        if len(self) * times > MAX_CAPACITY:
            msg = f"repeating {len(self)} bytes {times} times overflows capacity"
            raise CapacityOverflowError(msg)
        return type(self)(self._text * times)

    def zeroize(self) -> None:
        """Drop the content, keeping the capacity.

        The text is an immutable str, so there are no owned bytes to
        overwrite; the observable post-condition is length 0.
        """
        self._text = ""

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def into_bytes(self) -> bytearray:
        data = bytearray(self.as_bytes())
        self._text = ""
        self._capacity = 0
        return data

    def to_bytes(self) -> bytes:
        return self.as_bytes()

    def into_byte_array(self) -> array.array[int]:
        buffer = array.array("B", self.as_bytes())
        self._text = ""
        self._capacity = 0
        return buffer
