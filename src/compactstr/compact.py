"""CompactString - a UTF-8 string that stores short values inline.

Strings of up to INLINE_CAPACITY bytes live in a fixed buffer inside the
object; longer ones spill to a heap buffer, and borrowed text longer than
that is kept by reference until first modified. The public API mirrors a
conventional growable string with byte offsets:

    >>> s = CompactString("hello")
    >>> s.kind
    <ReprKind.INLINE: 'inline'>
    >>> s.push_str(" world, this no longer fits")
    >>> s.is_heap_allocated()
    True
    >>> s.truncate(5)
    >>> s.shrink_to_fit()
    >>> str(s), s.kind
    ('hello', <ReprKind.INLINE: 'inline'>)

Every mutator validates its arguments against the pre-operation content and
raises a CompactStrError subclass before modifying anything (see
compactstr.errors for the precedence of the checks).

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

import array
from functools import total_ordering
from typing import TYPE_CHECKING, ClassVar, Self

from compactstr.constants import INLINE_CAPACITY, MAX_CAPACITY
from compactstr.errors import (
    CapacityOverflowError,
    CharBoundaryError,
    OutOfBoundsError,
    Utf8Error,
)
from compactstr.fmt import format_int
from compactstr.repr import Repr, ReprKind

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

__all__ = ["CompactString", "to_compact_string"]


def _decode(data: bytes) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise Utf8Error(e.start) from None


def _is_continuation(byte: int) -> bool:
    return byte & 0xC0 == 0x80


def _char_width(lead: int) -> int:
    if lead < 0x80:
        return 1
    if lead < 0xE0:
        return 2
    if lead < 0xF0:
        return 3
    return 4


@total_ordering
class CompactString:
    """Space-optimized UTF-8 string with byte-offset operations."""

    INLINE_CAPACITY: ClassVar[int] = INLINE_CAPACITY
    """Largest byte length stored without a separate buffer."""

    __slots__ = ("_repr",)

    _repr: Repr

    def __init__(self, text: str = "") -> None:
        self._repr = Repr.from_bytes(text.encode("utf-8"))

    @classmethod
    def _from_repr(cls, repr_: Repr) -> Self:
        instance = cls.__new__(cls)
        instance._repr = repr_
        return instance

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_str(cls, text: str) -> Self:
        """Owned copy of ``text``."""
        return cls(text)

    @classmethod
    def from_static_str(cls, text: str) -> Self:
        """Borrow the encoded ``text`` without copying when it is long."""
        return cls._from_repr(Repr.from_static(text.encode("utf-8")))

    @classmethod
    def from_utf8(cls, data: bytes | bytearray | memoryview) -> Self:
        """Validate and copy ``data``.

        Raises:
            Utf8Error: If data is not valid UTF-8
        """
        raw = bytes(data)
        _decode(raw)
        return cls._from_repr(Repr.from_bytes(raw))

    @classmethod
    def from_utf8_buf(cls, chunks: Iterable[bytes | bytearray | memoryview]) -> Self:
        """Collect a chunked external buffer, then validate it.

        Raises:
            Utf8Error: If the concatenated chunks are not valid UTF-8
        """
        repr_ = Repr.collect(chunks)
        _decode(repr_.as_bytes())
        return cls._from_repr(repr_)

    @classmethod
    def from_byte_array(cls, buffer: array.array[int]) -> Self:
        """Validate and copy a byte array produced by into_byte_array()."""
        return cls.from_utf8(buffer.tobytes())

    @classmethod
    def from_fill(cls, char: str, count: int) -> Self:
        """``count`` repetitions of the single character ``char``.

        Raises:
            CapacityOverflowError: If the result would exceed MAX_CAPACITY
        """
        encoded = char.encode("utf-8")
        total = len(encoded) * count
        if total > MAX_CAPACITY:
            msg = f"{count} x {char!r} overflows capacity"
            raise CapacityOverflowError(msg)
        repr_ = Repr.with_capacity(total)
        repr_.write(0, encoded * count)
        repr_.set_len(total)
        return cls._from_repr(repr_)

    @classmethod
    def from_int(cls, value: int) -> Self:
        """Decimal rendering of ``value``."""
        return cls._from_repr(format_int(value))

    @classmethod
    def with_capacity(cls, capacity: int) -> Self:
        """Empty string able to hold ``capacity`` bytes.

        Raises:
            CapacityOverflowError: If capacity exceeds MAX_CAPACITY
        """
        return cls._from_repr(Repr.with_capacity(capacity))

    def clone(self) -> Self:
        """Independent copy; owned content is re-inlined when it fits."""
        return type(self)._from_repr(self._repr.clone())

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def kind(self) -> ReprKind:
        """Current storage shape."""
        return self._repr.kind

    def is_heap_allocated(self) -> bool:
        return self._repr.kind is ReprKind.HEAP

    def as_static_str(self) -> str | None:
        """The borrowed text, if the content is still borrowed."""
        data = self._repr.static_bytes()
        return None if data is None else data.decode("utf-8")

    def __len__(self) -> int:
        return len(self._repr)

    def is_empty(self) -> bool:
        return len(self._repr) == 0

    def capacity(self) -> int:
        return self._repr.capacity()

    def as_bytes(self) -> bytes:
        return self._repr.as_bytes()

    def __bytes__(self) -> bytes:
        return self._repr.as_bytes()

    def as_str(self) -> str:
        return self._repr.as_bytes().decode("utf-8")

    def __str__(self) -> str:
        return self.as_str()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.as_str()!r})"

    def __iter__(self) -> Iterator[str]:
        return iter(self.as_str())

    def char_indices(self) -> Iterator[tuple[int, str]]:
        """Yield ``(byte_offset, char)`` pairs."""
        data = self._repr.as_bytes()
        offset = 0
        while offset < len(data):
            width = _char_width(data[offset])
            yield offset, data[offset : offset + width].decode("utf-8")
            offset += width

    def is_char_boundary(self, index: int) -> bool:
        """True if ``index`` is 0, the length, or the start of a scalar value."""
        data = self._repr.as_bytes()
        if index == 0 or index == len(data):
            return True
        if index < 0 or index > len(data):
            return False
        return not _is_continuation(data[index])

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CompactString):
            return self._repr.as_bytes() == other._repr.as_bytes()
        if isinstance(other, str):
            return self.as_str() == other
        return NotImplemented

    def __lt__(self, other: object) -> bool:
        if isinstance(other, CompactString):
            return self._repr.as_bytes() < other._repr.as_bytes()
        if isinstance(other, str):
            return self.as_str() < other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.as_str())

    # ------------------------------------------------------------------
    # Argument checks
    # ------------------------------------------------------------------

    def _check_offset(self, data: bytes, index: int) -> None:
        if index < 0 or index > len(data):
            msg = f"byte index {index} is out of bounds of length {len(data)}"
            raise OutOfBoundsError(msg)
        if index < len(data) and _is_continuation(data[index]):
            msg = f"byte index {index} is not a char boundary"
            raise CharBoundaryError(msg)

    def _check_range(self, data: bytes, start: int, end: int) -> None:
        if start > end:
            msg = f"range start {start} is greater than end {end}"
            raise OutOfBoundsError(msg)
        if end > len(data):
            msg = f"range end {end} is out of bounds of length {len(data)}"
            raise OutOfBoundsError(msg)
        self._check_offset(data, start)
        self._check_offset(data, end)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def push(self, char: str) -> None:
        self.push_str(char)

    def push_str(self, text: str) -> None:
        length = len(self._repr)
        self._repr.splice(length, length, text.encode("utf-8"))

    def extend(self, items: Iterable[str]) -> None:
        """Append every char or string in ``items``."""
        for item in items:
            self.push_str(item)

    def insert(self, index: int, char: str) -> None:
        self.insert_str(index, char)

    def insert_str(self, index: int, text: str) -> None:
        """Insert ``text`` at byte offset ``index``.

        Raises:
            OutOfBoundsError: If index is past the end
            CharBoundaryError: If index splits a scalar value
        """
        self._check_offset(self._repr.as_bytes(), index)
        self._repr.splice(index, index, text.encode("utf-8"))

    def pop(self) -> str | None:
        """Remove and return the last char, or None when empty."""
        data = self._repr.as_bytes()
        if not data:
            return None
        start = len(data) - 1
        while start > 0 and _is_continuation(data[start]):
            start -= 1
        self._repr.truncate(start)
        return data[start:].decode("utf-8")

    def remove(self, index: int) -> str:
        """Remove and return the char starting at byte offset ``index``.

        Raises:
            OutOfBoundsError: If index is not before the end
            CharBoundaryError: If index splits a scalar value
        """
        data = self._repr.as_bytes()
        if index < 0 or index >= len(data):
            msg = f"cannot remove a char at {index} from length {len(data)}"
            raise OutOfBoundsError(msg)
        self._check_offset(data, index)
        end = index + _char_width(data[index])
        self._repr.splice(index, end, b"")
        return data[index:end].decode("utf-8")

    def drain(self, start: int, end: int) -> str:
        """Remove and return the byte range ``[start, end)``."""
        data = self._repr.as_bytes()
        self._check_range(data, start, end)
        self._repr.splice(start, end, b"")
        return data[start:end].decode("utf-8")

    def replace_range(self, start: int, end: int, text: str) -> None:
        data = self._repr.as_bytes()
        self._check_range(data, start, end)
        self._repr.splice(start, end, text.encode("utf-8"))

    def truncate(self, new_len: int) -> None:
        """Shorten to ``new_len`` bytes; no-op if already that short."""
        data = self._repr.as_bytes()
        if new_len >= len(data):
            return
        self._check_offset(data, new_len)
        self._repr.truncate(new_len)

    def split_off(self, at: int) -> Self:
        """Split at byte offset ``at``, returning the tail.

        The remaining head keeps its capacity.
        """
        data = self._repr.as_bytes()
        self._check_offset(data, at)
        tail = type(self)._from_repr(Repr.from_bytes(data[at:]))
        self._repr.truncate(at)
        return tail

    def clear(self) -> None:
        self._repr.clear()

    def reserve(self, additional: int) -> None:
        """Ensure room for ``additional`` more bytes.

        Raises:
            CapacityOverflowError: If the new capacity exceeds MAX_CAPACITY
        """
        self._repr.reserve(additional)

    def shrink_to_fit(self) -> None:
        self._repr.shrink_to(0)

    def shrink_to(self, min_capacity: int) -> None:
        self._repr.shrink_to(min_capacity)

    def retain(self, predicate: Callable[[str], bool]) -> None:
        """Keep only the chars for which ``predicate`` returns True."""
        kept = "".join(char for char in self.as_str() if predicate(char))
        self._repr.splice(0, len(self._repr), kept.encode("utf-8"))

    def make_ascii_uppercase(self) -> None:
        data = self._repr.as_bytes()
        self._repr.make_owned()
        self._repr.write(0, data.upper())

    def repeat(self, times: int) -> Self:
        """New string holding the content ``times`` times over.

        Raises:
            CapacityOverflowError: If the result would exceed MAX_CAPACITY
        """
        data = self._repr.as_bytes()
        if len(data) * times > MAX_CAPACITY:
            msg = f"repeating {len(data)} bytes {times} times overflows capacity"
            raise CapacityOverflowError(msg)
        return type(self)._from_repr(Repr.from_bytes(data * times))

    def zeroize(self) -> None:
        """Overwrite the owned bytes with zero and empty the string."""
        self._repr.zeroize()

    # ------------------------------------------------------------------
    # Conversion
    # ------------------------------------------------------------------

    def into_bytes(self) -> bytearray:
        """Move the content out as an owned byte buffer, leaving this empty."""
        data = bytearray(self._repr.as_bytes())
        self._repr = Repr()
        return data

    def to_bytes(self) -> bytes:
        """Copy the content into an immutable external buffer."""
        return self._repr.as_bytes()

    def into_byte_array(self) -> array.array[int]:
        """Move the content out as a compact byte array, leaving this empty."""
        buffer = array.array("B", self._repr.as_bytes())
        self._repr = Repr()
        return buffer


def to_compact_string(value: object) -> CompactString:
    """Format any value as a CompactString.

    Plain integers take the digit-writing path in compactstr.fmt; everything
    else (bool included, so ``True`` renders as ``"True"``) goes through str().
    """
    if isinstance(value, int) and not isinstance(value, bool):
        return CompactString.from_int(value)
    return CompactString(str(value))
