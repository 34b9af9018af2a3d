"""Storage layer of CompactString.

A Repr owns the bytes of one string in one of three shapes:

- inline: a fixed INLINE_CAPACITY-byte buffer whose final byte doubles as
  the discriminant / length (see compactstr.constants for the encoding)
- heap: a separately allocated bytearray plus an explicit length
- static: a borrowed immutable ``bytes`` object, never copied until the
  first mutation

Repr knows nothing about UTF-8. Callers (CompactString) validate input and
check scalar-value boundaries before calling any mutating method here.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

from compactstr.constants import (
    HEAP_MASK,
    INLINE_CAPACITY,
    LENGTH_MASK,
    MAX_CAPACITY,
    MIN_HEAP_CAPACITY,
    STATIC_MASK,
)
from compactstr.errors import CapacityOverflowError

if TYPE_CHECKING:
    from collections.abc import Iterable

__all__ = ["Repr", "ReprKind"]


class ReprKind(StrEnum):
    """Storage shape of a Repr.

    StrEnum provides automatic string conversion: str(ReprKind.HEAP) == "heap"
    """

    INLINE = "inline"
    """Bytes live in the fixed inline buffer"""

    HEAP = "heap"
    """Bytes live in a separately allocated buffer"""

    STATIC = "static"
    """Bytes are borrowed from an immutable buffer"""


class Repr:
    """Inline / heap / borrowed byte storage with a discriminant byte."""

    __slots__ = ("_heap", "_heap_len", "_inline")

    _inline: bytearray
    _heap: bytearray | bytes | None
    _heap_len: int

    def __init__(self) -> None:
        self._inline = bytearray(INLINE_CAPACITY)
        self._inline[-1] = LENGTH_MASK
        self._heap = None
        self._heap_len = 0

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def with_capacity(cls, capacity: int) -> Repr:
        """Create an empty Repr able to hold ``capacity`` bytes.

        Raises:
            CapacityOverflowError: If capacity exceeds MAX_CAPACITY
        """
        if capacity > MAX_CAPACITY:
            msg = f"capacity {capacity} exceeds {MAX_CAPACITY}"
            raise CapacityOverflowError(msg)
        repr_ = cls()
        if capacity > INLINE_CAPACITY:
            repr_._reallocate(capacity)
        return repr_

    @classmethod
    def from_bytes(cls, data: bytes) -> Repr:
        """Copy valid UTF-8 ``data`` into a new Repr sized to fit."""
        repr_ = cls.with_capacity(len(data))
        repr_.write(0, data)
        repr_.set_len(len(data))
        return repr_

    @classmethod
    def from_static(cls, data: bytes) -> Repr:
        """Borrow ``data`` without copying when it does not fit inline."""
        if len(data) <= INLINE_CAPACITY:
            return cls.from_bytes(data)
        repr_ = cls()
        repr_._heap = data
        repr_._heap_len = len(data)
        repr_._inline[-1] = STATIC_MASK
        return repr_

    @classmethod
    def collect(cls, chunks: Iterable[bytes | bytearray | memoryview]) -> Repr:
        """Collect unvalidated chunks into a new Repr.

        The caller validates the result. Because the bytes are not yet known
        to be UTF-8, a chunk that would complete the inline buffer with a
        byte >= LENGTH_MASK forces the Repr onto the heap first; otherwise
        that byte would be read back as the discriminant.
        """
        repr_ = cls()
        written = 0
        for chunk in chunks:
            data = bytes(chunk)
            size = len(data)
            if not size:
                continue
            if (
                written < INLINE_CAPACITY
                and written + size == INLINE_CAPACITY
                and data[-1] >= LENGTH_MASK
            ):
                repr_.reserve(INLINE_CAPACITY + 1)
            repr_.reserve(size)
            repr_.write(written, data)
            written += size
            repr_.set_len(written)
        return repr_

    def clone(self) -> Repr:
        """Return an independent copy; owned copies are re-inlined if possible."""
        if self.kind is ReprKind.STATIC:
            return Repr.from_static(self._static_bytes())
        return Repr.from_bytes(self.as_bytes())

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def kind(self) -> ReprKind:
        """Storage shape, read from the discriminant byte."""
        tag = self._inline[-1]
        if tag == HEAP_MASK:
            return ReprKind.HEAP
        if tag == STATIC_MASK:
            return ReprKind.STATIC
        return ReprKind.INLINE

    def __len__(self) -> int:
        tag = self._inline[-1]
        if tag >= HEAP_MASK:
            return self._heap_len
        if tag >= LENGTH_MASK:
            return tag - LENGTH_MASK
        return INLINE_CAPACITY

    def capacity(self) -> int:
        """Bytes the current storage can hold without reallocating."""
        match self.kind:
            case ReprKind.INLINE:
                return INLINE_CAPACITY
            case ReprKind.HEAP:
                return len(self._owned_buffer())
            case _:
                return self._heap_len

    def as_bytes(self) -> bytes:
        """Copy of the content bytes."""
        length = len(self)
        if self._inline[-1] >= HEAP_MASK:
            heap = self._heap
            if heap is None:
                msg = "discriminant names a buffer that does not exist"
                raise RuntimeError(msg)
            return bytes(memoryview(heap)[:length])
        return bytes(self._inline[:length])

    def static_bytes(self) -> bytes | None:
        """The borrowed buffer, or None when the bytes are owned."""
        if self.kind is ReprKind.STATIC:
            return self._static_bytes()
        return None

    # ------------------------------------------------------------------
    # Mutation primitives
    # ------------------------------------------------------------------

    def reserve(self, additional: int) -> None:
        """Make room for ``additional`` more bytes past the current length.

        Raises:
            CapacityOverflowError: If length + additional exceeds MAX_CAPACITY
        """
        length = len(self)
        needed = length + additional
        if needed > MAX_CAPACITY:
            msg = f"reserving {additional} bytes overflows capacity"
            raise CapacityOverflowError(msg)
        match self.kind:
            case ReprKind.STATIC:
                self._reallocate(max(needed, length))
            case ReprKind.INLINE if needed > INLINE_CAPACITY:
                self._reallocate(max(needed, MIN_HEAP_CAPACITY))
            case ReprKind.HEAP:
                capacity = len(self._owned_buffer())
                if needed > capacity:
                    self._reallocate(max(needed, capacity + capacity // 2))

    def make_owned(self) -> None:
        """Copy a borrowed buffer into owned storage; no-op otherwise."""
        if self.kind is ReprKind.STATIC:
            self._reallocate(len(self))

    def write(self, offset: int, data: bytes) -> None:
        """Copy ``data`` into owned storage at ``offset``.

        Capacity must already cover ``offset + len(data)``; call set_len()
        afterwards.
        """
        self._owned_buffer()[offset : offset + len(data)] = data

    def set_len(self, length: int) -> None:
        """Record a new content length. Bytes up to ``length`` must be written."""
        match self.kind:
            case ReprKind.INLINE:
                # At full length the final byte already holds content.
                if length < INLINE_CAPACITY:
                    self._inline[-1] = LENGTH_MASK + length
            case ReprKind.HEAP:
                self._heap_len = length
            case _:
                msg = "cannot set the length of a borrowed buffer"
                raise TypeError(msg)

    def splice(self, start: int, end: int, data: bytes) -> None:
        """Replace bytes ``[start, end)`` with ``data``.

        Bounds are the caller's responsibility.
        """
        length = len(self)
        new_length = length - (end - start) + len(data)
        if new_length > length:
            self.reserve(new_length - length)
        else:
            self.make_owned()
        buffer = self._owned_buffer()
        tail = bytes(buffer[end:length])
        middle = start + len(data)
        buffer[start:middle] = data
        buffer[middle : middle + len(tail)] = tail
        self.set_len(new_length)

    def truncate(self, length: int) -> None:
        """Drop every byte past ``length``.

        A borrowed buffer is re-borrowed as a shorter slice rather than
        copied; owned storage keeps its capacity.
        """
        if self.kind is ReprKind.STATIC:
            shorter = Repr.from_static(self._static_bytes()[:length])
            self._inline = shorter._inline
            self._heap = shorter._heap
            self._heap_len = shorter._heap_len
            return
        self.set_len(length)

    def clear(self) -> None:
        """Drop all content; owned storage keeps its capacity."""
        if self.kind is ReprKind.STATIC:
            self._reset()
        else:
            self.set_len(0)

    def shrink_to(self, min_capacity: int) -> None:
        """Shrink heap storage towards ``max(len, min_capacity)``.

        Moves back inline when the result fits. Inline and borrowed storage
        are left alone.
        """
        if self.kind is not ReprKind.HEAP:
            return
        target = max(len(self), min_capacity)
        if target < len(self._owned_buffer()):
            self._reallocate(target)

    def zeroize(self) -> None:
        """Overwrite every owned byte (including spare capacity) with zero."""
        kind = self.kind
        self._inline[:] = bytes(INLINE_CAPACITY)
        if kind is ReprKind.HEAP:
            heap = self._heap
            if isinstance(heap, bytearray):
                heap[:] = bytes(len(heap))
            self._heap_len = 0
            self._inline[-1] = HEAP_MASK
        else:
            # A borrowed buffer is not ours to wipe; only the reference goes.
            self._heap = None
            self._heap_len = 0
            self._inline[-1] = LENGTH_MASK

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _reset(self) -> None:
        self._heap = None
        self._heap_len = 0
        self._inline[-1] = LENGTH_MASK

    def _owned_buffer(self) -> bytearray:
        tag = self._inline[-1]
        if tag == STATIC_MASK:
            msg = "borrowed buffer is read-only"
            raise TypeError(msg)
        if tag == HEAP_MASK:
            heap = self._heap
            if not isinstance(heap, bytearray):
                msg = "discriminant names a buffer that does not exist"
                raise RuntimeError(msg)
            return heap
        return self._inline

    def _static_bytes(self) -> bytes:
        heap = self._heap
        if not isinstance(heap, bytes):
            msg = "discriminant names a buffer that does not exist"
            raise RuntimeError(msg)
        return heap

    def _reallocate(self, capacity: int) -> None:
        """Move the content into storage of exactly ``capacity`` bytes.

        Capacities up to INLINE_CAPACITY go inline.
        """
        data = self.as_bytes()
        length = len(data)
        if capacity <= INLINE_CAPACITY:
            self._heap = None
            self._heap_len = 0
            self._inline[:length] = data
            self._inline[-1] = LENGTH_MASK + length if length < INLINE_CAPACITY else data[-1]
            return
        heap = bytearray(capacity)
        heap[:length] = data
        self._heap = heap
        self._heap_len = length
        self._inline[-1] = HEAP_MASK
