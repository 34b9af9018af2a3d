"""Tests for the Repr storage layer.

Validates the inline / heap / static shapes, the discriminant byte encoding
and the growth and shrink transitions between them.
"""

from __future__ import annotations

import pytest

from compactstr.constants import (
    HEAP_MASK,
    INLINE_CAPACITY,
    LENGTH_MASK,
    MAX_CAPACITY,
    MIN_HEAP_CAPACITY,
    STATIC_MASK,
)
from compactstr.errors import CapacityOverflowError
from compactstr.repr import Repr, ReprKind

LONG = b"abcdefghijklmnopqrstuvwxyz0123456789"

# ============================================================================
# CONSTRUCTION
# ============================================================================


class TestReprConstruction:
    """Test the shape chosen for new storage."""

    def test_empty_is_inline(self) -> None:
        """A new Repr is an empty inline string."""
        repr_ = Repr()

        assert repr_.kind is ReprKind.INLINE
        assert len(repr_) == 0
        assert repr_.capacity() == INLINE_CAPACITY

    def test_short_bytes_stay_inline(self) -> None:
        """Content up to INLINE_CAPACITY bytes is stored inline."""
        repr_ = Repr.from_bytes(b"hello")

        assert repr_.kind is ReprKind.INLINE
        assert repr_.as_bytes() == b"hello"

    def test_full_inline_uses_final_byte_for_content(self) -> None:
        """At exactly INLINE_CAPACITY bytes the discriminant slot holds content."""
        data = b"x" * INLINE_CAPACITY
        repr_ = Repr.from_bytes(data)

        assert repr_.kind is ReprKind.INLINE
        assert len(repr_) == INLINE_CAPACITY
        assert repr_.as_bytes() == data

    def test_long_bytes_go_to_heap(self) -> None:
        """Content one byte past the threshold is heap allocated, sized exactly."""
        data = b"y" * (INLINE_CAPACITY + 1)
        repr_ = Repr.from_bytes(data)

        assert repr_.kind is ReprKind.HEAP
        assert repr_.capacity() == INLINE_CAPACITY + 1
        assert repr_.as_bytes() == data

    def test_with_capacity_small_is_inline(self) -> None:
        """with_capacity at the threshold does not allocate."""
        assert Repr.with_capacity(INLINE_CAPACITY).kind is ReprKind.INLINE

    def test_with_capacity_large_is_heap(self) -> None:
        """with_capacity above the threshold allocates exactly that much."""
        repr_ = Repr.with_capacity(100)

        assert repr_.kind is ReprKind.HEAP
        assert repr_.capacity() == 100
        assert len(repr_) == 0

    def test_with_capacity_overflow(self) -> None:
        """Capacities above MAX_CAPACITY are rejected before allocating."""
        with pytest.raises(CapacityOverflowError):
            Repr.with_capacity(MAX_CAPACITY + 1)

    def test_from_static_long_borrows(self) -> None:
        """Long static data is borrowed, not copied."""
        repr_ = Repr.from_static(LONG)

        assert repr_.kind is ReprKind.STATIC
        assert repr_.static_bytes() is LONG
        assert repr_.capacity() == len(LONG)

    def test_from_static_short_is_inlined(self) -> None:
        """Short static data is copied inline."""
        repr_ = Repr.from_static(b"short")

        assert repr_.kind is ReprKind.INLINE
        assert repr_.static_bytes() is None


# ============================================================================
# DISCRIMINANT BYTE
# ============================================================================


class TestReprDiscriminant:
    """Test the encoding of the final inline byte."""

    def test_length_tag(self) -> None:
        """Short inline strings store LENGTH_MASK + length in the final byte."""
        repr_ = Repr.from_bytes(b"abc")

        assert repr_._inline[-1] == LENGTH_MASK + 3

    def test_heap_tag(self) -> None:
        """Heap strings store HEAP_MASK in the final byte."""
        assert Repr.from_bytes(LONG)._inline[-1] == HEAP_MASK

    def test_static_tag(self) -> None:
        """Borrowed strings store STATIC_MASK in the final byte."""
        assert Repr.from_static(LONG)._inline[-1] == STATIC_MASK


# ============================================================================
# COLLECT
# ============================================================================


class TestReprCollect:
    """Test collecting unvalidated chunks."""

    def test_collect_joins_chunks(self) -> None:
        """Chunks are concatenated in order."""
        repr_ = Repr.collect([b"ab", b"", memoryview(b"cd"), bytearray(b"e")])

        assert repr_.as_bytes() == b"abcde"
        assert repr_.kind is ReprKind.INLINE

    def test_collect_tag_colliding_final_byte_goes_to_heap(self) -> None:
        """A byte >= LENGTH_MASK completing the inline buffer forces heap storage."""
        data = b"a" * (INLINE_CAPACITY - 1) + bytes([HEAP_MASK])
        repr_ = Repr.collect([data])

        assert repr_.kind is ReprKind.HEAP
        assert repr_.as_bytes() == data
        assert len(repr_) == INLINE_CAPACITY

    def test_collect_across_threshold(self) -> None:
        """Chunks crossing the threshold spill to a buffer of MIN_HEAP_CAPACITY."""
        repr_ = Repr.collect([b"a" * 20, b"b" * 10])

        assert repr_.kind is ReprKind.HEAP
        assert repr_.capacity() == MIN_HEAP_CAPACITY
        assert repr_.as_bytes() == b"a" * 20 + b"b" * 10


# ============================================================================
# GROWTH AND SHRINK
# ============================================================================


class TestReprReserve:
    """Test reserve() transitions."""

    def test_reserve_within_inline_is_noop(self) -> None:
        """Reserving room that still fits inline keeps inline storage."""
        repr_ = Repr.from_bytes(b"abc")
        repr_.reserve(INLINE_CAPACITY - 3)

        assert repr_.kind is ReprKind.INLINE

    def test_reserve_spills_inline(self) -> None:
        """Reserving past the threshold allocates at least MIN_HEAP_CAPACITY."""
        repr_ = Repr.from_bytes(b"abc")
        repr_.reserve(INLINE_CAPACITY)

        assert repr_.kind is ReprKind.HEAP
        assert repr_.capacity() == MIN_HEAP_CAPACITY
        assert repr_.as_bytes() == b"abc"

    def test_reserve_heap_grows_by_half(self) -> None:
        """A full heap buffer grows by at least 50%."""
        repr_ = Repr.from_bytes(b"z" * 40)
        repr_.reserve(1)

        assert repr_.capacity() == 60

    def test_reserve_static_makes_owned(self) -> None:
        """Reserving on borrowed storage copies it to the heap."""
        repr_ = Repr.from_static(LONG)
        repr_.reserve(4)

        assert repr_.kind is ReprKind.HEAP
        assert repr_.capacity() == len(LONG) + 4
        assert repr_.as_bytes() == LONG

    def test_reserve_overflow(self) -> None:
        """Reserving past MAX_CAPACITY is rejected and leaves storage untouched."""
        repr_ = Repr.from_bytes(b"abc")

        with pytest.raises(CapacityOverflowError):
            repr_.reserve(MAX_CAPACITY)

        assert repr_.as_bytes() == b"abc"
        assert repr_.kind is ReprKind.INLINE


class TestReprShrink:
    """Test shrink_to() transitions."""

    def test_shrink_heap_back_inline(self) -> None:
        """Shrinking heap storage whose content fits moves it inline."""
        repr_ = Repr.from_bytes(LONG)
        repr_.truncate(5)
        repr_.shrink_to(0)

        assert repr_.kind is ReprKind.INLINE
        assert repr_.as_bytes() == LONG[:5]

    def test_shrink_heap_keeps_min_capacity(self) -> None:
        """shrink_to never goes below min_capacity."""
        repr_ = Repr.with_capacity(200)
        repr_.splice(0, 0, b"a" * 30)
        repr_.shrink_to(100)

        assert repr_.kind is ReprKind.HEAP
        assert repr_.capacity() == 100

    def test_shrink_inline_is_noop(self) -> None:
        repr_ = Repr.from_bytes(b"abc")
        repr_.shrink_to(0)

        assert repr_.kind is ReprKind.INLINE

    def test_shrink_static_is_noop(self) -> None:
        repr_ = Repr.from_static(LONG)
        repr_.shrink_to(0)

        assert repr_.kind is ReprKind.STATIC


# ============================================================================
# EDITING
# ============================================================================


class TestReprEditing:
    """Test splice, truncate, clear and zeroize."""

    def test_splice_insert_middle(self) -> None:
        repr_ = Repr.from_bytes(b"held")
        repr_.splice(2, 2, b"llo wor")

        assert repr_.as_bytes() == b"hello world"

    def test_splice_remove_from_full_inline(self) -> None:
        """Shrinking a full inline string rewrites the length tag."""
        repr_ = Repr.from_bytes(b"x" * INLINE_CAPACITY)
        repr_.splice(0, 4, b"")

        assert len(repr_) == INLINE_CAPACITY - 4
        assert repr_._inline[-1] == LENGTH_MASK + INLINE_CAPACITY - 4

    def test_splice_static_copies_first(self) -> None:
        """Editing borrowed storage never writes into the borrowed buffer."""
        source = bytes(LONG)
        repr_ = Repr.from_static(source)
        repr_.splice(0, 3, b"")

        assert repr_.kind is ReprKind.HEAP
        assert repr_.as_bytes() == LONG[3:]
        assert source == LONG

    def test_truncate_static_reborrows(self) -> None:
        """Truncating borrowed storage keeps borrowing a shorter slice."""
        repr_ = Repr.from_static(LONG)
        repr_.truncate(30)

        assert repr_.kind is ReprKind.STATIC
        assert repr_.as_bytes() == LONG[:30]

    def test_truncate_static_to_inline(self) -> None:
        """A borrowed slice that fits is copied inline."""
        repr_ = Repr.from_static(LONG)
        repr_.truncate(10)

        assert repr_.kind is ReprKind.INLINE
        assert repr_.as_bytes() == LONG[:10]

    def test_truncate_heap_keeps_capacity(self) -> None:
        repr_ = Repr.from_bytes(LONG)
        repr_.truncate(3)

        assert repr_.kind is ReprKind.HEAP
        assert repr_.capacity() == len(LONG)

    def test_clear_static_resets_inline(self) -> None:
        repr_ = Repr.from_static(LONG)
        repr_.clear()

        assert repr_.kind is ReprKind.INLINE
        assert len(repr_) == 0

    def test_zeroize_heap_wipes_buffer(self) -> None:
        """Zeroize overwrites every heap byte, spare capacity included."""
        repr_ = Repr.from_bytes(LONG)
        repr_.reserve(10)
        buffer = repr_._owned_buffer()
        repr_.zeroize()

        assert len(repr_) == 0
        assert not any(buffer)

    def test_zeroize_static_drops_reference(self) -> None:
        repr_ = Repr.from_static(LONG)
        repr_.zeroize()

        assert repr_.kind is ReprKind.INLINE
        assert repr_.static_bytes() is None

    def test_clone_is_independent(self) -> None:
        repr_ = Repr.from_bytes(LONG)
        copy = repr_.clone()
        repr_.truncate(1)

        assert copy.as_bytes() == LONG

    def test_clone_reinlines_short_heap(self) -> None:
        """Cloning heap storage whose content fits yields inline storage."""
        repr_ = Repr.from_bytes(LONG)
        repr_.truncate(4)

        assert repr_.clone().kind is ReprKind.INLINE
