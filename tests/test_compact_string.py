"""Tests for the CompactString public API.

Covers construction, inspection, byte-offset editing with its rejection
precedence, capacity management and the conversions.
"""

from __future__ import annotations

import array

import pytest
from hypothesis import event, given
from hypothesis import strategies as st

from compactstr import (
    INLINE_CAPACITY,
    MAX_CAPACITY,
    CapacityOverflowError,
    CharBoundaryError,
    CompactString,
    CompactStrError,
    OutOfBoundsError,
    ReprKind,
    Utf8Error,
    to_compact_string,
)
from tests.strategies import any_text, threshold_text

LONG = "a string that is clearly longer than the inline buffer"

# ============================================================================
# CONSTRUCTION
# ============================================================================


class TestConstruction:
    """Test the constructors and the storage shape they choose."""

    def test_default_is_empty_inline(self) -> None:
        s = CompactString()

        assert s.is_empty()
        assert s.kind is ReprKind.INLINE

    def test_from_str_short(self) -> None:
        s = CompactString.from_str("hello")

        assert str(s) == "hello"
        assert not s.is_heap_allocated()

    def test_from_str_long(self) -> None:
        s = CompactString.from_str(LONG)

        assert str(s) == LONG
        assert s.is_heap_allocated()

    def test_from_static_str_long_borrows(self) -> None:
        s = CompactString.from_static_str(LONG)

        assert s.kind is ReprKind.STATIC
        assert s.as_static_str() == LONG

    def test_from_static_str_short_is_owned(self) -> None:
        s = CompactString.from_static_str("tiny")

        assert s.kind is ReprKind.INLINE
        assert s.as_static_str() is None

    def test_from_utf8_valid(self) -> None:
        assert CompactString.from_utf8("héllo".encode()) == "héllo"

    def test_from_utf8_invalid_reports_valid_prefix(self) -> None:
        """Utf8Error.valid_up_to is the length of the longest valid prefix."""
        with pytest.raises(Utf8Error) as exc_info:
            CompactString.from_utf8(b"ab\xc3")

        assert exc_info.value.valid_up_to == 2

    def test_from_utf8_rejects_surrogate(self) -> None:
        with pytest.raises(Utf8Error):
            CompactString.from_utf8(b"\xed\xa0\x80")

    def test_from_utf8_buf_joins_chunks(self) -> None:
        s = CompactString.from_utf8_buf([b"h\xc3", b"\xa9llo"])

        assert s == "héllo"

    def test_from_utf8_buf_tag_colliding_input_rejected(self) -> None:
        """Inline-length input ending in a discriminant byte is invalid, not misread."""
        data = b"a" * (INLINE_CAPACITY - 1) + b"\xfe"

        with pytest.raises(Utf8Error) as exc_info:
            CompactString.from_utf8_buf([data])

        assert exc_info.value.valid_up_to == INLINE_CAPACITY - 1

    def test_from_fill(self) -> None:
        s = CompactString.from_fill("€", 3)

        assert s == "€€€"
        assert len(s) == 9

    def test_from_fill_overflow(self) -> None:
        with pytest.raises(CapacityOverflowError):
            CompactString.from_fill("€", MAX_CAPACITY)

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (0, "0"),
            (-1, "-1"),
            (2**63 - 1, "9223372036854775807"),
            (-(2**63), "-9223372036854775808"),
            (10**24, "1" + "0" * 24),
        ],
    )
    def test_from_int(self, value: int, expected: str) -> None:
        assert CompactString.from_int(value) == expected

    def test_from_int_allocation_follows_width(self) -> None:
        """Integers rendering to more than INLINE_CAPACITY chars go to the heap."""
        assert CompactString.from_int(10**23).kind is ReprKind.INLINE
        assert CompactString.from_int(10**24).kind is ReprKind.HEAP

    def test_with_capacity(self) -> None:
        s = CompactString.with_capacity(100)

        assert s.is_empty()
        assert s.capacity() == 100

    def test_with_capacity_overflow(self) -> None:
        with pytest.raises(CapacityOverflowError):
            CompactString.with_capacity(MAX_CAPACITY + 1)

    def test_to_compact_string(self) -> None:
        assert to_compact_string(42) == "42"
        assert to_compact_string(True) == "True"
        assert to_compact_string(1.5) == "1.5"

    @given(text=threshold_text())
    def test_from_str_roundtrip(self, text: str) -> None:
        """Content survives construction; shape follows the encoded length."""
        s = CompactString(text)
        size = len(text.encode("utf-8"))
        event(f"kind={s.kind}")

        assert s.as_str() == text
        assert len(s) == size
        assert (s.kind is ReprKind.INLINE) == (size <= INLINE_CAPACITY)


# ============================================================================
# INSPECTION
# ============================================================================


class TestInspection:
    """Test read-only accessors and comparisons."""

    def test_char_indices(self) -> None:
        assert list(CompactString("aé€😀").char_indices()) == [
            (0, "a"),
            (1, "é"),
            (3, "€"),
            (6, "😀"),
        ]

    def test_iteration(self) -> None:
        assert list(CompactString("abc")) == ["a", "b", "c"]

    def test_is_char_boundary(self) -> None:
        s = CompactString("é")

        assert s.is_char_boundary(0)
        assert not s.is_char_boundary(1)
        assert s.is_char_boundary(2)
        assert not s.is_char_boundary(3)

    def test_comparisons(self) -> None:
        a, b = CompactString("apple"), CompactString("banana")

        assert a < b
        assert b > "apple"
        assert a <= CompactString("apple")
        assert a != b

    def test_not_equal_to_other_types(self) -> None:
        assert CompactString("1") != 1

    def test_hash_matches_str(self) -> None:
        assert hash(CompactString(LONG)) == hash(LONG)
        assert {CompactString("k"): 1}["k"] == 1

    def test_repr(self) -> None:
        assert repr(CompactString("x")) == "CompactString('x')"

    def test_bytes(self) -> None:
        assert bytes(CompactString("é")) == b"\xc3\xa9"

    @given(text=any_text)
    def test_ordering_matches_str(self, text: str) -> None:
        """Byte order of UTF-8 matches code point order of str."""
        other = "m" * 3
        assert (CompactString(text) < CompactString(other)) == (text < other)


# ============================================================================
# EDITING
# ============================================================================


class TestPushAndInsert:
    """Test appending and inserting."""

    def test_push_str_spills_to_heap(self) -> None:
        s = CompactString("x" * INLINE_CAPACITY)
        s.push("y")

        assert s.is_heap_allocated()
        assert s == "x" * INLINE_CAPACITY + "y"

    def test_extend(self) -> None:
        s = CompactString("a")
        s.extend(["b", "cd", "é"])

        assert s == "abcdé"

    def test_insert_str(self) -> None:
        s = CompactString("hd")
        s.insert_str(1, "ello worl")

        assert s == "hello world"

    def test_insert_at_length(self) -> None:
        s = CompactString("ab")
        s.insert(2, "c")

        assert s == "abc"

    def test_insert_out_of_bounds(self) -> None:
        s = CompactString("ab")

        with pytest.raises(OutOfBoundsError):
            s.insert(3, "c")

    def test_insert_inside_scalar(self) -> None:
        s = CompactString("é")

        with pytest.raises(CharBoundaryError):
            s.insert(1, "c")
        assert s == "é"

    def test_insert_into_static_copies(self) -> None:
        s = CompactString.from_static_str(LONG)
        s.insert_str(0, ">")

        assert s.is_heap_allocated()
        assert s == ">" + LONG


class TestRemoval:
    """Test pop, remove, drain, truncate, split_off and clear."""

    def test_pop(self) -> None:
        s = CompactString("a€")

        assert s.pop() == "€"
        assert s.pop() == "a"
        assert s.pop() is None

    def test_remove(self) -> None:
        s = CompactString("aé€")

        assert s.remove(1) == "é"
        assert s == "a€"

    def test_remove_at_length_is_out_of_bounds(self) -> None:
        with pytest.raises(OutOfBoundsError):
            CompactString("ab").remove(2)

    def test_remove_inside_scalar(self) -> None:
        with pytest.raises(CharBoundaryError):
            CompactString("€").remove(1)

    def test_drain(self) -> None:
        s = CompactString("hello world")

        assert s.drain(5, 11) == " world"
        assert s == "hello"

    def test_drain_keeps_capacity(self) -> None:
        s = CompactString(LONG)
        before = s.capacity()
        s.drain(0, 10)

        assert s.capacity() == before

    def test_range_precedence_start_after_end(self) -> None:
        """start > end is OutOfBounds even when start is also inside a scalar."""
        with pytest.raises(OutOfBoundsError):
            CompactString("é").drain(1, 0)

    def test_range_precedence_end_past_length(self) -> None:
        """end > len is OutOfBounds even when start is inside a scalar."""
        with pytest.raises(OutOfBoundsError):
            CompactString("é").drain(1, 5)

    def test_range_start_not_boundary(self) -> None:
        with pytest.raises(CharBoundaryError):
            CompactString("éa").drain(1, 2)

    def test_replace_range(self) -> None:
        s = CompactString("hello world")
        s.replace_range(0, 5, "goodbye")

        assert s == "goodbye world"

    def test_truncate(self) -> None:
        s = CompactString("hello")
        s.truncate(2)

        assert s == "he"

    def test_truncate_past_length_is_noop(self) -> None:
        s = CompactString("hello")
        s.truncate(2**64 - 1)

        assert s == "hello"

    def test_truncate_inside_scalar(self) -> None:
        with pytest.raises(CharBoundaryError):
            CompactString("aé").truncate(2)

    def test_split_off(self) -> None:
        s = CompactString(LONG)
        capacity = s.capacity()
        tail = s.split_off(10)

        assert s == LONG[:10]
        assert tail == LONG[10:]
        assert s.capacity() == capacity
        assert tail.is_heap_allocated()

    def test_split_off_out_of_bounds(self) -> None:
        with pytest.raises(OutOfBoundsError):
            CompactString("ab").split_off(3)

    def test_clear(self) -> None:
        s = CompactString(LONG)
        s.clear()

        assert s.is_empty()
        assert s.is_heap_allocated()

    def test_rejected_edit_leaves_string_unchanged(self) -> None:
        s = CompactString("abc")

        with pytest.raises(CompactStrError):
            s.replace_range(1, 9, "zzz")
        assert s == "abc"


# ============================================================================
# CAPACITY
# ============================================================================


class TestCapacity:
    """Test reserve and shrink."""

    def test_reserve(self) -> None:
        s = CompactString("abc")
        s.reserve(100)

        assert s.capacity() >= 103
        assert s == "abc"

    def test_reserve_overflow(self) -> None:
        with pytest.raises(CapacityOverflowError):
            CompactString("abc").reserve(MAX_CAPACITY)

    def test_shrink_to_fit_reinlines(self) -> None:
        s = CompactString(LONG)
        s.truncate(4)
        s.shrink_to_fit()

        assert s.kind is ReprKind.INLINE
        assert s == LONG[:4]

    def test_shrink_to(self) -> None:
        s = CompactString.with_capacity(500)
        s.push_str(LONG)
        s.shrink_to(200)

        assert s.capacity() == 200

    def test_shrink_static_keeps_borrow(self) -> None:
        s = CompactString.from_static_str(LONG)
        s.shrink_to_fit()

        assert s.kind is ReprKind.STATIC


# ============================================================================
# TRANSFORMS
# ============================================================================


class TestTransforms:
    """Test retain, make_ascii_uppercase, repeat and zeroize."""

    def test_retain(self) -> None:
        s = CompactString("a1b2c3")
        s.retain(str.isalpha)

        assert s == "abc"

    def test_make_ascii_uppercase_only_touches_ascii(self) -> None:
        s = CompactString("straße é")
        s.make_ascii_uppercase()

        assert s == "STRAßE é"

    def test_repeat(self) -> None:
        assert CompactString("ab").repeat(3) == "ababab"
        assert CompactString("ab").repeat(0) == ""

    def test_repeat_overflow(self) -> None:
        with pytest.raises(CapacityOverflowError):
            CompactString("ab").repeat(MAX_CAPACITY)

    def test_zeroize(self) -> None:
        s = CompactString(LONG)
        s.zeroize()

        assert s.is_empty()


# ============================================================================
# CONVERSION
# ============================================================================


class TestConversion:
    """Test moving content out and back in."""

    def test_into_bytes_empties_source(self) -> None:
        s = CompactString("héllo")
        data = s.into_bytes()

        assert data == bytearray("héllo".encode())
        assert s.is_empty()

    def test_to_bytes_keeps_source(self) -> None:
        s = CompactString("abc")

        assert s.to_bytes() == b"abc"
        assert s == "abc"

    def test_byte_array_roundtrip(self) -> None:
        s = CompactString(LONG)
        buffer = s.into_byte_array()

        assert isinstance(buffer, array.array)
        assert CompactString.from_byte_array(buffer) == LONG
        assert s.is_empty()

    @given(text=any_text, cut=st.integers(0, 200))
    def test_split_then_concatenate(self, text: str, cut: int) -> None:
        """split_off at any boundary followed by push_str restores the content."""
        s = CompactString(text)
        boundaries = [offset for offset, _ in s.char_indices()] + [len(s)]
        at = boundaries[cut % len(boundaries)]
        tail = s.split_off(at)
        s.push_str(tail.as_str())

        assert s == text
