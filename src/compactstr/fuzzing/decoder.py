"""Operation decoder: engine bytes to a finite operation sequence.

decode() reads one discriminant byte per operation, selects a kind
uniformly over OPERATION_TYPES, then reads the kind's arguments from the
same ByteCursor. Argument generation is biased toward the places where an
inline-optimized string goes wrong:

- lengths one below, at, and one above the inline threshold
- byte strings that are valid UTF-8 except for a crafted tail
- inline-length content whose final byte would collide with a
  discriminant byte (0xC0..0xFF) if written unvalidated
- integers whose decimal rendering straddles the inline threshold
- raw byte offsets past the end and overflow-sized capacities

Decoding is total: every byte string, including the empty one, maps to a
(possibly empty) sequence. It never touches a Target or an Oracle.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from compactstr.compact import CompactString
from compactstr.constants import MAX_CAPACITY
from compactstr.fuzzing.config import HarnessConfig
from compactstr.fuzzing.cursor import ByteCursor
from compactstr.fuzzing.operations import (
    OPERATION_TYPES,
    CheckEquality,
    CheckSubslice,
    Drain,
    ExtendChars,
    ExtendStr,
    FromFill,
    FromInteger,
    FromStaticStr,
    FromText,
    FromUtf8,
    FromUtf8Buf,
    Index,
    Insert,
    InsertStr,
    Pop,
    Push,
    PushStr,
    Remove,
    Repeat,
    ReplaceRange,
    Reserve,
    Retain,
    RoundTripBytesBuf,
    ShrinkTo,
    SplitOff,
    Truncate,
    WithCapacity,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from compactstr.fuzzing.operations import Operation

__all__ = ["DecodedSequence", "decode"]

logger = logging.getLogger(__name__)

# ============================================================================
# EDGE-CASE TABLES
# ============================================================================

# Raw offsets selected by index bytes 0xF8..0xFF.
_EXTREME_OFFSETS: tuple[int, ...] = (
    2**16,
    2**31,
    2**32 - 1,
    2**32,
    2**63 - 1,
    2**63,
    2**64 - 2,
    2**64 - 1,
)

# Discriminant bytes at or above this are skipped so every kind is equally likely.
_DISCRIMINANT_LIMIT = 256 - 256 % len(OPERATION_TYPES)

# Index bytes with the high bit set and a low part below this are raw offsets.
_RAW_OFFSET_LIMIT = 0x78

# Capacities that must be rejected with CapacityOverflowError.
_OVERFLOW_CAPACITIES: tuple[int, ...] = (
    MAX_CAPACITY + 1,
    2**63 + 2**62,
    2**64 - 1,
)

# Tails that make an otherwise valid byte string invalid UTF-8: lone
# continuation, truncated 2-byte lead, encoded surrogate, overlong '/',
# above U+10FFFF, bytes that never occur, truncated 3-byte sequence.
_INVALID_TAILS: tuple[bytes, ...] = (
    b"\x80",
    b"\xc3",
    b"\xed\xa0\x80",
    b"\xc0\xaf",
    b"\xf4\x90\x80\x80",
    b"\xfe",
    b"\xff",
    b"\xe2\x82",
)

# Bytes placed in the final inline slot: the heap and static discriminants,
# the smallest length tag, a tag past the largest, and the ASCII edges.
_TAG_POSITION_BYTES: tuple[int, ...] = (0xFE, 0xFF, 0xC0, 0xD8, 0x7F, 0x80)

# Integers around i64 / u64 limits and around 24 rendered characters.
_EDGE_INTEGERS: tuple[int, ...] = (
    0,
    -1,
    2**63 - 1,
    -(2**63),
    2**64 - 1,
    10**23,
    10**24 - 1,
    10**24,
    -(10**22),
)


# ============================================================================
# DECODED SEQUENCE
# ============================================================================


@dataclass(frozen=True, slots=True)
class DecodedSequence:
    """Operations decoded from one input, with their input offsets.

    Attributes:
        operations: The decoded operations, in replay order
        offsets: End offset in ``source`` of each operation's bytes
        source: The complete input buffer
        truncated: True if an operation was dropped because its arguments
            ran past the end of input, or max_operations cut decoding short
    """

    operations: tuple[Operation, ...]
    offsets: tuple[int, ...]
    source: bytes
    truncated: bool = False

    def __len__(self) -> int:
        return len(self.operations)

    def __iter__(self) -> Iterator[Operation]:
        return iter(self.operations)

    def __getitem__(self, index: int) -> Operation:
        return self.operations[index]

    def reproducer(self, index: int) -> bytes:
        """Input prefix up to and including operation ``index``."""
        return self.source[: self.offsets[index]]


# ============================================================================
# ARGUMENT READERS
# ============================================================================


def _take_byte(cursor: ByteCursor) -> int:
    value = cursor.take_u8()
    return 0 if value is None else value


def _take_kind(cursor: ByteCursor) -> type | None:
    """Next operation kind, or None if the input ends first."""
    while (byte := cursor.take_u8()) is not None:
        if byte < _DISCRIMINANT_LIMIT:
            return OPERATION_TYPES[byte % len(OPERATION_TYPES)]
    return None


def _take_char(cursor: ByteCursor) -> str:
    char = cursor.take_char()
    return "\x00" if char is None else char


def _take_index(cursor: ByteCursor) -> Index:
    """High bit clear: snapped. High bit set: raw offset or extreme offset."""
    byte = _take_byte(cursor)
    if not byte & 0x80:
        return Index(byte)
    low = byte & 0x7F
    if low < _RAW_OFFSET_LIMIT:
        return Index(low, raw=True)
    return Index(_EXTREME_OFFSETS[low - _RAW_OFFSET_LIMIT], raw=True)


def _take_text(cursor: ByteCursor, config: HarnessConfig) -> str:
    return cursor.take_utf8(config.max_string_bytes)


def _take_raw(cursor: ByteCursor, config: HarnessConfig, threshold: int) -> bytes:
    """Byte string argument, biased toward near-valid and tag-colliding input."""
    selector = _take_byte(cursor)
    match selector % 4:
        case 0:
            return cursor.take_bytes(config.max_string_bytes)
        case 1:
            return _take_text(cursor, config).encode("utf-8")
        case 2:
            tail = _INVALID_TAILS[(selector >> 2) % len(_INVALID_TAILS)]
            budget = max(config.max_string_bytes - len(tail), 0)
            return cursor.take_utf8(budget).encode("utf-8") + tail
        case _:
            tag = _TAG_POSITION_BYTES[(selector >> 2) % len(_TAG_POSITION_BYTES)]
            letter = 0x61 + _take_byte(cursor) % 26
            return bytes([letter]) * max(threshold - 1, 0) + bytes([tag])


def _take_capacity(cursor: ByteCursor, config: HarnessConfig, threshold: int) -> int:
    selector = _take_byte(cursor)
    match selector % 8:
        case 0:
            return threshold
        case 1:
            return threshold + 1
        case 2:
            return 0
        case 3:
            return _OVERFLOW_CAPACITIES[(selector >> 3) % len(_OVERFLOW_CAPACITIES)]
        case _:
            return cursor.take_len(config.max_reserve)


def _take_fill_count(cursor: ByteCursor, config: HarnessConfig, char: str, threshold: int) -> int:
    """Repeat count whose byte total is threshold - 1, threshold or threshold + 1."""
    width = len(char.encode("utf-8"))
    selector = _take_byte(cursor) % 4
    if selector == 3:
        return cursor.take_len(config.max_string_bytes // width)
    return max(threshold - 1 + selector, 0) // width


def _take_integer(cursor: ByteCursor) -> int:
    selector = _take_byte(cursor)
    if selector & 1:
        return _EDGE_INTEGERS[(selector >> 1) % len(_EDGE_INTEGERS)]
    return cursor.take_int(8, signed=True)


def _take_splits(cursor: ByteCursor, size: int) -> tuple[int, ...]:
    count = cursor.take_len(4)
    return tuple(sorted({cursor.take_len(size) for _ in range(count)}))


# ============================================================================
# DECODING
# ============================================================================


def _decode_operation(
    kind: type, cursor: ByteCursor, config: HarnessConfig, threshold: int
) -> Operation:
    """Read the arguments of one operation of ``kind``."""
    text_items = max(config.max_collection_items // 2, 1)
    match kind.__name__:
        case "FromUtf8":
            return FromUtf8(_take_raw(cursor, config, threshold))
        case "FromText":
            return FromText(_take_text(cursor, config))
        case "FromStaticStr":
            return FromStaticStr(_take_text(cursor, config))
        case "FromFill":
            char = _take_char(cursor)
            return FromFill(char, _take_fill_count(cursor, config, char, threshold))
        case "FromInteger":
            return FromInteger(_take_integer(cursor))
        case "WithCapacity":
            capacity = _take_capacity(cursor, config, threshold)
            return WithCapacity(capacity, _take_text(cursor, config))
        case "FromUtf8Buf":
            data = _take_raw(cursor, config, threshold)
            return FromUtf8Buf(data, _take_splits(cursor, len(data)))
        case "PushStr":
            return PushStr(_take_text(cursor, config))
        case "Push":
            return Push(_take_char(cursor))
        case "ExtendChars":
            count = cursor.take_len(config.max_collection_items)
            return ExtendChars(tuple(_take_char(cursor) for _ in range(count)))
        case "ExtendStr":
            count = cursor.take_len(text_items)
            return ExtendStr(tuple(_take_text(cursor, config) for _ in range(count)))
        case "InsertStr":
            index = _take_index(cursor)
            return InsertStr(index, _take_text(cursor, config))
        case "Insert":
            index = _take_index(cursor)
            return Insert(index, _take_char(cursor))
        case "Pop":
            return Pop(cursor.take_len(0xFF))
        case "Remove":
            return Remove(_take_index(cursor))
        case "Drain":
            start = _take_index(cursor)
            return Drain(start, _take_index(cursor))
        case "ReplaceRange":
            start = _take_index(cursor)
            end = _take_index(cursor)
            return ReplaceRange(start, end, _take_text(cursor, config))
        case "Truncate":
            return Truncate(_take_index(cursor))
        case "SplitOff":
            return SplitOff(_take_index(cursor))
        case "Reserve":
            return Reserve(_take_capacity(cursor, config, threshold))
        case "ShrinkTo":
            first = cursor.take_int(2) % 5000
            second = cursor.take_int(2) % 5000
            return ShrinkTo(max(first, second), min(first, second))
        case "Retain":
            nth = cursor.take_len(7)
            return Retain(nth, _take_char(cursor))
        case "Repeat":
            return Repeat(cursor.take_len(3))
        case "RoundTripBytesBuf":
            return RoundTripBytesBuf(cursor.take_len(config.max_string_bytes))
        case "CheckEquality":
            return CheckEquality(_take_text(cursor, config))
        case "CheckSubslice":
            first = _take_byte(cursor)
            return CheckSubslice(first, _take_byte(cursor))
        case _:
            # Clear, ShrinkToFit, MakeAsciiUppercase, the argument-free
            # conversions and inspections.
            operation: Operation = kind()
            return operation


def decode(
    data: bytes,
    config: HarnessConfig | None = None,
    *,
    target_factory: type[CompactString] = CompactString,
) -> DecodedSequence:
    """Decode ``data`` into an operation sequence.

    Stops at end of input, at ``config.max_operations``, or at the first
    operation whose arguments run past the end (that operation is dropped).
    Size arguments are biased toward the inline threshold of
    ``target_factory``. Discriminant bytes of 252 and above are skipped so
    that each of the 36 kinds is drawn with probability 7/252.

    Example:
        >>> decode(b"\\x01\\x03abc\\x00").operations
        (FromText(text='abc'),)
    """
    if config is None:
        config = HarnessConfig()
    threshold = config.inline_threshold(target_factory)
    cursor = ByteCursor(data)
    operations: list[Operation] = []
    offsets: list[int] = []
    truncated = False

    while cursor.remaining:
        if len(operations) >= config.max_operations:
            truncated = True
            break
        kind = _take_kind(cursor)
        if kind is None:
            break
        operation = _decode_operation(kind, cursor, config, threshold)
        if cursor.exhausted:
            truncated = True
            logger.debug(
                "Dropped %s at offset %d: arguments ran past end of input",
                kind.__name__,
                offsets[-1] if offsets else 0,
            )
            break
        operations.append(operation)
        offsets.append(cursor.offset)

    return DecodedSequence(tuple(operations), tuple(offsets), bytes(data), truncated)
