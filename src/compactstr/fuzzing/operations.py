"""Operation value types replayed by the differential checker.

Every Operation is a frozen dataclass carrying only primitive arguments; it
never references a CompactString or an OracleString. The closed set, in
discriminant order, is OPERATION_TYPES.

Byte offsets are carried as Index values so the same decoded argument can
either snap to a valid scalar boundary of the pre-operation content or stay
a raw, possibly invalid, offset that exercises the rejection paths.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias

# ruff: noqa: RUF022 - __all__ organized by category for readability
__all__ = [
    # Arguments
    "Index",
    # Construction
    "FromUtf8",
    "FromText",
    "FromStaticStr",
    "FromFill",
    "FromInteger",
    "WithCapacity",
    "FromUtf8Buf",
    # Mutation
    "PushStr",
    "Push",
    "ExtendChars",
    "ExtendStr",
    "InsertStr",
    "Insert",
    "Pop",
    "Remove",
    "Drain",
    "ReplaceRange",
    "Truncate",
    "SplitOff",
    "Clear",
    "Reserve",
    "ShrinkToFit",
    "ShrinkTo",
    "Retain",
    "MakeAsciiUppercase",
    "Repeat",
    # Conversion
    "RoundTripIntoBytes",
    "RoundTripBytesBuf",
    "RoundTripByteArray",
    "Zeroize",
    # Inspection
    "CheckLength",
    "CheckAllocation",
    "CheckEquality",
    "IterChars",
    "CheckSubslice",
    "CloneAndDrop",
    # Type aliases and tables
    "Operation",
    "OPERATION_TYPES",
    "CONSTRUCTORS",
    "REALLOCATING",
]

# ============================================================================
# ARGUMENTS
# ============================================================================


@dataclass(frozen=True, slots=True)
class Index:
    """Byte offset argument.

    Attributes:
        value: Cycle position among the scalar boundaries (snapped) or a
            literal byte offset (raw)
        raw: True if value is used as-is, without snapping
    """

    value: int
    raw: bool = False


# ============================================================================
# CONSTRUCTION
# ============================================================================


@dataclass(frozen=True, slots=True)
class FromUtf8:
    """Build from owned bytes; invalid UTF-8 must be rejected."""

    data: bytes


@dataclass(frozen=True, slots=True)
class FromText:
    text: str


@dataclass(frozen=True, slots=True)
class FromStaticStr:
    """Build from borrowed text (zero-copy on the Target when long)."""

    text: str


@dataclass(frozen=True, slots=True)
class FromFill:
    char: str
    count: int


@dataclass(frozen=True, slots=True)
class FromInteger:
    value: int


@dataclass(frozen=True, slots=True)
class WithCapacity:
    """Allocate ``capacity`` up front, then push ``text``."""

    capacity: int
    text: str


@dataclass(frozen=True, slots=True)
class FromUtf8Buf:
    """Build from a chunked buffer split at ``splits`` (ascending offsets)."""

    data: bytes
    splits: tuple[int, ...]


# ============================================================================
# MUTATION
# ============================================================================


@dataclass(frozen=True, slots=True)
class PushStr:
    text: str


@dataclass(frozen=True, slots=True)
class Push:
    char: str


@dataclass(frozen=True, slots=True)
class ExtendChars:
    chars: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class ExtendStr:
    texts: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class InsertStr:
    index: Index
    text: str


@dataclass(frozen=True, slots=True)
class Insert:
    index: Index
    char: str


@dataclass(frozen=True, slots=True)
class Pop:
    """Pop ``count`` chars one at a time."""

    count: int


@dataclass(frozen=True, slots=True)
class Remove:
    index: Index


@dataclass(frozen=True, slots=True)
class Drain:
    start: Index
    end: Index


@dataclass(frozen=True, slots=True)
class ReplaceRange:
    start: Index
    end: Index
    text: str


@dataclass(frozen=True, slots=True)
class Truncate:
    index: Index


@dataclass(frozen=True, slots=True)
class SplitOff:
    index: Index


@dataclass(frozen=True, slots=True)
class Clear:
    pass


@dataclass(frozen=True, slots=True)
class Reserve:
    additional: int


@dataclass(frozen=True, slots=True)
class ShrinkToFit:
    pass


@dataclass(frozen=True, slots=True)
class ShrinkTo:
    """Reserve ``reserve`` bytes, shrink to ``min_capacity``, then shrink to fit."""

    reserve: int
    min_capacity: int


@dataclass(frozen=True, slots=True)
class Retain:
    """Drop every ``nth`` kept char and every char above ``codepoint``."""

    nth: int
    codepoint: str


@dataclass(frozen=True, slots=True)
class MakeAsciiUppercase:
    pass


@dataclass(frozen=True, slots=True)
class Repeat:
    times: int


# ============================================================================
# CONVERSION
# ============================================================================


@dataclass(frozen=True, slots=True)
class RoundTripIntoBytes:
    """Move out into an owned byte buffer and rebuild from it."""


@dataclass(frozen=True, slots=True)
class RoundTripBytesBuf:
    """Copy into an immutable buffer and rebuild from ``chunk_size`` slices."""

    chunk_size: int


@dataclass(frozen=True, slots=True)
class RoundTripByteArray:
    """Move out into a compact byte array and rebuild from it."""


@dataclass(frozen=True, slots=True)
class Zeroize:
    pass


# ============================================================================
# INSPECTION
# ============================================================================


@dataclass(frozen=True, slots=True)
class CheckLength:
    pass


@dataclass(frozen=True, slots=True)
class CheckAllocation:
    pass


@dataclass(frozen=True, slots=True)
class CheckEquality:
    """Compare (==, <, >, hash) against ``text``."""

    text: str


@dataclass(frozen=True, slots=True)
class IterChars:
    pass


@dataclass(frozen=True, slots=True)
class CheckSubslice:
    """Compare a byte slice whose ends are ``a`` and ``b`` scaled to the length."""

    a: int
    b: int


@dataclass(frozen=True, slots=True)
class CloneAndDrop:
    pass


# ============================================================================
# TYPE ALIASES AND TABLES
# ============================================================================

Operation: TypeAlias = (
    FromUtf8
    | FromText
    | FromStaticStr
    | FromFill
    | FromInteger
    | WithCapacity
    | FromUtf8Buf
    | PushStr
    | Push
    | ExtendChars
    | ExtendStr
    | InsertStr
    | Insert
    | Pop
    | Remove
    | Drain
    | ReplaceRange
    | Truncate
    | SplitOff
    | Clear
    | Reserve
    | ShrinkToFit
    | ShrinkTo
    | Retain
    | MakeAsciiUppercase
    | Repeat
    | RoundTripIntoBytes
    | RoundTripBytesBuf
    | RoundTripByteArray
    | Zeroize
    | CheckLength
    | CheckAllocation
    | CheckEquality
    | IterChars
    | CheckSubslice
    | CloneAndDrop
)

# Discriminant order. Appending keeps saved findings decodable; reordering
# does not.
OPERATION_TYPES: tuple[type, ...] = (
    FromUtf8,
    FromText,
    FromStaticStr,
    FromFill,
    FromInteger,
    WithCapacity,
    FromUtf8Buf,
    PushStr,
    Push,
    ExtendChars,
    ExtendStr,
    InsertStr,
    Insert,
    Pop,
    Remove,
    Drain,
    ReplaceRange,
    Truncate,
    SplitOff,
    Clear,
    Reserve,
    ShrinkToFit,
    ShrinkTo,
    Retain,
    MakeAsciiUppercase,
    Repeat,
    RoundTripIntoBytes,
    RoundTripBytesBuf,
    RoundTripByteArray,
    Zeroize,
    CheckLength,
    CheckAllocation,
    CheckEquality,
    IterChars,
    CheckSubslice,
    CloneAndDrop,
)

# Operations that replace the subject with a freshly built owned string.
CONSTRUCTORS: tuple[type, ...] = (
    FromUtf8,
    FromText,
    FromFill,
    FromInteger,
    FromUtf8Buf,
)

# Operations after which the Target must be properly allocated: inline
# when the content fits, heap otherwise.
REALLOCATING: tuple[type, ...] = (
    *CONSTRUCTORS,
    ShrinkToFit,
    ShrinkTo,
    Repeat,
    RoundTripIntoBytes,
    RoundTripBytesBuf,
    RoundTripByteArray,
    CloneAndDrop,
)
