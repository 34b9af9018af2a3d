"""Apply one Operation to a string subject.

perform() is shared verbatim by the Target and the Oracle: both sides see
identical argument resolution (snapped indices, growth caps, retain
predicates), so any difference in outcome comes from the string types
themselves. Rejections propagate as CompactStrError; the checker catches
them.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Self, TypeVar

from compactstr.constants import MAX_CAPACITY
from compactstr.fuzzing.operations import (
    CheckAllocation,
    CheckEquality,
    CheckLength,
    CheckSubslice,
    Clear,
    CloneAndDrop,
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
    IterChars,
    MakeAsciiUppercase,
    Pop,
    Push,
    PushStr,
    Remove,
    Repeat,
    ReplaceRange,
    Reserve,
    Retain,
    RoundTripByteArray,
    RoundTripBytesBuf,
    RoundTripIntoBytes,
    ShrinkTo,
    ShrinkToFit,
    SplitOff,
    Truncate,
    WithCapacity,
    Zeroize,
)

if TYPE_CHECKING:
    import array
    from collections.abc import Callable, Iterable, Iterator

    from compactstr.fuzzing.config import HarnessConfig
    from compactstr.fuzzing.operations import Operation

__all__ = ["StringLike", "perform", "resolve_index", "retain_predicate"]


class StringLike(Protocol):
    """Public surface shared by CompactString and OracleString."""

    @classmethod
    def from_str(cls, text: str) -> Self: ...
    @classmethod
    def from_static_str(cls, text: str) -> Self: ...
    @classmethod
    def from_utf8(cls, data: bytes | bytearray | memoryview) -> Self: ...
    @classmethod
    def from_utf8_buf(cls, chunks: Iterable[bytes | bytearray | memoryview]) -> Self: ...
    @classmethod
    def from_byte_array(cls, buffer: array.array[int]) -> Self: ...
    @classmethod
    def from_fill(cls, char: str, count: int) -> Self: ...
    @classmethod
    def from_int(cls, value: int) -> Self: ...
    @classmethod
    def with_capacity(cls, capacity: int) -> Self: ...

    def clone(self) -> Self: ...
    def __len__(self) -> int: ...
    def __iter__(self) -> Iterator[str]: ...
    def __lt__(self, other: object) -> bool: ...
    def __le__(self, other: object) -> bool: ...
    def __gt__(self, other: object) -> bool: ...
    def __hash__(self) -> int: ...
    def is_empty(self) -> bool: ...
    def capacity(self) -> int: ...
    def as_bytes(self) -> bytes: ...
    def as_str(self) -> str: ...
    def char_indices(self) -> Iterator[tuple[int, str]]: ...
    def push(self, char: str) -> None: ...
    def push_str(self, text: str) -> None: ...
    def extend(self, items: Iterable[str]) -> None: ...
    def insert(self, index: int, char: str) -> None: ...
    def insert_str(self, index: int, text: str) -> None: ...
    def pop(self) -> str | None: ...
    def remove(self, index: int) -> str: ...
    def drain(self, start: int, end: int) -> str: ...
    def replace_range(self, start: int, end: int, text: str) -> None: ...
    def truncate(self, new_len: int) -> None: ...
    def split_off(self, at: int) -> Self: ...
    def clear(self) -> None: ...
    def reserve(self, additional: int) -> None: ...
    def shrink_to_fit(self) -> None: ...
    def shrink_to(self, min_capacity: int) -> None: ...
    def retain(self, predicate: Callable[[str], bool]) -> None: ...
    def make_ascii_uppercase(self) -> None: ...
    def repeat(self, times: int) -> Self: ...
    def zeroize(self) -> None: ...
    def into_bytes(self) -> bytearray: ...
    def to_bytes(self) -> bytes: ...
    def into_byte_array(self) -> array.array[int]: ...


def resolve_index(index: Index, subject: StringLike) -> int:
    """Byte offset for ``index`` against the pre-operation content.

    Snapped indices cycle over the scalar start offsets followed by the
    length, so every snapped value lands on a valid boundary.
    """
    if index.raw:
        return index.value
    boundaries = [offset for offset, _ in subject.char_indices()]
    boundaries.append(len(subject))
    return boundaries[index.value % len(boundaries)]


def _resolve_range(start: Index, end: Index, subject: StringLike) -> tuple[int, int]:
    first = resolve_index(start, subject)
    second = resolve_index(end, subject)
    if start.raw or end.raw:
        return first, second
    return min(first, second), max(first, second)


def retain_predicate(nth: int, codepoint: str) -> Callable[[str], bool]:
    """Stateful predicate dropping every ``nth + 1``-th char and chars above ``codepoint``."""
    index = 0

    def keep(char: str) -> bool:
        nonlocal index
        if index == nth or char > codepoint:
            index = 0
            return False
        index += 1
        return True

    return keep


def _chunks(data: bytes, splits: Iterable[int]) -> list[memoryview]:
    view = memoryview(data)
    bounds = [0, *splits, len(data)]
    return [view[lo:hi] for lo, hi in zip(bounds, bounds[1:], strict=False)]


def _fixed_chunks(data: bytes, size: int) -> list[memoryview]:
    if size <= 0:
        return [memoryview(data)]
    return _chunks(data, range(size, len(data), size))


def _subslice_bounds(a: int, b: int, length: int) -> tuple[int, int]:
    first = a * length // 0xFF
    second = b * length // 0xFF
    lower, upper = min(first, second), max(first, second)
    # Widen by one byte on each side so at least one byte is compared.
    if lower > 0:
        lower -= 1
    return lower, min(upper + 1, length)


S = TypeVar("S", bound=StringLike)


def perform(
    operation: Operation, subject: S, config: HarnessConfig
) -> tuple[S, object]:
    """Apply ``operation`` to ``subject``.

    Returns:
        Tuple of (subject after the operation, operation result). The
        subject is a new object for constructors, conversions, Repeat and
        CloneAndDrop; otherwise it is ``subject`` mutated in place.

    Raises:
        CompactStrError: If the string rejects the operation's arguments
    """
    cls = type(subject)
    match operation:
        # Construction
        case FromUtf8(data=data):
            return cls.from_utf8(data), None
        case FromText(text=text):
            return cls.from_str(text), None
        case FromStaticStr(text=text):
            return cls.from_static_str(text), None
        case FromFill(char=char, count=count):
            return cls.from_fill(char, count), None
        case FromInteger(value=value):
            return cls.from_int(value), None
        case WithCapacity(capacity=capacity, text=text):
            built = cls.with_capacity(capacity)
            built.push_str(text)
            return built, None
        case FromUtf8Buf(data=data, splits=splits):
            return cls.from_utf8_buf(_chunks(data, splits)), None

        # Mutation
        case PushStr(text=text):
            subject.push_str(text)
        case Push(char=char):
            subject.push(char)
        case ExtendChars(chars=chars):
            subject.extend(chars)
        case ExtendStr(texts=texts):
            subject.extend(texts)
        case InsertStr(index=index, text=text):
            subject.insert_str(resolve_index(index, subject), text)
        case Insert(index=index, char=char):
            subject.insert(resolve_index(index, subject), char)
        case Pop(count=count):
            return subject, tuple(subject.pop() for _ in range(count))
        case Remove(index=index):
            offset = resolve_index(index, subject)
            if not index.raw:
                # Snapped offsets must name a char: the length cycles to 0.
                if offset == len(subject):
                    offset = 0
                if subject.is_empty():
                    return subject, None
            return subject, subject.remove(offset)
        case Drain(start=start, end=end):
            return subject, subject.drain(*_resolve_range(start, end, subject))
        case ReplaceRange(start=start, end=end, text=text):
            subject.replace_range(*_resolve_range(start, end, subject), text)
        case Truncate(index=index):
            subject.truncate(resolve_index(index, subject))
        case SplitOff(index=index):
            return subject, subject.split_off(resolve_index(index, subject))
        case Clear():
            subject.clear()
        case Reserve(additional=additional):
            needed = len(subject) + additional
            if config.max_content_bytes < needed <= MAX_CAPACITY:
                return subject, None
            subject.reserve(additional)
        case ShrinkToFit():
            subject.shrink_to_fit()
        case ShrinkTo(reserve=reserve, min_capacity=min_capacity):
            subject.reserve(reserve)
            subject.shrink_to(min_capacity)
            subject.shrink_to_fit()
        case Retain(nth=nth, codepoint=codepoint):
            subject.retain(retain_predicate(nth, codepoint))
        case MakeAsciiUppercase():
            subject.make_ascii_uppercase()
        case Repeat(times=times):
            if times * len(subject) > config.max_content_bytes:
                times = 0
            return subject.repeat(times), None

        # Conversion
        case RoundTripIntoBytes():
            owned = subject.into_bytes()
            data = bytes(owned)
            return cls.from_utf8(owned), data
        case RoundTripBytesBuf(chunk_size=chunk_size):
            data = subject.to_bytes()
            return cls.from_utf8_buf(_fixed_chunks(data, chunk_size)), data
        case RoundTripByteArray():
            buffer = subject.into_byte_array()
            data = buffer.tobytes()
            return cls.from_byte_array(buffer), data
        case Zeroize():
            subject.zeroize()

        # Inspection
        case CheckLength():
            return subject, (len(subject), subject.is_empty(), len(subject.as_bytes()))
        case CheckAllocation():
            return subject, subject.capacity() >= len(subject)
        case CheckEquality(text=text):
            other = cls.from_str(text)
            return subject, (
                subject == text,
                subject == other,
                subject < text,
                subject > text,
                subject <= other,
                hash(subject) == hash(text),
            )
        case IterChars():
            return subject, (tuple(subject), tuple(subject.char_indices()))
        case CheckSubslice(a=a, b=b):
            lower, upper = _subslice_bounds(a, b, len(subject))
            return subject, subject.as_bytes()[lower:upper]
        case CloneAndDrop():
            clone = subject.clone()
            del subject
            return clone, None
    return subject, None
