"""Divergence checker: lockstep replay of Target and Oracle.

run() owns exactly one Target and one Oracle for the lifetime of a decoded
sequence. For each operation it applies the operation to both, then checks,
in order:

1. crash: either side raised something outside the CompactStrError
   hierarchy (MemoryError and RecursionError included)
2. acceptance: exactly one side rejected, or both rejected differently
3. content: the UTF-8 bytes differ
4. result: the operations' return values differ
5. invariants: Target storage invariants (inline / heap / static
   classification against the inline threshold, capacity bounds, rejected
   operations leaving the string untouched, ...)

The first failing check produces a DivergenceReport and stops the run; there
is no retry. Every outcome is a pure function of the input bytes.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, TypeAlias

from compactstr.compact import CompactString
from compactstr.errors import CompactStrError, Utf8Error
from compactstr.fuzzing.config import HarnessConfig
from compactstr.fuzzing.decoder import DecodedSequence, decode
from compactstr.fuzzing.operations import (
    REALLOCATING,
    CloneAndDrop,
    Drain,
    ExtendChars,
    ExtendStr,
    FromStaticStr,
    Insert,
    InsertStr,
    Push,
    PushStr,
    Reserve,
    ShrinkToFit,
    SplitOff,
    WithCapacity,
    Zeroize,
)
from compactstr.fuzzing.oracle import OracleString
from compactstr.fuzzing.perform import perform
from compactstr.repr import ReprKind

if TYPE_CHECKING:
    from collections.abc import Sequence

    from compactstr.fuzzing.operations import Operation
    from compactstr.fuzzing.perform import StringLike

__all__ = [
    "DivergenceKind",
    "DivergenceReport",
    "Outcome",
    "StringState",
    "Success",
    "check",
    "run",
]

logger = logging.getLogger(__name__)


class DivergenceKind(StrEnum):
    """Category of a detected divergence, in reporting precedence order.

    StrEnum provides automatic string conversion: str(DivergenceKind.CRASH) == "crash"
    """

    CRASH = "crash"
    """An implementation raised outside the CompactStrError hierarchy"""

    ASYMMETRIC_REJECTION = "asymmetric_rejection"
    """Exactly one implementation rejected the operation"""

    REJECTION_MISMATCH = "rejection_mismatch"
    """Both rejected, with different error types or details"""

    CONTENT_MISMATCH = "content_mismatch"
    """Contents differ after the operation"""

    RESULT_MISMATCH = "result_mismatch"
    """Return values differ"""

    INVARIANT_VIOLATION = "invariant_violation"
    """A Target storage invariant does not hold"""


@dataclass(frozen=True, slots=True)
class StringState:
    """Observable state of one string after an operation.

    Attributes:
        content: UTF-8 bytes as reported by as_bytes()
        length: Value of len()
        capacity: Value of capacity()
        kind: Storage shape (None for the Oracle, which has none)
    """

    content: bytes
    length: int
    capacity: int
    kind: ReprKind | None = None

    @classmethod
    def capture(cls, subject: StringLike) -> StringState:
        kind = getattr(subject, "kind", None)
        return cls(subject.as_bytes(), len(subject), subject.capacity(), kind)

    def to_dict(self) -> dict[str, Any]:
        return {
            "content": self.content.decode("utf-8", errors="backslashreplace"),
            "length": self.length,
            "capacity": self.capacity,
            "kind": None if self.kind is None else str(self.kind),
        }


@dataclass(frozen=True, slots=True)
class Success:
    """Terminal state of a run with no divergence.

    Attributes:
        operations: Number of operations replayed
        rejections: Operations both sides rejected identically
        truncated: True if decoding dropped trailing input
    """

    operations: int
    rejections: int
    truncated: bool = False


@dataclass(frozen=True, slots=True)
class DivergenceReport:
    """First mismatch between Target and Oracle.

    Attributes:
        index: Position of the failing operation in the sequence
        operation: The failing operation
        kind: Divergence category
        detail: Human-readable description of the differing observation
        reproducer: Input prefix up to and including the failing operation
        target_state: Target state after the operation (None on crash)
        oracle_state: Oracle state after the operation (None on crash)
    """

    index: int
    operation: Operation
    kind: DivergenceKind
    detail: str
    reproducer: bytes
    target_state: StringState | None = None
    oracle_state: StringState | None = None

    @property
    def operation_label(self) -> str:
        """Name of the failing operation's kind."""
        return type(self.operation).__name__

    def summary(self) -> str:
        """One-line description."""
        return f"{self.kind} at operation {self.index} ({self.operation_label}): {self.detail}"

    def describe(self) -> str:
        """Multi-line report for humans."""
        lines = [
            f"Divergence: {self.kind}",
            f"  operation #{self.index}: {self.operation!r}",
            f"  detail:    {self.detail}",
            f"  target:    {self.target_state.to_dict() if self.target_state else '-'}",
            f"  oracle:    {self.oracle_state.to_dict() if self.oracle_state else '-'}",
            f"  reproducer ({len(self.reproducer)} bytes): {self.reproducer.hex()}",
        ]
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        """JSON-serializable form."""
        return {
            "index": self.index,
            "operation": repr(self.operation),
            "operation_kind": self.operation_label,
            "kind": str(self.kind),
            "detail": self.detail,
            "reproducer_hex": self.reproducer.hex(),
            "target_state": self.target_state.to_dict() if self.target_state else None,
            "oracle_state": self.oracle_state.to_dict() if self.oracle_state else None,
        }


Outcome: TypeAlias = Success | DivergenceReport


# ============================================================================
# APPLYING ONE OPERATION
# ============================================================================


@dataclass(frozen=True, slots=True)
class _Applied:
    """One side's outcome for one operation."""

    subject: Any
    state: StringState | None = None
    result: object = None
    observed: object = None
    rejection: CompactStrError | None = None
    crash: Exception | None = None


def _observe(value: object) -> object:
    """Comparable form of an operation result; string objects become str."""
    match value:
        case tuple():
            return tuple(_observe(item) for item in value)
        case str() | bytes() | int() | bool() | None:
            return value
        case _:
            return str(value)


def _apply(operation: Operation, subject: StringLike, config: HarnessConfig) -> _Applied:
    rejection: CompactStrError | None = None
    result: object = None
    try:
        try:
            subject, result = perform(operation, subject, config)
        except CompactStrError as error:
            rejection = error
        state = StringState.capture(subject)
        observed = _observe(result)
    except Exception as error:  # pylint: disable=broad-exception-caught
        return _Applied(subject, crash=error)
    return _Applied(subject, state, result, observed, rejection)


# ============================================================================
# CHECKS
# ============================================================================


def _describe_error(error: BaseException) -> str:
    return f"{type(error).__name__}: {error}"


def _rejection_failure(target: _Applied, oracle: _Applied) -> tuple[DivergenceKind, str] | None:
    t_error, o_error = target.rejection, oracle.rejection
    if t_error is None and o_error is None:
        return None
    if o_error is None:
        return (
            DivergenceKind.ASYMMETRIC_REJECTION,
            f"only the target rejected the operation ({_describe_error(t_error)})",
        )
    if t_error is None:
        return (
            DivergenceKind.ASYMMETRIC_REJECTION,
            f"only the oracle rejected the operation ({_describe_error(o_error)})",
        )
    if type(t_error) is not type(o_error):
        return (
            DivergenceKind.REJECTION_MISMATCH,
            f"target raised {type(t_error).__name__}, oracle raised {type(o_error).__name__}",
        )
    if isinstance(t_error, Utf8Error) and isinstance(o_error, Utf8Error):
        if t_error.valid_up_to != o_error.valid_up_to:
            return (
                DivergenceKind.REJECTION_MISMATCH,
                f"valid_up_to differs: target {t_error.valid_up_to}, "
                f"oracle {o_error.valid_up_to}",
            )
    return None


def _properly_allocated(state: StringState, threshold: int) -> str | None:
    expected = ReprKind.INLINE if state.length <= threshold else ReprKind.HEAP
    if state.kind is not expected:
        return f"length {state.length} should be {expected}, found {state.kind}"
    return None


def _storage_invariants(state: StringState, threshold: int) -> str | None:
    """Invariants that hold after every operation."""
    if state.length != len(state.content):
        return f"len() is {state.length} but content has {len(state.content)} bytes"
    try:
        state.content.decode("utf-8")
    except UnicodeDecodeError as e:
        return f"content is not valid UTF-8 at byte {e.start}"
    if state.capacity < state.length:
        return f"capacity {state.capacity} is below length {state.length}"
    match state.kind:
        case ReprKind.INLINE:
            if state.capacity != threshold:
                return f"inline capacity is {state.capacity}, expected {threshold}"
            if state.length > threshold:
                return f"inline string holds {state.length} bytes, over {threshold}"
        case ReprKind.STATIC:
            if state.capacity != state.length:
                return f"borrowed capacity {state.capacity} differs from length {state.length}"
            if state.length <= threshold:
                return f"borrowed string of {state.length} bytes should be inline"
    return None


def _operation_invariants(
    operation: Operation,
    target: _Applied,
    before: StringState,
    threshold: int,
    config: HarnessConfig,
) -> str | None:
    """Invariants tied to what the operation just did."""
    state = target.state
    if state is None:
        return None
    if isinstance(operation, REALLOCATING):
        keeps_borrow = isinstance(operation, ShrinkToFit | CloneAndDrop)
        if not (keeps_borrow and before.kind is ReprKind.STATIC and state.kind is ReprKind.STATIC):
            if problem := _properly_allocated(state, threshold):
                return f"not properly allocated: {problem}"

    match operation:
        case FromStaticStr():
            expected = ReprKind.INLINE if state.length <= threshold else ReprKind.STATIC
            if state.kind is not expected:
                return f"borrowed construction of {state.length} bytes gave {state.kind}"
        case WithCapacity(capacity=capacity):
            if state.capacity < capacity:
                return f"capacity {state.capacity} is below requested {capacity}"
            inline = capacity <= threshold and state.length <= threshold
            if (state.kind is ReprKind.INLINE) != inline:
                return f"with_capacity({capacity}) holding {state.length} bytes gave {state.kind}"
        case Reserve(additional=additional):
            if before.length + additional <= config.max_content_bytes:
                if state.capacity < state.length + additional:
                    return f"capacity {state.capacity} after reserving {additional}"
                if before.kind is ReprKind.INLINE and before.length + additional <= threshold:
                    if state.kind is not ReprKind.INLINE:
                        return f"reserve({additional}) moved a fitting string to {state.kind}"
        case SplitOff():
            tail = StringState.capture(target.result)  # type: ignore[arg-type]
            if problem := _properly_allocated(tail, threshold):
                return f"split_off tail not properly allocated: {problem}"
            if before.kind is not ReprKind.STATIC and state.capacity != before.capacity:
                return f"split_off changed capacity {before.capacity} -> {state.capacity}"
        case Drain():
            if before.kind is not ReprKind.STATIC and state.capacity != before.capacity:
                return f"drain changed capacity {before.capacity} -> {state.capacity}"
        case Zeroize():
            if state.length or state.content:
                return f"zeroize left {state.length} bytes"
        case PushStr() | Push() | ExtendChars() | ExtendStr() | InsertStr() | Insert():
            if state.capacity != before.capacity:
                if problem := _properly_allocated(state, threshold):
                    return f"reallocation left string improperly allocated: {problem}"
    return None


def _compare(
    operation: Operation,
    target: _Applied,
    oracle: _Applied,
    before: StringState,
    threshold: int,
    config: HarnessConfig,
) -> tuple[DivergenceKind, str] | None:
    """First failing check for one operation, or None."""
    if target.crash is not None:
        return DivergenceKind.CRASH, f"target raised {_describe_error(target.crash)}"
    if oracle.crash is not None:
        return DivergenceKind.CRASH, f"oracle raised {_describe_error(oracle.crash)}"

    if failure := _rejection_failure(target, oracle):
        return failure

    t_state, o_state = target.state, oracle.state
    assert t_state is not None and o_state is not None  # Type narrowing: no crash
    if t_state.content != o_state.content:
        return (
            DivergenceKind.CONTENT_MISMATCH,
            f"target holds {t_state.content!r}, oracle holds {o_state.content!r}",
        )
    if target.observed != oracle.observed:
        return (
            DivergenceKind.RESULT_MISMATCH,
            f"target returned {target.observed!r}, oracle returned {oracle.observed!r}",
        )

    if target.rejection is not None:
        if t_state.content != before.content or t_state.kind is not before.kind:
            return DivergenceKind.INVARIANT_VIOLATION, "rejected operation modified the string"
    if problem := _storage_invariants(t_state, threshold):
        return DivergenceKind.INVARIANT_VIOLATION, problem
    if target.rejection is None:
        if problem := _operation_invariants(operation, target, before, threshold, config):
            return DivergenceKind.INVARIANT_VIOLATION, problem
    if o_state.capacity < o_state.length:
        return (
            DivergenceKind.INVARIANT_VIOLATION,
            f"oracle capacity {o_state.capacity} is below length {o_state.length}",
        )
    return None


# ============================================================================
# REPLAY LOOP
# ============================================================================


def run(
    sequence: DecodedSequence | Sequence[Operation],
    config: HarnessConfig | None = None,
    *,
    target_factory: type[CompactString] = CompactString,
    oracle_factory: type[OracleString] = OracleString,
) -> Outcome:
    """Replay ``sequence`` on a fresh Target and Oracle in lockstep.

    Args:
        sequence: Decoded operations (a plain sequence has no reproducer)
        config: Harness limits; defaults to HarnessConfig()
        target_factory: Target class; its INLINE_CAPACITY is the threshold
            unless config overrides it
        oracle_factory: Oracle class

    Returns:
        Success, or the DivergenceReport of the first mismatch
    """
    if config is None:
        config = HarnessConfig()
    threshold = config.inline_threshold(target_factory)
    if not isinstance(sequence, DecodedSequence):
        operations = tuple(sequence)
        sequence = DecodedSequence(operations, (0,) * len(operations), b"")

    target: StringLike = target_factory()
    oracle: StringLike = oracle_factory()
    before = StringState.capture(target)
    rejections = 0

    for index, operation in enumerate(sequence):
        applied_target = _apply(operation, target, config)
        applied_oracle = _apply(operation, oracle, config)
        failure = _compare(operation, applied_target, applied_oracle, before, threshold, config)
        if failure is not None:
            kind, detail = failure
            report = DivergenceReport(
                index=index,
                operation=operation,
                kind=kind,
                detail=detail,
                reproducer=sequence.reproducer(index),
                target_state=applied_target.state,
                oracle_state=applied_oracle.state,
            )
            logger.warning("Divergence found: %s", report.summary())
            return report
        if applied_target.rejection is not None:
            rejections += 1
        target, oracle = applied_target.subject, applied_oracle.subject
        if applied_target.state is not None:
            before = applied_target.state

    logger.debug(
        "Replayed %d operations (%d rejected, truncated=%s)",
        len(sequence),
        rejections,
        sequence.truncated,
    )
    return Success(len(sequence), rejections, sequence.truncated)


def check(
    data: bytes,
    config: HarnessConfig | None = None,
    *,
    target_factory: type[CompactString] = CompactString,
    oracle_factory: type[OracleString] = OracleString,
) -> Outcome:
    """Decode ``data`` and replay it. The single entry point for backends."""
    if config is None:
        config = HarnessConfig()
    return run(
        decode(data, config, target_factory=target_factory),
        config,
        target_factory=target_factory,
        oracle_factory=oracle_factory,
    )
