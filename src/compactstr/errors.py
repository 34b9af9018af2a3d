"""Exception hierarchy for compactstr.

Two separate domains live here:

Rejections (CompactStrError) are part of the string contract. An operation
with an ill-formed argument raises one of these BEFORE touching any state,
and CompactString and the oracle must raise the same class for the same
pre-operation content. Each also subclasses the closest builtin so callers
can catch IndexError / ValueError / OverflowError as usual.

Harness failures (HarnessError) indicate a detected divergence. They carry
frozen diagnostic context and are immutable after construction, so a
finding cannot be altered on its way to the fuzzing engine.

Hierarchy:
    CompactStrError (base - rejected operation)
    ├─ OutOfBoundsError (offset or range outside the content)
    ├─ CharBoundaryError (offset inside a multi-byte scalar value)
    ├─ CapacityOverflowError (capacity computation exceeds MAX_CAPACITY)
    └─ Utf8Error (byte input is not valid UTF-8)

    HarnessError (base - harness failure)
    └─ DivergenceError (Target and oracle disagree)

Rejection precedence (first matching check wins, in both implementations):
    1. range start > range end                  -> OutOfBoundsError
    2. offset / range end beyond the length     -> OutOfBoundsError
    3. offset / range start not on a boundary   -> CharBoundaryError
    4. range end not on a boundary              -> CharBoundaryError

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, final

if TYPE_CHECKING:
    from compactstr.fuzzing.checker import DivergenceReport

__all__ = [
    "CapacityOverflowError",
    "CharBoundaryError",
    "CompactStrError",
    "DivergenceContext",
    "DivergenceError",
    "HarnessError",
    "OutOfBoundsError",
    "Utf8Error",
]


# ============================================================================
# REJECTIONS
# ============================================================================


class CompactStrError(Exception):
    """Base exception for operations rejected by the string contract."""


@final
class OutOfBoundsError(CompactStrError, IndexError):
    """Byte offset or range lies outside the current content."""


@final
class CharBoundaryError(CompactStrError, ValueError):
    """Byte offset falls inside a multi-byte scalar value."""


@final
class CapacityOverflowError(CompactStrError, OverflowError):
    """Requested capacity exceeds MAX_CAPACITY."""


@final
class Utf8Error(CompactStrError, ValueError):
    """Byte input is not valid UTF-8.

    Attributes:
        valid_up_to: Length of the longest valid UTF-8 prefix
    """

    def __init__(self, valid_up_to: int) -> None:
        super().__init__(f"invalid utf-8 sequence at byte {valid_up_to}")
        self.valid_up_to = valid_up_to


# ============================================================================
# HARNESS FAILURES
# ============================================================================


@dataclass(frozen=True, slots=True)
class DivergenceContext:
    """Context for divergence diagnosis.

    Attributes:
        index: Position of the failing operation in the decoded sequence
        operation: Short description of the failing operation
        kind: Divergence category (crash, content_mismatch, ...)
        reproducer_hex: Hex digest of the minimal reproducing input prefix
    """

    index: int
    operation: str
    kind: str
    reproducer_hex: str


class HarnessError(Exception):
    """Base exception for harness failures.

    NOT a CompactStrError subclass: these never describe a legitimate
    rejection; they mean the implementations disagree.

    This exception is immutable after construction to prevent tampering
    with the evidence before it reaches the fuzzing engine.

    Attributes:
        context: Structured diagnostic context for post-mortem analysis
    """

    __slots__ = ("_context", "_frozen")

    _context: DivergenceContext | None
    _frozen: bool

    def __init__(
        self,
        message: str,
        context: DivergenceContext | None = None,
    ) -> None:
        super().__init__(message)
        object.__setattr__(self, "_context", context)
        object.__setattr__(self, "_frozen", True)

    # Python's exception machinery sets these while propagating.
    _PYTHON_EXCEPTION_ATTRS: frozenset[str] = frozenset(
        ("__traceback__", "__context__", "__cause__", "__suppress_context__", "__notes__")
    )

    def __setattr__(self, name: str, value: object) -> None:
        """Reject attribute mutations after initialization.

        Raises:
            AttributeError: If attempting to modify after construction
        """
        if name in self._PYTHON_EXCEPTION_ATTRS:
            object.__setattr__(self, name, value)
            return
        if getattr(self, "_frozen", False):
            msg = f"Cannot modify harness error attribute: {name}"
            raise AttributeError(msg)
        object.__setattr__(self, name, value)

    @property
    def context(self) -> DivergenceContext | None:
        """Structured diagnostic context."""
        return self._context

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.args[0]!r}, context={self._context!r})"


@final
class DivergenceError(HarnessError):
    """Target and oracle disagreed on an operation.

    Raised by the libFuzzer backend so that atheris records the input as a
    crash artifact.

    Attributes:
        report: The DivergenceReport describing the first mismatch
    """

    __slots__ = ("_report",)

    _report: DivergenceReport

    def __init__(self, report: DivergenceReport) -> None:
        # Must be set before super().__init__ freezes the instance
        object.__setattr__(self, "_report", report)
        context = DivergenceContext(
            index=report.index,
            operation=report.operation_label,
            kind=str(report.kind),
            reproducer_hex=report.reproducer.hex(),
        )
        super().__init__(report.summary(), context)

    @property
    def report(self) -> DivergenceReport:
        """The report describing the first mismatch."""
        return self._report
