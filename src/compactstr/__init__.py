"""compactstr - inline-optimized UTF-8 strings with a differential fuzz harness.

CompactString keeps strings of up to 24 UTF-8 bytes inside the object and
spills longer ones to a heap buffer. compactstr.fuzzing replays
engine-generated operation sequences against CompactString and a plain
reference model (OracleString) and reports the first divergence.

Public API:
    CompactString - The inline-optimized string type
    ReprKind - Storage shape (inline / heap / static)
    to_compact_string - Format any value as a CompactString
    CompactStrError - Base of all rejected-operation errors
    OutOfBoundsError, CharBoundaryError, CapacityOverflowError, Utf8Error
    HarnessError, DivergenceError - Harness failures

Submodules:
    compactstr.fuzzing - Cursor, decoder, oracle, checker, backends, replay
    compactstr.constants - Storage layout and harness limits

Python 3.13+. Zero external dependencies.
"""

from .compact import CompactString, to_compact_string
from .constants import INLINE_CAPACITY, MAX_CAPACITY
from .errors import (
    CapacityOverflowError,
    CharBoundaryError,
    CompactStrError,
    DivergenceError,
    HarnessError,
    OutOfBoundsError,
    Utf8Error,
)
from .repr import ReprKind

# SINGLE SOURCE OF TRUTH: pyproject.toml [project] version
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _get_version

try:
    __version__ = _get_version("compactstr")
except PackageNotFoundError:
    # Development mode: package not installed yet
    __version__ = "0.0.0+dev"

__all__ = [
    "INLINE_CAPACITY",
    "MAX_CAPACITY",
    "CapacityOverflowError",
    "CharBoundaryError",
    "CompactStrError",
    "CompactString",
    "DivergenceError",
    "HarnessError",
    "OutOfBoundsError",
    "ReprKind",
    "Utf8Error",
    "__version__",
    "to_compact_string",
]
