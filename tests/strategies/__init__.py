"""Hypothesis strategies for compactstr property-based testing.

Usage:
    from tests.strategies import threshold_text, operation_sequences

Event-Emitting Strategies (HypoFuzz-Optimized):
    These strategies emit hypothesis.event() calls for coverage-guided fuzzing:
    - threshold_text, utf8_buffers, operation_sequences
"""

from .compact import (
    any_text,
    ascii_text,
    indices,
    operation_sequences,
    operations,
    raw_indices,
    scalar_chars,
    snapped_indices,
    threshold_text,
    utf8_buffers,
)

__all__ = [
    "any_text",
    "ascii_text",
    "indices",
    "operation_sequences",
    "operations",
    "raw_indices",
    "scalar_chars",
    "snapped_indices",
    "threshold_text",
    "utf8_buffers",
]
