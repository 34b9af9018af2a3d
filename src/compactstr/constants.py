"""Shared constants for compactstr.

This module provides the storage layout constants of CompactString and the
default limits of the differential fuzz harness. Placing them here avoids
circular imports between the string implementation and the harness.

Constants are grouped by domain:
- Storage layout: Inline capacity and the discriminant byte encoding
- Capacity limits: Overflow bounds shared by CompactString and the oracle
- Harness limits: Defaults for HarnessConfig

Python 3.13+. Zero external dependencies.
"""

# ruff: noqa: RUF022 - __all__ organized by category for readability
__all__ = [
    # Storage layout
    "INLINE_CAPACITY",
    "LENGTH_MASK",
    "HEAP_MASK",
    "STATIC_MASK",
    "MIN_HEAP_CAPACITY",
    # Capacity limits
    "MAX_CAPACITY",
    # Harness limits
    "DEFAULT_MAX_OPERATIONS",
    "DEFAULT_MAX_STRING_BYTES",
    "DEFAULT_MAX_COLLECTION_ITEMS",
    "DEFAULT_MAX_RESERVE",
    "DEFAULT_MAX_CONTENT_BYTES",
]

# ============================================================================
# STORAGE LAYOUT
# ============================================================================
#
# An inline CompactString keeps its UTF-8 bytes in a fixed 24-byte buffer
# (three machine words on a 64-bit platform). The final byte of that buffer
# doubles as the discriminant:
#
#   0x00..0xBF  -> inline, length 24 (the byte is the last byte of content;
#                  valid UTF-8 never ends with a byte >= 0xC0)
#   0xC0..0xD7  -> inline, length = byte - LENGTH_MASK (0..23)
#   0xFE        -> heap buffer
#   0xFF        -> borrowed (static) buffer
#
# Any code that writes raw, unvalidated bytes into the inline buffer must
# make sure a byte >= LENGTH_MASK never lands in the final slot.
#
# ============================================================================

# Number of UTF-8 bytes stored without a separate allocation.
INLINE_CAPACITY: int = 24

# Added to the inline length to form the discriminant byte.
LENGTH_MASK: int = 0xC0

# Discriminant byte of a heap-backed string.
HEAP_MASK: int = 0xFE

# Discriminant byte of a string borrowing an immutable buffer.
STATIC_MASK: int = 0xFF

# Smallest heap buffer allocated when an inline string spills over.
MIN_HEAP_CAPACITY: int = 32

# ============================================================================
# CAPACITY LIMITS
# ============================================================================

# Largest capacity any string may request (isize::MAX on 64-bit platforms).
# Requests above this raise CapacityOverflowError in both implementations.
MAX_CAPACITY: int = 2**63 - 1

# ============================================================================
# HARNESS LIMITS
# ============================================================================

# Maximum operations decoded from one input buffer.
DEFAULT_MAX_OPERATIONS: int = 256

# Maximum UTF-8 bytes of one decoded text argument. Kept below 256 so the
# length prefix is a single byte; still an order of magnitude above
# INLINE_CAPACITY.
DEFAULT_MAX_STRING_BYTES: int = 255

# Maximum items in ExtendChars / ExtendStr collections.
DEFAULT_MAX_COLLECTION_ITEMS: int = 8

# Largest non-overflowing Reserve / WithCapacity argument.
DEFAULT_MAX_RESERVE: int = 0xFFFF

# Content growth cap for one run (1 MiB). Repeat and Reserve no-op past it.
DEFAULT_MAX_CONTENT_BYTES: int = 1024 * 1024
