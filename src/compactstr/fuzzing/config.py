"""Harness configuration.

Provides a single frozen dataclass holding every limit the decoder and the
checker apply to one run. Instances are shared freely between runs.

Python 3.13+. Zero external dependencies.
"""

from __future__ import annotations

from dataclasses import dataclass

from compactstr.compact import CompactString
from compactstr.constants import (
    DEFAULT_MAX_COLLECTION_ITEMS,
    DEFAULT_MAX_CONTENT_BYTES,
    DEFAULT_MAX_OPERATIONS,
    DEFAULT_MAX_RESERVE,
    DEFAULT_MAX_STRING_BYTES,
)

__all__ = ["HarnessConfig"]


@dataclass(frozen=True, slots=True)
class HarnessConfig:
    """Immutable limits for decoding and replaying one input.

    All fields have sensible defaults; ``HarnessConfig()`` is what every
    backend uses unless told otherwise.

    Attributes:
        max_operations: Operations decoded from one input (default: 256).
            Decoding stops silently once reached.
        max_string_bytes: UTF-8 bytes in one text argument (default: 255).
        max_collection_items: Items in one ExtendChars / ExtendStr
            argument (default: 8).
        max_reserve: Largest ordinary Reserve / WithCapacity argument
            (default: 65535). Overflow extremes are generated separately.
        max_content_bytes: Content growth cap for one run (default: 1 MiB).
            Repeat and Reserve become no-ops past it.
        inline_capacity: Inline threshold used for argument biasing and the
            allocation invariants. None (default) queries
            ``CompactString.INLINE_CAPACITY``.

    Example:
        >>> config = HarnessConfig(max_operations=32)
        >>> config.max_operations
        32
    """

    max_operations: int = DEFAULT_MAX_OPERATIONS
    max_string_bytes: int = DEFAULT_MAX_STRING_BYTES
    max_collection_items: int = DEFAULT_MAX_COLLECTION_ITEMS
    max_reserve: int = DEFAULT_MAX_RESERVE
    max_content_bytes: int = DEFAULT_MAX_CONTENT_BYTES
    inline_capacity: int | None = None

    def __post_init__(self) -> None:
        """Validate configuration values at construction time.

        Raises:
            ValueError: If any limit is not positive, max_reserve exceeds
                max_content_bytes, or inline_capacity is negative.
        """
        if self.max_operations <= 0:
            msg = "max_operations must be positive"
            raise ValueError(msg)
        if self.max_string_bytes <= 0:
            msg = "max_string_bytes must be positive"
            raise ValueError(msg)
        if self.max_collection_items <= 0:
            msg = "max_collection_items must be positive"
            raise ValueError(msg)
        if self.max_reserve <= 0:
            msg = "max_reserve must be positive"
            raise ValueError(msg)
        if self.max_content_bytes <= 0:
            msg = "max_content_bytes must be positive"
            raise ValueError(msg)
        if self.max_reserve > self.max_content_bytes:
            msg = "max_reserve must not exceed max_content_bytes"
            raise ValueError(msg)
        if self.inline_capacity is not None and self.inline_capacity < 0:
            msg = "inline_capacity must not be negative"
            raise ValueError(msg)

    def inline_threshold(self, target: type[CompactString] = CompactString) -> int:
        """Inline threshold in effect: the override, else the Target's own."""
        if self.inline_capacity is not None:
            return self.inline_capacity
        return target.INLINE_CAPACITY
