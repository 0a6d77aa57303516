"""Common utilities for uploader modules."""

from __future__ import annotations

import math
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TypeVar

from vidctl.uploaders.constants import (
    CHUNKING_THRESHOLD,
    MAX_PART_RETRIES,
    PART_SIZE,
    RETRY_DELAY,
    VERIFY_BACKOFF_MULTIPLIER,
    VERIFY_BASE_DELAY,
    VERIFY_ROUNDS,
)

T = TypeVar("T")


# =============================================================================
# Chunk Splitting
# =============================================================================


@dataclass(frozen=True)
class PartRange:
    """Contiguous byte range ``[start, end)`` of a file."""

    index: int
    start: int
    end: int

    @property
    def part_number(self) -> int:
        """1-indexed part number used on the wire."""
        return self.index + 1

    @property
    def length(self) -> int:
        return self.end - self.start


def split_into_parts(size: int, part_size: int = PART_SIZE) -> list[PartRange]:
    """Split a file of ``size`` bytes into ordered fixed-size ranges.

    The last range holds the remainder. An empty file has no parts.

    Args:
        size: File length in bytes.
        part_size: Bytes per part.

    Returns:
        Ordered list of byte ranges covering the file exactly once.

    Raises:
        ValueError: If size is negative or part_size is not positive.
    """
    if size < 0:
        raise ValueError(f"File size must be >= 0, got {size}")
    if part_size <= 0:
        raise ValueError(f"Part size must be > 0, got {part_size}")

    return [
        PartRange(index=i, start=start, end=min(start + part_size, size))
        for i, start in enumerate(range(0, size, part_size))
    ]


def part_range(index: int, size: int, part_size: int = PART_SIZE) -> PartRange:
    """Return the byte range of the part at ``index``.

    Raises:
        ValueError: If the index lies outside the file.
    """
    start = index * part_size
    if index < 0 or start >= size:
        raise ValueError(f"Part index {index} is outside a file of {size} bytes")
    return PartRange(index=index, start=start, end=min(start + part_size, size))


def expected_part_count(size: int, part_size: int = PART_SIZE) -> int:
    """Number of parts a file of ``size`` bytes splits into."""
    return math.ceil(size / part_size) if size > 0 else 0


def should_chunk(size: int, threshold: int = CHUNKING_THRESHOLD) -> bool:
    """Client-side guess of the server's chunking decision."""
    return size > threshold


def read_part(path: Path, part: PartRange) -> bytes:
    """Read the bytes of one part from disk."""
    with path.open("rb") as f:
        f.seek(part.start)
        data = f.read(part.length)
    if len(data) != part.length:
        raise OSError(f"Short read of part {part.part_number} from {path}: file changed on disk?")
    return data


def iter_waves(items: Sequence[T], wave_size: int) -> Iterator[list[T]]:
    """Yield consecutive slices of at most ``wave_size`` items."""
    if wave_size <= 0:
        raise ValueError(f"Wave size must be > 0, got {wave_size}")
    for i in range(0, len(items), wave_size):
        yield list(items[i : i + wave_size])


# =============================================================================
# Retry Policy
# =============================================================================


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how long to wait between attempts.

    ``delay(n)`` is the wait after the ``n``-th failed attempt (0-based):
    ``base_delay * multiplier ** n``.
    """

    max_attempts: int
    base_delay: float = 0.0
    multiplier: float = 1.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.base_delay < 0 or self.multiplier < 0:
            raise ValueError("Delays must be non-negative")

    @property
    def max_retries(self) -> int:
        return self.max_attempts - 1

    def delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (0-based)."""
        return self.base_delay * self.multiplier**attempt

    @classmethod
    def fixed(cls, retries: int, delay: float) -> RetryPolicy:
        """Policy with ``retries`` retries and a constant delay."""
        return cls(max_attempts=retries + 1, base_delay=delay, multiplier=1.0)

    @classmethod
    def exponential(cls, attempts: int, base_delay: float, multiplier: float = 2.0) -> RetryPolicy:
        """Policy with ``attempts`` attempts and a growing delay."""
        return cls(max_attempts=attempts, base_delay=base_delay, multiplier=multiplier)


# Part uploads: 3 retries, 1 s apart
DEFAULT_PART_RETRY_POLICY = RetryPolicy.fixed(MAX_PART_RETRIES, RETRY_DELAY)

# Verification: 3 rounds, 2 s / 4 s / 8 s
DEFAULT_VERIFY_POLICY = RetryPolicy.exponential(
    VERIFY_ROUNDS, VERIFY_BASE_DELAY, VERIFY_BACKOFF_MULTIPLIER
)
