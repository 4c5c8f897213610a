"""Common utility functions."""

import time
from typing import Sequence, TypeVar

T = TypeVar("T")


def chunked(items: Sequence[T], size: int) -> list[list[T]]:
    """Split a sequence into consecutive lists of at most `size` items."""
    if size < 1:
        raise ValueError(f"chunk size must be >= 1, got {size}")
    return [list(items[i:i + size]) for i in range(0, len(items), size)]


def elapsed_ms(start: float) -> int:
    """Milliseconds since `start`, a time.monotonic() reading."""
    return int((time.monotonic() - start) * 1000)
