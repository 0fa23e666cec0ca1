from __future__ import annotations

from typing import Sequence, TypeVar

T = TypeVar("T")


def chunk_list(items: Sequence[T], size: int) -> list[list[T]]:
    """Split items into consecutive chunks of `size`; the last may be short."""
    if size < 1:
        raise ValueError("chunk size must be >= 1")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]
