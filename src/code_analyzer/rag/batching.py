"""Split work lists into fixed-size batches."""

from typing import Sequence, TypeVar

T = TypeVar("T")


def make_batches(items: Sequence[T], batch_size: int) -> list[list[T]]:
    """[1..12] with size 5 -> [[1..5], [6..10], [11, 12]]."""
    if batch_size < 1:
        raise ValueError(f"batch_size must be >= 1, got {batch_size}")
    return [list(items[i : i + batch_size]) for i in range(0, len(items), batch_size)]
