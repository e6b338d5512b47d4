"""Helpers for splitting id sets into store-sized batches."""

from typing import Iterable, Iterator, Sequence, TypeVar


T = TypeVar("T")


def unique_in_order(items: Iterable[T]) -> list[T]:
    """Drop duplicates (and falsy values) while keeping first-seen order."""
    seen: set = set()
    result: list[T] = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            result.append(item)
    return result


def chunked(items: Sequence[T], max_size: int) -> Iterator[list[T]]:
    """
    Yield consecutive slices of at most ``max_size`` items.

    Raises:
        ValueError: if ``max_size`` is not positive
    """
    if max_size <= 0:
        raise ValueError("max_size must be positive")
    for start in range(0, len(items), max_size):
        yield list(items[start:start + max_size])
