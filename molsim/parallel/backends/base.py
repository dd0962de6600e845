"""Abstract base class for parallel backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Any


def partition_range(n_items: int, n_parts: int, part: int) -> tuple[int, int]:
    """
    Get the contiguous index range owned by one part.

    The first ``n_items % n_parts`` parts receive one extra item.

    Args:
        n_items: Total number of items.
        n_parts: Number of parts.
        part: Index of the part, in ``[0, n_parts)``.

    Returns:
        Tuple of (start_index, end_index).
    """
    items_per_part = n_items // n_parts
    remainder = n_items % n_parts

    if part < remainder:
        start = part * (items_per_part + 1)
        end = start + items_per_part + 1
    else:
        start = part * items_per_part + remainder
        end = start + items_per_part

    return start, end


class ParallelBackend(ABC):
    """
    Abstract base class for parallelization backends.

    All parallel regions in the core are fork-join: work is split into
    independent tasks, ``map`` returns only once every task has finished,
    and the caller then reduces the per-task results. Tasks never share
    writable buffers, so no locking is needed.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Return backend name."""
        ...

    @property
    @abstractmethod
    def n_workers(self) -> int:
        """Return number of parallel workers."""
        ...

    @abstractmethod
    def map(self, func: Callable[..., Any], items: Sequence[Any]) -> list[Any]:
        """
        Apply function to items and wait for all results.

        Args:
            func: Function to apply.
            items: Items to process.

        Returns:
            Results for each item, in input order.
        """
        ...

    def partition(self, n_items: int) -> list[tuple[int, int]]:
        """
        Split ``range(n_items)`` into one contiguous chunk per worker.

        Empty chunks are dropped, so fewer chunks than workers may be returned.
        """
        n_parts = max(1, min(self.n_workers, n_items))
        return [partition_range(n_items, n_parts, part) for part in range(n_parts)]

    def close(self) -> None:
        """Release any worker resources."""

    def __enter__(self) -> ParallelBackend:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
