"""Serial (single-thread) backend."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from .base import ParallelBackend


class SerialBackend(ParallelBackend):
    """
    Serial backend for single-thread execution.

    This is the default backend and provides the reference behaviour: the
    same chunking and reduction as the threaded backend, run in order.
    """

    @property
    def name(self) -> str:
        """Return backend name."""
        return "serial"

    @property
    def n_workers(self) -> int:
        """Return number of parallel workers."""
        return 1

    def map(self, func: Callable[..., Any], items: Sequence[Any]) -> list[Any]:
        """Apply function to each item in turn."""
        return [func(item) for item in items]
