"""Thread-pool backend using concurrent.futures."""

from __future__ import annotations

import logging
import os
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any

from .base import ParallelBackend

logger = logging.getLogger(__name__)


class ThreadPoolBackend(ParallelBackend):
    """
    Bounded worker-thread pool for shared-memory parallelism.

    The pool is created lazily on first use and reused for every parallel
    region until :meth:`close` is called. numpy releases the GIL inside its
    vectorised kernels, so chunked pair work scales across threads.
    """

    def __init__(self, n_workers: int | None = None) -> None:
        """
        Initialize thread-pool backend.

        Args:
            n_workers: Number of worker threads. Defaults to CPU count.
        """
        if n_workers is not None and n_workers < 1:
            raise ValueError(f"n_workers must be >= 1, got {n_workers}")
        self._n_workers = n_workers or os.cpu_count() or 1
        self._executor: ThreadPoolExecutor | None = None

    @property
    def name(self) -> str:
        """Return backend name."""
        return "threads"

    @property
    def n_workers(self) -> int:
        """Return number of parallel workers."""
        return self._n_workers

    def _get_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            logger.debug("Starting thread pool with %d workers", self._n_workers)
            self._executor = ThreadPoolExecutor(
                max_workers=self._n_workers, thread_name_prefix="molsim"
            )
        return self._executor

    def map(self, func: Callable[..., Any], items: Sequence[Any]) -> list[Any]:
        """
        Apply function to items in parallel and wait for all of them.

        Exceptions raised by a task propagate to the caller.
        """
        if len(items) == 0:
            return []
        if len(items) == 1:
            return [func(items[0])]
        return list(self._get_executor().map(func, items))

    def close(self) -> None:
        """Shut down the worker threads."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
