"""Parallel backend implementations."""

from .base import ParallelBackend, partition_range
from .serial import SerialBackend
from .threads import ThreadPoolBackend

__all__ = [
    "ParallelBackend",
    "SerialBackend",
    "ThreadPoolBackend",
    "partition_range",
]
