"""Parallelization infrastructure for MD simulations."""

from .accumulator import ForceAccumulator
from .backends.base import ParallelBackend, partition_range
from .backends.serial import SerialBackend
from .backends.threads import ThreadPoolBackend
from .dispatcher import create_backend, get_backend

__all__ = [
    "ParallelBackend",
    "SerialBackend",
    "ThreadPoolBackend",
    "ForceAccumulator",
    "partition_range",
    "get_backend",
    "create_backend",
]
