"""Tests for parallel backends, the dispatcher and force accumulation."""

import numpy as np
import pytest

from molsim.errors import ConfigurationError
from molsim.parallel import (
    ForceAccumulator,
    ParallelBackend,
    SerialBackend,
    ThreadPoolBackend,
    create_backend,
    get_backend,
    partition_range,
)


class TestPartitionRange:
    """Test contiguous range splitting."""

    def test_even_split(self):
        assert [partition_range(12, 3, p) for p in range(3)] == [
            (0, 4),
            (4, 8),
            (8, 12),
        ]

    def test_remainder_goes_first(self):
        """The first n % parts ranges get one extra item."""
        assert [partition_range(10, 4, p) for p in range(4)] == [
            (0, 3),
            (3, 6),
            (6, 8),
            (8, 10),
        ]

    def test_ranges_cover_items(self):
        ranges = [partition_range(17, 5, p) for p in range(5)]
        covered = np.concatenate([np.arange(s, e) for s, e in ranges])
        assert np.array_equal(covered, np.arange(17))


class TestSerialBackend:
    """Test serial backend (single process)."""

    def test_serial_backend_properties(self):
        backend = SerialBackend()
        assert backend.name == "serial"
        assert backend.n_workers == 1

    def test_serial_map(self):
        assert SerialBackend().map(lambda x: x * x, [1, 2, 3]) == [1, 4, 9]

    def test_serial_partition(self):
        assert SerialBackend().partition(7) == [(0, 7)]

    def test_context_manager(self):
        with SerialBackend() as backend:
            assert isinstance(backend, ParallelBackend)


class TestThreadPoolBackend:
    """Test the thread-pool backend."""

    def test_properties(self):
        backend = ThreadPoolBackend(n_workers=3)
        assert backend.name == "threads"
        assert backend.n_workers == 3

    def test_default_workers(self):
        assert ThreadPoolBackend().n_workers >= 1

    def test_invalid_workers(self):
        with pytest.raises(ValueError):
            ThreadPoolBackend(n_workers=0)

    def test_map_preserves_order(self):
        with ThreadPoolBackend(n_workers=4) as backend:
            assert backend.map(lambda x: x + 1, list(range(20))) == list(range(1, 21))

    def test_map_empty(self):
        with ThreadPoolBackend(n_workers=2) as backend:
            assert backend.map(lambda x: x, []) == []

    def test_map_propagates_exceptions(self):
        def fail(x):
            if x == 3:
                raise KeyError(x)
            return x

        with ThreadPoolBackend(n_workers=2) as backend:
            with pytest.raises(KeyError):
                backend.map(fail, [1, 2, 3, 4])

    def test_partition_drops_empty_chunks(self):
        backend = ThreadPoolBackend(n_workers=4)
        assert backend.partition(2) == [(0, 1), (1, 2)]
        assert backend.partition(0) == [(0, 0)]
        assert len(backend.partition(100)) == 4

    def test_close_is_idempotent(self):
        backend = ThreadPoolBackend(n_workers=2)
        backend.map(abs, [-1, -2])
        backend.close()
        backend.close()
        # The pool is recreated on demand
        assert backend.map(abs, [-3, -4]) == [3, 4]
        backend.close()


class TestDispatcher:
    """Test backend lookup."""

    def test_get_backend_default(self):
        backend = get_backend()
        assert backend.name == "serial"
        assert get_backend() is backend

    def test_get_backend_by_name(self):
        assert get_backend("serial").name == "serial"
        backend = get_backend("threads", n_workers=2)
        assert backend.name == "threads"
        assert backend.n_workers == 2

    def test_get_backend_instance(self):
        backend = ThreadPoolBackend(n_workers=2)
        assert get_backend(backend) is backend

    def test_create_backend(self):
        assert isinstance(create_backend("serial"), SerialBackend)
        threads = create_backend("threads", n_workers=3)
        assert isinstance(threads, ThreadPoolBackend)
        assert threads.n_workers == 3

    def test_unknown_backend_raises(self):
        with pytest.raises(ConfigurationError, match="Unknown backend"):
            get_backend("mpi")


class TestForceAccumulator:
    """Test per-worker force buffers."""

    def test_reduce_sums_buffers(self):
        acc = ForceAccumulator(3, 2)
        acc.buffer(0)[1] = [1.0, 2.0, 3.0]
        acc.buffer(1)[1] = [-1.0, 0.5, 0.0]
        acc.buffer(1)[2] = [0.0, 0.0, 4.0]
        acc.add_energy(0, 1.5)
        acc.add_energy(1, -0.5)

        forces, energy = acc.reduce()

        assert np.allclose(forces, [[0, 0, 0], [0, 2.5, 3], [0, 0, 4]])
        assert energy == pytest.approx(1.0)

    def test_zero(self):
        acc = ForceAccumulator(2, 2)
        acc.buffer(1)[:] = 7.0
        acc.add_energy(0, 3.0)
        acc.zero()
        forces, energy = acc.reduce()
        assert np.allclose(forces, 0.0)
        assert energy == 0.0

    def test_resize_reallocates_only_on_change(self):
        acc = ForceAccumulator(4, 2)
        buffer = acc.buffer(0)
        acc.resize(4, 2)
        assert np.shares_memory(acc.buffer(0), buffer)

        acc.resize(5, 3)
        assert acc.n_atoms == 5
        assert acc.n_buffers == 3
        assert acc.buffer(2).shape == (5, 3)

    def test_at_least_one_buffer(self):
        assert ForceAccumulator(2, 0).n_buffers == 1
