"""Neighbor list buffer and the neighbor finder interface."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..errors import ConfigurationError
from ..parallel import get_backend
from ..topology import check_pair_matrix

if TYPE_CHECKING:
    from ..parallel import ParallelBackend
    from ..system import Box, MDState

logger = logging.getLogger(__name__)


class NeighborList:
    """
    Reusable buffer of ``(i, j, special)`` neighbor pairs.

    Capacity only ever grows (doubling), so rebuilding into the same list
    every few steps does not reallocate once it has reached its working
    size. Only the first ``n`` entries are valid.

    Every stored pair has ``i < j``, is eligible, and was within the finder's
    cutoff at build time.
    """

    def __init__(self, capacity: int = 64) -> None:
        capacity = max(1, int(capacity))
        self._i = np.empty(capacity, dtype=np.int64)
        self._j = np.empty(capacity, dtype=np.int64)
        self._special = np.empty(capacity, dtype=bool)
        self.n = 0

    @property
    def capacity(self) -> int:
        """Return allocated buffer length."""
        return len(self._i)

    def __len__(self) -> int:
        return self.n

    @property
    def n_pairs(self) -> int:
        """Return the number of neighbor pairs."""
        return self.n

    def clear(self) -> None:
        """Drop all pairs, keeping the allocation."""
        self.n = 0

    def _reserve(self, size: int) -> None:
        capacity = self.capacity
        if size <= capacity:
            return
        while capacity < size:
            capacity *= 2
        for name in ("_i", "_j", "_special"):
            old = getattr(self, name)
            new = np.empty(capacity, dtype=old.dtype)
            new[: self.n] = old[: self.n]
            setattr(self, name, new)

    def append(
        self,
        i: ArrayLike,
        j: ArrayLike,
        special: ArrayLike | None = None,
    ) -> None:
        """
        Append a batch of pairs.

        Args:
            i: First indices, each smaller than the matching ``j``.
            j: Second indices.
            special: Special-pair flags. Defaults to False.
        """
        i = np.asarray(i, dtype=np.int64).reshape(-1)
        j = np.asarray(j, dtype=np.int64).reshape(-1)
        count = len(i)
        if count == 0:
            return
        end = self.n + count
        self._reserve(end)
        self._i[self.n : end] = i
        self._j[self.n : end] = j
        if special is None:
            self._special[self.n : end] = False
        else:
            self._special[self.n : end] = np.asarray(special, dtype=bool).reshape(-1)
        self.n = end

    def extend(self, other: NeighborList) -> None:
        """Append all pairs of another list."""
        self.append(other.i, other.j, other.special)

    @property
    def i(self) -> NDArray[np.integer]:
        """Return first indices, shape (n,)."""
        return self._i[: self.n]

    @property
    def j(self) -> NDArray[np.integer]:
        """Return second indices, shape (n,)."""
        return self._j[: self.n]

    @property
    def special(self) -> NDArray[np.bool_]:
        """Return special-pair flags, shape (n,)."""
        return self._special[: self.n]

    def get_pairs(self) -> NDArray[np.integer]:
        """
        Get all neighbor pairs.

        Returns:
            Array of shape (n, 2) containing (i, j) indices where i < j.
        """
        return np.column_stack((self.i, self.j))

    def triples(self) -> list[tuple[int, int, bool]]:
        """Return the pairs as ``(i, j, special)`` tuples."""
        return list(
            zip(self.i.tolist(), self.j.tolist(), self.special.tolist())
        )

    def __iter__(self) -> Iterator[tuple[int, int, bool]]:
        return iter(self.triples())

    def as_set(self) -> set[tuple[int, int]]:
        """Return the ``(i, j)`` pairs as a set."""
        return set(zip(self.i.tolist(), self.j.tolist()))

    def get_neighbors(self, atom_index: int) -> NDArray[np.integer]:
        """Get neighbors of a specific atom."""
        i, j = self.i, self.j
        return np.sort(np.concatenate([j[i == atom_index], i[j == atom_index]]))


class NeighborFinder(ABC):
    """
    Abstract base class for neighbor search strategies.

    A finder owns the eligibility and special-pair matrices and a rebuild
    cadence. :meth:`find_neighbors` rebuilds only on steps that are a multiple
    of ``n_steps``; otherwise it returns the list it was given.

    Attributes:
        eligible: (N, N) bool matrix, False for excluded pairs.
        special: (N, N) bool matrix flagging 1-4 pairs.
        n_steps: Rebuild every this many steps.
        dist_cutoff: Neighbor cutoff (force cutoff plus skin).
    """

    #: Whether the strategy can handle unbounded box axes.
    supports_infinite_axes = True

    def __init__(
        self,
        eligible: ArrayLike,
        special: ArrayLike | None = None,
        n_steps: int = 10,
        dist_cutoff: float = 1.0,
        backend: ParallelBackend | str | None = None,
    ) -> None:
        """
        Initialize neighbor finder.

        Args:
            eligible: (N, N) bool matrix of pairs allowed to interact.
            special: (N, N) bool matrix of 1-4 pairs. Defaults to none.
            n_steps: Rebuild cadence in integrator steps.
            dist_cutoff: Neighbor cutoff distance.
            backend: Parallel backend name or instance.

        Raises:
            ConfigurationError: If the matrices are malformed or parameters invalid.
        """
        eligible = np.asarray(eligible, dtype=bool)
        if eligible.ndim != 2:
            raise ConfigurationError(
                f"eligible matrix must be 2-D, got shape {eligible.shape}"
            )
        n_atoms = eligible.shape[0]
        self.eligible = check_pair_matrix(eligible, n_atoms, "eligible")
        if special is None:
            self.special = np.zeros((n_atoms, n_atoms), dtype=bool)
        else:
            self.special = check_pair_matrix(special, n_atoms, "special")
        if n_steps < 1:
            raise ConfigurationError(f"n_steps must be >= 1, got {n_steps}")
        if not dist_cutoff > 0:
            raise ConfigurationError(f"dist_cutoff must be positive, got {dist_cutoff}")
        self.n_steps = int(n_steps)
        self.dist_cutoff = float(dist_cutoff)
        self.sqdist_cutoff = self.dist_cutoff**2
        self.backend = get_backend(backend)

    @property
    def n_atoms(self) -> int:
        """Return number of atoms the matrices describe."""
        return self.eligible.shape[0]

    @property
    def cutoff(self) -> float:
        """Return the cutoff distance."""
        return self.dist_cutoff

    def validate_box(self, box: Box) -> None:
        """
        Reject boxes this strategy cannot search.

        Raises:
            ConfigurationError: For unsupported geometries.
        """
        if box.has_infinite_axes and not self.supports_infinite_axes:
            raise ConfigurationError(
                f"{type(self).__name__} does not support unbounded box axes; "
                "use the distance neighbor finder"
            )

    def is_due(self, step: int) -> bool:
        """Check whether a rebuild is scheduled at this step."""
        return step % self.n_steps == 0

    def find_neighbors(
        self,
        state: MDState,
        current: NeighborList | None = None,
        step: int = 0,
    ) -> NeighborList | None:
        """
        Return the neighbor list for this step.

        Args:
            state: Current MD state.
            current: The list from the previous rebuild, reused as the output
                buffer when a rebuild is due.
            step: Current step number.

        Returns:
            ``current`` unchanged if no rebuild is due, otherwise the rebuilt list.
        """
        if current is not None and not self.is_due(step):
            return current
        self.validate_box(state.box)
        if state.n_atoms != self.n_atoms:
            raise ConfigurationError(
                f"eligible matrix describes {self.n_atoms} atoms, "
                f"state has {state.n_atoms}"
            )
        neighbors = current if current is not None else NeighborList()
        neighbors.clear()
        self._build(state.positions, state.box, neighbors)
        logger.debug(
            "%s rebuilt neighbor list at step %d: %d pairs",
            type(self).__name__,
            step,
            neighbors.n,
        )
        return neighbors

    @abstractmethod
    def _build(
        self, positions: NDArray[np.floating], box: Box, out: NeighborList
    ) -> None:
        """Fill ``out`` (already cleared) with all pairs within cutoff."""
        ...

    def _filter_candidates(
        self,
        positions: NDArray[np.floating],
        box: Box,
        i: NDArray[np.integer],
        j: NDArray[np.integer],
        out: NeighborList,
    ) -> None:
        """
        Append the eligible candidates within cutoff to ``out``.

        Candidates may come in either order; stored pairs are ``i < j``.
        """
        if len(i) == 0:
            return
        keep = self.eligible[i, j]
        i, j = i[keep], j[keep]
        if len(i) == 0:
            return
        dr = box.minimum_image(positions[i], positions[j])
        r2 = np.einsum("ij,ij->i", dr, dr)
        keep = r2 <= self.sqdist_cutoff
        lo = np.minimum(i[keep], j[keep])
        hi = np.maximum(i[keep], j[keep])
        out.append(lo, hi, self.special[lo, hi])


class NoNeighborFinder(NeighborFinder):
    """
    Placeholder finder for systems evaluated over all eligible pairs.

    :meth:`find_neighbors` always returns None, which pairwise forces treat
    as "every eligible pair". An engine driven by this finder hands its
    ``eligible`` and ``special`` matrices to pairwise terms that have none.
    """

    def __init__(
        self,
        n_atoms: int | None = None,
        eligible: ArrayLike | None = None,
        special: ArrayLike | None = None,
    ) -> None:
        if eligible is None:
            if n_atoms is None:
                raise ConfigurationError("NoNeighborFinder needs n_atoms or eligible")
            eligible = ~np.eye(n_atoms, dtype=bool)
        super().__init__(
            eligible=eligible, special=special, n_steps=1, dist_cutoff=np.inf
        )

    def find_neighbors(
        self,
        state: MDState,
        current: NeighborList | None = None,
        step: int = 0,
    ) -> None:
        return None

    def _build(
        self, positions: NDArray[np.floating], box: Box, out: NeighborList
    ) -> None:
        return None
