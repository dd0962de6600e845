"""Pairwise force evaluator driven by a neighbor list."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ...parallel import ForceAccumulator, get_backend
from ..base import ForceProvider
from .interaction import PairContext, PairwiseInteraction

if TYPE_CHECKING:
    from ...neighborlists import NeighborList
    from ...parallel import ParallelBackend
    from ...system import MDState


class PairwiseForce(ForceProvider):
    """
    Evaluate pairwise interactions over a neighbor list.

    The pair list is split into one contiguous range per worker. Each worker
    evaluates every interaction on its range and scatters the results into
    its own force buffer; the buffers are summed once all workers are done.

    Without a neighbor list every eligible ``i < j`` pair is evaluated,
    which is only sensible for small systems or an unbounded box.

    Attributes:
        interactions: Pairwise potentials to evaluate.
        eligible: Optional (N, N) eligibility for the all-pairs fallback.
        special: Optional (N, N) special-pair flags for the all-pairs fallback.
    """

    def __init__(
        self,
        interactions: Sequence[PairwiseInteraction],
        eligible: ArrayLike | None = None,
        special: ArrayLike | None = None,
        backend: ParallelBackend | str | None = None,
    ) -> None:
        self.interactions = list(interactions)
        self.eligible = None if eligible is None else np.asarray(eligible, dtype=bool)
        self.special = None if special is None else np.asarray(special, dtype=bool)
        self.backend = get_backend(backend)
        self._accumulator = ForceAccumulator(0, 1)

    @property
    def dist_cutoff(self) -> float:
        """Return the largest interaction cutoff."""
        if not self.interactions:
            return 0.0
        return max(inter.dist_cutoff for inter in self.interactions)

    def _all_pairs(
        self, n_atoms: int
    ) -> tuple[NDArray[np.integer], NDArray[np.integer], NDArray[np.bool_]]:
        i, j = np.triu_indices(n_atoms, k=1)
        if self.eligible is not None:
            keep = self.eligible[i, j]
            i, j = i[keep], j[keep]
        if self.special is not None:
            special = self.special[i, j]
        else:
            special = np.zeros(len(i), dtype=bool)
        return i, j, special

    def compute_with_energy(
        self, state: MDState, neighbors: NeighborList | None = None
    ) -> tuple[NDArray[np.floating], float]:
        """Compute pairwise forces and potential energy."""
        if neighbors is None:
            i_all, j_all, special_all = self._all_pairs(state.n_atoms)
        else:
            i_all, j_all, special_all = neighbors.i, neighbors.j, neighbors.special

        chunks = self.backend.partition(len(i_all))
        acc = self._accumulator
        acc.resize(state.n_atoms, len(chunks))
        acc.zero()
        if not chunks or not self.interactions:
            return acc.reduce()

        positions = state.positions
        box = state.box

        def evaluate(task: tuple[int, tuple[int, int]]) -> None:
            k, (start, end) = task
            i = i_all[start:end]
            j = j_all[start:end]
            dr = box.minimum_image(positions[i], positions[j])
            ctx = PairContext.from_displacements(
                dr, i, j, state.particles, special_all[start:end]
            )
            buffer = acc.buffer(k)
            for inter in self.interactions:
                f = inter.force(ctx)
                np.add.at(buffer, j, f)
                np.add.at(buffer, i, -f)
                acc.add_energy(k, float(np.sum(inter.potential_energy(ctx))))

        self.backend.map(evaluate, list(enumerate(chunks)))
        return acc.reduce()
