"""Composite force field combining multiple force providers."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from .base import ForceProvider

if TYPE_CHECKING:
    from ..neighborlists import NeighborList
    from ..system import MDState


class ForceField(ForceProvider):
    """
    Composite force field combining multiple force providers.

    A ForceField is itself a ForceProvider. It zeroes one force buffer per
    evaluation and adds every term's contribution to it, pairwise and
    bonded alike.

    Example:
        ff = ForceField([
            PairwiseForce([LennardJones(cutoff=DistanceCutoff(1.0))]),
            HarmonicBondForce(bonds, k, r0),
        ])
        forces, energy = ff.compute_with_energy(state, neighbors)
    """

    def __init__(self, terms: list[ForceProvider] | None = None) -> None:
        """
        Initialize composite force field.

        Args:
            terms: List of force providers to combine.
        """
        self.terms: list[ForceProvider] = terms if terms is not None else []
        self._buffer: NDArray[np.floating] | None = None

    def add_term(self, term: ForceProvider) -> None:
        """Add a force term to the force field."""
        self.terms.append(term)

    def remove_term(self, term: ForceProvider) -> None:
        """Remove a force term from the force field."""
        self.terms.remove(term)

    def compute_with_energy(
        self, state: MDState, neighbors: NeighborList | None = None
    ) -> tuple[NDArray[np.floating], float]:
        """
        Compute total forces and potential energy from all terms.

        Args:
            state: Current MD state.
            neighbors: Optional neighbor list for nonbonded terms.

        Returns:
            Tuple of (total forces array, total potential energy).
        """
        if self._buffer is None or self._buffer.shape != (state.n_atoms, 3):
            self._buffer = np.zeros((state.n_atoms, 3), dtype=np.float64)
        else:
            self._buffer.fill(0.0)
        total_energy = 0.0

        for term in self.terms:
            forces, energy = term.compute_with_energy(state, neighbors)
            self._buffer += forces
            total_energy += energy

        return self._buffer.copy(), total_energy

    def compute_per_term(
        self, state: MDState, neighbors: NeighborList | None = None
    ) -> list[tuple[NDArray[np.floating], float]]:
        """
        Compute forces and energies from each term separately.

        Useful for debugging and analysis.

        Args:
            state: Current MD state.
            neighbors: Optional neighbor list for nonbonded terms.

        Returns:
            List of (forces, energy) tuples, one per term.
        """
        return [term.compute_with_energy(state, neighbors) for term in self.terms]
