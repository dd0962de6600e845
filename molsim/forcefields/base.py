"""Base interface for force providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    from ..neighborlists import NeighborList
    from ..system import MDState


class ForceProvider(ABC):
    """
    Abstract base class for all force computation modules.

    Everything that contributes to the force buffer implements this
    interface: pairwise (non-bonded) evaluators driven by a neighbor list,
    bonded terms driven by fixed atom tuples, and composites of both.
    """

    @abstractmethod
    def compute_with_energy(
        self, state: MDState, neighbors: NeighborList | None = None
    ) -> tuple[NDArray[np.floating], float]:
        """
        Compute forces and potential energy.

        Args:
            state: Current MD state.
            neighbors: Neighbor list for pairwise terms. None means every
                eligible pair.

        Returns:
            Tuple of (forces array of shape (N, 3), potential energy).
        """
        ...

    def compute(
        self, state: MDState, neighbors: NeighborList | None = None
    ) -> NDArray[np.floating]:
        """
        Compute forces on all atoms.

        Args:
            state: Current MD state containing positions, box, etc.
            neighbors: Optional neighbor list for nonbonded interactions.

        Returns:
            Forces array of shape (N, 3).
        """
        forces, _ = self.compute_with_energy(state, neighbors)
        return forces

    def potential_energy(
        self, state: MDState, neighbors: NeighborList | None = None
    ) -> float:
        """Compute potential energy only."""
        _, energy = self.compute_with_energy(state, neighbors)
        return energy
