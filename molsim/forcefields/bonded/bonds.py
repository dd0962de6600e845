"""Harmonic bond force implementation."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..base import ForceProvider

if TYPE_CHECKING:
    from ...neighborlists import NeighborList
    from ...system import MDState
    from ...topology import Topology


def _broadcast(values: ArrayLike, n: int, name: str) -> NDArray[np.floating]:
    values = np.asarray(values, dtype=np.float64)
    if values.ndim == 0:
        return np.full(n, float(values))
    if values.shape != (n,):
        raise ValueError(f"{name} length {len(values)} != number of terms {n}")
    return values


class HarmonicBondForce(ForceProvider):
    """
    Harmonic bond stretching force.

    V(r) = 0.5 * k * (r - r0)^2

    A stretched bond pulls both atoms together with equal and opposite
    forces of magnitude k * (r - r0) along the bond.

    Attributes:
        bond_indices: Bond atom pairs, shape (N_bonds, 2).
        force_constants: Spring constants k, shape (N_bonds,).
        equilibrium_lengths: Equilibrium distances r0, shape (N_bonds,).
    """

    def __init__(
        self,
        bond_indices: ArrayLike,
        force_constants: ArrayLike,
        equilibrium_lengths: ArrayLike,
    ) -> None:
        """
        Initialize harmonic bond force.

        Args:
            bond_indices: Bond atom pairs, shape (N_bonds, 2).
            force_constants: Spring constants k, shape (N_bonds,) or scalar.
            equilibrium_lengths: Equilibrium distances r0, shape (N_bonds,) or scalar.
        """
        self.bond_indices = np.asarray(bond_indices, dtype=np.int64).reshape(-1, 2)
        n_bonds = len(self.bond_indices)
        self.force_constants = _broadcast(force_constants, n_bonds, "force_constants")
        self.equilibrium_lengths = _broadcast(
            equilibrium_lengths, n_bonds, "equilibrium_lengths"
        )

    @classmethod
    def from_topology(
        cls,
        topology: Topology,
        force_constants: ArrayLike,
        equilibrium_lengths: ArrayLike,
    ) -> HarmonicBondForce:
        """Create from topology bond list."""
        return cls(topology.bonds, force_constants, equilibrium_lengths)

    def compute_with_energy(
        self, state: MDState, neighbors: NeighborList | None = None
    ) -> tuple[NDArray[np.floating], float]:
        """Compute bond forces and potential energy."""
        forces = np.zeros((state.n_atoms, 3), dtype=np.float64)

        if len(self.bond_indices) == 0:
            return forces, 0.0

        i_indices = self.bond_indices[:, 0]
        j_indices = self.bond_indices[:, 1]

        # Displacement i -> j with minimum image convention
        dr = state.box.minimum_image(
            state.positions[i_indices], state.positions[j_indices]
        )
        r = np.linalg.norm(dr, axis=1)
        r_safe = np.maximum(r, 1e-10)

        delta_r = r - self.equilibrium_lengths
        energy = float(0.5 * np.sum(self.force_constants * delta_r**2))

        # Force on j: -k * (r - r0) along i -> j
        force_vectors = (-self.force_constants * delta_r / r_safe)[:, np.newaxis] * dr

        np.add.at(forces, j_indices, force_vectors)
        np.add.at(forces, i_indices, -force_vectors)

        return forces, energy
