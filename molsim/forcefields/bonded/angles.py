"""Harmonic angle force implementation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..base import ForceProvider
from .bonds import _broadcast

if TYPE_CHECKING:
    from ...neighborlists import NeighborList
    from ...system import MDState
    from ...topology import Topology

logger = logging.getLogger(__name__)


def _normalize(v: NDArray[np.floating]) -> NDArray[np.floating]:
    norm = np.linalg.norm(v, axis=1, keepdims=True)
    return v / np.maximum(norm, 1e-12)


class HarmonicAngleForce(ForceProvider):
    """
    Harmonic angle bending force.

    V(theta) = 0.5 * k * (theta - theta0)^2

    where theta is the angle i-j-k (j is the central atom). The outer atoms
    are pushed along the in-plane normals of their bonds with magnitude
    k * (theta - theta0) / |bond|, and the central atom takes the negative
    sum so the group exerts no net force.

    Attributes:
        angle_indices: Angle atom triplets (i, j, k), shape (N_angles, 3).
        force_constants: Spring constants k, shape (N_angles,).
        equilibrium_angles: Equilibrium angles theta0 in radians, shape (N_angles,).
    """

    def __init__(
        self,
        angle_indices: ArrayLike,
        force_constants: ArrayLike,
        equilibrium_angles: ArrayLike,
    ) -> None:
        """
        Initialize harmonic angle force.

        Args:
            angle_indices: Angle atom triplets (i, j, k), shape (N_angles, 3).
            force_constants: Spring constants k, shape (N_angles,) or scalar.
            equilibrium_angles: Equilibrium angles theta0 in radians.
        """
        self.angle_indices = np.asarray(angle_indices, dtype=np.int64).reshape(-1, 3)
        n_angles = len(self.angle_indices)
        self.force_constants = _broadcast(force_constants, n_angles, "force_constants")
        self.equilibrium_angles = _broadcast(
            equilibrium_angles, n_angles, "equilibrium_angles"
        )

    @classmethod
    def from_topology(
        cls,
        topology: Topology,
        force_constants: ArrayLike,
        equilibrium_angles: ArrayLike,
    ) -> HarmonicAngleForce:
        """Create from topology angle list."""
        return cls(topology.angles, force_constants, equilibrium_angles)

    def compute_with_energy(
        self, state: MDState, neighbors: NeighborList | None = None
    ) -> tuple[NDArray[np.floating], float]:
        """Compute angle forces and potential energy."""
        forces = np.zeros((state.n_atoms, 3), dtype=np.float64)

        if len(self.angle_indices) == 0:
            return forces, 0.0

        i_indices = self.angle_indices[:, 0]
        j_indices = self.angle_indices[:, 1]  # Central atom
        k_indices = self.angle_indices[:, 2]

        pos_j = state.positions[j_indices]
        ba = state.box.minimum_image(pos_j, state.positions[i_indices])  # j -> i
        bc = state.box.minimum_image(pos_j, state.positions[k_indices])  # j -> k

        d_ba = np.maximum(np.linalg.norm(ba, axis=1), 1e-12)
        d_bc = np.maximum(np.linalg.norm(bc, axis=1), 1e-12)

        cos_theta = np.sum(ba * bc, axis=1) / (d_ba * d_bc)
        n_clamped = int(np.count_nonzero(np.abs(cos_theta) > 1.0))
        if n_clamped:
            logger.debug("Clamped %d angle cosine(s) into [-1, 1]", n_clamped)
        theta = np.arccos(np.clip(cos_theta, -1.0, 1.0))

        delta_theta = theta - self.equilibrium_angles
        energy = float(0.5 * np.sum(self.force_constants * delta_theta**2))

        # In-plane directions that open the angle at each outer atom
        normal = np.cross(ba, bc)
        p_a = _normalize(np.cross(ba, normal))
        p_c = _normalize(np.cross(-bc, normal))

        term = -self.force_constants * delta_theta
        f_a = (term / d_ba)[:, np.newaxis] * p_a
        f_c = (term / d_bc)[:, np.newaxis] * p_c
        f_b = -(f_a + f_c)

        np.add.at(forces, i_indices, f_a)
        np.add.at(forces, j_indices, f_b)
        np.add.at(forces, k_indices, f_c)

        return forces, energy
