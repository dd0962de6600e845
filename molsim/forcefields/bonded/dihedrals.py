"""Torsion (dihedral) force implementations."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..base import ForceProvider
from .bonds import _broadcast

if TYPE_CHECKING:
    from ...neighborlists import NeighborList
    from ...system import Box, MDState
    from ...topology import Topology


def dihedral_geometry(
    box: Box,
    pos_i: NDArray[np.floating],
    pos_j: NDArray[np.floating],
    pos_k: NDArray[np.floating],
    pos_l: NDArray[np.floating],
) -> dict[str, NDArray[np.floating]]:
    """
    Compute the vectors and angle of dihedrals i-j-k-l.

    The angle follows the IUPAC convention: 0 for cis, pi for trans, and
    is obtained from atan2 so the sign is right in all four quadrants.

    Returns:
        Dictionary with ``r_ij`` (x_i - x_j), ``r_kj`` (x_k - x_j),
        ``r_kl`` (x_k - x_l), the plane normals ``m`` and ``n`` and ``phi``.
    """
    r_ij = box.minimum_image(pos_j, pos_i)
    r_kj = box.minimum_image(pos_j, pos_k)
    r_kl = box.minimum_image(pos_l, pos_k)

    m = np.cross(r_ij, r_kj)
    n = np.cross(r_kj, r_kl)

    norm_kj = np.linalg.norm(r_kj, axis=1)
    y = norm_kj * np.sum(r_ij * n, axis=1)
    x = np.sum(m * n, axis=1)
    phi = np.arctan2(y, x)

    return {"r_ij": r_ij, "r_kj": r_kj, "r_kl": r_kl, "m": m, "n": n, "phi": phi}


def dihedral_forces(
    geometry: dict[str, NDArray[np.floating]],
    dv_dphi: NDArray[np.floating],
) -> tuple[NDArray[np.floating], ...]:
    """
    Distribute -dV/dphi onto the four atoms of each dihedral.

    The outer atoms are pushed along their plane normals; the inner atoms
    take the remainder so that net force and net torque both vanish.

    Args:
        geometry: Output of :func:`dihedral_geometry`.
        dv_dphi: Derivative of the energy with respect to phi, shape (M,).

    Returns:
        Forces on atoms i, j, k and l, each shape (M, 3).
    """
    r_ij, r_kj, r_kl = geometry["r_ij"], geometry["r_kj"], geometry["r_kl"]
    m, n = geometry["m"], geometry["n"]

    m2 = np.maximum(np.sum(m * m, axis=1), 1e-20)
    n2 = np.maximum(np.sum(n * n, axis=1), 1e-20)
    kj2 = np.maximum(np.sum(r_kj * r_kj, axis=1), 1e-20)
    kj = np.sqrt(kj2)

    f_i = (-dv_dphi * kj / m2)[:, np.newaxis] * m
    f_l = (dv_dphi * kj / n2)[:, np.newaxis] * n

    p = (np.sum(r_ij * r_kj, axis=1) / kj2)[:, np.newaxis]
    q = (np.sum(r_kl * r_kj, axis=1) / kj2)[:, np.newaxis]
    s = p * f_i - q * f_l

    f_j = s - f_i
    f_k = -s - f_l
    return f_i, f_j, f_k, f_l


class _TorsionForce(ForceProvider):
    """Shared driver for torsion potentials V(phi)."""

    def __init__(self, dihedral_indices: ArrayLike) -> None:
        self.dihedral_indices = np.asarray(dihedral_indices, dtype=np.int64).reshape(
            -1, 4
        )

    @property
    def n_dihedrals(self) -> int:
        return len(self.dihedral_indices)

    @abstractmethod
    def _energy_and_derivative(
        self, phi: NDArray[np.floating]
    ) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
        """Return per-dihedral V(phi) and dV/dphi."""
        ...

    def compute_with_energy(
        self, state: MDState, neighbors: NeighborList | None = None
    ) -> tuple[NDArray[np.floating], float]:
        """Compute torsion forces and potential energy."""
        forces = np.zeros((state.n_atoms, 3), dtype=np.float64)

        if self.n_dihedrals == 0:
            return forces, 0.0

        idx = self.dihedral_indices
        positions = state.positions
        geometry = dihedral_geometry(
            state.box,
            positions[idx[:, 0]],
            positions[idx[:, 1]],
            positions[idx[:, 2]],
            positions[idx[:, 3]],
        )
        energy, dv_dphi = self._energy_and_derivative(geometry["phi"])

        for column, f in zip(range(4), dihedral_forces(geometry, dv_dphi)):
            np.add.at(forces, idx[:, column], f)

        return forces, float(np.sum(energy))


class PeriodicTorsionForce(_TorsionForce):
    """
    Periodic torsion potential.

    V(phi) = k * (1 + cos(n * phi - phase))

    Attributes:
        dihedral_indices: Dihedral atom quads (i, j, k, l), shape (N_dihedrals, 4).
        force_constants: Barrier heights k, shape (N_dihedrals,).
        periodicities: Multiplicities n, shape (N_dihedrals,).
        phases: Phase offsets in radians, shape (N_dihedrals,).
    """

    def __init__(
        self,
        dihedral_indices: ArrayLike,
        force_constants: ArrayLike,
        periodicities: ArrayLike,
        phases: ArrayLike,
    ) -> None:
        """
        Initialize periodic torsion force.

        Args:
            dihedral_indices: Dihedral atom quads (i, j, k, l), shape (N_dihedrals, 4).
            force_constants: Barrier heights k, per dihedral or scalar.
            periodicities: Multiplicities n, per dihedral or scalar.
            phases: Phase offsets in radians, per dihedral or scalar.
        """
        super().__init__(dihedral_indices)
        n = self.n_dihedrals
        self.force_constants = _broadcast(force_constants, n, "force_constants")
        self.periodicities = _broadcast(periodicities, n, "periodicities")
        self.phases = _broadcast(phases, n, "phases")

    @classmethod
    def from_topology(
        cls,
        topology: Topology,
        force_constants: ArrayLike,
        periodicities: ArrayLike,
        phases: ArrayLike,
    ) -> PeriodicTorsionForce:
        """Create from topology dihedral list."""
        return cls(topology.dihedrals, force_constants, periodicities, phases)

    def _energy_and_derivative(self, phi):
        arg = self.periodicities * phi - self.phases
        energy = self.force_constants * (1.0 + np.cos(arg))
        dv_dphi = -self.force_constants * self.periodicities * np.sin(arg)
        return energy, dv_dphi


class FourierTorsionForce(_TorsionForce):
    """
    Fourier-series (OPLS) torsion potential.

    V(phi) = 0.5 * [f1 * (1 + cos(phi)) + f2 * (1 - cos(2 phi))
                    + f3 * (1 + cos(3 phi)) + f4 * (1 - cos(4 phi))]

    Attributes:
        dihedral_indices: Dihedral atom quads (i, j, k, l), shape (N_dihedrals, 4).
        coefficients: Series coefficients f1..f4, shape (N_dihedrals, 4).
    """

    def __init__(self, dihedral_indices: ArrayLike, coefficients: ArrayLike) -> None:
        super().__init__(dihedral_indices)
        coefficients = np.asarray(coefficients, dtype=np.float64)
        if coefficients.shape == (4,):
            coefficients = np.tile(coefficients, (self.n_dihedrals, 1))
        if coefficients.shape != (self.n_dihedrals, 4):
            raise ValueError(
                f"coefficients shape {coefficients.shape} != ({self.n_dihedrals}, 4)"
            )
        self.coefficients = coefficients

    def _energy_and_derivative(self, phi):
        f1, f2, f3, f4 = self.coefficients.T
        energy = 0.5 * (
            f1 * (1.0 + np.cos(phi))
            + f2 * (1.0 - np.cos(2.0 * phi))
            + f3 * (1.0 + np.cos(3.0 * phi))
            + f4 * (1.0 - np.cos(4.0 * phi))
        )
        dv_dphi = 0.5 * (
            -f1 * np.sin(phi)
            + 2.0 * f2 * np.sin(2.0 * phi)
            - 3.0 * f3 * np.sin(3.0 * phi)
            + 4.0 * f4 * np.sin(4.0 * phi)
        )
        return energy, dv_dphi
