"""SHAKE position and RATTLE velocity constraint solvers."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from .clusters import ConstraintCluster, n_dof_lost

if TYPE_CHECKING:
    from ..system import Box

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 500


class SHAKE_RATTLE:
    """
    Iterative SHAKE/RATTLE solver for distance constraints.

    SHAKE restores the constrained distances after an unconstrained drift
    by moving each atom pair along its pre-drift bond vector. RATTLE then
    removes the velocity components along every constrained bond. Both
    sweep the constraints one at a time, Gauss-Seidel style, until every
    constraint is within tolerance.

    Constraints are solved in layers: layer ``m`` holds the ``m``-th
    constraint of every cluster. Clusters share no atoms, so a layer is
    updated in one vectorized operation with the same result as visiting
    the clusters one after another.

    Attributes:
        clusters: Constraint clusters.
        dist_tolerance: Largest accepted ``| |r| - d |``.
        vel_tolerance: Largest accepted ``|r . v|``.
        max_iterations: Sweep limit per call; reaching it logs a warning and
            keeps the current result.
    """

    def __init__(
        self,
        clusters: Sequence[ConstraintCluster],
        dist_tolerance: float = 1e-8,
        vel_tolerance: float = 1e-8,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ) -> None:
        if dist_tolerance <= 0 or vel_tolerance <= 0:
            raise ValueError("Constraint tolerances must be positive")
        if max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {max_iterations}")

        self.clusters = list(clusters)
        self.dist_tolerance = dist_tolerance
        self.vel_tolerance = vel_tolerance
        self.max_iterations = max_iterations

        depth = max((len(cluster) for cluster in self.clusters), default=0)
        self._layers: list[tuple[NDArray, NDArray, NDArray]] = []
        for m in range(depth):
            members = [c.constraints[m] for c in self.clusters if len(c) > m]
            self._layers.append(
                (
                    np.array([c.i for c in members], dtype=np.int64),
                    np.array([c.j for c in members], dtype=np.int64),
                    np.array([c.dist for c in members], dtype=np.float64),
                )
            )

        all_constraints = [c for cluster in self.clusters for c in cluster.constraints]
        self._i = np.array([c.i for c in all_constraints], dtype=np.int64)
        self._j = np.array([c.j for c in all_constraints], dtype=np.int64)
        self._dist = np.array([c.dist for c in all_constraints], dtype=np.float64)

    @property
    def n_constraints(self) -> int:
        return len(self._dist)

    @property
    def max_atom_index(self) -> int:
        """Return the highest constrained atom index, or -1 if none."""
        if self.n_constraints == 0:
            return -1
        return int(max(self._i.max(), self._j.max()))

    def n_dof_lost(self, dims: int = 3) -> int:
        """Degrees of freedom removed by the constraints."""
        return n_dof_lost(dims, self.clusters)

    def length_errors(
        self, positions: NDArray[np.floating], box: Box
    ) -> NDArray[np.floating]:
        """Return ``| |r_ij| - d |`` for every constraint."""
        dr = box.minimum_image(positions[self._j], positions[self._i])
        return np.abs(np.linalg.norm(dr, axis=1) - self._dist)

    def velocity_errors(
        self,
        positions: NDArray[np.floating],
        velocities: NDArray[np.floating],
        box: Box,
    ) -> NDArray[np.floating]:
        """Return ``|r_ij . v_ij|`` for every constraint."""
        dr = box.minimum_image(positions[self._i], positions[self._j])
        dv = velocities[self._j] - velocities[self._i]
        return np.abs(np.sum(dr * dv, axis=1))

    def apply_positions(
        self,
        old_positions: NDArray[np.floating],
        new_positions: NDArray[np.floating],
        masses: NDArray[np.floating],
        box: Box,
    ) -> int:
        """
        Project unconstrained positions back onto the constraint surface.

        Each violated constraint solves the quadratic

            a g^2 + b g + c = 0,
            a = (1/m0 + 1/m1)^2 |r01|^2,
            b = 2 (1/m0 + 1/m1) (r01 . s01),
            c = |s01|^2 - d^2,

        where ``r01`` is the bond vector before the drift and ``s01`` after
        it, and takes the root of smaller magnitude. A negative
        discriminant is clamped to zero with a warning.

        Args:
            old_positions: Positions before the unconstrained update.
            new_positions: Positions after it, corrected in place.
            masses: Atomic masses, shape (N,).
            box: Simulation box.

        Returns:
            Number of sweeps performed.
        """
        if self.n_constraints == 0:
            return 0

        inv_masses = 1.0 / masses
        n_sweeps = 0
        while np.max(self.length_errors(new_positions, box)) >= self.dist_tolerance:
            if n_sweeps == self.max_iterations:
                logger.warning(
                    "SHAKE did not converge in %d iterations (max error %.3e)",
                    self.max_iterations,
                    float(np.max(self.length_errors(new_positions, box))),
                )
                break
            for i0, i1, dist in self._layers:
                self._shake_layer(
                    i0, i1, dist, old_positions, new_positions, inv_masses, box
                )
            n_sweeps += 1
        return n_sweeps

    def _shake_layer(
        self,
        i0: NDArray[np.integer],
        i1: NDArray[np.integer],
        dist: NDArray[np.floating],
        old_positions: NDArray[np.floating],
        new_positions: NDArray[np.floating],
        inv_masses: NDArray[np.floating],
        box: Box,
    ) -> None:
        s01 = box.minimum_image(new_positions[i1], new_positions[i0])
        active = np.abs(np.linalg.norm(s01, axis=1) - dist) >= self.dist_tolerance
        if not np.any(active):
            return

        i0, i1, dist, s01 = i0[active], i1[active], dist[active], s01[active]
        r01 = box.minimum_image(old_positions[i1], old_positions[i0])
        inv_m0 = inv_masses[i0]
        inv_m1 = inv_masses[i1]
        inv_sum = inv_m0 + inv_m1

        a = inv_sum**2 * np.sum(r01 * r01, axis=1)
        b = 2.0 * inv_sum * np.sum(r01 * s01, axis=1)
        c = np.sum(s01 * s01, axis=1) - dist**2
        disc = b**2 - 4.0 * a * c

        negative = disc < 0.0
        if np.any(negative):
            logger.warning(
                "SHAKE discriminant negative for %d constraint(s), setting to 0",
                int(np.count_nonzero(negative)),
            )
            disc = np.where(negative, 0.0, disc)

        root = np.sqrt(disc)
        alpha1 = (-b + root) / (2.0 * a)
        alpha2 = (-b - root) / (2.0 * a)
        g = np.where(np.abs(alpha1) <= np.abs(alpha2), alpha1, alpha2)

        new_positions[i0] += r01 * (g * inv_m0)[:, np.newaxis]
        new_positions[i1] -= r01 * (g * inv_m1)[:, np.newaxis]

    def apply_velocities(
        self,
        positions: NDArray[np.floating],
        velocities: NDArray[np.floating],
        masses: NDArray[np.floating],
        box: Box,
    ) -> int:
        """
        Remove velocity components along the constrained bonds.

        For each violated constraint the multiplier

            lambda = -(r . v) / (|r|^2 (1/m1 + 1/m2))

        is applied as ``v1 -= lambda r / m1`` and ``v2 += lambda r / m2``,
        which leaves the pair momentum unchanged.

        Args:
            positions: Constrained positions.
            velocities: Velocities, corrected in place.
            masses: Atomic masses, shape (N,).
            box: Simulation box.

        Returns:
            Number of sweeps performed.
        """
        if self.n_constraints == 0:
            return 0

        inv_masses = 1.0 / masses
        n_sweeps = 0
        while (
            np.max(self.velocity_errors(positions, velocities, box))
            > self.vel_tolerance
        ):
            if n_sweeps == self.max_iterations:
                logger.warning(
                    "RATTLE did not converge in %d iterations (max error %.3e)",
                    self.max_iterations,
                    float(np.max(self.velocity_errors(positions, velocities, box))),
                )
                break
            for k1, k2, _ in self._layers:
                r = box.minimum_image(positions[k1], positions[k2])
                v = velocities[k2] - velocities[k1]
                rv = np.sum(r * v, axis=1)
                active = np.abs(rv) > self.vel_tolerance
                if not np.any(active):
                    continue
                k1, k2, r, rv = k1[active], k2[active], r[active], rv[active]
                inv_m1 = inv_masses[k1]
                inv_m2 = inv_masses[k2]
                lam = -rv / (np.sum(r * r, axis=1) * (inv_m1 + inv_m2))
                velocities[k1] -= r * (lam * inv_m1)[:, np.newaxis]
                velocities[k2] += r * (lam * inv_m2)[:, np.newaxis]
            n_sweeps += 1
        return n_sweeps
