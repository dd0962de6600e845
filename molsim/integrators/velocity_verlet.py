"""Verlet-family integrators."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from .base import Integrator

if TYPE_CHECKING:
    from ..system import MDState


class VelocityVerletIntegrator(Integrator):
    """
    Velocity Verlet integrator.

    Algorithm:
        r(t + dt) = r(t) + dt * v(t) + 0.5 * dt^2 * a(t)
        v(t + dt) = v(t) + 0.5 * dt * (a(t) + a(t + dt))

    Symplectic and time-reversible, with second-order accuracy in both
    positions and velocities. Positions are wrapped into the box after
    every drift.

    Attributes:
        dt: Integration timestep.
    """

    def update_positions(self, state: MDState, forces: NDArray[np.floating]) -> None:
        dt = self._dt
        accel = forces / state.masses[:, np.newaxis]
        state.positions += dt * state.velocities + 0.5 * dt**2 * accel
        state.positions = state.box.wrap_positions(state.positions)

    def update_velocities(
        self,
        state: MDState,
        forces: NDArray[np.floating],
        new_forces: NDArray[np.floating],
    ) -> None:
        masses = state.masses[:, np.newaxis]
        state.velocities += 0.5 * self._dt * (forces + new_forces) / masses


class StormerVerletIntegrator(Integrator):
    """
    Velocity-free Verlet (Stormer) integrator.

    Algorithm:
        r(t + dt) = r(t) + [r(t) - r(t - dt)] + dt^2 * a(t)

    The velocities slot of the state holds the previous positions r(t - dt)
    rather than velocities, so kinetic energy and temperature are not
    meaningful and constraints cannot be used. To start from velocities
    ``v0``, set the slot to ``positions - v0 * dt``.

    Attributes:
        dt: Integration timestep.
    """

    supports_constraints = False
    stores_velocities = False

    def update_positions(self, state: MDState, forces: NDArray[np.floating]) -> None:
        accel = forces / state.masses[:, np.newaxis]
        current = state.positions.copy()
        step = state.box.minimum_image(state.velocities, current)
        state.positions = state.box.wrap_positions(
            current + step + self._dt**2 * accel
        )
        state.velocities = current

    def update_velocities(
        self,
        state: MDState,
        forces: NDArray[np.floating],
        new_forces: NDArray[np.floating],
    ) -> None:
        return None

    @staticmethod
    def previous_positions(
        positions: NDArray[np.floating], velocities: NDArray[np.floating], dt: float
    ) -> NDArray[np.floating]:
        """Previous-step positions equivalent to starting with ``velocities``."""
        return np.asarray(positions, dtype=np.float64) - np.asarray(velocities) * dt
