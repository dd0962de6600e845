"""Base interfaces for integrators and coupling hooks."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from ..system.state import K_BOLTZMANN

if TYPE_CHECKING:
    from ..system import MDState


class Integrator(ABC):
    """
    Abstract base class for time integration algorithms.

    A step is split in two halves so that the engine can slot neighbor
    rebuilds, force evaluation and constraints in between:
    :meth:`update_positions` moves the atoms using the forces at time t,
    and :meth:`update_velocities` finishes the step once the forces at
    t + dt are known.

    Attributes:
        supports_constraints: Whether SHAKE/RATTLE can run alongside.
        stores_velocities: Whether the state velocities slot holds velocities.
    """

    supports_constraints: bool = True
    stores_velocities: bool = True

    def __init__(self, dt: float) -> None:
        """
        Initialize integrator.

        Args:
            dt: Integration timestep.
        """
        if dt <= 0:
            raise ValueError(f"Timestep must be positive, got {dt}")
        self._dt = float(dt)

    @property
    def timestep(self) -> float:
        """Return the integration timestep."""
        return self._dt

    @property
    def dt(self) -> float:
        return self._dt

    @abstractmethod
    def update_positions(self, state: MDState, forces: NDArray[np.floating]) -> None:
        """
        Advance positions to t + dt in place and wrap them into the box.

        Args:
            state: Current MD state.
            forces: Forces at time t, shape (N, 3).
        """
        ...

    @abstractmethod
    def update_velocities(
        self,
        state: MDState,
        forces: NDArray[np.floating],
        new_forces: NDArray[np.floating],
    ) -> None:
        """
        Advance velocities to t + dt in place.

        Args:
            state: MD state with positions already at t + dt.
            forces: Forces at time t.
            new_forces: Forces at time t + dt.
        """
        ...

    def full_step(
        self,
        state: MDState,
        forces: NDArray[np.floating],
        force_fn: Callable[[MDState], NDArray[np.floating]],
    ) -> NDArray[np.floating]:
        """
        Perform a complete unconstrained step on ``state``.

        Args:
            state: MD state, advanced in place.
            forces: Forces at the current positions.
            force_fn: Computes forces for a state.

        Returns:
            Forces at the new positions.
        """
        self.update_positions(state, forces)
        new_forces = force_fn(state)
        self.update_velocities(state, forces, new_forces)
        state.forces = new_forces
        state.time += self._dt
        state.step += 1
        return new_forces


class CouplingHook(ABC):
    """
    Velocity coupling applied once per step after the velocity update.

    Hooks only ever modify the velocities array they are handed. Hooks
    that need the instantaneous temperature use the degree-of-freedom
    count the engine passes to :meth:`setup`.
    """

    def __init__(self, boltzmann: float = K_BOLTZMANN) -> None:
        self.boltzmann = boltzmann
        self.n_dof: int | None = None

    def setup(self, n_dof: int) -> None:
        """Record the kinetic degrees of freedom of the system."""
        self.n_dof = n_dof

    def temperature(
        self, velocities: NDArray[np.floating], masses: NDArray[np.floating]
    ) -> float:
        """Instantaneous temperature of ``velocities``."""
        n_dof = self.n_dof if self.n_dof is not None else max(3 * len(masses) - 3, 1)
        kinetic = 0.5 * np.sum(masses[:, np.newaxis] * velocities**2)
        return float(2.0 * kinetic / (n_dof * self.boltzmann))

    @abstractmethod
    def apply(
        self,
        velocities: NDArray[np.floating],
        masses: NDArray[np.floating],
        dt: float,
    ) -> None:
        """
        Couple velocities in place.

        Args:
            velocities: Atomic velocities, shape (N, 3), modified in place.
            masses: Atomic masses, shape (N,).
            dt: Integration timestep.
        """
        ...


class NoCoupling(CouplingHook):
    """Coupling hook that leaves velocities untouched."""

    def apply(self, velocities, masses, dt) -> None:
        return None
