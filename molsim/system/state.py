"""MD system state representation."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .box import Box
from .particles import ParticleArray

# Boltzmann constant in MD units (kJ/mol/K)
K_BOLTZMANN = 8.314462618e-3


def degrees_of_freedom(n_atoms: int, box: Box, n_dof_lost: int = 0) -> int:
    """
    Count kinetic degrees of freedom.

    Centre-of-mass translation is removed along every periodic axis, and
    ``n_dof_lost`` accounts for rigid constraints.

    Args:
        n_atoms: Number of atoms.
        box: Simulation box.
        n_dof_lost: Degrees of freedom removed by constraints.

    Returns:
        Number of degrees of freedom, at least 1.
    """
    n_dof = 3 * n_atoms - (3 - box.n_infinite_axes) - n_dof_lost
    return max(n_dof, 1)


@dataclass
class MDState:
    """
    Single source of truth for MD system state.

    This is a pure data container. Positions, velocities and forces are
    updated in place by the integrator and the force accumulator; the
    particle parameters and box are shared and never mutated during a run.

    Attributes:
        positions: Atomic positions, shape (N, 3).
        velocities: Atomic velocities, shape (N, 3). The velocity-free
            integrator stores the previous positions here instead.
        forces: Atomic forces, shape (N, 3).
        particles: Per-particle parameters.
        box: Simulation box.
        time: Current simulation time.
        step: Current step number.
    """

    positions: NDArray[np.floating]
    velocities: NDArray[np.floating]
    forces: NDArray[np.floating]
    particles: ParticleArray
    box: Box
    time: float = 0.0
    step: int = 0

    def __post_init__(self) -> None:
        """Validate and convert arrays."""
        self.positions = np.asarray(self.positions, dtype=np.float64)
        self.velocities = np.asarray(self.velocities, dtype=np.float64)
        self.forces = np.asarray(self.forces, dtype=np.float64)

        n_atoms = len(self.particles)
        if self.positions.shape != (n_atoms, 3):
            raise ValueError(
                f"positions shape {self.positions.shape} incompatible with "
                f"{n_atoms} atoms"
            )
        if self.velocities.shape != (n_atoms, 3):
            raise ValueError(
                f"velocities shape {self.velocities.shape} incompatible with "
                f"{n_atoms} atoms"
            )
        if self.forces.shape != (n_atoms, 3):
            raise ValueError(
                f"forces shape {self.forces.shape} incompatible with {n_atoms} atoms"
            )

    @property
    def n_atoms(self) -> int:
        """Return number of atoms."""
        return len(self.particles)

    @property
    def masses(self) -> NDArray[np.floating]:
        """Return atomic masses, shape (N,)."""
        return self.particles.masses

    @classmethod
    def create(
        cls,
        positions: ArrayLike,
        box: Box,
        particles: ParticleArray | None = None,
        masses: ArrayLike | None = None,
        velocities: ArrayLike | None = None,
        forces: ArrayLike | None = None,
        time: float = 0.0,
        step: int = 0,
    ) -> MDState:
        """
        Create an MDState with optional velocity/force initialization.

        Args:
            positions: Atomic positions, shape (N, 3).
            box: Simulation box.
            particles: Particle parameters. If omitted, particles are built
                from ``masses`` (unit masses if that is omitted too).
            masses: Atomic masses, shape (N,), used when ``particles`` is None.
            velocities: Atomic velocities, shape (N, 3). Defaults to zeros.
            forces: Atomic forces, shape (N, 3). Defaults to zeros.
            time: Current simulation time.
            step: Current step number.

        Returns:
            New MDState instance.
        """
        positions = np.asarray(positions, dtype=np.float64).reshape(-1, 3)
        n_atoms = len(positions)

        if particles is None:
            if masses is None:
                masses = np.ones(n_atoms)
            particles = ParticleArray(masses=masses)

        if velocities is None:
            velocities = np.zeros((n_atoms, 3), dtype=np.float64)
        if forces is None:
            forces = np.zeros((n_atoms, 3), dtype=np.float64)

        return cls(
            positions=positions,
            velocities=velocities,
            forces=forces,
            particles=particles,
            box=box,
            time=time,
            step=step,
        )

    def copy(self) -> MDState:
        """Create a deep copy of this state."""
        return MDState(
            positions=self.positions.copy(),
            velocities=self.velocities.copy(),
            forces=self.forces.copy(),
            particles=self.particles,  # Parameters are not mutated during a run
            box=self.box,  # Box is immutable
            time=self.time,
            step=self.step,
        )

    def freeze(self) -> FrozenMDState:
        """Create an immutable snapshot of this state."""
        return FrozenMDState(
            positions=self.positions.copy(),
            velocities=self.velocities.copy(),
            forces=self.forces.copy(),
            masses=self.masses.copy(),
            box=self.box,
            time=self.time,
            step=self.step,
        )

    @property
    def kinetic_energy(self) -> float:
        """Compute total kinetic energy: sum(0.5 * m * v^2)."""
        return float(0.5 * np.sum(self.masses[:, np.newaxis] * self.velocities**2))

    def compute_temperature(
        self, n_dof_lost: int = 0, boltzmann: float = K_BOLTZMANN
    ) -> float:
        """
        Compute instantaneous temperature from kinetic energy.

        Args:
            n_dof_lost: Degrees of freedom removed by constraints.
            boltzmann: Boltzmann constant in the unit system of the run.

        Returns:
            T = 2 * KE / (N_dof * k_B), or 0 for a single atom.
        """
        if self.n_atoms <= 1:
            return 0.0
        n_dof = degrees_of_freedom(self.n_atoms, self.box, n_dof_lost)
        return 2.0 * self.kinetic_energy / (n_dof * boltzmann)

    @property
    def temperature(self) -> float:
        """Instantaneous temperature in K with no constraint correction."""
        return self.compute_temperature()

    @property
    def center_of_mass(self) -> NDArray[np.floating]:
        """Compute center of mass position."""
        total_mass = np.sum(self.masses)
        return np.sum(self.masses[:, np.newaxis] * self.positions, axis=0) / total_mass

    @property
    def momentum(self) -> NDArray[np.floating]:
        """Compute total linear momentum."""
        return np.sum(self.masses[:, np.newaxis] * self.velocities, axis=0)


@dataclass(frozen=True)
class FrozenMDState:
    """
    Immutable snapshot of MD system state.

    Handed to step observers, which get read-only access to positions
    and velocities.
    """

    positions: NDArray[np.floating]
    velocities: NDArray[np.floating]
    forces: NDArray[np.floating]
    masses: NDArray[np.floating]
    box: Box
    time: float
    step: int

    def __post_init__(self) -> None:
        """Make arrays read-only."""
        self.positions.flags.writeable = False
        self.velocities.flags.writeable = False
        self.forces.flags.writeable = False
        self.masses.flags.writeable = False

    @property
    def n_atoms(self) -> int:
        """Return number of atoms."""
        return len(self.masses)

    @property
    def kinetic_energy(self) -> float:
        """Compute total kinetic energy."""
        return float(0.5 * np.sum(self.masses[:, np.newaxis] * self.velocities**2))
