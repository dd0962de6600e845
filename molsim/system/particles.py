"""Particle parameters."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike, NDArray


@dataclass(frozen=True)
class Particle:
    """
    A single point particle and its pairwise parameters.

    Attributes:
        index: Position of the particle in the system arrays.
        mass: Particle mass.
        charge: Partial charge.
        sigma: Lennard-Jones size parameter.
        epsilon: Lennard-Jones well depth.
    """

    index: int
    mass: float = 1.0
    charge: float = 0.0
    sigma: float = 0.0
    epsilon: float = 0.0


@dataclass
class ParticleArray:
    """
    Structure-of-arrays view of the particle parameters.

    Pairwise kernels gather from these arrays with the pair index arrays,
    so they must stay aligned with the rows of the state arrays.

    Attributes:
        masses: Masses, shape (N,).
        charges: Charges, shape (N,).
        sigmas: Size parameters, shape (N,).
        epsilons: Well depths, shape (N,).
    """

    masses: NDArray[np.floating]
    charges: NDArray[np.floating] | None = None
    sigmas: NDArray[np.floating] | None = None
    epsilons: NDArray[np.floating] | None = None

    def __post_init__(self) -> None:
        """Validate and convert arrays."""
        self.masses = np.asarray(self.masses, dtype=np.float64).reshape(-1)
        n = len(self.masses)
        self.charges = self._column(self.charges, n, "charges")
        self.sigmas = self._column(self.sigmas, n, "sigmas")
        self.epsilons = self._column(self.epsilons, n, "epsilons")
        if np.any(self.masses <= 0):
            raise ValueError("All particle masses must be positive")

    @staticmethod
    def _column(values: ArrayLike | None, n: int, name: str) -> NDArray[np.floating]:
        if values is None:
            return np.zeros(n, dtype=np.float64)
        arr = np.asarray(values, dtype=np.float64)
        if arr.ndim == 0:
            return np.full(n, float(arr))
        if arr.shape != (n,):
            raise ValueError(
                f"{name} shape {arr.shape} incompatible with {n} particles"
            )
        return arr

    def __len__(self) -> int:
        return len(self.masses)

    @property
    def n_particles(self) -> int:
        """Return number of particles."""
        return len(self.masses)

    @classmethod
    def from_particles(cls, particles: Sequence[Particle]) -> ParticleArray:
        """
        Build the array form from a sequence of particles.

        Particles are placed by their ``index`` attribute, which must cover
        ``0..N-1`` exactly once.
        """
        n = len(particles)
        order = sorted(particles, key=lambda p: p.index)
        if [p.index for p in order] != list(range(n)):
            raise ValueError("Particle indices must be a permutation of 0..N-1")
        return cls(
            masses=np.array([p.mass for p in order]),
            charges=np.array([p.charge for p in order]),
            sigmas=np.array([p.sigma for p in order]),
            epsilons=np.array([p.epsilon for p in order]),
        )

    @classmethod
    def uniform(
        cls,
        n_particles: int,
        mass: float = 1.0,
        charge: float = 0.0,
        sigma: float = 0.0,
        epsilon: float = 0.0,
    ) -> ParticleArray:
        """Create identical particles."""
        return cls(
            masses=np.full(n_particles, mass),
            charges=np.full(n_particles, charge),
            sigmas=np.full(n_particles, sigma),
            epsilons=np.full(n_particles, epsilon),
        )

    def __getitem__(self, index: int) -> Particle:
        return Particle(
            index=int(index),
            mass=float(self.masses[index]),
            charge=float(self.charges[index]),
            sigma=float(self.sigmas[index]),
            epsilon=float(self.epsilons[index]),
        )
