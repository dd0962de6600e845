"""Thermostats implemented as velocity coupling hooks."""

from __future__ import annotations

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..system.state import K_BOLTZMANN
from .base import CouplingHook


def maxwell_boltzmann_velocities(
    masses: ArrayLike,
    temperature: float,
    rng: np.random.Generator | None = None,
    boltzmann: float = K_BOLTZMANN,
) -> NDArray[np.floating]:
    """
    Draw velocities from the Maxwell-Boltzmann distribution.

    Each component is normal with standard deviation sqrt(k_B T / m).

    Args:
        masses: Atomic masses, shape (N,).
        temperature: Temperature in K.
        rng: Random generator. A fresh unseeded one is used if omitted.
        boltzmann: Boltzmann constant in the unit system of the run.

    Returns:
        Velocities, shape (N, 3).
    """
    masses = np.asarray(masses, dtype=np.float64)
    if rng is None:
        rng = np.random.default_rng()
    sigma = np.sqrt(boltzmann * temperature / masses)
    return rng.standard_normal((len(masses), 3)) * sigma[:, np.newaxis]


class VelocityRescaleThermostat(CouplingHook):
    """
    Simple velocity rescaling thermostat.

    Rescales all velocities to achieve exactly the target temperature.
    This gives the correct average kinetic energy but incorrect
    velocity distribution.

    Useful for equilibration but not for production NVT simulations.
    """

    def __init__(self, temperature: float, boltzmann: float = K_BOLTZMANN) -> None:
        """
        Initialize velocity rescaling thermostat.

        Args:
            temperature: Target temperature in K.
            boltzmann: Boltzmann constant in the unit system of the run.
        """
        super().__init__(boltzmann)
        self.target_temperature = temperature

    def apply(self, velocities, masses, dt) -> None:
        current_temp = self.temperature(velocities, masses)
        if current_temp < 1e-10:
            # Can't rescale from zero temperature
            return
        velocities *= np.sqrt(self.target_temperature / current_temp)


class BerendsenThermostat(CouplingHook):
    """
    Berendsen weak-coupling thermostat.

    Scales velocities toward target temperature with a characteristic
    relaxation time. Does not produce correct canonical ensemble but
    is useful for equilibration due to gentle temperature control.

    dT/dt = (T_target - T) / tau
    """

    def __init__(
        self, temperature: float, tau: float, boltzmann: float = K_BOLTZMANN
    ) -> None:
        """
        Initialize Berendsen thermostat.

        Args:
            temperature: Target temperature in K.
            tau: Coupling time constant (same units as dt).
            boltzmann: Boltzmann constant in the unit system of the run.
        """
        if tau <= 0:
            raise ValueError(f"tau must be positive, got {tau}")
        super().__init__(boltzmann)
        self.target_temperature = temperature
        self.tau = tau

    def apply(self, velocities, masses, dt) -> None:
        current_temp = self.temperature(velocities, masses)
        if current_temp < 1e-10:
            return

        # lambda = sqrt(1 + dt/tau * (T_target/T - 1))
        ratio = self.target_temperature / current_temp
        scale_sq = 1.0 + (dt / self.tau) * (ratio - 1.0)
        velocities *= np.sqrt(max(scale_sq, 0.0))


class AndersenThermostat(CouplingHook):
    """
    Andersen stochastic collision thermostat.

    Each atom independently has its velocity redrawn from the
    Maxwell-Boltzmann distribution with probability dt / coupling_const
    per step. Produces the canonical ensemble but disrupts dynamics.
    """

    def __init__(
        self,
        temperature: float,
        coupling_const: float,
        seed: int | None = None,
        boltzmann: float = K_BOLTZMANN,
    ) -> None:
        """
        Initialize Andersen thermostat.

        Args:
            temperature: Target temperature in K.
            coupling_const: Mean time between collisions of one atom.
            seed: Random seed for reproducibility.
            boltzmann: Boltzmann constant in the unit system of the run.
        """
        if coupling_const <= 0:
            raise ValueError(f"coupling_const must be positive, got {coupling_const}")
        super().__init__(boltzmann)
        self.target_temperature = temperature
        self.coupling_const = coupling_const
        self._rng = np.random.default_rng(seed)

    def apply(self, velocities, masses, dt) -> None:
        collide = self._rng.random(len(masses)) < dt / self.coupling_const
        if not np.any(collide):
            return
        velocities[collide] = maxwell_boltzmann_velocities(
            masses[collide], self.target_temperature, self._rng, self.boltzmann
        )


class FrictionThermostat(CouplingHook):
    """Multiply all velocities by a constant factor every step."""

    def __init__(self, friction_const: float) -> None:
        super().__init__()
        self.friction_const = friction_const

    def apply(self, velocities, masses, dt) -> None:
        velocities *= self.friction_const
