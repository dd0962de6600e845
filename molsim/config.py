"""Run configuration and engine assembly."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

import numpy as np
from numpy.typing import ArrayLike

from .constraints import SHAKE_RATTLE, DistanceConstraint, build_clusters
from .constraints.shake import DEFAULT_MAX_ITERATIONS
from .engines import MDEngine
from .errors import ConfigurationError
from .integrators import StormerVerletIntegrator, VelocityVerletIntegrator
from .neighborlists import create_neighbor_finder
from .neighborlists.factory import NeighborStrategy
from .parallel import create_backend
from .system.state import K_BOLTZMANN

if TYPE_CHECKING:
    from .engines import Reporter
    from .forcefields import ForceProvider
    from .integrators import CouplingHook, Integrator
    from .system import MDState

logger = logging.getLogger(__name__)

IntegratorType = Literal["velocity_verlet", "stormer"]

_INTEGRATORS = {
    "velocity_verlet": VelocityVerletIntegrator,
    "stormer": StormerVerletIntegrator,
}


@dataclass
class SimulationConfig:
    """
    Parameters of one simulation run.

    Attributes:
        dt: Integration timestep.
        n_steps: Number of steps to run.
        neighbor_strategy: "distance", "tree", "cell" or "none".
        neighbor_cutoff: Neighbor search cutoff. Should be at least the
            largest pairwise force cutoff.
        neighbor_n_steps: Rebuild the neighbor list every this many steps.
        backend: Parallel backend name, "serial" or "threads".
        n_workers: Worker count for the threads backend (None for default).
        integrator: "velocity_verlet" or "stormer".
        dist_tolerance: SHAKE distance tolerance.
        vel_tolerance: RATTLE velocity tolerance.
        max_constraint_iterations: SHAKE/RATTLE sweep limit.
        boltzmann: Boltzmann constant in the unit system of the run.
    """

    dt: float = 0.002
    n_steps: int = 1000
    neighbor_strategy: NeighborStrategy = "cell"
    neighbor_cutoff: float = 1.2
    neighbor_n_steps: int = 10
    backend: str = "serial"
    n_workers: int | None = None
    integrator: IntegratorType = "velocity_verlet"
    dist_tolerance: float = 1e-8
    vel_tolerance: float = 1e-8
    max_constraint_iterations: int = DEFAULT_MAX_ITERATIONS
    boltzmann: float = K_BOLTZMANN

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """
        Check parameter ranges and names.

        Raises:
            ConfigurationError: On the first invalid parameter.
        """
        if not self.dt > 0:
            raise ConfigurationError(f"dt must be positive, got {self.dt}")
        if self.n_steps < 0:
            raise ConfigurationError(f"n_steps must be >= 0, got {self.n_steps}")
        if self.neighbor_strategy not in ("distance", "tree", "cell", "none"):
            raise ConfigurationError(
                f"Unknown neighbor strategy: {self.neighbor_strategy}"
            )
        if not self.neighbor_cutoff > 0:
            raise ConfigurationError(
                f"neighbor_cutoff must be positive, got {self.neighbor_cutoff}"
            )
        if self.neighbor_n_steps < 1:
            raise ConfigurationError(
                f"neighbor_n_steps must be >= 1, got {self.neighbor_n_steps}"
            )
        if self.backend not in ("serial", "threads"):
            raise ConfigurationError(
                f"Unknown backend: {self.backend}. Available: serial, threads"
            )
        if self.n_workers is not None and self.n_workers < 1:
            raise ConfigurationError(f"n_workers must be >= 1, got {self.n_workers}")
        if self.integrator not in _INTEGRATORS:
            raise ConfigurationError(
                f"Unknown integrator: {self.integrator}. "
                f"Available: {', '.join(_INTEGRATORS)}"
            )
        if self.dist_tolerance <= 0 or self.vel_tolerance <= 0:
            raise ConfigurationError("Constraint tolerances must be positive")
        if self.max_constraint_iterations < 1:
            raise ConfigurationError(
                "max_constraint_iterations must be >= 1, "
                f"got {self.max_constraint_iterations}"
            )

    def create_integrator(self) -> Integrator:
        return _INTEGRATORS[self.integrator](self.dt)


def build_engine(
    config: SimulationConfig,
    state: MDState,
    force_provider: ForceProvider,
    eligible: ArrayLike | None = None,
    special: ArrayLike | None = None,
    constraints: Sequence[DistanceConstraint] | None = None,
    coupling: CouplingHook | None = None,
    reporters: list[Reporter] | None = None,
) -> MDEngine:
    """
    Assemble an :class:`MDEngine` from a configuration.

    Args:
        config: Run parameters.
        state: Initial state.
        force_provider: Forces to integrate.
        eligible: (N, N) eligibility matrix. Defaults to all distinct pairs.
        special: (N, N) 1-4 pair flags. Defaults to none.
        constraints: Distance constraints. Constrained pairs are made
            ineligible for pairwise interactions.
        coupling: Optional velocity coupling hook.
        reporters: Optional step observers.

    Returns:
        Engine ready to run ``config.n_steps`` steps.

    Raises:
        ConfigurationError: If the configuration cannot be simulated.
    """
    config.validate()
    n_atoms = state.n_atoms

    if eligible is None:
        eligible = ~np.eye(n_atoms, dtype=bool)
    else:
        eligible = np.array(eligible, dtype=bool)

    if config.backend == "threads":
        backend = create_backend("threads", n_workers=config.n_workers)
    else:
        backend = create_backend("serial")

    if config.neighbor_strategy == "none":
        finder = create_neighbor_finder("none", eligible=eligible, special=special)
    else:
        finder = create_neighbor_finder(
            config.neighbor_strategy,
            eligible=eligible,
            special=special,
            n_steps=config.neighbor_n_steps,
            dist_cutoff=config.neighbor_cutoff,
            backend=backend,
        )

    solver = None
    if constraints:
        solver = SHAKE_RATTLE(
            build_clusters(n_atoms, constraints),
            dist_tolerance=config.dist_tolerance,
            vel_tolerance=config.vel_tolerance,
            max_iterations=config.max_constraint_iterations,
        )

    logger.debug(
        "Building engine: %d atoms, %s neighbors, %s backend, %s integrator",
        n_atoms,
        config.neighbor_strategy,
        backend.name,
        config.integrator,
    )
    return MDEngine(
        state=state,
        integrator=config.create_integrator(),
        force_provider=force_provider,
        n_steps=config.n_steps,
        neighbor_finder=finder,
        constraints=solver,
        coupling=coupling,
        reporters=reporters,
        boltzmann=config.boltzmann,
    )
