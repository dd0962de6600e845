"""MD simulation engine implementation."""

from __future__ import annotations

import enum
import logging
import time
from typing import TYPE_CHECKING, Any

import numpy as np
from numpy.typing import NDArray

from ..constraints import disable_intra_constraint_interactions
from ..errors import ConfigurationError
from ..forcefields import ForceField, PairwiseForce
from ..integrators import NoCoupling
from ..neighborlists import NoNeighborFinder
from ..system.state import K_BOLTZMANN, degrees_of_freedom
from .reporters import Reporter, ReporterGroup

if TYPE_CHECKING:
    from ..constraints import SHAKE_RATTLE
    from ..forcefields import ForceProvider
    from ..integrators import CouplingHook, Integrator
    from ..neighborlists import NeighborFinder, NeighborList
    from ..system import MDState

logger = logging.getLogger(__name__)


class EngineStatus(enum.Enum):
    """Lifecycle of an :class:`MDEngine`."""

    RUNNING = "running"
    COMPLETE = "complete"


def pairwise_cutoff(provider: ForceProvider) -> float:
    """Return the largest pairwise interaction cutoff of a force provider."""
    if isinstance(provider, ForceField):
        return max((pairwise_cutoff(term) for term in provider.terms), default=0.0)
    if isinstance(provider, PairwiseForce):
        return provider.dist_cutoff
    return 0.0


def _pairwise_terms(provider: ForceProvider) -> list[PairwiseForce]:
    if isinstance(provider, ForceField):
        return [t for term in provider.terms for t in _pairwise_terms(term)]
    if isinstance(provider, PairwiseForce):
        return [provider]
    return []


class MDEngine:
    """
    Molecular dynamics step driver.

    The engine is a two-state machine. It starts RUNNING and becomes
    COMPLETE once ``n_steps`` steps have been taken; stepping a complete
    engine raises RuntimeError. One step does, in order:

    1. rebuild the neighbor list if due (every ``neighbor_finder.n_steps``)
    2. drift positions with the integrator and wrap them into the box
    3. SHAKE, adding the constraint displacement over dt to the velocities
    4. evaluate forces at the new positions
    5. finish the velocity update with the averaged forces
    6. RATTLE
    7. the coupling hook
    8. reporters, which receive a frozen snapshot

    Example usage:
        engine = MDEngine(
            state=initial_state,
            integrator=VelocityVerletIntegrator(dt=0.002),
            force_provider=forcefield,
            n_steps=10000,
            neighbor_finder=CellListNeighborFinder(eligible, dist_cutoff=1.2),
        )
        engine.add_reporter(EnergyReporter(frequency=100))
        engine.run()

    Attributes:
        state: Current simulation state.
        integrator: Time integration algorithm.
        force_provider: Force computation module.
        neighbor_finder: Neighbor search strategy, or None for all pairs.
        constraints: Optional SHAKE/RATTLE solver.
        coupling: Velocity coupling hook.
    """

    def __init__(
        self,
        state: MDState,
        integrator: Integrator,
        force_provider: ForceProvider,
        n_steps: int,
        neighbor_finder: NeighborFinder | None = None,
        constraints: SHAKE_RATTLE | None = None,
        coupling: CouplingHook | None = None,
        reporters: list[Reporter] | None = None,
        boltzmann: float = K_BOLTZMANN,
    ) -> None:
        """
        Initialize MD engine.

        Args:
            state: Initial simulation state. The engine works on a copy.
            integrator: Time integrator.
            force_provider: Force computation module.
            n_steps: Number of steps before the engine is COMPLETE.
            neighbor_finder: Optional neighbor search strategy.
            constraints: Optional distance constraint solver.
            coupling: Optional velocity coupling hook.
            reporters: Optional step observers.
            boltzmann: Boltzmann constant in the unit system of the run.

        Raises:
            ConfigurationError: If the components cannot work together.
        """
        if n_steps < 0:
            raise ConfigurationError(f"n_steps must be >= 0, got {n_steps}")

        self._state = state.copy()
        self._integrator = integrator
        self._force_provider = force_provider
        self._neighbor_finder = neighbor_finder
        self._constraints = constraints
        self._coupling = coupling if coupling is not None else NoCoupling(boltzmann)
        self._reporters = ReporterGroup(reporters)
        self._boltzmann = boltzmann

        self._n_steps = int(n_steps)
        self._steps_done = 0
        self._status = EngineStatus.RUNNING if n_steps > 0 else EngineStatus.COMPLETE
        self._wall_time = 0.0

        self.validate()
        self._share_pair_matrices()

        if self._constraints is not None:
            for matrix in self._eligibility_matrices():
                disable_intra_constraint_interactions(
                    matrix, self._constraints.clusters
                )
            dof_lost = self._constraints.n_dof_lost()
            self._constraints.apply_velocities(
                self._state.positions,
                self._state.velocities,
                self._state.masses,
                self._state.box,
            )
        else:
            dof_lost = 0
        self._n_dof = degrees_of_freedom(self._state.n_atoms, self._state.box, dof_lost)
        self._coupling.setup(self._n_dof)

        self._neighbors: NeighborList | None = None
        self._neighbors_step = -1
        self._update_neighbors()
        self._forces, self._potential_energy = self._compute_forces()
        self._state.forces = self._forces.copy()

    def validate(self) -> None:
        """
        Check that the configured components can run together.

        Raises:
            ConfigurationError: On the first incompatibility found.
        """
        state = self._state
        finder = self._neighbor_finder

        if finder is not None:
            finder.validate_box(state.box)
            if finder.n_atoms != state.n_atoms:
                raise ConfigurationError(
                    f"eligible matrix describes {finder.n_atoms} atoms, "
                    f"state has {state.n_atoms}"
                )
            force_cutoff = pairwise_cutoff(self._force_provider)
            if finder.dist_cutoff < force_cutoff:
                logger.warning(
                    "Neighbor cutoff %.4g is below the force cutoff %.4g; "
                    "pairs between the two will be missed",
                    finder.dist_cutoff,
                    force_cutoff,
                )

        for term in _pairwise_terms(self._force_provider):
            for name in ("eligible", "special"):
                matrix = getattr(term, name)
                expected = (state.n_atoms, state.n_atoms)
                if matrix is not None and matrix.shape != expected:
                    raise ConfigurationError(
                        f"{name} matrix shape {matrix.shape} does not match "
                        f"{state.n_atoms} atoms"
                    )

        if self._constraints is not None and self._constraints.n_constraints > 0:
            if not self._integrator.supports_constraints:
                raise ConfigurationError(
                    f"{type(self._integrator).__name__} cannot be used with constraints"
                )
            if self._constraints.max_atom_index >= state.n_atoms:
                raise ConfigurationError(
                    f"Constraint atom index {self._constraints.max_atom_index} "
                    f"out of range for {state.n_atoms} atoms"
                )

        if not self._integrator.stores_velocities and not isinstance(
            self._coupling, NoCoupling
        ):
            raise ConfigurationError(
                f"{type(self._integrator).__name__} does not store velocities; "
                "coupling hooks cannot be used"
            )

    def _share_pair_matrices(self) -> None:
        """
        Hand the finder's matrices to pairwise terms that evaluate all pairs.

        Without a neighbor list a pairwise term reads its own eligibility and
        special matrices. Terms that have none use the finder's, so topology
        and constraint exclusions apply to them as well.
        """
        finder = self._neighbor_finder
        if not isinstance(finder, NoNeighborFinder):
            return
        for term in _pairwise_terms(self._force_provider):
            if term.eligible is None:
                term.eligible = finder.eligible
            if term.special is None:
                term.special = finder.special

    def _eligibility_matrices(self) -> list[NDArray[np.bool_]]:
        matrices = []
        if self._neighbor_finder is not None:
            matrices.append(self._neighbor_finder.eligible)
        for term in _pairwise_terms(self._force_provider):
            if term.eligible is not None:
                matrices.append(term.eligible)
        return matrices

    @property
    def state(self) -> MDState:
        """Return current simulation state."""
        return self._state

    @property
    def status(self) -> EngineStatus:
        return self._status

    @property
    def n_steps(self) -> int:
        """Return the total number of steps this engine runs."""
        return self._n_steps

    @property
    def steps_done(self) -> int:
        return self._steps_done

    @property
    def integrator(self) -> Integrator:
        """Return integrator."""
        return self._integrator

    @property
    def force_provider(self) -> ForceProvider:
        """Return force provider."""
        return self._force_provider

    @property
    def neighbor_finder(self) -> NeighborFinder | None:
        return self._neighbor_finder

    @property
    def neighbors(self) -> NeighborList | None:
        """Return the current neighbor list (None without a spatial finder)."""
        return self._neighbors

    @property
    def constraints(self) -> SHAKE_RATTLE | None:
        return self._constraints

    @property
    def coupling(self) -> CouplingHook:
        return self._coupling

    @property
    def n_dof(self) -> int:
        """Return the kinetic degrees of freedom used for temperature."""
        return self._n_dof

    @property
    def potential_energy(self) -> float:
        """Return last computed potential energy."""
        return self._potential_energy

    @property
    def kinetic_energy(self) -> float:
        """Return current kinetic energy."""
        return self._state.kinetic_energy

    @property
    def total_energy(self) -> float:
        """Return total energy."""
        return self.kinetic_energy + self.potential_energy

    @property
    def temperature(self) -> float:
        """Return current temperature, corrected for constraints."""
        if self._state.n_atoms <= 1:
            return 0.0
        return 2.0 * self.kinetic_energy / (self._n_dof * self._boltzmann)

    @property
    def performance(self) -> dict[str, float]:
        """Return performance statistics."""
        if self._wall_time == 0:
            return {"ns_per_day": 0.0, "steps_per_second": 0.0}

        steps_per_second = self._steps_done / self._wall_time
        # Assuming timestep in ps
        ns_per_day = (steps_per_second * self._integrator.timestep * 86400) / 1000.0

        return {
            "ns_per_day": ns_per_day,
            "steps_per_second": steps_per_second,
            "wall_time": self._wall_time,
            "total_steps": self._steps_done,
        }

    def add_reporter(self, reporter: Reporter) -> None:
        """Add a reporter."""
        self._reporters.add(reporter)

    def remove_reporter(self, reporter: Reporter) -> None:
        """Remove a reporter."""
        self._reporters.remove(reporter)

    def _update_neighbors(self) -> bool:
        """Rebuild the neighbor list if due. Returns True on a rebuild."""
        finder = self._neighbor_finder
        if finder is None:
            return False
        step = self._state.step
        if self._neighbors_step >= 0 and (
            step == self._neighbors_step or not finder.is_due(step)
        ):
            return False
        first = self._neighbors_step < 0
        self._neighbors = finder.find_neighbors(self._state, self._neighbors, step)
        self._neighbors_step = step
        # NoNeighborFinder never produces a list, so there is nothing to refresh
        return first or self._neighbors is not None

    def _compute_forces(self) -> tuple[NDArray[np.floating], float]:
        """
        Compute forces and potential energy.

        Returns:
            Tuple of (forces, potential_energy).
        """
        return self._force_provider.compute_with_energy(self._state, self._neighbors)

    def step(self) -> None:
        """
        Perform a single simulation step.

        Raises:
            RuntimeError: If the engine is already COMPLETE.
        """
        if self._status is EngineStatus.COMPLETE:
            raise RuntimeError(
                f"Simulation already complete after {self._steps_done} steps"
            )

        state = self._state
        integrator = self._integrator
        constraints = self._constraints
        dt = integrator.timestep
        masses = state.masses

        if self._update_neighbors():
            self._forces, self._potential_energy = self._compute_forces()
        forces = self._forces

        old_positions = state.positions.copy() if constraints is not None else None
        integrator.update_positions(state, forces)

        if constraints is not None:
            unconstrained = state.positions.copy()
            constraints.apply_positions(
                old_positions, state.positions, masses, state.box
            )
            state.velocities += (state.positions - unconstrained) / dt
            state.positions = state.box.wrap_positions(state.positions)

        new_forces, potential_energy = self._compute_forces()
        integrator.update_velocities(state, forces, new_forces)

        if constraints is not None:
            constraints.apply_velocities(
                state.positions, state.velocities, masses, state.box
            )

        self._coupling.apply(state.velocities, masses, dt)

        self._forces = new_forces
        self._potential_energy = potential_energy
        state.forces = new_forces.copy()
        state.time += dt
        state.step += 1
        self._steps_done += 1

        if self._reporters.due(state.step):
            self._reporters.report(state.freeze(), **self._report_kwargs())

        if self._steps_done >= self._n_steps:
            self._status = EngineStatus.COMPLETE

    def _report_kwargs(self) -> dict[str, Any]:
        return {
            "step": self._state.step,
            "potential_energy": self._potential_energy,
            "temperature": self.temperature,
            "neighbors": self._neighbors,
        }

    def run(self, nsteps: int | None = None) -> MDState:
        """
        Run the simulation.

        Args:
            nsteps: Number of steps to run. Defaults to all remaining steps;
                the run stops early if the engine becomes COMPLETE.

        Returns:
            Final simulation state.
        """
        remaining = self._n_steps - self._steps_done
        nsteps = remaining if nsteps is None else min(nsteps, remaining)

        logger.info(
            "Starting run of %d steps (%d of %d done)",
            nsteps,
            self._steps_done,
            self._n_steps,
        )
        self._reporters.initialize(self._state.freeze())
        start_time = time.perf_counter()

        try:
            for _ in range(nsteps):
                self.step()
        finally:
            self._wall_time += time.perf_counter() - start_time
            self._reporters.finalize(self._state.freeze())

        logger.info(
            "Finished run at step %d, status %s",
            self._state.step,
            self._status.value,
        )
        return self._state
