"""
Simple high-level simulation API.

This module provides a user-friendly interface for running MD simulations
with minimal configuration. Both runs use reduced Lennard-Jones units
(sigma = epsilon = mass = k_B = 1).

Example:
    >>> from molsim import simulate
    >>> result = simulate.lj_fluid(n_atoms=108, temperature=1.0, n_steps=1000)
    >>> print(result.mean_temperature)
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace

import numpy as np
from numpy.typing import NDArray

from .config import SimulationConfig, build_engine
from .constraints import DistanceConstraint
from .engines import EnergyReporter, TemperatureReporter, TrajectoryReporter
from .forcefields import ForceField, LennardJones, PairwiseForce, ShiftedPotentialCutoff
from .integrators import VelocityRescaleThermostat, maxwell_boltzmann_velocities
from .neighborlists.factory import NeighborStrategy
from .system import Box, MDState, ParticleArray


@dataclass
class SimulationResult:
    """Results from a simulation run."""

    # Trajectory data
    positions: NDArray[np.floating] = field(default_factory=lambda: np.array([]))

    # Energy time series
    kinetic_energy: NDArray[np.floating] = field(default_factory=lambda: np.array([]))
    potential_energy: NDArray[np.floating] = field(default_factory=lambda: np.array([]))
    total_energy: NDArray[np.floating] = field(default_factory=lambda: np.array([]))
    temperature: NDArray[np.floating] = field(default_factory=lambda: np.array([]))

    # Summary statistics
    mean_temperature: float = 0.0
    mean_potential_energy: float = 0.0
    mean_kinetic_energy: float = 0.0
    energy_drift: float = 0.0
    energy_fluctuation: float = 0.0
    max_constraint_error: float = 0.0

    # Metadata
    n_atoms: int = 0
    n_steps: int = 0
    timestep: float = 0.0
    box_size: float = 0.0
    final_state: MDState | None = None


def _create_lattice_positions(
    n_sites: int, box_length: float, rng: np.random.Generator, jitter: float = 0.1
) -> NDArray[np.floating]:
    """Create positions on a cubic lattice with small random displacements."""
    n_side = int(np.ceil(n_sites ** (1 / 3)))
    spacing = box_length / n_side
    grid = np.arange(n_side)
    ix, iy, iz = np.meshgrid(grid, grid, grid, indexing="ij")
    sites = np.stack([ix.ravel(), iy.ravel(), iz.ravel()], axis=1)[:n_sites]
    positions = (sites + 0.5) * spacing
    positions += rng.uniform(-jitter, jitter, positions.shape)
    return positions


def _initial_velocities(
    masses: NDArray[np.floating], temperature: float, rng: np.random.Generator
) -> NDArray[np.floating]:
    velocities = maxwell_boltzmann_velocities(masses, temperature, rng, boltzmann=1.0)
    # Remove centre-of-mass drift
    momentum = np.sum(masses[:, np.newaxis] * velocities, axis=0)
    velocities -= momentum / np.sum(masses)
    return velocities


def _summarize(
    energy: EnergyReporter,
    thermo: TemperatureReporter,
    trajectory: TrajectoryReporter,
    n_steps: int,
) -> SimulationResult:
    pe_arr = energy.potential_energy
    ke_arr = energy.kinetic_energy
    total_arr = energy.total_energy
    temp_arr = thermo.temperatures
    mean_total = np.abs(np.mean(total_arr)) if len(total_arr) else 0.0

    return SimulationResult(
        positions=trajectory.positions,
        kinetic_energy=ke_arr,
        potential_energy=pe_arr,
        total_energy=total_arr,
        temperature=temp_arr,
        mean_temperature=float(np.mean(temp_arr)) if len(temp_arr) else 0.0,
        mean_potential_energy=float(np.mean(pe_arr)) if len(pe_arr) else 0.0,
        mean_kinetic_energy=float(np.mean(ke_arr)) if len(ke_arr) else 0.0,
        energy_drift=(
            float((total_arr[-1] - total_arr[0]) / n_steps) if len(total_arr) else 0.0
        ),
        energy_fluctuation=(
            float(np.std(total_arr) / mean_total) if mean_total > 0 else 0.0
        ),
        n_steps=n_steps,
    )


def _run(
    config: SimulationConfig,
    state: MDState,
    forcefield: ForceField,
    eligible: NDArray[np.bool_],
    constraints: list[DistanceConstraint] | None,
    temperature: float,
    n_equil: int,
    report_every: int,
) -> tuple[SimulationResult, MDState, float]:
    if n_equil > 0:
        equil_config = replace(config, n_steps=n_equil)
        equil = build_engine(
            equil_config,
            state,
            forcefield,
            eligible=eligible,
            constraints=constraints,
            coupling=VelocityRescaleThermostat(temperature, boltzmann=1.0),
        )
        state = equil.run()
        state.step = 0
        state.time = 0.0

    energy = EnergyReporter(frequency=1)
    thermo = TemperatureReporter(frequency=1)
    trajectory = TrajectoryReporter(frequency=report_every)
    engine = build_engine(
        config,
        state,
        forcefield,
        eligible=eligible,
        constraints=constraints,
        reporters=[energy, thermo, trajectory],
    )
    final_state = engine.run()

    constraint_error = 0.0
    if engine.constraints is not None:
        errors = engine.constraints.length_errors(
            final_state.positions, final_state.box
        )
        constraint_error = float(np.max(errors))

    result = _summarize(energy, thermo, trajectory, config.n_steps)
    return result, final_state, constraint_error


def lj_fluid(
    n_atoms: int = 108,
    temperature: float = 1.0,
    density: float = 0.5,
    n_steps: int = 1000,
    n_equil: int = 200,
    timestep: float = 0.001,
    cutoff: float = 2.5,
    skin: float = 0.3,
    neighbor_strategy: NeighborStrategy = "cell",
    backend: str = "serial",
    seed: int = 42,
    verbose: bool = True,
) -> SimulationResult:
    """
    Run a Lennard-Jones fluid simulation.

    The fluid is equilibrated with velocity rescaling and then run in the
    microcanonical ensemble with a shifted-potential cutoff.

    Args:
        n_atoms: Number of atoms (default: 108).
        temperature: Reduced temperature T* = kT/epsilon (default: 1.0).
        density: Reduced density rho* = N sigma^3 / V (default: 0.5).
        n_steps: Number of production steps (default: 1000).
        n_equil: Number of equilibration steps (default: 200).
        timestep: Integration timestep in reduced units (default: 0.001).
        cutoff: LJ cutoff distance in sigma (default: 2.5).
        skin: Extra neighbor search distance beyond the cutoff (default: 0.3).
        neighbor_strategy: Neighbor search strategy (default: "cell").
        backend: Parallel backend name (default: "serial").
        seed: Random seed for reproducibility (default: 42).
        verbose: Print progress (default: True).

    Returns:
        SimulationResult with trajectory and energy data.

    Example:
        >>> result = lj_fluid(n_atoms=108, temperature=1.0, n_steps=1000)
        >>> print(f"Mean temperature: {result.mean_temperature:.3f}")
    """
    rng = np.random.default_rng(seed)

    volume = n_atoms / density
    box_length = volume ** (1 / 3)
    box = Box.cubic(box_length)

    particles = ParticleArray.uniform(n_atoms, mass=1.0, sigma=1.0, epsilon=1.0)
    positions = _create_lattice_positions(n_atoms, box_length, rng)
    velocities = _initial_velocities(particles.masses, temperature, rng)
    state = MDState.create(
        box.wrap_positions(positions), box, particles=particles, velocities=velocities
    )

    forcefield = ForceField(
        [PairwiseForce([LennardJones(cutoff=ShiftedPotentialCutoff(cutoff))])]
    )
    eligible = ~np.eye(n_atoms, dtype=bool)
    config = SimulationConfig(
        dt=timestep,
        n_steps=n_steps,
        neighbor_strategy=neighbor_strategy,
        neighbor_cutoff=cutoff + skin,
        neighbor_n_steps=10,
        backend=backend,
        boltzmann=1.0,
    )

    if verbose:
        print(f"LJ Fluid: N={n_atoms}, rho*={density}, T*={temperature}")
        print(f"Running {n_equil} + {n_steps} steps...", end=" ", flush=True)

    result, final_state, _ = _run(
        config, state, forcefield, eligible, None, temperature, n_equil, 10
    )
    result.n_atoms = n_atoms
    result.timestep = timestep
    result.box_size = box_length
    result.final_state = final_state

    if verbose:
        print("done")
        print(f"  Mean T*: {result.mean_temperature:.3f}")
        print(f"  Energy fluctuation: {result.energy_fluctuation:.2e}")

    return result


def constrained_diatomics(
    n_molecules: int = 32,
    temperature: float = 1.0,
    density: float = 0.1,
    bond_length: float = 0.5,
    n_steps: int = 1000,
    n_equil: int = 100,
    timestep: float = 0.002,
    cutoff: float = 2.5,
    skin: float = 0.3,
    neighbor_strategy: NeighborStrategy = "cell",
    backend: str = "serial",
    seed: int = 42,
    verbose: bool = True,
) -> SimulationResult:
    """
    Run a fluid of rigid diatomic Lennard-Jones molecules.

    Each molecule is held at ``bond_length`` by a SHAKE/RATTLE distance
    constraint; atoms of the same molecule do not interact. Temperature is
    reported with the degrees of freedom the constraints remove.

    Args:
        n_molecules: Number of molecules (default: 32).
        temperature: Reduced temperature (default: 1.0).
        density: Molecules per unit volume (default: 0.1).
        bond_length: Constrained bond length (default: 0.5).
        n_steps: Number of production steps (default: 1000).
        n_equil: Number of equilibration steps (default: 100).
        timestep: Integration timestep in reduced units (default: 0.002).
        cutoff: LJ cutoff distance (default: 2.5).
        skin: Extra neighbor search distance beyond the cutoff (default: 0.3).
        neighbor_strategy: Neighbor search strategy (default: "cell").
        backend: Parallel backend name (default: "serial").
        seed: Random seed for reproducibility (default: 42).
        verbose: Print progress (default: True).

    Returns:
        SimulationResult with trajectory, energy data and the largest
        remaining constraint violation.
    """
    rng = np.random.default_rng(seed)
    n_atoms = 2 * n_molecules

    volume = n_molecules / density
    box_length = volume ** (1 / 3)
    box = Box.cubic(box_length)

    centres = _create_lattice_positions(n_molecules, box_length, rng, jitter=0.05)
    axes = rng.standard_normal((n_molecules, 3))
    axes /= np.linalg.norm(axes, axis=1, keepdims=True)
    positions = np.empty((n_atoms, 3))
    positions[0::2] = centres - 0.5 * bond_length * axes
    positions[1::2] = centres + 0.5 * bond_length * axes

    particles = ParticleArray.uniform(n_atoms, mass=1.0, sigma=1.0, epsilon=1.0)
    velocities = _initial_velocities(particles.masses, temperature, rng)
    state = MDState.create(
        box.wrap_positions(positions), box, particles=particles, velocities=velocities
    )

    constraints = [
        DistanceConstraint(2 * m, 2 * m + 1, bond_length) for m in range(n_molecules)
    ]
    eligible = ~np.eye(n_atoms, dtype=bool)
    forcefield = ForceField(
        [
            PairwiseForce(
                [LennardJones(cutoff=ShiftedPotentialCutoff(cutoff))],
                eligible=eligible,
            )
        ]
    )
    config = SimulationConfig(
        dt=timestep,
        n_steps=n_steps,
        neighbor_strategy=neighbor_strategy,
        neighbor_cutoff=cutoff + skin,
        neighbor_n_steps=10,
        backend=backend,
        dist_tolerance=1e-10,
        vel_tolerance=1e-10,
        boltzmann=1.0,
    )

    if verbose:
        print(f"Rigid diatomics: {n_molecules} molecules, d={bond_length}")
        print(f"Running {n_equil} + {n_steps} steps...", end=" ", flush=True)

    result, final_state, constraint_error = _run(
        config, state, forcefield, eligible, constraints, temperature, n_equil, 10
    )
    result.n_atoms = n_atoms
    result.timestep = timestep
    result.box_size = box_length
    result.final_state = final_state
    result.max_constraint_error = constraint_error

    if verbose:
        print("done")
        print(f"  Mean T*: {result.mean_temperature:.3f}")
        print(f"  Max constraint error: {result.max_constraint_error:.2e}")

    return result
