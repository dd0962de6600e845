"""Tests for SimulationConfig and engine assembly."""

import numpy as np
import pytest

from molsim import SimulationConfig, build_engine
from molsim.constraints import DistanceConstraint
from molsim.engines import EngineStatus
from molsim.errors import ConfigurationError
from molsim.forcefields import DistanceCutoff, LennardJones, PairwiseForce
from molsim.integrators import StormerVerletIntegrator, VelocityVerletIntegrator
from molsim.neighborlists import (
    CellListNeighborFinder,
    NoNeighborFinder,
    TreeNeighborFinder,
)
from molsim.system import Box, MDState, ParticleArray


@pytest.fixture
def small_state():
    """Eight atoms on a 2x2x2 lattice."""
    grid = np.array([0.5, 1.5])
    mesh = np.meshgrid(grid, grid, grid, indexing="ij")
    positions = np.stack(mesh, axis=-1).reshape(-1, 3)
    particles = ParticleArray.uniform(8, mass=1.0, sigma=0.5, epsilon=1.0)
    return MDState.create(positions, Box.cubic(2.0), particles=particles)


@pytest.fixture
def lj():
    return PairwiseForce([LennardJones(cutoff=DistanceCutoff(0.9))])


class TestSimulationConfig:
    """Test parameter validation."""

    def test_defaults(self):
        config = SimulationConfig()
        assert config.integrator == "velocity_verlet"
        assert config.neighbor_strategy == "cell"
        assert config.backend == "serial"

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"dt": 0.0},
            {"n_steps": -1},
            {"neighbor_strategy": "octree"},
            {"neighbor_cutoff": -1.0},
            {"neighbor_n_steps": 0},
            {"backend": "mpi"},
            {"n_workers": 0},
            {"integrator": "leapfrog"},
            {"dist_tolerance": 0.0},
            {"max_constraint_iterations": 0},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ConfigurationError):
            SimulationConfig(**kwargs)

    def test_create_integrator(self):
        vv = SimulationConfig(dt=0.004).create_integrator()
        assert isinstance(vv, VelocityVerletIntegrator)
        assert vv.timestep == 0.004
        stormer = SimulationConfig(integrator="stormer").create_integrator()
        assert isinstance(stormer, StormerVerletIntegrator)


class TestBuildEngine:
    """Test wiring an engine from a configuration."""

    def test_default_wiring(self, small_state, lj):
        config = SimulationConfig(n_steps=3, neighbor_cutoff=0.95)
        engine = build_engine(config, small_state, lj)

        assert isinstance(engine.neighbor_finder, CellListNeighborFinder)
        assert engine.neighbor_finder.dist_cutoff == 0.95
        assert engine.constraints is None
        assert engine.n_steps == 3
        engine.run()
        assert engine.status is EngineStatus.COMPLETE

    def test_threads_backend(self, small_state, lj):
        config = SimulationConfig(
            n_steps=2,
            neighbor_strategy="tree",
            backend="threads",
            n_workers=2,
        )
        engine = build_engine(config, small_state, lj)
        assert isinstance(engine.neighbor_finder, TreeNeighborFinder)
        assert engine.neighbor_finder.backend.name == "threads"
        assert engine.neighbor_finder.backend.n_workers == 2
        engine.run()
        engine.neighbor_finder.backend.close()

    def test_no_neighbor_strategy(self, small_state, lj):
        config = SimulationConfig(n_steps=2, neighbor_strategy="none")
        engine = build_engine(config, small_state, lj)
        assert isinstance(engine.neighbor_finder, NoNeighborFinder)
        engine.run()
        assert engine.neighbors is None

    def test_eligible_is_copied(self, small_state, lj):
        eligible = ~np.eye(8, dtype=bool)
        constraints = [DistanceConstraint(0, 1, 1.0)]
        engine = build_engine(
            SimulationConfig(n_steps=1),
            small_state,
            lj,
            eligible=eligible,
            constraints=constraints,
        )
        assert eligible[0, 1]
        assert not engine.neighbor_finder.eligible[0, 1]

    def test_constraint_solver(self, small_state, lj):
        config = SimulationConfig(
            n_steps=1,
            dist_tolerance=1e-9,
            vel_tolerance=1e-7,
            max_constraint_iterations=50,
        )
        engine = build_engine(
            config, small_state, lj, constraints=[DistanceConstraint(0, 1, 1.0)]
        )
        solver = engine.constraints
        assert solver.n_constraints == 1
        assert solver.dist_tolerance == 1e-9
        assert solver.vel_tolerance == 1e-7
        assert solver.max_iterations == 50
        assert engine.n_dof == 3 * 8 - 3 - 1

    def test_empty_constraints(self, small_state, lj):
        engine = build_engine(
            SimulationConfig(n_steps=1), small_state, lj, constraints=[]
        )
        assert engine.constraints is None

    def test_stormer_rejects_constraints(self, small_state, lj):
        config = SimulationConfig(n_steps=1, integrator="stormer")
        with pytest.raises(ConfigurationError):
            build_engine(
                config, small_state, lj, constraints=[DistanceConstraint(0, 1, 1.0)]
            )

    def test_config_revalidated(self, small_state, lj):
        """Fields changed after construction are checked again."""
        config = SimulationConfig()
        config.backend = "gpu"
        with pytest.raises(ConfigurationError, match="backend"):
            build_engine(config, small_state, lj)


class TestAllPairsExclusions:
    """Exclusions hold when forces run over all pairs instead of a list."""

    @pytest.fixture
    def chain(self):
        """Four atoms in a bent chain with an exclusion, a 1-4 pair and a bond."""
        positions = np.array(
            [
                [1.0, 1.0, 1.0],
                [1.35, 1.0, 1.0],
                [1.35, 1.35, 1.0],
                [1.7, 1.35, 1.0],
            ]
        )
        particles = ParticleArray.uniform(4, mass=12.0, sigma=0.3, epsilon=0.5)
        state = MDState.create(positions, Box.cubic(5.0), particles=particles)
        eligible = ~np.eye(4, dtype=bool)
        eligible[0, 1] = eligible[1, 0] = False
        special = np.zeros((4, 4), dtype=bool)
        special[0, 2] = special[2, 0] = True
        constraints = [DistanceConstraint(2, 3, 0.35)]
        return state, eligible, special, constraints

    @staticmethod
    def build(strategy, state, **kwargs):
        forcefield = PairwiseForce(
            [LennardJones(cutoff=DistanceCutoff(1.2), weight_14=0.5)]
        )
        config = SimulationConfig(
            n_steps=1, neighbor_strategy=strategy, neighbor_cutoff=1.3
        )
        return build_engine(config, state, forcefield, **kwargs)

    def test_none_matches_distance(self, chain):
        state, eligible, special, constraints = chain
        kwargs = dict(eligible=eligible, special=special, constraints=constraints)
        listed = self.build("distance", state, **kwargs)
        all_pairs = self.build("none", state, **kwargs)

        assert listed.neighbors.as_set() == {(0, 2), (0, 3), (1, 2), (1, 3)}
        assert all_pairs.potential_energy == pytest.approx(listed.potential_energy)
        assert np.allclose(all_pairs.state.forces, listed.state.forces)

    def test_exclusions_change_energy(self, chain):
        """Every excluded or scaled pair contributes without the matrices."""
        state, eligible, special, constraints = chain
        plain = self.build("none", state)
        excluded = self.build(
            "none", state, eligible=eligible, special=special, constraints=constraints
        )
        assert excluded.potential_energy != pytest.approx(plain.potential_energy)

    def test_constrained_pair_skipped(self, chain):
        """A constraint alone removes its pair from the all-pairs sum."""
        state, _, _, constraints = chain
        constrained = self.build("none", state, constraints=constraints)
        listed = self.build("distance", state, constraints=constraints)
        forcefield = constrained.force_provider
        assert not forcefield.eligible[2, 3]
        assert constrained.potential_energy == pytest.approx(listed.potential_energy)
