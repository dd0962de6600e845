"""Tests for integrators and velocity coupling hooks."""

import numpy as np
import pytest

from molsim.integrators import (
    AndersenThermostat,
    BerendsenThermostat,
    FrictionThermostat,
    NoCoupling,
    StormerVerletIntegrator,
    VelocityRescaleThermostat,
    VelocityVerletIntegrator,
    maxwell_boltzmann_velocities,
)
from molsim.system.box import Box
from molsim.system.state import MDState

SPRING_K = 4.0
CENTER = 5.0


def spring_forces(state):
    """Every atom is tied to the box centre by an isotropic spring."""
    return -SPRING_K * (state.positions - CENTER)


def spring_energy(state):
    return 0.5 * SPRING_K * np.sum((state.positions - CENTER) ** 2)


@pytest.fixture
def harmonic_state():
    """Two atoms displaced from the centre of a harmonic well."""
    return MDState.create(
        positions=np.array([[4.5, 5.0, 5.0], [5.0, 5.3, 5.0]]),
        masses=np.array([1.0, 2.0]),
        box=Box.cubic(10.0),
        velocities=np.array([[0.0, 0.2, 0.0], [0.1, 0.0, -0.1]]),
    )


@pytest.fixture
def zero_force():
    """Zero forces for testing."""
    return np.zeros((2, 3))


class TestVelocityVerletIntegrator:
    """Test the velocity Verlet integrator."""

    def test_timestep_property(self):
        integrator = VelocityVerletIntegrator(dt=0.002)
        assert integrator.timestep == 0.002
        assert integrator.dt == 0.002
        assert integrator.supports_constraints
        assert integrator.stores_velocities

    @pytest.mark.parametrize("dt", [0.0, -0.001])
    def test_invalid_timestep(self, dt):
        with pytest.raises(ValueError):
            VelocityVerletIntegrator(dt=dt)

    def test_full_step_updates_time(self, harmonic_state):
        integrator = VelocityVerletIntegrator(dt=0.01)
        forces = spring_forces(harmonic_state)

        new_forces = integrator.full_step(harmonic_state, forces, spring_forces)

        assert harmonic_state.time == pytest.approx(0.01)
        assert harmonic_state.step == 1
        assert np.allclose(harmonic_state.forces, new_forces)

    def test_constant_velocity_no_force(self, harmonic_state, zero_force):
        """Free atoms drift in a straight line."""
        dt = 0.001
        integrator = VelocityVerletIntegrator(dt=dt)
        initial = harmonic_state.positions.copy()
        velocities = harmonic_state.velocities.copy()

        for _ in range(10):
            integrator.update_positions(harmonic_state, zero_force)
            integrator.update_velocities(harmonic_state, zero_force, zero_force)

        assert np.allclose(harmonic_state.positions, initial + 10 * dt * velocities)
        assert np.allclose(harmonic_state.velocities, velocities)

    def test_positions_wrapped(self, zero_force):
        """Atoms leaving the box re-enter on the other side."""
        state = MDState.create(
            positions=np.array([[9.99, 5.0, 5.0], [0.01, 5.0, 5.0]]),
            box=Box.cubic(10.0),
            velocities=np.array([[1.0, 0.0, 0.0], [-1.0, 0.0, 0.0]]),
        )
        VelocityVerletIntegrator(dt=0.02).update_positions(state, zero_force)
        assert np.allclose(state.positions[:, 0], [0.01, 9.99])

    def test_energy_conservation(self, harmonic_state):
        """Total energy in a harmonic well stays close to its initial value."""
        integrator = VelocityVerletIntegrator(dt=0.005)
        forces = spring_forces(harmonic_state)
        e0 = spring_energy(harmonic_state) + harmonic_state.kinetic_energy

        for _ in range(2000):
            forces = integrator.full_step(harmonic_state, forces, spring_forces)

        e1 = spring_energy(harmonic_state) + harmonic_state.kinetic_energy
        assert abs(e1 - e0) / e0 < 1e-3


class TestStormerVerletIntegrator:
    """Test the velocity-free Verlet integrator."""

    def test_flags(self):
        integrator = StormerVerletIntegrator(dt=0.01)
        assert not integrator.supports_constraints
        assert not integrator.stores_velocities

    def test_previous_positions(self):
        positions = np.array([[1.0, 2.0, 3.0]])
        velocities = np.array([[0.5, 0.0, -1.0]])
        previous = StormerVerletIntegrator.previous_positions(
            positions, velocities, 0.1
        )
        assert np.allclose(previous, [[0.95, 2.0, 3.1]])

    def test_free_drift(self, zero_force):
        """With no force the displacement per step repeats."""
        positions = np.array([[4.0, 5.0, 5.0], [6.0, 5.0, 5.0]])
        previous = positions - np.array([[0.01, 0.0, 0.0], [0.0, -0.02, 0.0]])
        state = MDState.create(positions, Box.cubic(10.0), velocities=previous)
        integrator = StormerVerletIntegrator(dt=0.01)

        integrator.update_positions(state, zero_force)

        assert np.allclose(state.velocities, positions)
        assert np.allclose(state.positions, [[4.01, 5.0, 5.0], [6.0, 4.98, 5.0]])

    def test_force_term(self):
        """A constant force adds dt^2 a to the displacement."""
        positions = np.array([[5.0, 5.0, 5.0]])
        state = MDState.create(
            positions,
            Box.cubic(10.0),
            masses=np.array([2.0]),
            velocities=positions.copy(),
        )
        StormerVerletIntegrator(dt=0.1).update_positions(
            state, np.array([[4.0, 0.0, 0.0]])
        )
        assert state.positions[0, 0] == pytest.approx(5.0 + 0.01 * 2.0)

    def test_wraps_across_boundary(self, zero_force):
        """The previous position is compared by minimum image."""
        positions = np.array([[0.01, 5.0, 5.0], [5.0, 5.0, 5.0]])
        previous = np.array([[9.99, 5.0, 5.0], [5.0, 5.0, 5.0]])
        state = MDState.create(positions, Box.cubic(10.0), velocities=previous)

        StormerVerletIntegrator(dt=0.01).update_positions(state, zero_force)

        assert state.positions[0, 0] == pytest.approx(0.03)

    def test_matches_velocity_verlet_trajectory(self, harmonic_state):
        """Both schemes generate the same positions from matching starts."""
        dt = 0.01
        vv_state = harmonic_state.copy()
        st_state = harmonic_state.copy()
        forces = spring_forces(st_state)
        accel = forces / st_state.masses[:, np.newaxis]
        # r(-dt) consistent with velocity Verlet's first drift
        st_state.velocities = (
            st_state.positions - dt * st_state.velocities + 0.5 * dt**2 * accel
        )

        vv = VelocityVerletIntegrator(dt)
        st = StormerVerletIntegrator(dt)
        vv_forces = forces.copy()
        st_forces = forces.copy()
        for _ in range(50):
            vv_forces = vv.full_step(vv_state, vv_forces, spring_forces)
            st_forces = st.full_step(st_state, st_forces, spring_forces)

        assert np.allclose(vv_state.positions, st_state.positions, atol=1e-9)


class TestCouplingHooks:
    """Test thermostats acting on velocity arrays."""

    @pytest.fixture
    def velocities(self):
        return np.random.default_rng(11).normal(size=(20, 3))

    @pytest.fixture
    def masses(self):
        return np.linspace(1.0, 4.0, 20)

    def test_no_coupling(self, velocities, masses):
        before = velocities.copy()
        NoCoupling().apply(velocities, masses, 0.01)
        assert np.array_equal(velocities, before)

    def test_temperature_uses_setup_dof(self, velocities, masses):
        hook = NoCoupling(boltzmann=1.0)
        default = hook.temperature(velocities, masses)
        hook.setup(30)
        assert hook.temperature(velocities, masses) == pytest.approx(
            default * 57 / 30
        )

    def test_velocity_rescale_hits_target(self, velocities, masses):
        thermostat = VelocityRescaleThermostat(temperature=2.5, boltzmann=1.0)
        thermostat.setup(57)
        thermostat.apply(velocities, masses, 0.01)
        assert thermostat.temperature(velocities, masses) == pytest.approx(2.5)

    def test_velocity_rescale_ignores_zero(self, masses):
        velocities = np.zeros((20, 3))
        VelocityRescaleThermostat(temperature=300.0).apply(velocities, masses, 0.01)
        assert np.allclose(velocities, 0.0)

    def test_berendsen_moves_toward_target(self, velocities, masses):
        thermostat = BerendsenThermostat(temperature=5.0, tau=0.1, boltzmann=1.0)
        before = thermostat.temperature(velocities, masses)
        thermostat.apply(velocities, masses, 0.01)
        after = thermostat.temperature(velocities, masses)
        assert before < after < 5.0
        # T' = T + dt/tau (T0 - T)
        assert after == pytest.approx(before + 0.1 * (5.0 - before))

    def test_berendsen_tau_equal_dt(self, velocities, masses):
        """With tau == dt the target is reached in one step."""
        thermostat = BerendsenThermostat(temperature=0.4, tau=0.01, boltzmann=1.0)
        thermostat.apply(velocities, masses, 0.01)
        assert thermostat.temperature(velocities, masses) == pytest.approx(0.4)

    def test_berendsen_invalid_tau(self):
        with pytest.raises(ValueError):
            BerendsenThermostat(temperature=300.0, tau=0.0)

    def test_andersen_always_collides(self, velocities, masses):
        """A collision probability of one redraws every atom."""
        before = velocities.copy()
        AndersenThermostat(
            temperature=1.0, coupling_const=0.01, seed=3, boltzmann=1.0
        ).apply(velocities, masses, 0.01)
        assert not np.any(np.all(np.isclose(velocities, before), axis=1))

    def test_andersen_seeded(self, velocities, masses):
        first = velocities.copy()
        second = velocities.copy()
        for v in (first, second):
            AndersenThermostat(
                temperature=1.0, coupling_const=0.05, seed=42, boltzmann=1.0
            ).apply(v, masses, 0.01)
        assert np.array_equal(first, second)

    def test_andersen_rare_collisions(self, velocities, masses):
        before = velocities.copy()
        AndersenThermostat(temperature=1.0, coupling_const=1e12, seed=0).apply(
            velocities, masses, 0.01
        )
        assert np.array_equal(velocities, before)

    def test_andersen_invalid(self):
        with pytest.raises(ValueError):
            AndersenThermostat(temperature=300.0, coupling_const=-1.0)

    def test_friction(self, velocities, masses):
        before = velocities.copy()
        FrictionThermostat(0.9).apply(velocities, masses, 0.01)
        assert np.allclose(velocities, 0.9 * before)


class TestMaxwellBoltzmann:
    """Test initial velocity sampling."""

    def test_shape_and_seed(self):
        masses = np.ones(5)
        a = maxwell_boltzmann_velocities(masses, 300.0, np.random.default_rng(1))
        b = maxwell_boltzmann_velocities(masses, 300.0, np.random.default_rng(1))
        assert a.shape == (5, 3)
        assert np.array_equal(a, b)

    def test_variance(self):
        """Component variance is k_B T / m."""
        masses = np.full(20000, 2.0)
        velocities = maxwell_boltzmann_velocities(
            masses, 3.0, np.random.default_rng(7), boltzmann=1.0
        )
        assert np.var(velocities) == pytest.approx(1.5, rel=0.03)
        assert np.mean(velocities) == pytest.approx(0.0, abs=0.03)

    def test_zero_temperature(self):
        velocities = maxwell_boltzmann_velocities(np.ones(4), 0.0)
        assert np.allclose(velocities, 0.0)
