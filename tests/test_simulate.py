"""Tests for the high-level simulation API."""

import numpy as np
import pytest

from molsim import simulate


class TestLJFluid:
    """Test the Lennard-Jones fluid runner."""

    def test_result_shapes(self):
        result = simulate.lj_fluid(
            n_atoms=27,
            n_steps=50,
            n_equil=10,
            cutoff=1.5,
            seed=1,
            verbose=False,
        )

        assert result.n_atoms == 27
        assert result.n_steps == 50
        assert result.kinetic_energy.shape == (50,)
        assert result.temperature.shape == (50,)
        assert result.positions.shape == (5, 27, 3)
        assert result.final_state.step == 50
        assert result.box_size == pytest.approx((27 / 0.5) ** (1 / 3))

    def test_energy_conserved(self):
        result = simulate.lj_fluid(
            n_atoms=27,
            n_steps=100,
            n_equil=20,
            cutoff=1.5,
            seed=2,
            verbose=False,
        )
        assert np.all(np.isfinite(result.total_energy))
        assert np.ptp(result.total_energy) < 0.05 * np.ptp(result.kinetic_energy)

    @pytest.mark.parametrize("strategy", ["distance", "tree", "none"])
    def test_strategies_agree(self, strategy):
        """Every neighbor strategy produces the same trajectory."""
        kwargs = dict(
            n_atoms=27, n_steps=20, n_equil=0, cutoff=1.5, seed=3, verbose=False
        )
        reference = simulate.lj_fluid(neighbor_strategy="cell", **kwargs)
        result = simulate.lj_fluid(neighbor_strategy=strategy, **kwargs)
        assert np.allclose(
            result.final_state.positions, reference.final_state.positions, atol=1e-8
        )

    def test_verbose_output(self, capsys):
        simulate.lj_fluid(n_atoms=8, n_steps=5, n_equil=0, cutoff=1.0, skin=0.2)
        out = capsys.readouterr().out
        assert "LJ Fluid" in out
        assert "done" in out


class TestConstrainedDiatomics:
    """Test the rigid diatomic runner."""

    def test_constraints_hold(self):
        result = simulate.constrained_diatomics(
            n_molecules=16,
            n_steps=50,
            n_equil=10,
            cutoff=2.0,
            seed=4,
            verbose=False,
        )

        assert result.n_atoms == 32
        assert result.max_constraint_error < 1e-6
        positions = result.final_state.positions
        box = result.final_state.box
        lengths = [
            box.minimum_image_distance(positions[2 * m], positions[2 * m + 1])
            for m in range(16)
        ]
        assert np.allclose(lengths, 0.5, atol=1e-6)

    def test_temperature_uses_constrained_dof(self):
        result = simulate.constrained_diatomics(
            n_molecules=8,
            n_steps=10,
            n_equil=0,
            cutoff=1.5,
            seed=5,
            verbose=False,
        )
        state = result.final_state
        n_dof = 3 * 16 - 3 - 8
        assert result.temperature[-1] == pytest.approx(
            2.0 * state.kinetic_energy / n_dof
        )
