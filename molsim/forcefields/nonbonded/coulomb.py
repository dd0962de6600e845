"""Coulomb electrostatic pair potentials."""

from __future__ import annotations

import numpy as np

from .cutoffs import DistanceCutoff, NoCutoff
from .interaction import PairContext, PairParams, PairwiseInteraction

# Coulomb constant in MD units (kJ*nm / (mol*e^2))
# This is 1/(4*pi*epsilon_0) in MD units
COULOMB_CONSTANT = 138.935458  # kJ*nm/(mol*e^2)


class Coulomb(PairwiseInteraction):
    """
    Direct Coulomb electrostatic interaction.

    V(r) = k_e * q_i * q_j / r

    Attributes:
        cutoff: Cutoff policy.
        coulomb_const: Coulomb constant in the unit system of the run.
        weight_14: Scale factor for special (1-4) pairs.
    """

    def __init__(
        self,
        cutoff: NoCutoff | None = None,
        coulomb_const: float = COULOMB_CONSTANT,
        weight_14: float = 1.0,
    ) -> None:
        super().__init__(cutoff=cutoff, weight_14=weight_14)
        self.coulomb_const = coulomb_const

    def pair_params(self, ctx: PairContext) -> PairParams:
        charges = ctx.particles.charges
        return (self.coulomb_const * charges[ctx.i] * charges[ctx.j],)

    def force_divr(self, r2, invr2, params):
        (kqq,) = params
        return kqq * invr2 * np.sqrt(invr2)

    def potential(self, r2, invr2, params):
        (kqq,) = params
        return kqq * np.sqrt(invr2)


class CoulombReactionField(PairwiseInteraction):
    """
    Coulomb interaction with a reaction-field correction.

    The medium beyond the cutoff is treated as a dielectric continuum:

        V(r) = k_e * q_i * q_j * (1/r + k_rf * r^2 - c_rf)
        k_rf = (eps_s - 1) / ((2 * eps_s + 1) * r_c^3)
        c_rf = 3 * eps_s / ((2 * eps_s + 1) * r_c)

    Special (1-4) pairs use ``rf_scale_14 * (k_rf, c_rf)``. The default of
    0 evaluates them as plain Coulomb.

    Attributes:
        dist_cutoff: Reaction-field cutoff radius r_c.
        solvent_dielectric: Relative permittivity eps_s beyond the cutoff.
        coulomb_const: Coulomb constant in the unit system of the run.
        weight_14: Scale factor for special (1-4) pairs.
        rf_scale_14: Scale on k_rf and c_rf for special pairs.
        krf: Reaction-field coefficient k_rf.
        crf: Reaction-field constant c_rf.
    """

    def __init__(
        self,
        dist_cutoff: float = 1.0,
        solvent_dielectric: float = 78.3,
        coulomb_const: float = COULOMB_CONSTANT,
        weight_14: float = 1.0,
        rf_scale_14: float = 0.0,
    ) -> None:
        super().__init__(cutoff=DistanceCutoff(dist_cutoff), weight_14=weight_14)
        self.solvent_dielectric = solvent_dielectric
        self.coulomb_const = coulomb_const
        self.rf_scale_14 = rf_scale_14

        eps = solvent_dielectric
        self.krf = (eps - 1.0) / ((2.0 * eps + 1.0) * dist_cutoff**3)
        self.crf = 3.0 * eps / ((2.0 * eps + 1.0) * dist_cutoff)

    def pair_params(self, ctx: PairContext) -> PairParams:
        charges = ctx.particles.charges
        kqq = self.coulomb_const * charges[ctx.i] * charges[ctx.j]
        scale = np.where(ctx.special, self.rf_scale_14, 1.0)
        return kqq, scale * self.krf, scale * self.crf

    def force_divr(self, r2, invr2, params):
        kqq, krf, _ = params
        return kqq * (invr2 * np.sqrt(invr2) - 2.0 * krf)

    def potential(self, r2, invr2, params):
        kqq, krf, crf = params
        return kqq * (np.sqrt(invr2) + krf * r2 - crf)
