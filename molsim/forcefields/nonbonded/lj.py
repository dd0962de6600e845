"""Lennard-Jones and soft-sphere pair potentials."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from .cutoffs import NoCutoff
from .interaction import PairContext, PairParams, PairwiseInteraction

# Default cap on the scalar pair force. This is a stability fudge for
# near-overlapping atoms, not physics: forces above it are silently wrong.
DEFAULT_MAX_FORCE = 1.0e6


class LennardJones(PairwiseInteraction):
    """
    Lennard-Jones 12-6 potential.

    V(r) = 4 * epsilon * [(sigma/r)^12 - (sigma/r)^6]

    Pair parameters come from the particles: epsilon is always the geometric
    mean, sigma the geometric mean or, with ``lorentz_mixing``, the
    arithmetic mean. A pair in which either particle has ``sigma == 0`` does
    not interact unless ``skip_shortcut`` is set.

    The scalar force is capped at ``max_force`` to survive close contacts in
    badly prepared starting structures. Capped forces are not physical and
    each capping event is logged as a warning.

    Attributes:
        cutoff: Cutoff policy.
        lorentz_mixing: Use the arithmetic mean for sigma.
        skip_shortcut: Evaluate pairs with zero sigma instead of skipping them.
        weight_14: Scale factor for special (1-4) pairs.
        max_force: Force magnitude cap.
    """

    def __init__(
        self,
        cutoff: NoCutoff | None = None,
        lorentz_mixing: bool = False,
        skip_shortcut: bool = False,
        weight_14: float = 1.0,
        max_force: float | None = DEFAULT_MAX_FORCE,
    ) -> None:
        super().__init__(cutoff=cutoff, weight_14=weight_14, max_force=max_force)
        self.lorentz_mixing = lorentz_mixing
        self.skip_shortcut = skip_shortcut

    def interacting(self, ctx: PairContext) -> NDArray[np.bool_]:
        if self.skip_shortcut:
            return np.ones(len(ctx), dtype=bool)
        sigmas = ctx.particles.sigmas
        return (sigmas[ctx.i] != 0) & (sigmas[ctx.j] != 0)

    def pair_params(self, ctx: PairContext) -> PairParams:
        sig_i = ctx.particles.sigmas[ctx.i]
        sig_j = ctx.particles.sigmas[ctx.j]
        if self.lorentz_mixing:
            sigma = 0.5 * (sig_i + sig_j)
        else:
            sigma = np.sqrt(sig_i * sig_j)
        epsilon = np.sqrt(ctx.particles.epsilons[ctx.i] * ctx.particles.epsilons[ctx.j])
        return sigma**2, epsilon

    def force_divr(self, r2, invr2, params):
        sigma2, epsilon = params
        six_term = (sigma2 * invr2) ** 3
        return (24.0 * epsilon * invr2) * (2.0 * six_term**2 - six_term)

    def potential(self, r2, invr2, params):
        sigma2, epsilon = params
        six_term = (sigma2 * invr2) ** 3
        return 4.0 * epsilon * (six_term**2 - six_term)


class SoftSphere(LennardJones):
    """
    Purely repulsive soft-sphere potential.

    V(r) = 4 * epsilon * (sigma/r)^12

    Shares mixing, zero-sigma shortcut and force cap with
    :class:`LennardJones`, but mixes sigma arithmetically by default.
    """

    def __init__(
        self,
        cutoff: NoCutoff | None = None,
        lorentz_mixing: bool = True,
        skip_shortcut: bool = False,
        weight_14: float = 1.0,
        max_force: float | None = DEFAULT_MAX_FORCE,
    ) -> None:
        super().__init__(
            cutoff=cutoff,
            lorentz_mixing=lorentz_mixing,
            skip_shortcut=skip_shortcut,
            weight_14=weight_14,
            max_force=max_force,
        )

    def force_divr(self, r2, invr2, params):
        sigma2, epsilon = params
        six_term = (sigma2 * invr2) ** 3
        return (24.0 * epsilon * invr2) * (2.0 * six_term**2)

    def potential(self, r2, invr2, params):
        sigma2, epsilon = params
        six_term = (sigma2 * invr2) ** 3
        return 4.0 * epsilon * six_term**2
