"""
Cutoff policies for pairwise interactions.

A cutoff wraps a kernel's raw ``force_divr`` / ``potential`` functions, so
every policy works with every pairwise interaction. ``force_divr`` is the
scalar force divided by distance: the force on ``j`` is ``force_divr * dr``
with ``dr = r_j - r_i``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

if TYPE_CHECKING:
    from .interaction import PairParams, PairwiseInteraction


def _take(params: PairParams, mask: NDArray[np.bool_]) -> PairParams:
    return tuple(p[mask] for p in params)


class NoCutoff:
    """Evaluate the raw kernel at every distance."""

    dist_cutoff = np.inf

    def force_divr(
        self,
        inter: PairwiseInteraction,
        r2: NDArray[np.floating],
        invr2: NDArray[np.floating],
        params: PairParams,
    ) -> NDArray[np.floating]:
        return inter.force_divr(r2, invr2, params)

    def potential(
        self,
        inter: PairwiseInteraction,
        r2: NDArray[np.floating],
        invr2: NDArray[np.floating],
        params: PairParams,
    ) -> NDArray[np.floating]:
        return inter.potential(r2, invr2, params)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class DistanceCutoff(NoCutoff):
    """
    Hard cutoff: the raw kernel inside ``dist_cutoff``, zero beyond it.

    The energy is discontinuous at the boundary. ``dist_cutoff`` is an
    absolute distance in the units of the positions. It is not scaled by
    the pair's sigma, so parameters given in multiples of sigma must be
    converted first (``2.5 * sigma`` rather than ``2.5``). The same holds
    for every cutoff policy derived from this one.

    Attributes:
        dist_cutoff: Cutoff distance.
        sqdist_cutoff: Squared cutoff distance.
        inv_sqdist_cutoff: Inverse of the squared cutoff distance.
    """

    def __init__(self, dist_cutoff: float) -> None:
        if not dist_cutoff > 0:
            raise ValueError(f"dist_cutoff must be positive, got {dist_cutoff}")
        self.dist_cutoff = float(dist_cutoff)
        self.sqdist_cutoff = self.dist_cutoff**2
        self.inv_sqdist_cutoff = 1.0 / self.sqdist_cutoff

    def _at_cutoff(self, n: int) -> tuple[NDArray[np.floating], NDArray[np.floating]]:
        return np.full(n, self.sqdist_cutoff), np.full(n, self.inv_sqdist_cutoff)

    def _inside_force_divr(
        self,
        inter: PairwiseInteraction,
        r2: NDArray[np.floating],
        invr2: NDArray[np.floating],
        params: PairParams,
    ) -> NDArray[np.floating]:
        return inter.force_divr(r2, invr2, params)

    def _inside_potential(
        self,
        inter: PairwiseInteraction,
        r2: NDArray[np.floating],
        invr2: NDArray[np.floating],
        params: PairParams,
    ) -> NDArray[np.floating]:
        return inter.potential(r2, invr2, params)

    def force_divr(self, inter, r2, invr2, params):
        out = np.zeros_like(r2)
        inside = r2 <= self.sqdist_cutoff
        if np.any(inside):
            out[inside] = self._inside_force_divr(
                inter, r2[inside], invr2[inside], _take(params, inside)
            )
        return out

    def potential(self, inter, r2, invr2, params):
        out = np.zeros_like(r2)
        inside = r2 <= self.sqdist_cutoff
        if np.any(inside):
            out[inside] = self._inside_potential(
                inter, r2[inside], invr2[inside], _take(params, inside)
            )
        return out

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.dist_cutoff})"


class ShiftedPotentialCutoff(DistanceCutoff):
    """
    Shift the energy so it is zero at the cutoff.

    V_sp(r) = V(r) - V(r_c). Forces are the raw kernel inside the cutoff,
    so the force is still discontinuous at ``r_c``.
    """

    def _inside_potential(self, inter, r2, invr2, params):
        rc2, inv_rc2 = self._at_cutoff(len(r2))
        return inter.potential(r2, invr2, params) - inter.potential(
            rc2, inv_rc2, params
        )


class ShiftedForceCutoff(DistanceCutoff):
    """
    Shift both force and energy so they vanish at the cutoff.

    F_sf(r) = F(r) - F(r_c)
    V_sf(r) = V(r) - V(r_c) + (r - r_c) * F(r_c)
    """

    def _inside_force_divr(self, inter, r2, invr2, params):
        rc2, inv_rc2 = self._at_cutoff(len(r2))
        force_rc = inter.force_divr(rc2, inv_rc2, params) * self.dist_cutoff
        return inter.force_divr(r2, invr2, params) - force_rc * np.sqrt(invr2)

    def _inside_potential(self, inter, r2, invr2, params):
        rc2, inv_rc2 = self._at_cutoff(len(r2))
        force_rc = inter.force_divr(rc2, inv_rc2, params) * self.dist_cutoff
        r = np.sqrt(r2)
        return (
            inter.potential(r2, invr2, params)
            - inter.potential(rc2, inv_rc2, params)
            + (r - self.dist_cutoff) * force_rc
        )
