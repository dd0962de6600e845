"""Pairwise interaction interface."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING, Tuple

import numpy as np
from numpy.typing import NDArray

from .cutoffs import NoCutoff

if TYPE_CHECKING:
    from ...system import ParticleArray

logger = logging.getLogger(__name__)

PairParams = Tuple[NDArray[np.floating], ...]


@dataclass
class PairContext:
    """
    A batch of pairs handed to pairwise kernels.

    Attributes:
        dr: Minimum image displacements r_j - r_i, shape (M, 3).
        r2: Squared distances, shape (M,).
        i: First atom indices, shape (M,).
        j: Second atom indices, shape (M,).
        special: 1-4 pair flags, shape (M,).
        particles: Per-particle parameters of the whole system.
    """

    dr: NDArray[np.floating]
    r2: NDArray[np.floating]
    i: NDArray[np.integer]
    j: NDArray[np.integer]
    special: NDArray[np.bool_]
    particles: ParticleArray

    @classmethod
    def from_displacements(
        cls,
        dr: NDArray[np.floating],
        i: NDArray[np.integer],
        j: NDArray[np.integer],
        particles: ParticleArray,
        special: NDArray[np.bool_] | None = None,
    ) -> PairContext:
        dr = np.asarray(dr, dtype=np.float64).reshape(-1, 3)
        i = np.asarray(i, dtype=np.int64).reshape(-1)
        j = np.asarray(j, dtype=np.int64).reshape(-1)
        if special is None:
            special = np.zeros(len(i), dtype=bool)
        return cls(
            dr=dr,
            r2=np.einsum("ij,ij->i", dr, dr),
            i=i,
            j=j,
            special=np.asarray(special, dtype=bool).reshape(-1),
            particles=particles,
        )

    def __len__(self) -> int:
        return len(self.i)


class PairwiseInteraction(ABC):
    """
    Abstract base class for pairwise potentials.

    Subclasses provide the raw kernel as ``force_divr`` (scalar force over
    distance) and ``potential``, both as functions of r^2, 1/r^2 and the
    per-pair parameters from :meth:`pair_params`. The configured cutoff
    policy wraps the raw kernel, so any cutoff composes with any kernel.

    Attributes:
        cutoff: Cutoff policy.
        weight_14: Scale factor applied to special (1-4) pairs.
        max_force: Cap on the scalar force magnitude, or None for no cap.
    """

    def __init__(
        self,
        cutoff: NoCutoff | None = None,
        weight_14: float = 1.0,
        max_force: float | None = None,
    ) -> None:
        self.cutoff = cutoff if cutoff is not None else NoCutoff()
        self.weight_14 = float(weight_14)
        if max_force is not None and not max_force > 0:
            raise ValueError(f"max_force must be positive, got {max_force}")
        self.max_force = max_force

    @property
    def dist_cutoff(self) -> float:
        """Return the distance beyond which the interaction vanishes."""
        return self.cutoff.dist_cutoff

    @abstractmethod
    def pair_params(self, ctx: PairContext) -> PairParams:
        """Gather and mix the per-pair parameters."""
        ...

    @abstractmethod
    def force_divr(
        self,
        r2: NDArray[np.floating],
        invr2: NDArray[np.floating],
        params: PairParams,
    ) -> NDArray[np.floating]:
        """Raw kernel: scalar force divided by distance."""
        ...

    @abstractmethod
    def potential(
        self,
        r2: NDArray[np.floating],
        invr2: NDArray[np.floating],
        params: PairParams,
    ) -> NDArray[np.floating]:
        """Raw kernel: pair potential energy."""
        ...

    def interacting(self, ctx: PairContext) -> NDArray[np.bool_]:
        """Mask of pairs that interact at all."""
        return np.ones(len(ctx), dtype=bool)

    def _weights(self, ctx: PairContext) -> NDArray[np.floating]:
        return np.where(ctx.special, self.weight_14, 1.0)

    def _clamp(
        self, f_divr: NDArray[np.floating], r2: NDArray[np.floating]
    ) -> NDArray[np.floating]:
        r = np.sqrt(r2)
        magnitude = np.abs(f_divr) * r
        over = magnitude > self.max_force
        n_over = int(np.count_nonzero(over))
        if n_over:
            logger.warning(
                "%s: capped %d pair force(s) at %g (closest contact r=%g)",
                type(self).__name__,
                n_over,
                self.max_force,
                float(r[over].min()),
            )
            f_divr = np.where(over, np.sign(f_divr) * self.max_force / r, f_divr)
        return f_divr

    def force(self, ctx: PairContext) -> NDArray[np.floating]:
        """
        Compute the force on ``j`` from ``i`` for every pair.

        The force on ``i`` is the exact negation.

        Args:
            ctx: Pair batch.

        Returns:
            Force vectors, shape (M, 3).
        """
        forces = np.zeros((len(ctx), 3), dtype=np.float64)
        active = self.interacting(ctx)
        if not np.any(active):
            return forces
        r2 = ctx.r2[active]
        invr2 = 1.0 / r2
        params = tuple(p[active] for p in self.pair_params(ctx))
        f_divr = self.cutoff.force_divr(self, r2, invr2, params)
        if self.max_force is not None:
            f_divr = self._clamp(f_divr, r2)
        f_divr = f_divr * self._weights(ctx)[active]
        forces[active] = f_divr[:, np.newaxis] * ctx.dr[active]
        return forces

    def potential_energy(self, ctx: PairContext) -> NDArray[np.floating]:
        """
        Compute the potential energy of every pair.

        Args:
            ctx: Pair batch.

        Returns:
            Pair energies, shape (M,).
        """
        energies = np.zeros(len(ctx), dtype=np.float64)
        active = self.interacting(ctx)
        if not np.any(active):
            return energies
        r2 = ctx.r2[active]
        invr2 = 1.0 / r2
        params = tuple(p[active] for p in self.pair_params(ctx))
        energy = self.cutoff.potential(self, r2, invr2, params)
        energies[active] = energy * self._weights(ctx)[active]
        return energies
