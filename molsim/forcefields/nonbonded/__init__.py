"""Nonbonded (pairwise) interactions."""

from .coulomb import COULOMB_CONSTANT, Coulomb, CoulombReactionField
from .cutoffs import (
    DistanceCutoff,
    NoCutoff,
    ShiftedForceCutoff,
    ShiftedPotentialCutoff,
)
from .interaction import PairContext, PairwiseInteraction
from .lj import LennardJones, SoftSphere
from .pairwise import PairwiseForce

__all__ = [
    "PairContext",
    "PairwiseInteraction",
    "PairwiseForce",
    "LennardJones",
    "SoftSphere",
    "Coulomb",
    "CoulombReactionField",
    "COULOMB_CONSTANT",
    "NoCutoff",
    "DistanceCutoff",
    "ShiftedPotentialCutoff",
    "ShiftedForceCutoff",
]
