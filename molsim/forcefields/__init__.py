"""Force field implementations."""

from .base import ForceProvider
from .bonded import (
    FourierTorsionForce,
    HarmonicAngleForce,
    HarmonicBondForce,
    PeriodicTorsionForce,
)
from .composite import ForceField
from .nonbonded import (
    Coulomb,
    CoulombReactionField,
    DistanceCutoff,
    LennardJones,
    NoCutoff,
    PairwiseForce,
    ShiftedForceCutoff,
    ShiftedPotentialCutoff,
    SoftSphere,
)

__all__ = [
    "ForceProvider",
    "ForceField",
    "PairwiseForce",
    "LennardJones",
    "SoftSphere",
    "Coulomb",
    "CoulombReactionField",
    "NoCutoff",
    "DistanceCutoff",
    "ShiftedPotentialCutoff",
    "ShiftedForceCutoff",
    "HarmonicBondForce",
    "HarmonicAngleForce",
    "PeriodicTorsionForce",
    "FourierTorsionForce",
]
