"""Bonded force terms."""

from .angles import HarmonicAngleForce
from .bonds import HarmonicBondForce
from .dihedrals import FourierTorsionForce, PeriodicTorsionForce

__all__ = [
    "HarmonicBondForce",
    "HarmonicAngleForce",
    "PeriodicTorsionForce",
    "FourierTorsionForce",
]
