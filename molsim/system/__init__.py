"""System state, particles and box management."""

from .box import Box
from .particles import Particle, ParticleArray
from .state import K_BOLTZMANN, FrozenMDState, MDState, degrees_of_freedom

__all__ = [
    "Box",
    "Particle",
    "ParticleArray",
    "MDState",
    "FrozenMDState",
    "K_BOLTZMANN",
    "degrees_of_freedom",
]
