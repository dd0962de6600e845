"""
molsim - A classical molecular dynamics core.

Design Principles:
- Neighbor search, force evaluation, integration and constraints as
  separate, swappable components
- Vectorized numpy kernels with fork-join worker parallelism
- Deterministic given a seed

Quick Start:
    >>> from molsim import simulate
    >>> result = simulate.lj_fluid(n_atoms=108, temperature=1.0)
    >>> print(f"Mean temperature: {result.mean_temperature:.3f}")
"""

import logging

__version__ = "0.1.0"

# High-level APIs
from . import simulate
from .config import SimulationConfig, build_engine
from .constraints import SHAKE_RATTLE, DistanceConstraint
from .engines import EngineStatus, MDEngine
from .errors import ConfigurationError
from .forcefields import ForceField
from .integrators import (
    StormerVerletIntegrator,
    VelocityVerletIntegrator,
)
from .neighborlists import NeighborList, create_neighbor_finder

# Core components for advanced users
from .system import Box, MDState, ParticleArray
from .topology import Topology

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "simulate",
    "SimulationConfig",
    "build_engine",
    "ConfigurationError",
    "Box",
    "MDState",
    "ParticleArray",
    "Topology",
    "ForceField",
    "VelocityVerletIntegrator",
    "StormerVerletIntegrator",
    "NeighborList",
    "create_neighbor_finder",
    "DistanceConstraint",
    "SHAKE_RATTLE",
    "MDEngine",
    "EngineStatus",
]
