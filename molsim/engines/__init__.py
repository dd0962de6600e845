"""Simulation engine implementations."""

from .engine import EngineStatus, MDEngine, pairwise_cutoff
from .reporters import (
    CallbackReporter,
    EnergyReporter,
    NeighborReporter,
    Reporter,
    ReporterGroup,
    TemperatureReporter,
    TrajectoryReporter,
)

__all__ = [
    "MDEngine",
    "EngineStatus",
    "pairwise_cutoff",
    "Reporter",
    "ReporterGroup",
    "EnergyReporter",
    "TemperatureReporter",
    "TrajectoryReporter",
    "NeighborReporter",
    "CallbackReporter",
]
