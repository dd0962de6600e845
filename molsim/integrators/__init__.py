"""Integrator implementations."""

from .base import CouplingHook, Integrator, NoCoupling
from .thermostats import (
    AndersenThermostat,
    BerendsenThermostat,
    FrictionThermostat,
    VelocityRescaleThermostat,
    maxwell_boltzmann_velocities,
)
from .velocity_verlet import StormerVerletIntegrator, VelocityVerletIntegrator

__all__ = [
    # Base classes
    "Integrator",
    "CouplingHook",
    "NoCoupling",
    # Integrators
    "VelocityVerletIntegrator",
    "StormerVerletIntegrator",
    # Thermostats
    "VelocityRescaleThermostat",
    "BerendsenThermostat",
    "AndersenThermostat",
    "FrictionThermostat",
    "maxwell_boltzmann_velocities",
]
