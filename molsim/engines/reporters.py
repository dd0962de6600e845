"""Step observers that record simulation output."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import numpy as np

if TYPE_CHECKING:
    from ..system import FrozenMDState


class Reporter(ABC):
    """
    Abstract base class for simulation reporters.

    Reporters are called periodically during simulation with a read-only
    snapshot of the state. The engine passes ``step``, ``potential_energy``,
    ``temperature`` and ``neighbors`` as keyword arguments.
    """

    @abstractmethod
    def report(self, state: FrozenMDState, **kwargs: Any) -> None:
        """
        Generate report for current state.

        Args:
            state: Snapshot of the current simulation state.
            **kwargs: Additional information (e.g., energies).
        """
        ...

    @property
    @abstractmethod
    def frequency(self) -> int:
        """Return reporting frequency (every N steps)."""
        ...

    def should_report(self, step: int) -> bool:
        """Check if reporter should run at this step."""
        return step % self.frequency == 0

    def initialize(self, state: FrozenMDState) -> None:
        """Initialize reporter (called before simulation)."""
        pass

    def finalize(self, state: FrozenMDState) -> None:
        """Finalize reporter (called after simulation)."""
        pass


class _FrequencyMixin:
    def _set_frequency(self, frequency: int) -> None:
        if frequency < 1:
            raise ValueError(f"frequency must be >= 1, got {frequency}")
        self._frequency = frequency

    @property
    def frequency(self) -> int:
        return self._frequency


class ReporterGroup:
    """
    Collection of reporters with automatic frequency handling.
    """

    def __init__(self, reporters: list[Reporter] | None = None) -> None:
        """
        Initialize reporter group.

        Args:
            reporters: List of reporters to manage.
        """
        self._reporters: list[Reporter] = list(reporters) if reporters else []

    def __len__(self) -> int:
        return len(self._reporters)

    def add(self, reporter: Reporter) -> None:
        """Add a reporter to the group."""
        self._reporters.append(reporter)

    def remove(self, reporter: Reporter) -> None:
        """Remove a reporter from the group."""
        self._reporters.remove(reporter)

    def initialize(self, state: FrozenMDState) -> None:
        """Initialize all reporters."""
        for reporter in self._reporters:
            reporter.initialize(state)

    def due(self, step: int) -> bool:
        """Whether any reporter fires at ``step``."""
        return any(reporter.should_report(step) for reporter in self._reporters)

    def report(self, state: FrozenMDState, **kwargs: Any) -> None:
        """Run all reporters that should fire at this step."""
        step = kwargs.get("step", state.step)
        for reporter in self._reporters:
            if reporter.should_report(step):
                reporter.report(state, **kwargs)

    def finalize(self, state: FrozenMDState) -> None:
        """Finalize all reporters."""
        for reporter in self._reporters:
            reporter.finalize(state)


class EnergyReporter(_FrequencyMixin, Reporter):
    """
    Reporter that tracks energy components over time.
    """

    def __init__(self, frequency: int = 100) -> None:
        """
        Initialize energy reporter.

        Args:
            frequency: Reporting frequency.
        """
        self._set_frequency(frequency)
        self._steps: list[int] = []
        self._times: list[float] = []
        self._kinetic: list[float] = []
        self._potential: list[float] = []
        self._total: list[float] = []

    def report(self, state: FrozenMDState, **kwargs: Any) -> None:
        """Record energies."""
        pe = kwargs.get("potential_energy", 0.0)
        ke = state.kinetic_energy

        self._steps.append(kwargs.get("step", state.step))
        self._times.append(state.time)
        self._kinetic.append(ke)
        self._potential.append(pe)
        self._total.append(ke + pe)

    @property
    def steps(self) -> np.ndarray:
        return np.array(self._steps, dtype=np.int64)

    @property
    def kinetic_energy(self) -> np.ndarray:
        """Return kinetic energy time series."""
        return np.array(self._kinetic)

    @property
    def potential_energy(self) -> np.ndarray:
        """Return potential energy time series."""
        return np.array(self._potential)

    @property
    def total_energy(self) -> np.ndarray:
        """Return total energy time series."""
        return np.array(self._total)

    @property
    def times(self) -> np.ndarray:
        """Return times array."""
        return np.array(self._times)

    def clear(self) -> None:
        """Clear stored data."""
        self._steps.clear()
        self._times.clear()
        self._kinetic.clear()
        self._potential.clear()
        self._total.clear()


class TemperatureReporter(_FrequencyMixin, Reporter):
    """
    Reporter that tracks the instantaneous temperature.

    Uses the constraint-aware temperature the engine supplies.
    """

    def __init__(self, frequency: int = 100) -> None:
        self._set_frequency(frequency)
        self._steps: list[int] = []
        self._temperatures: list[float] = []

    def report(self, state: FrozenMDState, **kwargs: Any) -> None:
        self._steps.append(kwargs.get("step", state.step))
        self._temperatures.append(float(kwargs.get("temperature", 0.0)))

    @property
    def steps(self) -> np.ndarray:
        return np.array(self._steps, dtype=np.int64)

    @property
    def temperatures(self) -> np.ndarray:
        """Return temperature time series."""
        return np.array(self._temperatures)

    @property
    def mean_temperature(self) -> float:
        if not self._temperatures:
            return 0.0
        return float(np.mean(self._temperatures))


class TrajectoryReporter(_FrequencyMixin, Reporter):
    """
    Reporter that keeps trajectory frames in memory.

    Writing frames to disk is left to external tools; copy
    :attr:`positions` out after the run.
    """

    def __init__(
        self,
        frequency: int = 100,
        include_velocities: bool = False,
        include_forces: bool = False,
    ) -> None:
        """
        Initialize trajectory reporter.

        Args:
            frequency: Reporting frequency.
            include_velocities: Also store velocities.
            include_forces: Also store forces.
        """
        self._set_frequency(frequency)
        self._include_velocities = include_velocities
        self._include_forces = include_forces

        self._positions: list[np.ndarray] = []
        self._velocities: list[np.ndarray] = []
        self._forces: list[np.ndarray] = []
        self._times: list[float] = []
        self._steps: list[int] = []

    def report(self, state: FrozenMDState, **kwargs: Any) -> None:
        """Store current frame."""
        self._positions.append(np.array(state.positions))
        self._times.append(state.time)
        self._steps.append(kwargs.get("step", state.step))

        if self._include_velocities:
            self._velocities.append(np.array(state.velocities))
        if self._include_forces:
            self._forces.append(np.array(state.forces))

    @property
    def n_frames(self) -> int:
        """Return number of stored frames."""
        return len(self._positions)

    @property
    def positions(self) -> np.ndarray:
        """Return positions as (n_frames, n_atoms, 3) array."""
        return np.array(self._positions)

    @property
    def velocities(self) -> np.ndarray | None:
        """Return velocities if stored."""
        if not self._include_velocities:
            return None
        return np.array(self._velocities)

    @property
    def forces(self) -> np.ndarray | None:
        """Return forces if stored."""
        if not self._include_forces:
            return None
        return np.array(self._forces)

    @property
    def times(self) -> np.ndarray:
        """Return times array."""
        return np.array(self._times)

    @property
    def steps(self) -> np.ndarray:
        return np.array(self._steps, dtype=np.int64)

    def clear(self) -> None:
        """Clear stored trajectory."""
        self._positions.clear()
        self._velocities.clear()
        self._forces.clear()
        self._times.clear()
        self._steps.clear()


class NeighborReporter(_FrequencyMixin, Reporter):
    """
    Reporter that records the neighbor list seen at each reported step.

    Stores the pair count, and optionally the ``(i, j)`` pairs themselves.
    Steps run without a neighbor list record a count of -1.
    """

    def __init__(self, frequency: int = 1, store_pairs: bool = False) -> None:
        self._set_frequency(frequency)
        self._store_pairs = store_pairs
        self._steps: list[int] = []
        self._counts: list[int] = []
        self._pairs: list[np.ndarray] = []

    def report(self, state: FrozenMDState, **kwargs: Any) -> None:
        neighbors = kwargs.get("neighbors")
        self._steps.append(kwargs.get("step", state.step))
        self._counts.append(-1 if neighbors is None else len(neighbors))
        if self._store_pairs:
            pairs = (
                np.empty((0, 2), dtype=np.int64)
                if neighbors is None
                else neighbors.get_pairs()
            )
            self._pairs.append(pairs)

    @property
    def steps(self) -> np.ndarray:
        return np.array(self._steps, dtype=np.int64)

    @property
    def counts(self) -> np.ndarray:
        """Return number of pairs per reported step."""
        return np.array(self._counts, dtype=np.int64)

    @property
    def pairs(self) -> list[np.ndarray]:
        """Return stored (n, 2) pair arrays, if enabled."""
        return list(self._pairs)


class CallbackReporter(_FrequencyMixin, Reporter):
    """
    Reporter that calls a user-defined function.

    Allows arbitrary custom reporting logic.
    """

    def __init__(
        self,
        callback: Callable[[FrozenMDState, dict[str, Any]], None],
        frequency: int = 1,
    ) -> None:
        """
        Initialize callback reporter.

        Args:
            callback: Function to call with (state, kwargs).
            frequency: Reporting frequency.
        """
        self._callback = callback
        self._set_frequency(frequency)

    def report(self, state: FrozenMDState, **kwargs: Any) -> None:
        """Call the callback function."""
        self._callback(state, kwargs)
