"""Per-worker force buffers and their reduction."""

from __future__ import annotations

import numpy as np
from numpy.typing import NDArray


class ForceAccumulator:
    """
    Private force buffers for a parallel region.

    Each worker writes only its own ``(N, 3)`` buffer; :meth:`reduce` sums
    them once the region has joined. Buffers are allocated once and zeroed
    at the start of every evaluation.

    Attributes:
        n_atoms: Number of atoms per buffer.
        n_buffers: Number of private buffers.
    """

    def __init__(self, n_atoms: int, n_buffers: int = 1) -> None:
        self.n_atoms = n_atoms
        self.n_buffers = max(1, n_buffers)
        self._buffers = np.zeros((self.n_buffers, n_atoms, 3), dtype=np.float64)
        self._energies = np.zeros(self.n_buffers, dtype=np.float64)

    def resize(self, n_atoms: int, n_buffers: int) -> None:
        """Reallocate only when the layout changes."""
        n_buffers = max(1, n_buffers)
        if n_atoms != self.n_atoms or n_buffers != self.n_buffers:
            self.n_atoms = n_atoms
            self.n_buffers = n_buffers
            self._buffers = np.zeros((n_buffers, n_atoms, 3), dtype=np.float64)
            self._energies = np.zeros(n_buffers, dtype=np.float64)

    def zero(self) -> None:
        """Clear every buffer."""
        self._buffers.fill(0.0)
        self._energies.fill(0.0)

    def buffer(self, k: int) -> NDArray[np.floating]:
        """Return the private force buffer of worker ``k``."""
        return self._buffers[k]

    def add_energy(self, k: int, energy: float) -> None:
        """Add to the private energy slot of worker ``k``."""
        self._energies[k] += energy

    def reduce(self) -> tuple[NDArray[np.floating], float]:
        """
        Sum all buffers.

        Returns:
            Tuple of (total forces, total energy).
        """
        return self._buffers.sum(axis=0), float(self._energies.sum())
