"""Brute-force distance neighbor finder."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from .base import NeighborFinder, NeighborList

if TYPE_CHECKING:
    from ..system import Box


class DistanceNeighborFinder(NeighborFinder):
    """
    Check the minimum image distance of every eligible pair.

    O(N^2), but works with any box including unbounded axes. The outer atom
    range is split across workers; each worker fills a private list and the
    lists are concatenated after the join.
    """

    def _scan_rows(
        self,
        positions: NDArray[np.floating],
        box: Box,
        start: int,
        end: int,
    ) -> NeighborList:
        """Collect pairs (i, j) with start <= i < end and j > i."""
        n_atoms = len(positions)
        local = NeighborList()
        for i in range(start, end):
            j = np.arange(i + 1, n_atoms)
            j = j[self.eligible[i, i + 1 :]]
            if len(j) == 0:
                continue
            dr = box.minimum_image(positions[i], positions[j])
            r2 = np.einsum("ij,ij->i", dr, dr)
            j = j[r2 <= self.sqdist_cutoff]
            local.append(np.full(len(j), i), j, self.special[i, j])
        return local

    def _build(
        self, positions: NDArray[np.floating], box: Box, out: NeighborList
    ) -> None:
        chunks = self.backend.partition(len(positions))
        locals_ = self.backend.map(
            lambda bounds: self._scan_rows(positions, box, *bounds), chunks
        )
        for local in locals_:
            out.extend(local)
