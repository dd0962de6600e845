"""Spatial-tree neighbor finder built on scipy's cKDTree."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray
from scipy.spatial import cKDTree

from ..errors import ConfigurationError
from .base import NeighborFinder, NeighborList

if TYPE_CHECKING:
    from ..system import Box


class TreeNeighborFinder(NeighborFinder):
    """
    Periodic k-d tree search.

    The tree is built over wrapped coordinates with ``boxsize`` set, so
    distances use the periodic metric. It cannot be updated incrementally
    and is rebuilt on every call. Each atom queries its own neighbourhood
    and keeps only partners with a lower index, so every pair is reported
    once whichever atom finds it.

    Only finite orthorhombic boxes are supported.
    """

    supports_infinite_axes = False

    def validate_box(self, box: Box) -> None:
        super().validate_box(box)
        if not box.is_orthorhombic:
            raise ConfigurationError(
                "TreeNeighborFinder requires an orthorhombic box; "
                "use the cell or distance neighbor finder"
            )

    def _query_rows(
        self,
        tree: cKDTree,
        positions: NDArray[np.floating],
        box: Box,
        start: int,
        end: int,
    ) -> NeighborList:
        local = NeighborList()
        if end <= start:
            return local
        # Pad by one ulp, then apply the closed test r^2 <= cutoff^2 exactly
        radius = np.nextafter(self.dist_cutoff, np.inf)
        hits = tree.query_ball_point(positions[start:end], r=radius)
        counts = np.fromiter((len(h) for h in hits), dtype=np.int64, count=len(hits))
        if counts.sum() == 0:
            return local
        i = np.repeat(np.arange(start, end, dtype=np.int64), counts)
        j = np.concatenate([np.asarray(h, dtype=np.int64) for h in hits if len(h)])
        keep = j < i
        self._filter_candidates(positions, box, j[keep], i[keep], local)
        return local

    def _build(
        self, positions: NDArray[np.floating], box: Box, out: NeighborList
    ) -> None:
        lengths = np.diag(box.vectors)
        wrapped = box.wrap_positions(positions)
        # Round-off in the wrap can land exactly on the upper face
        wrapped = np.where(wrapped >= lengths, wrapped - lengths, wrapped)
        tree = cKDTree(wrapped, boxsize=lengths)

        chunks = self.backend.partition(len(positions))
        locals_ = self.backend.map(
            lambda bounds: self._query_rows(tree, positions, box, *bounds), chunks
        )
        for local in locals_:
            out.extend(local)
