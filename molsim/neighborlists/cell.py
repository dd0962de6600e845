"""Cell list neighbor finder."""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np
from numpy.typing import NDArray

from .base import NeighborFinder, NeighborList

if TYPE_CHECKING:
    from ..system import Box


class CellListNeighborFinder(NeighborFinder):
    """
    Cell list (linked cell) neighbor finder.

    Divides the simulation box into cells at least one cutoff wide along
    each perpendicular width, with no more cells than atoms. Only atoms in
    the same or neighboring cells are considered as potential neighbors,
    reducing complexity from O(N^2) to O(N).

    Supports both orthorhombic and triclinic boxes (cells are laid out in
    fractional coordinates). Unbounded axes are rejected.

    The cell grid, the cell-pair stencil, the sorted cell -> atom index and
    one private output list per worker batch persist between rebuilds and
    are only reallocated when their size changes.

    Attributes:
        n_cells: Number of cells in each dimension after the last rebuild.
    """

    supports_infinite_axes = False

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.n_cells: tuple[int, int, int] = (0, 0, 0)
        self._cell_pairs: NDArray[np.integer] = np.empty((0, 2), dtype=np.int64)
        self._cell_of_atom: NDArray[np.integer] = np.empty(0, dtype=np.int64)
        self._cell_atoms: NDArray[np.integer] = np.empty(0, dtype=np.int64)
        self._cell_start: NDArray[np.integer] = np.empty(0, dtype=np.int64)
        self._batch_lists: list[NeighborList] = []

    def _grid_shape(self, box: Box, n_atoms: int) -> tuple[int, int, int]:
        """
        Cells per axis: as many as fit one cutoff wide, capped at one cell
        per atom in total.
        """
        widths = box.perpendicular_widths
        n_cells = np.maximum(np.floor(widths / self.dist_cutoff).astype(np.int64), 1)
        limit = max(n_atoms, 1)
        total = int(np.prod(n_cells))
        if total > limit:
            scale = (limit / total) ** (1.0 / 3.0)
            n_cells = np.maximum(np.floor(n_cells * scale).astype(np.int64), 1)
        while int(np.prod(n_cells)) > limit:
            n_cells[np.argmax(n_cells)] -= 1
        return tuple(int(n) for n in n_cells)

    @staticmethod
    def _stencil(n_cells: tuple[int, int, int]) -> NDArray[np.integer]:
        """
        All unordered pairs (a, b), a <= b, of cells that are the same or adjacent.

        With fewer than three cells along an axis the periodic offsets -1 and
        +1 hit the same cell, so neighbor cells are de-duplicated per cell.
        """
        nx, ny, nz = n_cells
        cx, cy, cz = np.meshgrid(
            np.arange(nx), np.arange(ny), np.arange(nz), indexing="ij"
        )
        cx, cy, cz = cx.ravel(), cy.ravel(), cz.ravel()
        origin = (cx * ny + cy) * nz + cz

        shifts = (-1, 0, 1)
        offsets = np.array(
            [(dx, dy, dz) for dx in shifts for dy in shifts for dz in shifts],
            dtype=np.int64,
        )
        bx = (cx[:, None] + offsets[None, :, 0]) % nx
        by = (cy[:, None] + offsets[None, :, 1]) % ny
        bz = (cz[:, None] + offsets[None, :, 2]) % nz
        neighbor = (bx * ny + by) * nz + bz

        a = np.repeat(origin, len(offsets))
        b = neighbor.ravel()
        keep = a <= b
        pairs = np.unique(np.column_stack((a[keep], b[keep])), axis=0)
        return pairs.astype(np.int64)

    def _assign_cells(self, positions: NDArray[np.floating], box: Box) -> None:
        """Sort atoms by cell and record where each cell's atoms start."""
        n_atoms = len(positions)
        nx, ny, nz = self.n_cells
        frac = box.fractional(positions)
        frac -= np.floor(frac)
        grid = np.array(self.n_cells)
        idx = np.clip((frac * grid).astype(np.int64), 0, grid - 1)

        if len(self._cell_of_atom) != n_atoms:
            self._cell_of_atom = np.empty(n_atoms, dtype=np.int64)
        np.multiply(idx[:, 0] * ny + idx[:, 1], nz, out=self._cell_of_atom)
        self._cell_of_atom += idx[:, 2]

        self._cell_atoms = np.argsort(self._cell_of_atom, kind="stable")
        n_total = nx * ny * nz
        if len(self._cell_start) != n_total + 1:
            self._cell_start = np.empty(n_total + 1, dtype=np.int64)
        self._cell_start[:] = np.searchsorted(
            self._cell_of_atom[self._cell_atoms], np.arange(n_total + 1)
        )

    def _candidates(
        self, cell_pairs: NDArray[np.integer]
    ) -> tuple[NDArray[np.integer], NDArray[np.integer]]:
        """Expand a batch of cell pairs into candidate atom pairs."""
        start = self._cell_start
        a, b = cell_pairs[:, 0], cell_pairs[:, 1]
        n_a = start[a + 1] - start[a]
        n_b = start[b + 1] - start[b]
        sizes = n_a * n_b
        total = int(sizes.sum())
        if total == 0:
            empty = np.empty(0, dtype=np.int64)
            return empty, empty

        owner = np.repeat(np.arange(len(cell_pairs)), sizes)
        first = np.cumsum(sizes) - sizes
        local = np.arange(total) - first[owner]
        ia = local // n_b[owner]
        ib = local % n_b[owner]

        # Within one cell keep each unordered pair once
        same = a[owner] == b[owner]
        keep = ~same | (ia < ib)
        owner, ia, ib = owner[keep], ia[keep], ib[keep]

        i = self._cell_atoms[start[a[owner]] + ia]
        j = self._cell_atoms[start[b[owner]] + ib]
        return i, j

    def _search_batch(
        self,
        positions: NDArray[np.floating],
        box: Box,
        batch: int,
        bounds: tuple[int, int],
    ) -> NeighborList:
        local = self._batch_lists[batch]
        local.clear()
        i, j = self._candidates(self._cell_pairs[bounds[0] : bounds[1]])
        self._filter_candidates(positions, box, i, j, local)
        return local

    def _build(
        self, positions: NDArray[np.floating], box: Box, out: NeighborList
    ) -> None:
        n_cells = self._grid_shape(box, len(positions))
        if n_cells != self.n_cells:
            self.n_cells = n_cells
            self._cell_pairs = self._stencil(n_cells)
        self._assign_cells(positions, box)

        chunks = self.backend.partition(len(self._cell_pairs))
        while len(self._batch_lists) < len(chunks):
            self._batch_lists.append(NeighborList())
        self.backend.map(
            lambda task: self._search_batch(positions, box, *task),
            list(enumerate(chunks)),
        )
        for batch in range(len(chunks)):
            out.extend(self._batch_lists[batch])
