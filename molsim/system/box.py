"""Simulation box representation."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..errors import ConfigurationError


@dataclass(frozen=True)
class Box:
    """
    Simulation box representation.

    Supports orthorhombic and triclinic boxes via a 3x3 matrix representation.
    For orthorhombic boxes, the matrix is diagonal with box lengths on the diagonal.
    A diagonal entry of ``inf`` marks that axis as unbounded: positions along it
    are never wrapped and displacements along it are never imaged.

    Attributes:
        vectors: 3x3 array where rows are box vectors [a, b, c].
    """

    vectors: NDArray[np.floating]

    def __post_init__(self) -> None:
        """Validate and convert vectors to proper shape."""
        vectors = np.asarray(self.vectors, dtype=np.float64)
        if vectors.shape == (3,):
            # Orthorhombic box specified by lengths
            vectors = np.diag(vectors)
        if vectors.shape != (3, 3):
            raise ValueError(f"Box vectors must be (3,) or (3, 3), got {vectors.shape}")

        if np.any(np.isnan(vectors)):
            raise ConfigurationError("Box vectors must not contain NaN")
        off_diag = vectors.copy()
        np.fill_diagonal(off_diag, 0)
        if np.allclose(off_diag, 0):
            diag = np.diag(vectors)
            if np.any(diag <= 0):
                raise ConfigurationError(
                    f"Box side lengths must be positive, got {diag}"
                )
        elif not np.all(np.isfinite(vectors)):
            raise ConfigurationError(
                "Infinite box axes are only supported for orthorhombic boxes"
            )
        elif abs(np.linalg.det(vectors)) < 1e-12:
            raise ConfigurationError("Triclinic box vectors are linearly dependent")
        # Use object.__setattr__ since dataclass is frozen
        object.__setattr__(self, "vectors", vectors)

    @classmethod
    def rectangular(cls, lx: float, ly: float, lz: float) -> Box:
        """Create a rectangular box; any side may be ``np.inf``."""
        return cls(np.array([lx, ly, lz], dtype=np.float64))

    @classmethod
    def orthorhombic(cls, lx: float, ly: float, lz: float) -> Box:
        """Create an orthorhombic box with given side lengths."""
        return cls.rectangular(lx, ly, lz)

    @classmethod
    def cubic(cls, length: float) -> Box:
        """Create a cubic box with given side length."""
        return cls.rectangular(length, length, length)

    @classmethod
    def triclinic(cls, vectors: ArrayLike) -> Box:
        """Create a triclinic box from 3x3 matrix of box vectors."""
        return cls(np.asarray(vectors))

    @classmethod
    def unbounded(cls) -> Box:
        """Create a box with no periodicity along any axis."""
        return cls.rectangular(np.inf, np.inf, np.inf)

    @property
    def lengths(self) -> NDArray[np.floating]:
        """Return box vector lengths [|a|, |b|, |c|]."""
        if self.has_infinite_axes:
            return np.diag(self.vectors).copy()
        return np.linalg.norm(self.vectors, axis=1)

    @property
    def volume(self) -> float:
        """Return box volume (``inf`` if any axis is unbounded)."""
        if self.has_infinite_axes:
            return float("inf")
        return float(np.abs(np.linalg.det(self.vectors)))

    @property
    def is_orthorhombic(self) -> bool:
        """Check if box is orthorhombic (diagonal matrix)."""
        off_diag = self.vectors.copy()
        np.fill_diagonal(off_diag, 0)
        return np.allclose(off_diag, 0)

    @property
    def periodic(self) -> NDArray[np.bool_]:
        """Return per-axis periodicity flags."""
        return np.isfinite(np.diag(self.vectors))

    @property
    def has_infinite_axes(self) -> bool:
        """Check whether any axis is unbounded."""
        return not bool(np.all(self.periodic))

    @property
    def n_infinite_axes(self) -> int:
        """Return the number of unbounded axes."""
        return int(np.sum(~self.periodic))

    @property
    def perpendicular_widths(self) -> NDArray[np.floating]:
        """
        Return the distance between opposite faces along each cell direction.

        For an orthorhombic box these are the side lengths. For a triclinic box
        the width along ``a`` is ``V / |b x c|`` and cyclically for ``b`` and ``c``,
        which is the quantity that bounds how many cutoff-sized cells fit.
        """
        if self.is_orthorhombic:
            return np.diag(self.vectors).copy()
        a, b, c = self.vectors
        volume = self.volume
        return np.array(
            [
                volume / np.linalg.norm(np.cross(b, c)),
                volume / np.linalg.norm(np.cross(c, a)),
                volume / np.linalg.norm(np.cross(a, b)),
            ]
        )

    def wrap_positions(self, positions: NDArray[np.floating]) -> NDArray[np.floating]:
        """
        Wrap positions into the primary box using periodic boundary conditions.

        Unbounded axes are left untouched.

        Args:
            positions: Positions array of shape (N, 3).

        Returns:
            Wrapped positions array of shape (N, 3).
        """
        positions = np.asarray(positions, dtype=np.float64)
        if self.is_orthorhombic:
            lengths = np.diag(self.vectors)
            periodic = np.isfinite(lengths)
            if np.all(periodic):
                return positions - lengths * np.floor(positions / lengths)
            safe = np.where(periodic, lengths, 1.0)
            shift = np.where(periodic, safe * np.floor(positions / safe), 0.0)
            return positions - shift
        # General triclinic case: convert to fractional, wrap, convert back
        inv_vectors = np.linalg.inv(self.vectors)
        fractional = positions @ inv_vectors
        fractional = fractional - np.floor(fractional)
        return fractional @ self.vectors

    def fractional(self, positions: NDArray[np.floating]) -> NDArray[np.floating]:
        """Convert Cartesian positions to fractional coordinates."""
        return np.asarray(positions, dtype=np.float64) @ np.linalg.inv(self.vectors)

    def minimum_image(
        self, r1: NDArray[np.floating], r2: NDArray[np.floating]
    ) -> NDArray[np.floating]:
        """
        Compute minimum image displacement vector r2 - r1.

        Args:
            r1: First position(s), shape (3,) or (N, 3).
            r2: Second position(s), shape (3,) or (N, 3).

        Returns:
            Displacement vector(s) under minimum image convention.
        """
        dr = np.asarray(r2, dtype=np.float64) - np.asarray(r1, dtype=np.float64)
        return self.image_displacement(dr)

    def image_displacement(self, dr: NDArray[np.floating]) -> NDArray[np.floating]:
        """Apply the minimum image convention to raw displacement(s)."""
        if self.is_orthorhombic:
            lengths = np.diag(self.vectors)
            periodic = np.isfinite(lengths)
            if np.all(periodic):
                return dr - lengths * np.round(dr / lengths)
            safe = np.where(periodic, lengths, 1.0)
            shift = np.where(periodic, safe * np.round(dr / safe), 0.0)
            return dr - shift
        inv_vectors = np.linalg.inv(self.vectors)
        fractional = dr @ inv_vectors
        fractional = fractional - np.round(fractional)
        return fractional @ self.vectors

    def minimum_image_distance(
        self, r1: NDArray[np.floating], r2: NDArray[np.floating]
    ) -> float | NDArray[np.floating]:
        """
        Compute minimum image distance between positions.

        Args:
            r1: First position(s), shape (3,) or (N, 3).
            r2: Second position(s), shape (3,) or (N, 3).

        Returns:
            Distance(s) under minimum image convention.
        """
        dr = self.minimum_image(r1, r2)
        return np.linalg.norm(dr, axis=-1)

    def squared_distance(
        self, r1: NDArray[np.floating], r2: NDArray[np.floating]
    ) -> float | NDArray[np.floating]:
        """Compute squared minimum image distance between positions."""
        dr = self.minimum_image(r1, r2)
        return np.sum(dr * dr, axis=-1)
