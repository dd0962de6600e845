"""Topology representation and pair-eligibility matrices."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..errors import ConfigurationError


def check_pair_matrix(
    matrix: ArrayLike, n_atoms: int, name: str = "eligible"
) -> NDArray[np.bool_]:
    """
    Validate an (N, N) boolean pair matrix.

    Args:
        matrix: Candidate matrix.
        n_atoms: Expected number of atoms.
        name: Name used in error messages.

    Returns:
        The matrix as a boolean array.

    Raises:
        ConfigurationError: If the shape does not match or it is not symmetric.
    """
    matrix = np.asarray(matrix, dtype=bool)
    if matrix.shape != (n_atoms, n_atoms):
        raise ConfigurationError(
            f"{name} matrix shape {matrix.shape} incompatible with {n_atoms} atoms"
        )
    if not np.array_equal(matrix, matrix.T):
        raise ConfigurationError(f"{name} matrix must be symmetric")
    return matrix


def _as_index_array(values: ArrayLike, width: int) -> NDArray[np.integer]:
    arr = np.asarray(values, dtype=np.int64)
    if arr.size == 0:
        return np.empty((0, width), dtype=np.int64)
    return arr.reshape(-1, width)


@dataclass
class Topology:
    """
    Bonded connectivity of a molecular system.

    Index-based design (no objects per atom) for efficiency. The topology is
    only used at setup time to derive the bonded interaction lists and the
    eligibility / special-pair matrices consumed by the neighbor finders.

    Attributes:
        n_atoms: Number of atoms in the system.
        bonds: Bond pairs as (i, j) indices, shape (N_bonds, 2).
        angles: Angle triplets as (i, j, k) indices, shape (N_angles, 3).
        dihedrals: Dihedral quads as (i, j, k, l) indices, shape (N_dihedrals, 4).
        exclusions: Extra excluded atom pairs (i, j) with i < j.
    """

    n_atoms: int
    bonds: NDArray[np.integer] | None = None
    angles: NDArray[np.integer] | None = None
    dihedrals: NDArray[np.integer] | None = None
    exclusions: set[tuple[int, int]] | None = None

    def __post_init__(self) -> None:
        """Validate and convert arrays."""
        self.bonds = _as_index_array([] if self.bonds is None else self.bonds, 2)
        self.angles = _as_index_array([] if self.angles is None else self.angles, 3)
        self.dihedrals = _as_index_array(
            [] if self.dihedrals is None else self.dihedrals, 4
        )
        self.exclusions = set() if self.exclusions is None else set(self.exclusions)

        for name, arr in (
            ("bonds", self.bonds),
            ("angles", self.angles),
            ("dihedrals", self.dihedrals),
        ):
            if arr.size and (arr.min() < 0 or arr.max() >= self.n_atoms):
                raise IndexError(
                    f"{name} reference atoms outside [0, {self.n_atoms})"
                )

    @property
    def n_bonds(self) -> int:
        """Return number of bonds."""
        return len(self.bonds)

    @property
    def n_angles(self) -> int:
        """Return number of angles."""
        return len(self.angles)

    @property
    def n_dihedrals(self) -> int:
        """Return number of dihedrals."""
        return len(self.dihedrals)

    def add_bond(self, i: int, j: int) -> None:
        """Add a bond between atoms i and j."""
        self._validate_atom_index(i)
        self._validate_atom_index(j)
        new_bond = np.array([[min(i, j), max(i, j)]], dtype=np.int64)
        self.bonds = np.vstack([self.bonds, new_bond])

    def add_angle(self, i: int, j: int, k: int) -> None:
        """Add an angle between atoms i-j-k."""
        for index in (i, j, k):
            self._validate_atom_index(index)
        self.angles = np.vstack([self.angles, np.array([[i, j, k]], dtype=np.int64)])

    def add_dihedral(self, i: int, j: int, k: int, l: int) -> None:
        """Add a dihedral between atoms i-j-k-l."""
        for index in (i, j, k, l):
            self._validate_atom_index(index)
        self.dihedrals = np.vstack(
            [self.dihedrals, np.array([[i, j, k, l]], dtype=np.int64)]
        )

    def add_exclusion(self, i: int, j: int) -> None:
        """Add an exclusion between atoms i and j."""
        self._validate_atom_index(i)
        self._validate_atom_index(j)
        self.exclusions.add((min(i, j), max(i, j)))

    def _bond_separations(self, max_bonds: int) -> NDArray[np.integer]:
        """
        Shortest bond-path length between atom pairs, up to ``max_bonds``.

        Pairs further apart than ``max_bonds`` (or disconnected) get 0,
        as does the diagonal.
        """
        adjacency: list[set[int]] = [set() for _ in range(self.n_atoms)]
        for i, j in self.bonds:
            adjacency[i].add(int(j))
            adjacency[j].add(int(i))

        separation = np.zeros((self.n_atoms, self.n_atoms), dtype=np.int64)
        # BFS to find pairs within max_bonds
        for start in range(self.n_atoms):
            visited = {start}
            current_level = {start}
            for depth in range(1, max_bonds + 1):
                next_level: set[int] = set()
                for atom in current_level:
                    for neighbor in adjacency[atom]:
                        if neighbor not in visited:
                            visited.add(neighbor)
                            next_level.add(neighbor)
                            separation[start, neighbor] = depth
                current_level = next_level
        return separation

    def eligibility_matrix(self, n_excluded_bonds: int = 2) -> NDArray[np.bool_]:
        """
        Build the (N, N) matrix of pairs allowed to interact non-bonded.

        Args:
            n_excluded_bonds: Exclude pairs within this many bonds.
                2 (default) removes 1-2 and 1-3 pairs and keeps 1-4 pairs,
                which are then scaled through the special matrix.

        Returns:
            Symmetric boolean matrix, False on the diagonal.
        """
        eligible = np.ones((self.n_atoms, self.n_atoms), dtype=bool)
        np.fill_diagonal(eligible, False)
        if n_excluded_bonds > 0:
            separation = self._bond_separations(n_excluded_bonds)
            eligible[separation > 0] = False
        for i, j in self.angles[:, [0, 2]]:
            eligible[i, j] = eligible[j, i] = False
        for i, j in self.exclusions:
            eligible[i, j] = eligible[j, i] = False
        return eligible

    def special_matrix(self) -> NDArray[np.bool_]:
        """
        Build the (N, N) matrix flagging 1-4 pairs.

        A pair is special when it is the two ends of a dihedral, or when its
        shortest bond path is exactly three bonds.
        """
        special = np.zeros((self.n_atoms, self.n_atoms), dtype=bool)
        if self.n_bonds:
            special |= self._bond_separations(3) == 3
        for i, l in self.dihedrals[:, [0, 3]]:
            special[i, l] = special[l, i] = True
        np.fill_diagonal(special, False)
        return special

    def _validate_atom_index(self, index: int) -> None:
        """Validate that atom index is in range."""
        if index < 0 or index >= self.n_atoms:
            raise IndexError(f"Atom index {index} out of range [0, {self.n_atoms})")
