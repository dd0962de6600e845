"""Distance constraints and their grouping into independent clusters."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
from scipy.sparse import coo_matrix
from scipy.sparse.csgraph import connected_components

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DistanceConstraint:
    """
    Rigid distance between two atoms.

    Attributes:
        i: Index of the first atom.
        j: Index of the second atom.
        dist: Constrained distance.
    """

    i: int
    j: int
    dist: float

    def __post_init__(self) -> None:
        if self.i == self.j:
            raise ValueError(f"Constraint between atom {self.i} and itself")
        if self.dist <= 0:
            raise ValueError(f"Constraint distance must be positive, got {self.dist}")

    @property
    def atoms(self) -> tuple[int, int]:
        return (self.i, self.j)


@dataclass(frozen=True)
class ConstraintCluster:
    """
    Connected group of constraints.

    No atom of a cluster takes part in a constraint outside it, so clusters
    can be solved independently of each other.

    Attributes:
        constraints: Constraints in the cluster.
        n_unique_atoms: Number of distinct atoms the constraints touch.
    """

    constraints: tuple[DistanceConstraint, ...]
    n_unique_atoms: int

    @classmethod
    def from_constraints(
        cls, constraints: Sequence[DistanceConstraint]
    ) -> ConstraintCluster:
        """Create a cluster, counting its distinct atoms."""
        atoms = {index for c in constraints for index in c.atoms}
        return cls(constraints=tuple(constraints), n_unique_atoms=len(atoms))

    def __len__(self) -> int:
        return len(self.constraints)

    @property
    def atom_indices(self) -> NDArray[np.integer]:
        """Return the sorted distinct atom indices of the cluster."""
        return np.unique([index for c in self.constraints for index in c.atoms])


def build_clusters(
    n_atoms: int, constraints: Sequence[DistanceConstraint]
) -> list[ConstraintCluster]:
    """
    Partition constraints into connected clusters.

    The constraints are the edges of a graph over the atoms; each connected
    component with at least one edge becomes a cluster. A constraint that
    repeats an already seen atom pair is dropped with a warning.

    Args:
        n_atoms: Number of atoms in the system.
        constraints: Distance constraints.

    Returns:
        Clusters ordered by their lowest atom index.
    """
    unique: list[DistanceConstraint] = []
    seen: set[tuple[int, int]] = set()
    for constraint in constraints:
        if not (0 <= constraint.i < n_atoms and 0 <= constraint.j < n_atoms):
            raise IndexError(
                f"Constraint ({constraint.i}, {constraint.j}) out of range "
                f"[0, {n_atoms})"
            )
        key = (min(constraint.i, constraint.j), max(constraint.i, constraint.j))
        if key in seen:
            logger.warning(
                "Duplicated constraint between atoms %d and %d will be ignored", *key
            )
            continue
        seen.add(key)
        unique.append(constraint)

    if not unique:
        return []

    rows = np.array([c.i for c in unique], dtype=np.int64)
    cols = np.array([c.j for c in unique], dtype=np.int64)
    graph = coo_matrix(
        (np.ones(len(unique)), (rows, cols)), shape=(n_atoms, n_atoms)
    ).tocsr()
    _, labels = connected_components(graph, directed=False)

    grouped: dict[int, list[DistanceConstraint]] = {}
    for constraint in unique:
        grouped.setdefault(int(labels[constraint.i]), []).append(constraint)

    clusters = [ConstraintCluster.from_constraints(group) for group in grouped.values()]
    clusters.sort(key=lambda cluster: int(cluster.atom_indices[0]))
    return clusters


def disable_intra_constraint_interactions(
    eligible: NDArray[np.bool_], clusters: Sequence[ConstraintCluster]
) -> NDArray[np.bool_]:
    """
    Mark every constrained pair as ineligible for pairwise interactions.

    Args:
        eligible: Symmetric (N, N) eligibility matrix, modified in place.
        clusters: Constraint clusters.

    Returns:
        The same eligibility matrix.
    """
    for cluster in clusters:
        for constraint in cluster.constraints:
            eligible[constraint.i, constraint.j] = False
            eligible[constraint.j, constraint.i] = False
    return eligible


def n_dof_lost(dims: int, clusters: Sequence[ConstraintCluster]) -> int:
    """
    Count the vibrational degrees of freedom removed by constraints.

    A two-atom cluster is a rigid linear molecule and loses
    ``D*N - (2D - 1)``; larger clusters are assumed non-linear and lose
    ``D*(N - 2)``.

    Args:
        dims: Number of spatial dimensions.
        clusters: Constraint clusters.

    Returns:
        Number of degrees of freedom lost.
    """
    lost = 0
    for cluster in clusters:
        n = cluster.n_unique_atoms
        if n == 2:
            lost += dims * n - (2 * dims - 1)
        else:
            lost += dims * (n - 2)
    return lost
