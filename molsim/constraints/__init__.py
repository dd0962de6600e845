"""Rigid distance constraints."""

from .clusters import (
    ConstraintCluster,
    DistanceConstraint,
    build_clusters,
    disable_intra_constraint_interactions,
    n_dof_lost,
)
from .shake import SHAKE_RATTLE

__all__ = [
    "DistanceConstraint",
    "ConstraintCluster",
    "build_clusters",
    "disable_intra_constraint_interactions",
    "n_dof_lost",
    "SHAKE_RATTLE",
]
