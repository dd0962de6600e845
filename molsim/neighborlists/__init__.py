"""Neighbor search strategies and the neighbor list buffer."""

from .base import NeighborFinder, NeighborList, NoNeighborFinder
from .cell import CellListNeighborFinder
from .distance import DistanceNeighborFinder
from .factory import create_neighbor_finder
from .tree import TreeNeighborFinder

__all__ = [
    "NeighborList",
    "NeighborFinder",
    "NoNeighborFinder",
    "DistanceNeighborFinder",
    "TreeNeighborFinder",
    "CellListNeighborFinder",
    "create_neighbor_finder",
]
