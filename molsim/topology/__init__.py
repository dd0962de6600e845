"""Topology and pair-matrix construction."""

from .topology import Topology, check_pair_matrix

__all__ = ["Topology", "check_pair_matrix"]
