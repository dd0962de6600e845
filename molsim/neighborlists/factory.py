"""Select a neighbor finder by name."""

from __future__ import annotations

from typing import Literal

from ..errors import ConfigurationError
from .base import NeighborFinder, NoNeighborFinder
from .cell import CellListNeighborFinder
from .distance import DistanceNeighborFinder
from .tree import TreeNeighborFinder

NeighborStrategy = Literal["distance", "tree", "cell", "none"]

_FINDERS: dict[str, type[NeighborFinder]] = {
    "distance": DistanceNeighborFinder,
    "tree": TreeNeighborFinder,
    "cell": CellListNeighborFinder,
}


def create_neighbor_finder(strategy: NeighborStrategy, **kwargs) -> NeighborFinder:
    """
    Create a neighbor finder by strategy name.

    Args:
        strategy: One of "distance", "tree", "cell" or "none".
        **kwargs: Finder arguments (eligible, special, n_steps, dist_cutoff, backend).

    Returns:
        NeighborFinder instance.

    Raises:
        ConfigurationError: If the strategy name is unknown.

    Examples:
        >>> finder = create_neighbor_finder("cell", eligible=eligible, dist_cutoff=1.2)
    """
    if strategy == "none":
        return NoNeighborFinder(
            eligible=kwargs.get("eligible"), special=kwargs.get("special")
        )
    try:
        finder_cls = _FINDERS[strategy]
    except KeyError:
        raise ConfigurationError(
            f"Unknown neighbor strategy: {strategy}. "
            f"Available: {', '.join(sorted(_FINDERS))}, none"
        ) from None
    return finder_cls(**kwargs)
