"""Tests for neighbor list implementations."""

import numpy as np
import pytest

from molsim.errors import ConfigurationError
from molsim.neighborlists import (
    CellListNeighborFinder,
    DistanceNeighborFinder,
    NeighborList,
    NoNeighborFinder,
    TreeNeighborFinder,
    create_neighbor_finder,
)
from molsim.parallel import ThreadPoolBackend
from molsim.system import Box, MDState

FINDERS = [DistanceNeighborFinder, TreeNeighborFinder, CellListNeighborFinder]


def brute_force_pairs(positions, box, cutoff, eligible):
    """Reference pair set by checking every pair."""
    i, j = np.triu_indices(len(positions), k=1)
    r2 = box.squared_distance(positions[i], positions[j])
    keep = (r2 <= cutoff**2) & eligible[i, j]
    return set(zip(i[keep].tolist(), j[keep].tolist()))


@pytest.fixture
def collinear_state():
    """Three collinear atoms 0.5 apart."""
    positions = np.array(
        [
            [1.0, 1.0, 1.0],
            [1.5, 1.0, 1.0],
            [2.0, 1.0, 1.0],
        ]
    )
    return MDState.create(positions=positions, box=Box.cubic(10.0))


@pytest.fixture
def random_state():
    """200 random atoms in a periodic box."""
    rng = np.random.default_rng(42)
    positions = rng.uniform(0.0, 5.0, size=(200, 3))
    return MDState.create(positions=positions, box=Box.cubic(5.0))


class TestNeighborList:
    """Test the neighbor list buffer."""

    def test_append_and_query(self):
        """Pairs are stored with their special flags."""
        neighbors = NeighborList()
        neighbors.append([0, 1], [2, 3], [False, True])
        assert len(neighbors) == 2
        assert neighbors.get_pairs().tolist() == [[0, 2], [1, 3]]
        assert neighbors.triples() == [(0, 2, False), (1, 3, True)]
        assert list(neighbors) == neighbors.triples()
        assert neighbors.as_set() == {(0, 2), (1, 3)}

    def test_get_neighbors(self):
        """Neighbors of one atom are collected from both columns."""
        neighbors = NeighborList()
        neighbors.append([0, 0, 1], [1, 2, 2])
        assert neighbors.get_neighbors(1).tolist() == [0, 2]

    def test_capacity_doubles(self):
        """Capacity grows by doubling and keeps existing pairs."""
        neighbors = NeighborList(capacity=4)
        neighbors.append(np.zeros(3, dtype=int), np.arange(1, 4))
        neighbors.append(np.ones(3, dtype=int), np.arange(2, 5))
        assert neighbors.capacity == 8
        assert neighbors.n_pairs == 6
        assert neighbors.i.tolist() == [0, 0, 0, 1, 1, 1]

    def test_clear_keeps_capacity(self):
        """Clearing a list does not shrink it."""
        neighbors = NeighborList(capacity=2)
        neighbors.append(np.zeros(10, dtype=int), np.arange(1, 11))
        capacity = neighbors.capacity
        neighbors.clear()
        assert len(neighbors) == 0
        assert neighbors.capacity == capacity

    def test_extend(self):
        """Extending appends another list's pairs."""
        first = NeighborList()
        first.append([0], [1])
        second = NeighborList()
        second.append([2], [3], [True])
        first.extend(second)
        assert first.triples() == [(0, 1, False), (2, 3, True)]


class TestFinders:
    """Test that every strategy finds the same pairs."""

    @pytest.mark.parametrize("finder_cls", FINDERS)
    def test_collinear_pairs(self, collinear_state, finder_cls):
        """Three collinear atoms: only nearest neighbors within 0.6."""
        eligible = ~np.eye(3, dtype=bool)
        finder = finder_cls(eligible=eligible, dist_cutoff=0.6)
        neighbors = finder.find_neighbors(collinear_state)
        assert neighbors.as_set() == {(0, 1), (1, 2)}

    def test_collinear_strategies_agree(self, collinear_state):
        """Tree, distance and cell finders report identical sets."""
        eligible = ~np.eye(3, dtype=bool)
        results = [
            cls(eligible=eligible, dist_cutoff=1.0).find_neighbors(collinear_state)
            for cls in FINDERS
        ]
        expected = {(0, 1), (0, 2), (1, 2)}
        for neighbors in results:
            assert neighbors.as_set() == expected

    @pytest.mark.parametrize("finder_cls", FINDERS)
    def test_random_matches_brute_force(self, random_state, finder_cls):
        """Strategies agree with an explicit double loop."""
        eligible = ~np.eye(200, dtype=bool)
        finder = finder_cls(eligible=eligible, dist_cutoff=1.0)
        neighbors = finder.find_neighbors(random_state)
        expected = brute_force_pairs(
            random_state.positions, random_state.box, 1.0, eligible
        )
        assert neighbors.as_set() == expected
        assert len(neighbors) == len(expected)

    @pytest.mark.parametrize("finder_cls", FINDERS)
    def test_pairs_are_ordered(self, random_state, finder_cls):
        """Every stored pair has i < j."""
        eligible = ~np.eye(200, dtype=bool)
        neighbors = finder_cls(eligible=eligible, dist_cutoff=1.0).find_neighbors(
            random_state
        )
        assert np.all(neighbors.i < neighbors.j)

    @pytest.mark.parametrize("finder_cls", FINDERS)
    def test_ineligible_pairs_skipped(self, collinear_state, finder_cls):
        """Excluded pairs never appear."""
        eligible = ~np.eye(3, dtype=bool)
        eligible[0, 1] = eligible[1, 0] = False
        finder = finder_cls(eligible=eligible, dist_cutoff=0.6)
        assert finder.find_neighbors(collinear_state).as_set() == {(1, 2)}

    @pytest.mark.parametrize("finder_cls", FINDERS)
    def test_special_flags(self, collinear_state, finder_cls):
        """Special pairs are flagged."""
        eligible = ~np.eye(3, dtype=bool)
        special = np.zeros((3, 3), dtype=bool)
        special[0, 2] = special[2, 0] = True
        finder = finder_cls(eligible=eligible, special=special, dist_cutoff=1.0)
        flags = {(i, j): s for i, j, s in finder.find_neighbors(collinear_state)}
        assert flags == {(0, 1): False, (0, 2): True, (1, 2): False}

    @pytest.mark.parametrize("finder_cls", FINDERS)
    def test_cutoff_is_inclusive(self, finder_cls):
        """A pair exactly at the cutoff is a neighbor."""
        state = MDState.create(
            positions=np.array([[1.0, 1.0, 1.0], [1.5, 1.0, 1.0]]),
            box=Box.cubic(10.0),
        )
        finder = finder_cls(eligible=~np.eye(2, dtype=bool), dist_cutoff=0.5)
        assert finder.find_neighbors(state).as_set() == {(0, 1)}

    @pytest.mark.parametrize("finder_cls", FINDERS)
    def test_periodic_image(self, finder_cls):
        """Pairs across the boundary are found."""
        state = MDState.create(
            positions=np.array([[0.2, 5.0, 5.0], [9.8, 5.0, 5.0]]),
            box=Box.cubic(10.0),
        )
        finder = finder_cls(eligible=~np.eye(2, dtype=bool), dist_cutoff=1.0)
        assert finder.find_neighbors(state).as_set() == {(0, 1)}

    def test_cell_small_grid(self):
        """Fewer than three cells per axis does not double count."""
        rng = np.random.default_rng(7)
        state = MDState.create(
            positions=rng.uniform(0.0, 2.0, size=(40, 3)), box=Box.cubic(2.0)
        )
        eligible = ~np.eye(40, dtype=bool)
        finder = CellListNeighborFinder(eligible=eligible, dist_cutoff=0.9)
        neighbors = finder.find_neighbors(state)
        assert finder.n_cells == (2, 2, 2)
        expected = brute_force_pairs(state.positions, state.box, 0.9, eligible)
        assert neighbors.as_set() == expected
        assert len(neighbors) == len(expected)

    def test_cell_grid_bounded_by_atoms(self):
        """A dilute system gets at most one cell per atom."""
        rng = np.random.default_rng(3)
        positions = rng.uniform(0.0, 60.0, size=(20, 3))
        positions[1] = positions[0] + [0.3, 0.0, 0.0]
        positions[5] = positions[4] + [0.0, 0.2, 0.2]
        state = MDState.create(positions=positions, box=Box.cubic(60.0))
        eligible = ~np.eye(20, dtype=bool)
        finder = CellListNeighborFinder(eligible=eligible, dist_cutoff=0.5)

        neighbors = finder.find_neighbors(state)

        assert np.prod(finder.n_cells) <= 20
        assert all(60.0 / n >= 0.5 for n in finder.n_cells)
        expected = brute_force_pairs(state.positions, state.box, 0.5, eligible)
        assert {(0, 1), (4, 5)} <= expected
        assert neighbors.as_set() == expected

    def test_cell_triclinic_matches_distance(self):
        """Cell and distance finders agree in a triclinic box."""
        box = Box.triclinic([[6.0, 0.0, 0.0], [1.5, 6.0, 0.0], [1.0, -1.0, 6.0]])
        rng = np.random.default_rng(11)
        frac = rng.random((150, 3))
        state = MDState.create(positions=frac @ box.vectors, box=box)
        eligible = ~np.eye(150, dtype=bool)
        cell = CellListNeighborFinder(eligible=eligible, dist_cutoff=1.2)
        distance = DistanceNeighborFinder(eligible=eligible, dist_cutoff=1.2)
        assert cell.find_neighbors(state).as_set() == (
            distance.find_neighbors(state).as_set()
        )


class TestUnboundedBoxes:
    """Test geometry validation of the strategies."""

    def test_distance_supports_infinite_axes(self):
        """The distance finder works with unbounded axes."""
        state = MDState.create(
            positions=np.array([[0.0, 0.0, 0.0], [0.0, 50.0, 0.0], [0.0, 50.5, 0.0]]),
            box=Box.rectangular(10.0, np.inf, 10.0),
        )
        eligible = ~np.eye(3, dtype=bool)
        finder = DistanceNeighborFinder(eligible=eligible, dist_cutoff=1.0)
        assert finder.find_neighbors(state).as_set() == {(1, 2)}

    @pytest.mark.parametrize("finder_cls", [TreeNeighborFinder, CellListNeighborFinder])
    def test_spatial_finders_reject_infinite_axes(self, finder_cls):
        """Tree and cell finders refuse unbounded axes."""
        state = MDState.create(positions=np.zeros((2, 3)), box=Box.unbounded())
        finder = finder_cls(eligible=~np.eye(2, dtype=bool), dist_cutoff=1.0)
        with pytest.raises(ConfigurationError):
            finder.find_neighbors(state)

    def test_tree_rejects_triclinic(self):
        """The tree finder needs an orthorhombic box."""
        box = Box.triclinic([[5.0, 0.0, 0.0], [1.0, 5.0, 0.0], [0.0, 0.0, 5.0]])
        finder = TreeNeighborFinder(eligible=~np.eye(2, dtype=bool), dist_cutoff=1.0)
        with pytest.raises(ConfigurationError, match="orthorhombic"):
            finder.validate_box(box)


class TestRebuildCadence:
    """Test the rebuild schedule and buffer reuse."""

    def test_reuses_list_between_rebuilds(self, collinear_state):
        """Off-schedule calls return the given list untouched."""
        finder = DistanceNeighborFinder(
            eligible=~np.eye(3, dtype=bool), n_steps=5, dist_cutoff=0.6
        )
        neighbors = finder.find_neighbors(collinear_state, step=0)
        collinear_state.positions[2] = [8.0, 8.0, 8.0]
        same = finder.find_neighbors(collinear_state, neighbors, step=3)
        assert same is neighbors
        assert same.as_set() == {(0, 1), (1, 2)}

        rebuilt = finder.find_neighbors(collinear_state, neighbors, step=5)
        assert rebuilt is neighbors
        assert rebuilt.as_set() == {(0, 1)}

    def test_atom_count_mismatch(self, collinear_state):
        """The state must match the eligibility matrix."""
        finder = DistanceNeighborFinder(eligible=~np.eye(4, dtype=bool))
        with pytest.raises(ConfigurationError):
            finder.find_neighbors(collinear_state)


class TestParallelFinders:
    """Test that threaded builds match serial builds."""

    @pytest.mark.parametrize("finder_cls", FINDERS)
    def test_threads_match_serial(self, random_state, finder_cls):
        """Thread-pool results equal serial results."""
        eligible = ~np.eye(200, dtype=bool)
        serial = finder_cls(eligible=eligible, dist_cutoff=1.0)
        with ThreadPoolBackend(n_workers=4) as backend:
            threaded = finder_cls(eligible=eligible, dist_cutoff=1.0, backend=backend)
            threaded_pairs = threaded.find_neighbors(random_state).as_set()
        assert threaded_pairs == serial.find_neighbors(random_state).as_set()


class TestFactory:
    """Test finder selection by name."""

    @pytest.mark.parametrize(
        "name, cls",
        [
            ("distance", DistanceNeighborFinder),
            ("tree", TreeNeighborFinder),
            ("cell", CellListNeighborFinder),
        ],
    )
    def test_by_name(self, name, cls):
        finder = create_neighbor_finder(
            name, eligible=~np.eye(4, dtype=bool), dist_cutoff=1.5
        )
        assert isinstance(finder, cls)
        assert finder.cutoff == 1.5

    def test_none_strategy(self, collinear_state):
        """The "none" strategy yields no list."""
        finder = create_neighbor_finder("none", eligible=~np.eye(3, dtype=bool))
        assert isinstance(finder, NoNeighborFinder)
        assert finder.find_neighbors(collinear_state) is None

    def test_unknown_strategy(self):
        with pytest.raises(ConfigurationError, match="Unknown"):
            create_neighbor_finder("octree", eligible=~np.eye(2, dtype=bool))

    def test_invalid_parameters(self):
        """Bad cadence or cutoff is rejected."""
        with pytest.raises(ConfigurationError):
            DistanceNeighborFinder(eligible=~np.eye(2, dtype=bool), n_steps=0)
        with pytest.raises(ConfigurationError):
            DistanceNeighborFinder(eligible=~np.eye(2, dtype=bool), dist_cutoff=-1.0)
