"""Tests for frontier expansion and adjacency helpers."""

import numpy as np
import pytest

from py_realmgen.core.adjacency import (
    border_counts,
    grid_neighbors,
    group_cells,
    unit_adjacency,
)
from py_realmgen.core.expansion import expand


def line_neighbors(n):
    def neighbors(node):
        return [i for i in (node - 1, node + 1) if 0 <= i < n]
    return neighbors


def unit_cost(_src, _dst, _owner, carry):
    return 1.0, carry


class TestExpand:
    """Test the shared cost-weighted expansion."""

    def test_two_sources_split_a_line(self):
        owners, costs = expand(7, [(0, 0), (1, 6)], line_neighbors(7), unit_cost)
        assert owners.tolist() == [0, 0, 0, 0, 1, 1, 1]
        assert costs.tolist() == [0, 1, 2, 3, 2, 1, 0]

    def test_tie_goes_to_earlier_source(self):
        """An equidistant node stays with the owner that reached it first."""
        owners, _ = expand(5, [(0, 0), (1, 4)], line_neighbors(5), unit_cost)
        assert owners[2] == 0

    def test_cheaper_path_wins(self):
        weights = [1, 1, 10, 1, 1]

        def cost(_src, dst, _owner, carry):
            return float(weights[dst]), carry

        owners, costs = expand(5, [(0, 0), (1, 4)], line_neighbors(5), cost)
        assert owners.tolist() == [0, 0, 0, 1, 1]
        assert costs[2] == 11

    def test_allowed_constraint(self):
        """Owners never enter nodes outside their territory."""
        territory = {0: {0, 1, 2}, 1: {3, 4, 5}}

        owners, _ = expand(
            6,
            [(0, 0), (1, 5)],
            line_neighbors(6),
            unit_cost,
            allowed=lambda owner, node: node in territory[owner],
        )
        assert owners.tolist() == [0, 0, 0, 1, 1, 1]

    def test_blocked_step_leaves_unreached(self):
        def cost(_src, dst, _owner, carry):
            if dst == 2:
                return None
            return 1.0, carry

        owners, costs = expand(5, [(0, 0)], line_neighbors(5), cost)
        assert owners.tolist() == [0, 0, -1, -1, -1]
        assert np.isinf(costs[3])

    def test_carry_limits_consecutive_steps(self):
        """Carried state caps a run of flagged nodes, like sea crossings."""
        water = [False, True, True, True, False, False]

        def cost(_src, dst, _owner, sea):
            sea = sea + 1 if water[dst] else 0
            if sea > 2:
                return None
            return 1.0, sea

        owners, _ = expand(6, [(0, 0)], line_neighbors(6), cost)
        assert owners.tolist() == [0, 0, 0, -1, -1, -1]

    def test_duplicate_source_node(self):
        owners, _ = expand(3, [(0, 1), (1, 1)], line_neighbors(3), unit_cost)
        assert owners.tolist() == [0, 0, 0]


class TestAdjacency:
    """Test grid and unit adjacency."""

    def test_grid_neighbors_corner_and_center(self):
        neighbors = grid_neighbors(3, 3)
        assert sorted(neighbors[0]) == [1, 3]
        assert sorted(neighbors[4]) == [1, 3, 5, 7]

    def test_unit_adjacency_symmetric(self):
        grid = np.array([
            0, 0, 1,
            0, 2, 1,
            -1, 2, 2,
        ])
        adjacency = unit_adjacency(grid, 3, 3, ids=[0, 1, 2, 3])
        assert adjacency[0] == [1, 2]
        assert adjacency[1] == [0, 2]
        assert adjacency[2] == [0, 1]
        assert adjacency[3] == []

    def test_group_cells_skips_unassigned(self):
        groups = group_cells(np.array([1, -1, 1, 0]))
        assert sorted(groups) == [0, 1]
        assert groups[1].tolist() == [0, 2]

    def test_border_counts(self):
        grid = np.array([
            0, 1,
            0, 2,
        ])
        counts = border_counts(grid, 2, 2, grid == 0)
        assert counts[1] == 1
        assert counts[2] == 1
        assert 0 not in counts

    @pytest.mark.parametrize("width,height", [(1, 1), (4, 1), (1, 4)])
    def test_degenerate_grids(self, width, height):
        grid = np.zeros(width * height, dtype=np.int32)
        assert unit_adjacency(grid, width, height, ids=[0]) == {0: []}
