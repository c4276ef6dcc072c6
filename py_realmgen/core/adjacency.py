"""
Adjacency graphs over the cell grid.

Grid neighbourhoods are 4-connected. Unit adjacency (counties, polities,
realms) is derived from a labelled grid by a right/down scan, so every pair
of touching units is found exactly once and stored symmetrically.
"""

import numpy as np
from collections import Counter
from typing import Dict, Iterable, List, Optional

# 4-neighbour offsets (dx, dy), in expansion order
FOUR_NEIGHBORS = [(0, 1), (0, -1), (1, 0), (-1, 0)]


def grid_neighbors(width: int, height: int) -> List[List[int]]:
    """4-connected neighbour lists for every cell, clipped at the grid edge."""
    neighbors = []
    for y in range(height):
        for x in range(width):
            cell = []
            for dx, dy in FOUR_NEIGHBORS:
                nx, ny = x + dx, y + dy
                if 0 <= nx < width and 0 <= ny < height:
                    cell.append(ny * width + nx)
            neighbors.append(cell)
    return neighbors


def unit_adjacency(
    grid: np.ndarray,
    width: int,
    height: int,
    ids: Optional[Iterable[int]] = None,
) -> Dict[int, List[int]]:
    """
    Build a symmetric adjacency map from a labelled grid.

    Args:
        grid: Flat array of unit ids, -1 for unassigned cells
        width: Grid width
        height: Grid height
        ids: Unit ids that must appear as keys even without neighbours

    Returns:
        Mapping unit id -> sorted list of neighbouring unit ids
    """
    g = np.asarray(grid).reshape(height, width)
    a = np.concatenate([g[:, :-1].ravel(), g[:-1, :].ravel()])
    b = np.concatenate([g[:, 1:].ravel(), g[1:, :].ravel()])
    mask = (a >= 0) & (b >= 0) & (a != b)

    adjacency: Dict[int, List[int]] = {int(i): [] for i in ids} if ids is not None else {}
    if mask.any():
        lo = np.minimum(a[mask], b[mask])
        hi = np.maximum(a[mask], b[mask])
        pairs = np.unique(np.stack([lo, hi], axis=1), axis=0)
        for u, v in pairs.tolist():
            adjacency.setdefault(u, []).append(v)
            adjacency.setdefault(v, []).append(u)

    for key in adjacency:
        adjacency[key].sort()
    return adjacency


def group_cells(grid: np.ndarray) -> Dict[int, np.ndarray]:
    """Group flat cell indices by label, ignoring negative labels."""
    grid = np.asarray(grid)
    order = np.argsort(grid, kind="stable")
    labels = grid[order]
    groups: Dict[int, np.ndarray] = {}
    if len(labels) == 0:
        return groups
    starts = np.flatnonzero(np.r_[True, labels[1:] != labels[:-1]])
    ends = np.r_[starts[1:], len(labels)]
    for start, end in zip(starts, ends):
        label = int(labels[start])
        if label >= 0:
            groups[label] = order[start:end]
    return groups


def border_counts(
    grid: np.ndarray, width: int, height: int, region: np.ndarray
) -> Counter:
    """
    Count the 4-neighbour border contacts of a region with other labels.

    Args:
        grid: Flat labelled grid
        width: Grid width
        height: Grid height
        region: Flat boolean mask selecting the region

    Returns:
        Counter of neighbouring labels (>= 0) outside the region
    """
    g = np.asarray(grid).reshape(height, width)
    r = np.asarray(region).reshape(height, width)
    counts: Counter = Counter()

    shifts = [
        (r[:-1, :], g[1:, :], r[1:, :]),  # neighbour below
        (r[1:, :], g[:-1, :], r[:-1, :]),  # neighbour above
        (r[:, :-1], g[:, 1:], r[:, 1:]),  # neighbour right
        (r[:, 1:], g[:, :-1], r[:, :-1]),  # neighbour left
    ]
    for inside, neighbor_labels, neighbor_inside in shifts:
        hits = neighbor_labels[inside & ~neighbor_inside]
        hits = hits[hits >= 0]
        counts.update(hits.tolist())
    return counts
