"""
Label anchor points.

Large territories are labelled at their pole of inaccessibility (the cell
farthest from the territory's edge); small ones at their rounded centroid.
"""

import structlog
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
from scipy import ndimage

from .geometry import centroid, round_half_up
from .hierarchy import realm_counties
from .models import WorldState

logger = structlog.get_logger()

# Territories up to this many cells use the centroid
SMALL_TERRITORY = 5


def pole_of_inaccessibility(cells: Sequence[int], width: int) -> Optional[Tuple[int, int]]:
    """Cell (x, y) with the greatest distance to anything outside `cells`."""
    if len(cells) == 0:
        return None
    idx = np.asarray(cells, dtype=np.int64)
    xs = idx % width
    ys = idx // width
    x0, y0 = int(xs.min()), int(ys.min())

    # One cell of padding so the bounding box edge counts as outside
    mask = np.zeros((int(ys.max()) - y0 + 3, int(xs.max()) - x0 + 3), dtype=bool)
    mask[ys - y0 + 1, xs - x0 + 1] = True
    dist = ndimage.distance_transform_edt(mask)

    row, col = np.unravel_index(int(np.argmax(dist)), dist.shape)
    return int(col) - 1 + x0, int(row) - 1 + y0


def label_position(cells: Sequence[int], width: int) -> Optional[Tuple[int, int]]:
    if len(cells) > SMALL_TERRITORY:
        return pole_of_inaccessibility(cells, width)
    center = centroid(cells, width)
    if center is None:
        return None
    return round_half_up(center[0]), round_half_up(center[1])


def _cells_of(state: WorldState, county_ids: Sequence[int]) -> List[int]:
    cells: List[int] = []
    for cid in county_ids:
        cells.extend(state.counties[cid].cells)
    return cells


def _group_counties(state: WorldState, attribute: str) -> Dict[int, List[int]]:
    groups: Dict[int, List[int]] = {}
    for cid in sorted(state.counties):
        key = getattr(state.counties[cid], attribute)
        if key is not None:
            groups.setdefault(key, []).append(cid)
    return groups


def assign_label_positions(state: WorldState) -> None:
    """Anchor every county, polity, culture, sub-culture and religion label."""
    width = state.width

    for cid in sorted(state.counties):
        county = state.counties[cid]
        county.label_position = label_position(county.cells, width) or county.capital_seed

    for pid in sorted(state.polities):
        polity = state.polities[pid]
        cells = _cells_of(state, realm_counties(state.polities, pid))
        polity.label_position = (
            label_position(cells, width)
            or state.counties[polity.capital_county].capital_seed
        )

    for attribute, entities in (
        ("culture", state.cultures),
        ("sub_culture", state.sub_cultures),
        ("religion", state.religions),
    ):
        groups = _group_counties(state, attribute)
        for entity in entities:
            entity.label_position = label_position(_cells_of(state, groups.get(entity.id, [])), width)

    logger.info("Label positions calculated", polities=len(state.polities))
