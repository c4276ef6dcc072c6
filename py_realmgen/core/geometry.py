"""Small grid geometry helpers shared across generation stages."""

import math
from typing import Iterable, Optional, Tuple


def round_half_up(value: float) -> int:
    """Round to the nearest integer with .5 going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def distance(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    """Euclidean distance between two (x, y) points."""
    return math.hypot(a[0] - b[0], a[1] - b[1])


def centroid(cells: Iterable[int], width: int) -> Optional[Tuple[float, float]]:
    """Mean (x, y) of a set of flat cell indices, or None when empty."""
    sx = 0.0
    sy = 0.0
    count = 0
    for idx in cells:
        sx += idx % width
        sy += idx // width
        count += 1
    if count == 0:
        return None
    return sx / count, sy / count
