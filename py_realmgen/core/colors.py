"""
Display colors for realms, cultures and religions as CSS hsl() strings.
"""

import math
import structlog
from typing import Callable

from .hierarchy import realm_of, roots
from .models import WorldState

logger = structlog.get_logger()

GOLDEN_ANGLE = 137.5
FOLK_RELIGION_COLOR = "hsl(0, 0%, 50%)"


def hsl(hue: float, saturation: float, lightness: float) -> str:
    return f"hsl({int(math.floor(hue % 360))}, {int(saturation)}%, {int(lightness)}%)"


def hue_of(color: str) -> float:
    """Hue component of an hsl() string."""
    return float(color[color.index("(") + 1:color.index(",")])


def color_polities(state: WorldState, rand: Callable[[], float]) -> None:
    """Realms step around the wheel by the golden angle; vassals darken their realm's hue."""
    polities = state.polities
    realm_ids = roots(polities)
    if not realm_ids:
        return

    start = rand() * 360
    hues = {}
    for i, pid in enumerate(realm_ids):
        hues[pid] = (start + i * GOLDEN_ANGLE) % 360
        polities[pid].color = hsl(hues[pid], 70, 60)

    for pid in sorted(polities):
        polity = polities[pid]
        if polity.suzerain is not None:
            polity.color = hsl(hues[realm_of(polities, pid)], 55, 45)


def color_cultures(state: WorldState, rand: Callable[[], float]) -> None:
    cultures = state.cultures
    if not cultures:
        return
    start = rand() * 360
    for i, culture in enumerate(cultures):
        culture.color = hsl(start + i / len(cultures) * 360, 70, 65)

    for sub in state.sub_cultures:
        parent_hue = hue_of(cultures[sub.parent_culture].color)
        hue = parent_hue + (rand() - 0.5) * 20 + 360
        saturation = 60 + rand() * 20
        lightness = 60 + rand() * 20
        sub.color = hsl(hue, saturation, lightness)


def color_religions(state: WorldState, rand: Callable[[], float]) -> None:
    religions = state.religions
    if not religions:
        return
    organized = [r for r in religions if r.id != 0]
    start = rand() * 360
    for religion in religions:
        if religion.id == 0:
            religion.color = FOLK_RELIGION_COLOR
    for i, religion in enumerate(organized):
        religion.color = hsl(start + i / len(organized) * 360, 70, 65)


def assign_colors(state: WorldState, rand: Callable[[], float]) -> None:
    color_polities(state, rand)
    color_cultures(state, rand)
    color_religions(state, rand)
    logger.info("Colors assigned")
