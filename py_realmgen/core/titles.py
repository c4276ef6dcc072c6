"""
Title ranks and assignment.

Titles sit on a feudal ladder; government types swap in their own vocabulary
at fixed ranks. A vassal always ranks strictly below its suzerain except at
the bottom of the ladder, where the lowest rank repeats.
"""

import structlog
from typing import Callable, Dict, List

from .models import Government, Polity

logger = structlog.get_logger()

FEUDAL_HIERARCHY: List[List[str]] = [
    ["Empire"],
    ["Kingdom"],
    ["Grand Duchy", "Principality"],
    ["Duchy"],
    ["County"],
    ["Barony"],
]

TITLE_RANKS: Dict[str, int] = {
    title: rank for rank, titles in enumerate(FEUDAL_HIERARCHY) for title in titles
}
TITLE_RANKS.update(
    {
        "High Chieftaincy": 2,
        "Chieftaincy": 4,
        "Serene Republic": 2,
        "Republic": 4,
    }
)

LOWEST_RANK = len(FEUDAL_HIERARCHY) - 1

# Realm power thresholds
EMPIRE_THRESHOLD = 1000
KINGDOM_THRESHOLD = 500
GRAND_DUCHY_THRESHOLD = 200
DUCHY_THRESHOLD = 100
COUNTY_THRESHOLD = 30
BARONY_THRESHOLD = 10

# Preliminary tiers used when picking realm leaders
PRELIMINARY_THRESHOLDS = [(600, "Empire"), (350, "Kingdom"), (200, "Principality")]


def title_rank(title: str) -> int:
    return TITLE_RANKS.get(title, LOWEST_RANK)


def title_at_rank(rank: int, rand: Callable[[], float]) -> str:
    titles = FEUDAL_HIERARCHY[min(rank, LOWEST_RANK)]
    if len(titles) == 1:
        return titles[0]
    return titles[int(rand() * len(titles))]


def feudal_title(realm_power: float, rand: Callable[[], float]) -> str:
    """Title on the feudal ladder for a given realm power."""
    if realm_power > EMPIRE_THRESHOLD:
        return "Empire"
    if realm_power > KINGDOM_THRESHOLD:
        return "Kingdom"
    if realm_power > GRAND_DUCHY_THRESHOLD:
        return "Grand Duchy" if rand() > 0.5 else "Principality"
    if realm_power > DUCHY_THRESHOLD:
        return "Duchy"
    if realm_power > COUNTY_THRESHOLD:
        return "County"
    return "Barony"


def preliminary_title(power: float) -> str:
    """Rough tier from raw power, or "Other" below the Principality tier."""
    for threshold, title in PRELIMINARY_THRESHOLDS:
        if power > threshold:
            return title
    return "Other"


def independent_title(polity: Polity, rand: Callable[[], float]) -> str:
    government = polity.government
    if government == Government.TRIBAL_FEDERATION:
        if polity.realm_power > DUCHY_THRESHOLD and polity.vassals:
            return "High Chieftaincy"
        return "Chieftaincy"
    if government == Government.MERCHANT_REPUBLIC:
        if polity.realm_power > GRAND_DUCHY_THRESHOLD and polity.realm_avg_development > 20:
            return "Serene Republic"
        return "Republic"

    title = feudal_title(polity.realm_power, rand)
    # Independent rulers are never mere barons
    if title == "Barony":
        return "County"
    return title


def vassal_title(polity: Polity, suzerain: Polity, rand: Callable[[], float]) -> str:
    suzerain_rank = title_rank(suzerain.title)
    above_barony = polity.realm_power >= BARONY_THRESHOLD

    if (
        suzerain.government == Government.IMPERIAL_CONFEDERATION
        and suzerain_rank < TITLE_RANKS["Principality"]
        and above_barony
    ):
        return "Principality"
    if (
        suzerain.government == Government.TRIBAL_FEDERATION
        and suzerain_rank < TITLE_RANKS["Chieftaincy"]
    ):
        return "Chieftaincy"

    title = feudal_title(polity.realm_power, rand)
    if title_rank(title) <= suzerain_rank:
        return title_at_rank(suzerain_rank + 1, rand)
    return title


def assign_titles(polities: Dict[int, Polity], order: List[int], rand: Callable[[], float]) -> None:
    """
    Assign titles top-down.

    Args:
        polities: Polity arena
        order: Polity ids with every suzerain listed before its vassals
        rand: Random stream for the Grand Duchy / Principality coin flip
    """
    for pid in order:
        polity = polities[pid]
        if polity.suzerain is None:
            polity.title = independent_title(polity, rand)
        else:
            polity.title = vassal_title(polity, polities[polity.suzerain], rand)
