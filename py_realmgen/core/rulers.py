"""
Rulers, dynasties and realm laws.
"""

import structlog
from typing import Optional

from .models import (
    CrownAuthority,
    Dynasty,
    Government,
    Laws,
    Polity,
    Ruler,
    RulerStats,
    Succession,
    WorldState,
)
from .names import NameGenerator
from .prng import SeededPRNG

logger = structlog.get_logger()

FEUDAL_SUCCESSIONS = [
    Succession.PRIMOGENITURE,
    Succession.GAVELKIND,
    Succession.ELECTIVE_MONARCHY,
]


def _stat(prng: SeededPRNG) -> int:
    # Sum of two d4 (0-3) rolls, a rough bell curve over 0-6
    return int(prng.random() * 4) + int(prng.random() * 4)


def generate_dynasty(
    state: WorldState, polity: Polity, prng: SeededPRNG, names: NameGenerator
) -> Optional[Dynasty]:
    """Ruling house of a polity; merchant republics have none."""
    if polity.government == Government.MERCHANT_REPUBLIC:
        return None

    base = polity.name if prng.random() > 0.5 else names.random_name()
    if prng.random() > 0.7:
        name = f"von {base}"
    elif prng.random() > 0.4:
        name = f"{base}id"
    else:
        name = base
    names.reserve(name)

    capital = state.counties.get(polity.capital_county)
    return Dynasty(name=name, origin_culture=capital.culture if capital else None)


def generate_ruler(prng: SeededPRNG, names: NameGenerator) -> Ruler:
    first_name = names.first_name()
    stats = RulerStats(adm=_stat(prng), dip=_stat(prng), mil=_stat(prng))
    return Ruler(first_name=first_name, stats=stats)


def assign_rulers(state: WorldState, prng: SeededPRNG, names: NameGenerator) -> None:
    """Give every polity a dynasty (unless a republic) and a ruler."""
    for pid in sorted(state.polities):
        polity = state.polities[pid]
        polity.dynasty = generate_dynasty(state, polity, prng, names)
        polity.ruler = generate_ruler(prng, names)

    logger.info(
        "Rulers assigned",
        rulers=len(state.polities),
        dynasties=sum(1 for p in state.polities.values() if p.dynasty is not None),
    )


def realm_laws(polity: Polity, prng: SeededPRNG) -> Laws:
    """Crown authority and succession for an independent ruler."""
    government = polity.government
    if government == Government.TRIBAL_FEDERATION:
        return Laws(crown_authority=CrownAuthority.LOW, succession=Succession.TANISTRY)
    if government == Government.IMPERIAL_CONFEDERATION:
        authority = CrownAuthority.LOW if prng.random() < 0.5 else CrownAuthority.MEDIUM
        return Laws(crown_authority=authority, succession=Succession.IMPERIAL_ELECTION)
    if government == Government.MERCHANT_REPUBLIC:
        return Laws(
            crown_authority=CrownAuthority.MEDIUM,
            succession=Succession.OLIGARCHIC_ELECTION,
        )

    # Capable administrators centralize
    adm = polity.ruler.stats.adm if polity.ruler else 0
    roll = prng.random() + adm / 12
    if roll < 0.5:
        authority = CrownAuthority.LOW
    elif roll < 1.0:
        authority = CrownAuthority.MEDIUM
    else:
        authority = CrownAuthority.HIGH
    return Laws(crown_authority=authority, succession=prng.choice(FEUDAL_SUCCESSIONS))


def assign_laws(state: WorldState, prng: SeededPRNG) -> None:
    """Independent rulers get laws; vassals have none."""
    for pid in sorted(state.polities):
        polity = state.polities[pid]
        polity.laws = realm_laws(polity, prng) if polity.suzerain is None else None
