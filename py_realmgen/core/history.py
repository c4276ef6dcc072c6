"""
Ancient history pre-pass.

A few of the strongest base polities found short-lived empires that claim
their neighbours, imprint a shared culture on every county they held, and
collapse before the present-day realms form. Only the culture survives.
"""

import math
import structlog
from dataclasses import dataclass, field
from typing import List, Optional

from .geometry import distance
from .models import WorldState
from .names import NameGenerator, ancient_empire_name
from .prng import SeededPRNG

logger = structlog.get_logger()


@dataclass
class HistoryOptions:
    """Ancient history parameters."""

    enabled: bool = True
    min_empires: int = 1
    max_empires: int = 3
    radius_factor: float = 2.0


@dataclass
class AncientEmpire:
    """A fallen empire and the counties it once held."""

    name: str
    core_name: str
    leader: int
    capital_county: int
    members: List[int] = field(default_factory=list)
    counties: List[int] = field(default_factory=list)


def simulate_history(
    state: WorldState,
    prng: SeededPRNG,
    names: NameGenerator,
    options: Optional[HistoryOptions] = None,
) -> List[AncientEmpire]:
    """Run the ancient empires and return what they leave behind."""
    o = options or HistoryOptions()
    rand = prng.random
    polities = state.polities

    ranked = sorted(polities.values(), key=lambda p: (-p.power, p.id))
    count = o.min_empires + int(rand() * (o.max_empires - o.min_empires + 1))

    empires: List[AncientEmpire] = []
    for leader in ranked[:count]:
        core_name = names.random_name()
        empires.append(
            AncientEmpire(
                name=ancient_empire_name(core_name),
                core_name=core_name,
                leader=leader.id,
                capital_county=leader.capital_county,
            )
        )
    leader_ids = {e.leader for e in empires}

    claims = []
    for ei, empire in enumerate(empires):
        leader = polities[empire.leader]
        origin = state.counties[leader.capital_county].capital_seed
        radius = math.sqrt(leader.power) * o.radius_factor
        for target in ranked:
            if target.id in leader_ids:
                continue
            dist = distance(origin, state.counties[target.capital_county].capital_seed)
            if dist < radius:
                claims.append((leader.power / (dist + 1), ei, target.id))

    claims.sort(key=lambda c: (-c[0], c[1], c[2]))
    claimed = set()
    for _, ei, target_id in claims:
        if target_id not in claimed:
            claimed.add(target_id)
            empires[ei].members.append(target_id)

    for empire in empires:
        counties = list(polities[empire.leader].counties)
        for member in empire.members:
            counties.extend(polities[member].counties)
        empire.counties = sorted(counties)

    logger.info(
        "Ancient history simulated",
        empires=len(empires),
        imprinted_counties=sum(len(e.counties) for e in empires),
    )
    return empires
