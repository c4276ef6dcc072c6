"""
Internal politics of realms: liberty desire, factions and civil wars.
"""

import structlog
from typing import Dict, List, Set

from .diplomacy import declare_war
from .geometry import round_half_up
from .hierarchy import realm_of, roots, subtree
from .models import CrownAuthority, Faction, FactionType, Polity, WorldState
from .names import NameGenerator

logger = structlog.get_logger()

MAX_FACTIONS = 5

# Liberty desire weights
RELATIVE_POWER_WEIGHT = 20.0
OPINION_WEIGHT = 0.5
DIPLOMACY_WEIGHT = 4.0
CROWN_AUTHORITY_BONUS = {
    CrownAuthority.LOW: 0,
    CrownAuthority.MEDIUM: 5,
    CrownAuthority.HIGH: 10,
}

# Faction leaders and types
LEADER_MIN_LIBERTY_DESIRE = 50
INDEPENDENCE_MIN_LIBERTY_DESIRE = 75

# Joining an existing faction
JOIN_MIN_OPINION_OF_LEADER = 10
JOIN_MAX_OPINION_OF_SUZERAIN = 40
JOIN_MIN_LIBERTY_DESIRE = 35
INDEPENDENCE_JOIN_MAX_OPINION = -10
INDEPENDENCE_JOIN_MIN_LIBERTY_DESIRE = 65
CROWN_JOIN_MAX_OPINION = 20
CROWN_JOIN_MIN_LIBERTY_DESIRE = 50
LOW_DIPLOMACY = 4
LOW_DIPLOMACY_BONUS = 15


def liberty_desire(vassal: Polity, polities: Dict[int, Polity]) -> int:
    """
    How badly a vassal wants out, in [0, 100].

    Relative power is measured against the top of the realm; opinion and
    diplomacy are those of the direct suzerain; crown authority comes from
    the realm's laws. Also records the vassal's opinion of its suzerain.
    """
    direct = polities[vassal.suzerain]
    top = polities[realm_of(polities, vassal.id)]

    vassal_power = vassal.realm_power or vassal.power or 0.0
    top_power = top.realm_power or top.power or 1.0
    desire = vassal_power / top_power * RELATIVE_POWER_WEIGHT

    opinion = vassal.opinions.get(direct.id, 0)
    vassal.opinion_of_suzerain = opinion
    desire -= opinion * OPINION_WEIGHT

    if direct.ruler is not None:
        desire -= direct.ruler.stats.dip * DIPLOMACY_WEIGHT
    if top.laws is not None:
        desire += CROWN_AUTHORITY_BONUS[top.laws.crown_authority]

    return min(100, max(0, round_half_up(desire)))


def should_join(
    vassal: Polity,
    leader: Polity,
    faction_type: FactionType,
    suzerain: Polity,
) -> bool:
    """Whether an uncommitted direct vassal joins an existing faction."""
    if vassal.opinions.get(leader.id, 0) < JOIN_MIN_OPINION_OF_LEADER:
        return False
    opinion = vassal.opinion_of_suzerain or 0
    desire = vassal.liberty_desire or 0
    if opinion > JOIN_MAX_OPINION_OF_SUZERAIN or desire < JOIN_MIN_LIBERTY_DESIRE:
        return False

    if faction_type == FactionType.INDEPENDENCE:
        return (
            vassal.culture == leader.culture
            and opinion < INDEPENDENCE_JOIN_MAX_OPINION
            and desire > INDEPENDENCE_JOIN_MIN_LIBERTY_DESIRE
        )
    if faction_type == FactionType.LOWER_CROWN_AUTHORITY:
        bonus = 0
        if suzerain.ruler is not None and suzerain.ruler.stats.dip < LOW_DIPLOMACY:
            bonus = LOW_DIPLOMACY_BONUS
        return opinion < CROWN_JOIN_MAX_OPINION and desire + bonus > CROWN_JOIN_MIN_LIBERTY_DESIRE
    return False


class InternalPolitics:
    """Liberty desire for vassals, then factions and civil wars per realm."""

    def __init__(self, state: WorldState, names: NameGenerator):
        self.state = state
        self.names = names

    def compute_liberty_desire(self) -> None:
        polities = self.state.polities
        for pid in sorted(polities):
            polity = polities[pid]
            if polity.suzerain is None:
                polity.liberty_desire = None
                polity.opinion_of_suzerain = None
            else:
                polity.liberty_desire = liberty_desire(polity, polities)

    def form_factions(self, root: Polity) -> List[Faction]:
        polities = self.state.polities
        root.factions = []
        direct = [polities[v] for v in root.vassals]
        if not direct:
            return []

        candidates = sorted(
            (
                v for v in direct
                if (v.liberty_desire or 0) > LEADER_MIN_LIBERTY_DESIRE
                and (v.opinion_of_suzerain or 0) < 0
            ),
            key=lambda v: (-(v.realm_power or v.power), v.id),
        )
        factioned: Set[int] = set()

        def add_hierarchy(lord: Polity, faction: Faction) -> None:
            if lord.id in factioned:
                return
            for member in subtree(polities, lord.id):
                if member in factioned:
                    continue
                faction.members.append(member)
                faction.power += polities[member].realm_power or polities[member].power
                factioned.add(member)

        factions: List[Faction] = []
        for leader in candidates:
            if leader.id in factioned:
                continue
            faction_type = FactionType.LOWER_CROWN_AUTHORITY
            if (
                leader.liberty_desire > INDEPENDENCE_MIN_LIBERTY_DESIRE
                and leader.culture != root.culture
            ):
                faction_type = FactionType.INDEPENDENCE

            existing = next((f for f in factions if f.type == faction_type), None)
            if existing is not None:
                add_hierarchy(leader, existing)
            elif len(factions) < MAX_FACTIONS:
                faction = Faction(type=faction_type, leader=leader.id)
                faction.name = self.names.faction_name(faction, leader, root, self.state)
                add_hierarchy(leader, faction)
                factions.append(faction)

        for vassal in direct:
            for faction in factions:
                if vassal.id in factioned:
                    break
                if should_join(vassal, polities[faction.leader], faction.type, root):
                    add_hierarchy(vassal, faction)

        root.factions = [f for f in factions if len(f.members) > 1]
        return root.factions

    def resolve_civil_war(self, root: Polity) -> int:
        """
        A realm shatters when some faction leader is at full liberty desire
        and the factions together outweigh their lord.
        """
        if not root.factions:
            return 0
        polities = self.state.polities
        spark = any((polities[f.leader].liberty_desire or 0) >= 100 for f in root.factions)
        total = sum(f.power for f in root.factions)
        if not spark or total <= (root.realm_power or root.power):
            return 0

        rebels = []
        for faction in root.factions:
            for member in faction.members:
                if member not in rebels:
                    rebels.append(member)
        for member in rebels:
            declare_war(root, polities[member])
        logger.info("Civil war", realm=root.id, rebels=len(rebels))
        return len(rebels)

    def simulate(self) -> None:
        polities = self.state.polities
        logger.info("Starting internal politics")
        self.compute_liberty_desire()

        factions = 0
        civil_wars = 0
        for pid in roots(polities):
            factions += len(self.form_factions(polities[pid]))
            if self.resolve_civil_war(polities[pid]):
                civil_wars += 1

        logger.info("Internal politics resolved", factions=factions, civil_wars=civil_wars)
