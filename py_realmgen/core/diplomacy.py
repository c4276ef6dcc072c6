"""
Diplomacy simulation between realms.

This module implements:
- Polity and realm adjacency from the grid
- Great-power vassalization
- Pairwise opinions
- Alliance blocs by flood fill over realm adjacency
- The great war and border wars
"""

import structlog
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

from .adjacency import unit_adjacency
from .geometry import round_half_up
from .hierarchy import realm_of, roots, set_suzerain, subtree
from .models import Polity, WorldState
from .polities import refresh_hierarchy
from .prng import SeededPRNG
from .rulers import assign_laws

logger = structlog.get_logger()


@dataclass
class DiplomacyOptions:
    """Diplomatic thresholds and opinion modifiers."""

    # Great-power vassalization
    great_powers: int = 3
    isolationism_chance: float = 0.4
    vassalization_power_ratio: float = 3.0
    vassalization_chance: float = 0.1
    adjacent_vassalization_chance: float = 0.7

    # Alliance blocs
    max_blocs: int = 4
    min_unaligned: int = 2
    bloc_join_chance: float = 0.5

    # Wars
    great_war_chance: float = 0.4
    border_war_chance: float = 0.1

    # Opinion modifiers
    same_culture: int = 20
    different_culture: int = -20
    same_religion: int = 30
    different_religion: int = -40
    border_friction: int = -15
    power_difference_scale: float = 10.0
    same_dynasty: int = 40
    is_suzerain: int = 50
    has_vassal: int = 25


def polity_adjacency(state: WorldState) -> Dict[int, List[int]]:
    """Polities sharing a 4-neighbour cell border."""
    return unit_adjacency(state.polity_grid(), state.width, state.height, ids=state.polities)


def realm_adjacency(state: WorldState) -> Dict[int, List[int]]:
    """Top-level realms sharing a border anywhere in their subtrees."""
    polities = state.polities
    polity_grid = state.polity_grid()
    lookup = np.full(max(polities, default=-1) + 2, -1, dtype=np.int32)
    for pid in polities:
        lookup[pid] = realm_of(polities, pid)
    realm_grid = np.where(polity_grid >= 0, lookup[polity_grid], -1)
    return unit_adjacency(realm_grid, state.width, state.height, ids=roots(polities))


def _add_symmetric(a: Polity, b: Polity, relation: str) -> bool:
    left = getattr(a, relation)
    right = getattr(b, relation)
    if b.id in left:
        return False
    left.append(b.id)
    if a.id not in right:
        right.append(a.id)
    return True


def declare_war(a: Polity, b: Polity) -> bool:
    if a.id == b.id:
        return False
    return _add_symmetric(a, b, "at_war_with")


def form_alliance(a: Polity, b: Polity) -> bool:
    if a.id == b.id:
        return False
    return _add_symmetric(a, b, "allies")


class DiplomacySimulator:
    """Runs vassalization, opinions, alliances and wars over the realms."""

    def __init__(
        self,
        state: WorldState,
        prng: SeededPRNG,
        options: Optional[DiplomacyOptions] = None,
    ):
        self.state = state
        self.prng = prng
        self.options = options or DiplomacyOptions()
        self.blocs: List[List[int]] = []

    def _ranked_realms(self) -> List[Polity]:
        polities = self.state.polities
        return sorted(
            (polities[pid] for pid in roots(polities)),
            key=lambda p: (-p.realm_power, p.id),
        )

    def vassalize_great_powers(self) -> int:
        """The strongest realms swallow much weaker ones, neighbours most easily."""
        o = self.options
        rand = self.prng.random
        polities = self.state.polities
        adjacency = realm_adjacency(self.state)

        ranked = self._ranked_realms()
        great = ranked[: o.great_powers]
        great_ids = {p.id for p in great}

        vassalized = 0
        for power in great:
            if power.suzerain is not None or rand() < o.isolationism_chance:
                continue
            for target in sorted(ranked, key=lambda p: p.id):
                if target.id in great_ids or target.suzerain is not None:
                    continue
                target_power = target.realm_power or 1.0
                chance = 0.0
                if power.realm_power / target_power > o.vassalization_power_ratio:
                    if target.id in adjacency.get(power.id, []):
                        chance = o.adjacent_vassalization_chance
                    else:
                        chance = o.vassalization_chance
                if rand() < chance:
                    set_suzerain(polities, target.id, power.id)
                    vassalized += 1

        if vassalized:
            refresh_hierarchy(self.state, self.prng)
        logger.info("Great powers resolved", great_powers=len(great), vassalized=vassalized)
        return vassalized

    def compute_opinions(self) -> None:
        """Every polity's opinion of every other polity."""
        o = self.options
        state = self.state
        polities = state.polities
        adjacency = {pid: set(n) for pid, n in polity_adjacency(state).items()}
        ids = sorted(polities)

        for pid in ids:
            p1 = polities[pid]
            neighbors = adjacency.get(pid, set())
            vassals = set(p1.vassals)
            opinions: Dict[int, int] = {}
            for other in ids:
                if other == pid:
                    continue
                p2 = polities[other]
                opinion = 0.0

                if p1.culture is not None and p2.culture is not None:
                    opinion += o.same_culture if p1.culture == p2.culture else o.different_culture
                if p1.religion is not None and p2.religion is not None:
                    opinion += o.same_religion if p1.religion == p2.religion else o.different_religion
                if other in neighbors:
                    opinion += o.border_friction
                if p1.power > 0:
                    opinion += (1 - p2.power / p1.power) * o.power_difference_scale
                if p1.dynasty is not None and p2.dynasty is not None and p1.dynasty.name == p2.dynasty.name:
                    opinion += o.same_dynasty
                if p1.suzerain == other:
                    opinion += o.is_suzerain
                if other in vassals:
                    opinion += o.has_vassal

                opinions[other] = round_half_up(opinion)
            p1.opinions = opinions

    def form_alliances(self) -> List[List[int]]:
        """
        Group unaligned realms into blocs.

        The strongest unaligned realm leads a new bloc; neighbouring
        unaligned realms join by coin flip, breadth-first.
        """
        o = self.options
        rand = self.prng.random
        polities = self.state.polities
        adjacency = realm_adjacency(self.state)

        aligned = set()
        blocs: List[List[int]] = []
        while len(blocs) < o.max_blocs:
            unaligned = [p for p in self._ranked_realms() if p.id not in aligned]
            if len(unaligned) <= o.min_unaligned:
                break

            leader = unaligned[0]
            members = [leader.id]
            aligned.add(leader.id)
            queue = [leader.id]
            head = 0
            while head < len(queue):
                current = queue[head]
                head += 1
                for neighbor in adjacency.get(current, []):
                    if neighbor in aligned:
                        continue
                    if rand() > 1 - o.bloc_join_chance:
                        aligned.add(neighbor)
                        members.append(neighbor)
                        queue.append(neighbor)

            bloc_id = len(blocs)
            for i, a in enumerate(members):
                polities[a].alliance = bloc_id
                for b in members[i + 1:]:
                    form_alliance(polities[a], polities[b])
            blocs.append(members)

        self.blocs = blocs
        logger.info(
            "Alliance blocs formed",
            blocs=len(blocs),
            aligned_realms=len(aligned),
        )
        return blocs

    def declare_wars(self) -> int:
        """The great war between the two leading blocs, then border wars."""
        o = self.options
        rand = self.prng.random
        polities = self.state.polities
        wars = 0

        great_war = False
        if len(self.blocs) >= 2 and rand() < o.great_war_chance:
            great_war = True
            side_a = [m for realm in self.blocs[0] for m in subtree(polities, realm)]
            side_b = [m for realm in self.blocs[1] for m in subtree(polities, realm)]
            for a in side_a:
                for b in side_b:
                    wars += declare_war(polities[a], polities[b])

        adjacency = realm_adjacency(self.state)
        for n1 in sorted(adjacency):
            for n2 in adjacency[n1]:
                if n2 <= n1:
                    continue
                p1, p2 = polities[n1], polities[n2]
                if p1.alliance == p2.alliance or n2 in p1.at_war_with:
                    continue
                if rand() < o.border_war_chance:
                    wars += declare_war(p1, p2)

        logger.info("Wars declared", great_war=great_war, wars=wars)
        return wars

    def simulate(self) -> None:
        logger.info("Starting diplomacy simulation", realms=len(roots(self.state.polities)))
        self.vassalize_great_powers()
        self.compute_opinions()
        self.form_alliances()
        self.declare_wars()
        assign_laws(self.state, self.prng)
