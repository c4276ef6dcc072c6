"""
Polity and realm formation.

This module implements:
- Base polities grouped around the most developed counties
- Realm promotion and the greedy global claim auction
- Duchy-level sub-infeudation
- Exclave repair on the polity grid
- Hierarchy refresh (power, realm power, titles) and single-child renaming
"""

import math
import structlog
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .adjacency import border_counts, unit_adjacency
from .expansion import expand
from .geometry import distance
from .hierarchy import (
    compute_power,
    realm_of,
    roots,
    set_suzerain,
    top_down_order,
)
from .models import Government, Polity, WorldState
from .names import NameGenerator
from .prng import SeededPRNG
from .titles import assign_titles, preliminary_title

logger = structlog.get_logger()


@dataclass
class PolityOptions:
    """Polity and realm formation parameters."""

    counties_per_polity: int = 5
    county_travel_cost: float = 10.0

    # Realm promotion
    max_realm_leaders: int = 12
    fallback_leader_divisor: int = 10

    # Imperial confederation
    imperial_min_avg_dev: float = 12.0
    imperial_chance: float = 0.5
    imperial_claim_radius: float = 2.5

    # Tribal federation
    tribal_max_avg_dev: float = 8.0
    tribal_chance: float = 0.6
    claim_radius: float = 1.5

    # Merchant republics among leftovers
    republic_min_avg_dev: float = 15.0
    republic_max_counties: int = 3

    # Sub-infeudation
    subinfeudation_share: float = 0.10


def average_development(polity: Polity) -> float:
    return polity.power / len(polity.counties) if polity.counties else 0.0


def capital_seed(state: WorldState, polity: Polity) -> Tuple[int, int]:
    return state.counties[polity.capital_county].capital_seed


def refresh_hierarchy(state: WorldState, prng: SeededPRNG) -> None:
    """Recompute power and realm power bottom-up, then titles top-down."""
    compute_power(state.polities, state.counties)
    assign_titles(state.polities, top_down_order(state.polities), prng.random)


class PolityFormer:
    """Groups counties into polities and polities into realms."""

    def __init__(
        self,
        state: WorldState,
        prng: SeededPRNG,
        names: NameGenerator,
        options: Optional[PolityOptions] = None,
    ):
        self.state = state
        self.prng = prng
        self.names = names
        self.options = options or PolityOptions()

    def form_base_polities(self) -> Dict[int, Polity]:
        """Most developed land counties become capitals; the rest join by travel cost."""
        state = self.state
        o = self.options
        logger.info("Starting base polity formation")

        if not state.county_adjacency:
            state.county_adjacency = unit_adjacency(
                state.county_grid, state.width, state.height, ids=state.counties
            )

        land_counties = [c for c in state.counties.values() if c.development > 0]
        target = max(1, len(land_counties) // o.counties_per_polity)
        ranked = sorted(land_counties, key=lambda c: (-c.development, c.id))
        capitals = ranked[:target]

        polities: Dict[int, Polity] = {}
        for i, county in enumerate(capitals):
            polities[i] = Polity(id=i, name=self.names.random_name(), capital_county=county.id)

        county_ids = sorted(state.counties)
        position = {cid: i for i, cid in enumerate(county_ids)}
        adjacency = [[position[n] for n in state.county_adjacency.get(cid, [])] for cid in county_ids]

        def step_cost(_src: int, dst: int, _owner: int, carry):
            cid = county_ids[dst]
            return o.county_travel_cost + state.county_biome_cost(cid), carry

        owners, _ = expand(
            len(county_ids),
            [(pid, position[p.capital_county]) for pid, p in polities.items()],
            adjacency.__getitem__,
            step_cost,
        )

        unreached = 0
        for i, cid in enumerate(county_ids):
            owner = int(owners[i])
            county = state.counties[cid]
            if owner < 0:
                # Cut off by water: nearest capital in a straight line
                owner = min(
                    polities,
                    key=lambda pid: (distance(county.capital_seed, capital_seed(state, polities[pid])), pid),
                )
                unreached += 1
            county.polity = owner
            polities[owner].counties.append(cid)

        state.polities = polities
        compute_power(polities, state.counties)
        logger.info(
            "Base polities formed",
            polities=len(polities),
            unreached_counties=unreached,
        )
        return polities

    def _promote_leaders(self, ranked: List[Polity]) -> List[Polity]:
        o = self.options
        leaders = [p for p in ranked if preliminary_title(p.power) != "Other"]
        leaders = leaders[: o.max_realm_leaders]
        if not leaders:
            count = max(1, len(ranked) // o.fallback_leader_divisor)
            leaders = ranked[:count]
            logger.warning(
                "No polity reached a realm tier, promoting strongest polities",
                leaders=count,
            )
        return leaders

    def _choose_government(self, polity: Polity, is_top: bool) -> Government:
        o = self.options
        rand = self.prng.random
        avg_dev = average_development(polity)
        if is_top and avg_dev > o.imperial_min_avg_dev and rand() > 1 - o.imperial_chance:
            return Government.IMPERIAL_CONFEDERATION
        if avg_dev < o.tribal_max_avg_dev and rand() > 1 - o.tribal_chance:
            return Government.TRIBAL_FEDERATION
        return Government.FEUDAL_KINGDOM

    def _claim_radius(self, polity: Polity) -> float:
        factor = (
            self.options.imperial_claim_radius
            if polity.government == Government.IMPERIAL_CONFEDERATION
            else self.options.claim_radius
        )
        return math.sqrt(polity.power) * factor

    def form_realms(self) -> None:
        """Promote realm leaders and run the claim auction over the rest."""
        state = self.state
        polities = state.polities
        o = self.options
        logger.info("Starting realm formation", polities=len(polities))

        ranked = sorted(polities.values(), key=lambda p: (-p.power, p.id))
        leaders = self._promote_leaders(ranked)
        leader_ids = {p.id for p in leaders}

        for i, leader in enumerate(leaders):
            leader.government = self._choose_government(leader, is_top=(i == 0))

        claims = []
        for li, leader in enumerate(leaders):
            radius = self._claim_radius(leader)
            origin = capital_seed(state, leader)
            for target in ranked:
                if target.id in leader_ids or target.suzerain is not None:
                    continue
                dist = distance(origin, capital_seed(state, target))
                if dist < radius:
                    claims.append((leader.power / (dist + 1), li, target.id))

        # Highest score first; ties favour the earlier leader, then lower target id
        claims.sort(key=lambda c: (-c[0], c[1], c[2]))
        claimed = set()
        for _, li, target_id in claims:
            if target_id in claimed:
                continue
            claimed.add(target_id)
            set_suzerain(polities, target_id, leaders[li].id)

        for polity in ranked:
            if polity.id in leader_ids or polity.id in claimed:
                continue
            if (
                average_development(polity) > o.republic_min_avg_dev
                and len(polity.counties) < o.republic_max_counties
            ):
                polity.government = Government.MERCHANT_REPUBLIC
            else:
                polity.government = Government.FEUDAL_KINGDOM

        refresh_hierarchy(state, self.prng)
        moved = self.subinfeudate()
        repaired = self.repair_exclaves()
        refresh_hierarchy(state, self.prng)
        self.rename_single_children()

        logger.info(
            "Realms formed",
            realm_leaders=len(leaders),
            vassals=len(claimed),
            subinfeudated=moved,
            exclaves_repaired=repaired,
            realms=len(roots(polities)),
        )

    def subinfeudate(self) -> int:
        """Duchy vassals take their weakest siblings as sub-vassals."""
        polities = self.state.polities
        share = self.options.subinfeudation_share
        duchies = sorted(
            (p for p in polities.values() if p.title == "Duchy" and p.suzerain is not None),
            key=lambda p: (-p.realm_power, p.id),
        )

        moved = 0
        for duchy in duchies:
            suzerain = polities[duchy.suzerain]
            siblings = sorted(
                (polities[v] for v in suzerain.vassals if v != duchy.id),
                key=lambda p: (p.realm_power, p.id),
            )
            budget = duchy.power * share
            taken = 0.0
            for sibling in siblings:
                if taken + sibling.realm_power > budget:
                    break
                taken += sibling.realm_power
                set_suzerain(polities, sibling.id, duchy.id)
                moved += 1
        return moved

    def repair_exclaves(self) -> int:
        """
        Reattach vassals cut off from the rest of their realm.

        A vassal whose own territory touches no other territory of its realm
        moves, with its subtree, under the realm that borders it most.
        """
        state = self.state
        polities = state.polities
        polity_grid = state.polity_grid()

        repaired = 0
        for pid in sorted(polities):
            polity = polities[pid]
            if polity.suzerain is None:
                continue

            region = polity_grid == pid
            if not region.any():
                continue
            contacts = border_counts(polity_grid, state.width, state.height, region)
            if not contacts:
                continue

            home = realm_of(polities, pid)
            by_realm: Dict[int, int] = {}
            for neighbor, count in contacts.items():
                realm = realm_of(polities, neighbor)
                by_realm[realm] = by_realm.get(realm, 0) + count
            if home in by_realm:
                continue

            target = max(by_realm, key=lambda r: (by_realm[r], -r))
            set_suzerain(polities, pid, target)
            repaired += 1
        return repaired

    def rename_single_children(self) -> None:
        """A polity holding exactly one county lends that county its name."""
        for pid in sorted(self.state.polities):
            polity = self.state.polities[pid]
            if len(polity.counties) == 1:
                self.state.counties[polity.counties[0]].name = polity.name
