"""
Culture, sub-culture and religion spread.

Hearths are picked among the most developed land counties with a minimum
spacing, then spread over the county graph with the shared cost-weighted
expansion. Sub-cultures spread only inside their parent culture. Religions
spread with a development-dependent resistance; cultural religions stay
inside their origin culture.
"""

import structlog
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from .exceptions import InvariantViolationError
from .expansion import expand
from .geometry import distance
from .history import AncientEmpire
from .models import (
    County,
    Culture,
    Religion,
    ReligionSubType,
    ReligionType,
    SubCulture,
    WorldState,
)
from .names import NameGenerator
from .prng import SeededPRNG

logger = structlog.get_logger()

FOLK_RELIGION_ID = 0


@dataclass
class SociologyOptions:
    """Culture and religion spread parameters."""

    # Cultures
    counties_per_culture: int = 70
    extra_cultures: int = 5
    hearth_distance_divisor: float = 8.0
    culture_travel_cost: float = 10.0

    # Sub-cultures
    counties_per_sub_culture: int = 15
    sub_culture_distance_divisor: float = 16.0

    # Religions
    cultural_religion_min_dev: float = 10.0
    cultural_religion_chance: float = 0.6
    min_universalist_religions: int = 2
    max_universalist_religions: int = 5
    universalist_dev_thresholds: Tuple[float, ...] = (15.0, 5.0)
    base_resistance: float = 70.0
    development_resistance: float = 3.0
    min_resistance: float = 5.0
    fringe_resistance_bonus: float = 30.0
    universalist_resistance_reduction: float = 25.0


def is_land_county(county: County) -> bool:
    return bool(county.cells) and county.development > 0


class SociologySpreader:
    """Places and spreads cultures, sub-cultures and religions."""

    def __init__(
        self,
        state: WorldState,
        prng: SeededPRNG,
        names: NameGenerator,
        options: Optional[SociologyOptions] = None,
        ancient_empires: Optional[List[AncientEmpire]] = None,
    ):
        self.state = state
        self.prng = prng
        self.names = names
        self.options = options or SociologyOptions()
        self.ancient_empires = ancient_empires or []

        self.county_ids = sorted(state.counties)
        self._position = {cid: i for i, cid in enumerate(self.county_ids)}
        self._adjacency = [
            [self._position[n] for n in state.county_adjacency.get(cid, [])]
            for cid in self.county_ids
        ]
        # culture id -> county id its spread started from
        self.culture_hearths: Dict[int, int] = {}

    def _spread(
        self,
        sources: Sequence[Tuple[int, int]],
        cost: Callable[[County, int], float],
        allowed: Optional[Callable[[int, County], bool]] = None,
    ) -> Dict[int, int]:
        """Expand owners over the county graph; returns county id -> owner."""
        counties = self.state.counties
        ids = self.county_ids

        def step_cost(_src: int, dst: int, owner: int, carry):
            return cost(counties[ids[dst]], owner), carry

        allowed_fn = None
        if allowed is not None:
            def allowed_fn(owner: int, dst: int) -> bool:
                return allowed(owner, counties[ids[dst]])

        owners, _ = expand(
            len(ids),
            [(owner, self._position[cid]) for owner, cid in sources],
            self._adjacency.__getitem__,
            step_cost,
            allowed_fn,
        )
        return {ids[i]: int(o) for i, o in enumerate(owners) if o >= 0}

    def _travel_cost(self, county: County, _owner: int) -> float:
        return self.options.culture_travel_cost + self.state.county_biome_cost(county.id)

    @staticmethod
    def _pick_hearths(candidates: Sequence[County], target: int, min_distance: float) -> List[County]:
        hearths: List[County] = []
        for county in candidates:
            if len(hearths) >= target:
                break
            if all(
                distance(county.capital_seed, h.capital_seed) >= min_distance
                for h in hearths
            ):
                hearths.append(county)
        return hearths

    def spread_cultures(self) -> None:
        state = self.state
        o = self.options
        counties = state.counties
        cultures: List[Culture] = []

        imprinted: Set[int] = set()
        for empire in self.ancient_empires:
            culture = Culture(
                id=len(cultures),
                name=empire.core_name,
                ancient_empire=empire.name,
            )
            cultures.append(culture)
            self.culture_hearths[culture.id] = empire.capital_county
            for cid in empire.counties:
                counties[cid].culture = culture.id
                imprinted.add(cid)

        land = [counties[cid] for cid in self.county_ids if is_land_county(counties[cid])]
        target = len(land) // o.counties_per_culture + o.extra_cultures
        candidates = sorted(
            (c for c in land if c.id not in imprinted),
            key=lambda c: (-c.development, c.id),
        )
        hearths = self._pick_hearths(candidates, target, state.width / o.hearth_distance_divisor)

        sources = []
        for county in hearths:
            culture = Culture(id=len(cultures), name=self.names.random_name())
            cultures.append(culture)
            self.culture_hearths[culture.id] = county.id
            sources.append((culture.id, county.id))

        if sources:
            reached = self._spread(
                sources,
                self._travel_cost,
                allowed=lambda _owner, county: county.id not in imprinted,
            )
            for cid, culture_id in reached.items():
                counties[cid].culture = culture_id

        # Islands out of reach take the nearest hearth
        stranded = 0
        for cid in self.county_ids:
            county = counties[cid]
            if county.culture is not None or not county.cells:
                continue
            if not self.culture_hearths:
                raise InvariantViolationError(f"County {cid} has no reachable culture hearth")
            county.culture = min(
                self.culture_hearths,
                key=lambda cul: (
                    distance(county.capital_seed, counties[self.culture_hearths[cul]].capital_seed),
                    cul,
                ),
            )
            stranded += 1

        state.cultures = cultures
        logger.info(
            "Cultures spread",
            cultures=len(cultures),
            ancient=len(self.ancient_empires),
            stranded_counties=stranded,
        )

    def spread_sub_cultures(self) -> None:
        state = self.state
        o = self.options
        counties = state.counties
        sub_cultures: List[SubCulture] = []
        primary: Dict[int, int] = {}
        sources = []

        for culture in state.cultures:
            territory = [counties[cid] for cid in self.county_ids if counties[cid].culture == culture.id]
            if not territory:
                continue
            candidates = [c for c in territory if is_land_county(c)]
            if not candidates:
                continue
            candidates = sorted(candidates, key=lambda c: (-c.development, c.id))
            target = max(1, len(territory) // o.counties_per_sub_culture)
            hearths = self._pick_hearths(
                candidates, target, state.width / o.sub_culture_distance_divisor
            )

            culture.is_group = len(hearths) > 1
            for county in hearths:
                name = self.names.random_name() if culture.is_group else culture.name
                sub = SubCulture(id=len(sub_cultures), name=name, parent_culture=culture.id)
                sub_cultures.append(sub)
                primary.setdefault(culture.id, sub.id)
                sources.append((sub.id, county.id))

        if sources:
            reached = self._spread(
                sources,
                self._travel_cost,
                allowed=lambda owner, county: county.culture == sub_cultures[owner].parent_culture,
            )
            for cid, sub_id in reached.items():
                counties[cid].sub_culture = sub_id

        for cid in self.county_ids:
            county = counties[cid]
            if county.culture is not None and county.sub_culture is None:
                county.sub_culture = primary.get(county.culture)

        state.sub_cultures = sub_cultures
        logger.info("Sub-cultures spread", sub_cultures=len(sub_cultures))

    def _resistance(self, county: County, religion: Religion) -> float:
        o = self.options
        resistance = (
            o.base_resistance
            - county.development * o.development_resistance
            + self.state.county_biome_cost(county.id)
        )
        if religion.type == ReligionType.UNIVERSALIST:
            if religion.sub_type == ReligionSubType.FRINGE:
                resistance += o.fringe_resistance_bonus
            else:
                resistance -= o.universalist_resistance_reduction
        return max(o.min_resistance, resistance)

    def _universalist_candidates(self, used: Set[int], needed: int) -> List[County]:
        counties = self.state.counties
        pool = [counties[cid] for cid in self.county_ids if cid not in used]
        chosen: List[County] = []
        chosen_ids: Set[int] = set()
        tiers = [lambda c, t=t: c.development > t for t in self.options.universalist_dev_thresholds]
        tiers.append(is_land_county)

        for i, tier in enumerate(tiers):
            if i > 0 and len(chosen) >= needed:
                break
            batch = sorted(
                (c for c in pool if c.id not in chosen_ids and tier(c)),
                key=lambda c: (-c.development, c.id),
            )
            chosen.extend(batch)
            chosen_ids.update(c.id for c in batch)
        return chosen

    def spread_religions(self) -> None:
        state = self.state
        o = self.options
        counties = state.counties
        rand = self.prng.random

        religions = [
            Religion(id=FOLK_RELIGION_ID, name="Folk Religion", type=ReligionType.FOLK)
        ]
        for county in counties.values():
            county.religion = FOLK_RELIGION_ID

        sources = []
        used: Set[int] = set()

        for culture in state.cultures:
            best: Optional[County] = None
            for cid in self.county_ids:
                county = counties[cid]
                if county.culture == culture.id and (best is None or county.development > best.development):
                    best = county
            if (
                best is not None
                and best.development > o.cultural_religion_min_dev
                and rand() > 1 - o.cultural_religion_chance
            ):
                name, sub_type = self.names.religion_name(culture.name, "cultural")
                religion = Religion(
                    id=len(religions),
                    name=name,
                    type=ReligionType.CULTURAL,
                    sub_type=ReligionSubType(sub_type),
                    origin_culture=culture.id,
                )
                religions.append(religion)
                sources.append((religion.id, best.id))
                used.add(best.id)

        count = o.min_universalist_religions + int(
            rand() * (o.max_universalist_religions - o.min_universalist_religions + 1)
        )
        candidates = self._universalist_candidates(used, count)
        for county in candidates[:count]:
            name, sub_type = self.names.religion_name(self.names.random_name(), "universalist")
            religion = Religion(
                id=len(religions),
                name=name,
                type=ReligionType.UNIVERSALIST,
                sub_type=ReligionSubType(sub_type),
                origin_culture=county.culture,
            )
            religions.append(religion)
            sources.append((religion.id, county.id))
            used.add(county.id)

        def allowed(owner: int, county: County) -> bool:
            religion = religions[owner]
            if religion.type == ReligionType.CULTURAL:
                return county.culture == religion.origin_culture
            return True

        if sources:
            reached = self._spread(
                sources,
                lambda county, owner: self._resistance(county, religions[owner]),
                allowed=allowed,
            )
            for cid, religion_id in reached.items():
                counties[cid].religion = religion_id

        state.religions = religions
        logger.info(
            "Religions spread",
            religions=len(religions),
            cultural=sum(1 for r in religions if r.type == ReligionType.CULTURAL),
        )

    def record_polity_sociology(self) -> None:
        """Each polity takes the culture, sub-culture and religion of its capital."""
        for polity in self.state.polities.values():
            capital = self.state.counties[polity.capital_county]
            polity.culture = capital.culture
            polity.sub_culture = capital.sub_culture
            polity.religion = capital.religion

    def generate(self) -> None:
        logger.info("Starting sociology generation")
        self.spread_cultures()
        self.spread_sub_cultures()
        self.spread_religions()
        self.record_polity_sociology()
