"""
Procedural name generation.

Names are assembled from syllable tables (prefix, optional middle, suffix)
and kept unique within one world. Religion and faction names are derived
from base names with a handful of weighted patterns.
"""

import structlog
from typing import TYPE_CHECKING, Set, Tuple

from .prng import SeededPRNG

if TYPE_CHECKING:
    from .models import Faction, Polity, WorldState

logger = structlog.get_logger()

PREFIXES = [
    "Al", "Am", "Ar", "As", "At", "Bal", "Bel", "Bor", "Cal", "Cel",
    "Cor", "Cy", "Dal", "Dor", "El", "Er", "Fal", "Fen", "Gor", "Gry",
    "Hal", "Har", "Ill", "Ist", "Jar", "Jor", "Kal", "Kar", "Kor", "Kyr",
    "Lar", "Lor", "Mar", "Mor", "Nar", "Nor", "Ol", "Or", "Par", "Per",
    "Qual", "Quor", "Ral", "Ren", "Ror", "Sar", "Sel", "Sor", "Tal", "Tor",
    "Ul", "Um", "Val", "Vor", "Wil", "Wy", "Yar", "Yor", "Zal", "Zor",
]

MIDDLES = [
    "a", "e", "i", "o", "u", "ae", "ai", "au", "ei", "ia", "io", "ua",
    "ue", "en", "an", "er", "in", "on", "or", "un", "and", "ess", "ist", "yst",
]

SUFFIXES = [
    "an", "ar", "en", "ia", "is", "on", "or", "os", "us", "yr", "wood",
    "dell", "gard", "fall", "crest", "ford", "land", "vale", "wick",
    "shire", "dor", "mar", "nar", "sor", "thor",
]

FIRST_NAMES = [
    "Aelar", "Baelor", "Corvan", "Daeron", "Eldrin", "Faelan", "Gaelan",
    "Haldor", "Ithron", "Joric", "Kaelen", "Laenor", "Maekar", "Nyron",
    "Oryon", "Perrin", "Quentyn", "Rhaegar", "Sorin", "Trystan", "Uther",
    "Valerius", "Willem", "Xander", "Yorick", "Zane",
]

MAX_NAME_ATTEMPTS = 200
NUMBERED_AFTER = 100

VOWELS = "aeiouAEIOU"


def _clashes(left: str, right: str) -> bool:
    """Reject joins that double a letter or repeat a two-letter cluster."""
    return left[-2:].lower() == right[:2].lower() or left[-1:] == right[:1]


class NameGenerator:
    """Generates unique names for one world."""

    def __init__(self, prng: SeededPRNG):
        self.prng = prng
        self.used: Set[str] = set()

    def reserve(self, name: str) -> None:
        self.used.add(name)

    def random_name(self) -> str:
        """Build a unique syllable name."""
        rand = self.prng.random
        name = ""
        for attempt in range(1, MAX_NAME_ATTEMPTS + 1):
            has_middle = rand() > 0.4
            prefix = PREFIXES[int(rand() * len(PREFIXES))]
            suffix = SUFFIXES[int(rand() * len(SUFFIXES))]
            if has_middle:
                middle = MIDDLES[int(rand() * len(MIDDLES))]
                if _clashes(prefix, middle) or _clashes(middle, suffix):
                    continue
                name = prefix + middle + suffix
            else:
                if _clashes(prefix, suffix):
                    continue
                name = prefix + suffix

            if attempt > NUMBERED_AFTER and name in self.used:
                name = f"{name} {attempt - NUMBERED_AFTER + 1}"
            if name not in self.used:
                break
        else:
            # Exhausted attempts; number the last candidate until unique
            base = name or PREFIXES[0] + SUFFIXES[0]
            number = 2
            name = f"{base} {number}"
            while name in self.used:
                number += 1
                name = f"{base} {number}"
            logger.warning("Name table exhausted, numbering name", name=name)

        self.used.add(name)
        return name

    def first_name(self) -> str:
        return FIRST_NAMES[int(self.prng.random() * len(FIRST_NAMES))]

    def religion_name(self, base_name: str, religion_type: str) -> Tuple[str, str]:
        """
        Derive a religion name and sub-type from a base name.

        Cultural religions are always mainstream. Universalist religions
        may come out as fringe cults or heresies.

        Returns:
            Tuple of (name, sub_type) where sub_type is "mainstream" or "fringe"
        """
        rand = self.prng.random
        stem = base_name[:-1] if base_name and base_name[-1] in VOWELS else base_name
        sub_type = "mainstream"

        if religion_type == "cultural":
            roll = rand()
            if roll < 0.4:
                name = stem + "ism"
            elif roll < 0.8:
                name = stem + "ianity"
            else:
                name = f"The Faith of {stem}"
            self.used.add(name)
            return name, sub_type

        roll = rand()
        suffix_roll = rand()
        if roll < 0.4:
            if suffix_roll < 0.5:
                name = stem + "ism"
            elif suffix_roll < 0.8:
                name = stem + "ianity"
            else:
                name = stem + "an Faith"
        elif roll < 0.8:
            if suffix_roll < 0.3:
                name = f"The Way of {base_name}"
            elif suffix_roll < 0.6:
                name = f"The Faith of {base_name}"
            else:
                name = f"The Cult of {base_name}"
                sub_type = "fringe"
        else:
            name = f"{base_name}n Heresy"
            sub_type = "fringe"

        self.used.add(name)
        return name, sub_type

    def faction_name(
        self,
        faction: "Faction",
        leader: "Polity",
        suzerain: "Polity",
        state: "WorldState",
    ) -> str:
        """Name a faction from its grievance, its leader and the realm."""
        roll = self.prng.random()
        leader_capital = state.counties[leader.capital_county]

        if faction.type == "Independence":
            if roll < 0.5:
                culture = state.culture(leader.culture)
                culture_name = culture.name if culture is not None else leader.name
                if culture_name.endswith("n"):
                    adjective = culture_name + "ian"
                else:
                    adjective = culture_name + "n"
                return f"The {adjective} Liberation Front"
            return f"The League of {leader_capital.name}"

        if faction.type == "Claimant":
            if leader.dynasty is not None and roll < 0.6:
                return f"The {leader.dynasty.name} Restoration"
            first_name = leader.ruler.first_name if leader.ruler else leader.name
            return f"The Lords for {first_name}"

        if faction.type == "Lower Crown Authority":
            if roll < 0.5:
                return f"The {suzerain.title}'s Loyal Opposition"
            return f"The {leader_capital.name} League"

        return "The Disgruntled Lords"


def ancient_empire_name(core_name: str) -> str:
    return f"Ancient Empire of {core_name}"

