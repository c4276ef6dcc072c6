"""
World data model.

Entities reference each other by integer id only. During generation the
stages share a mutable WorldState; the finalize step freezes it into a World,
whose snapshot is a plain JSON-compatible dict.
"""

from __future__ import annotations

import numpy as np
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from .biomes import BIOME_COSTS, WATER_COST


class Government(str, Enum):
    FEUDAL_KINGDOM = "feudal_kingdom"
    TRIBAL_FEDERATION = "tribal_federation"
    MERCHANT_REPUBLIC = "merchant_republic"
    IMPERIAL_CONFEDERATION = "imperial_confederation"


class ReligionType(str, Enum):
    FOLK = "folk"
    CULTURAL = "cultural"
    UNIVERSALIST = "universalist"


class ReligionSubType(str, Enum):
    MAINSTREAM = "mainstream"
    FRINGE = "fringe"


class FactionType(str, Enum):
    INDEPENDENCE = "Independence"
    CLAIMANT = "Claimant"
    LOWER_CROWN_AUTHORITY = "Lower Crown Authority"


class CrownAuthority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class Succession(str, Enum):
    PRIMOGENITURE = "Primogeniture"
    GAVELKIND = "Gavelkind"
    ELECTIVE_MONARCHY = "Elective Monarchy"
    TANISTRY = "Tanistry"
    IMPERIAL_ELECTION = "Imperial Election"
    OLIGARCHIC_ELECTION = "Oligarchic Election"


class County(BaseModel):
    """Atomic administrative unit."""

    id: int = Field(description="Unique county identifier")
    name: str = Field(description="County name")
    capital_seed: Tuple[int, int] = Field(description="Generator capital (x, y)")
    cells: List[int] = Field(default_factory=list, description="Sorted cell indices")
    development: int = Field(default=0, ge=0, description="Development score")
    culture: Optional[int] = Field(default=None, description="Culture id")
    sub_culture: Optional[int] = Field(default=None, description="Sub-culture id")
    religion: Optional[int] = Field(default=None, description="Religion id")
    polity: Optional[int] = Field(default=None, description="Owning polity id")
    label_position: Optional[Tuple[int, int]] = None


class RulerStats(BaseModel):
    adm: int = Field(ge=0, le=6)
    dip: int = Field(ge=0, le=6)
    mil: int = Field(ge=0, le=6)


class Ruler(BaseModel):
    first_name: str
    stats: RulerStats


class Dynasty(BaseModel):
    name: str
    origin_culture: Optional[int] = None


class Laws(BaseModel):
    crown_authority: CrownAuthority
    succession: Succession


class Faction(BaseModel):
    """A group of disaffected vassals sharing one grievance."""

    type: FactionType
    leader: int
    members: List[int] = Field(default_factory=list)
    power: float = 0.0
    name: str = ""


class Polity(BaseModel):
    """A political entity owning counties and possibly vassals."""

    id: int = Field(description="Unique polity identifier")
    name: str = Field(description="Polity name")
    title: str = Field(default="County", description="Rank title")
    government: Government = Field(default=Government.FEUDAL_KINGDOM)
    capital_county: int = Field(description="Capital county id")
    counties: List[int] = Field(default_factory=list, description="Directly owned counties")
    vassals: List[int] = Field(default_factory=list, description="Direct vassal ids")
    suzerain: Optional[int] = Field(default=None, description="Direct suzerain id")

    power: float = Field(default=0.0, description="Sum of owned county development")
    realm_power: float = Field(default=0.0, description="Power including vassal subtree")
    realm_avg_development: float = Field(default=0.0)

    dynasty: Optional[Dynasty] = None
    ruler: Optional[Ruler] = None
    laws: Optional[Laws] = None

    culture: Optional[int] = None
    sub_culture: Optional[int] = None
    religion: Optional[int] = None

    liberty_desire: Optional[int] = Field(default=None, ge=0, le=100)
    opinion_of_suzerain: Optional[int] = None
    factions: List[Faction] = Field(default_factory=list)

    allies: List[int] = Field(default_factory=list)
    at_war_with: List[int] = Field(default_factory=list)
    alliance: Optional[int] = None
    opinions: Dict[int, int] = Field(default_factory=dict)

    color: str = ""
    label_position: Optional[Tuple[int, int]] = None


class Culture(BaseModel):
    id: int
    name: str
    color: str = ""
    is_group: bool = False
    ancient_empire: Optional[str] = Field(
        default=None, description="Fallen empire that imprinted this culture"
    )
    label_position: Optional[Tuple[int, int]] = None


class SubCulture(BaseModel):
    id: int
    name: str
    color: str = ""
    parent_culture: int
    label_position: Optional[Tuple[int, int]] = None


class Religion(BaseModel):
    id: int
    name: str
    color: str = ""
    type: ReligionType
    sub_type: Optional[ReligionSubType] = None
    origin_culture: Optional[int] = None
    label_position: Optional[Tuple[int, int]] = None


GRID_FIELDS = {
    "elevation": np.float32,
    "moisture": np.float32,
    "temperature": np.float32,
    "river_flow": np.float32,
    "biomes": np.int8,
    "county_grid": np.int32,
}


class World(BaseModel):
    """
    Result of one generation run.

    Freezing is shallow: top-level fields cannot be reassigned and the grid
    arrays are read-only, but nested entities are plain models. They are
    deep-copied from the working state, so later edits to the state never
    reach a finished world.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    seed: str
    width: int
    height: int

    elevation: np.ndarray
    moisture: np.ndarray
    temperature: np.ndarray
    river_flow: np.ndarray
    biomes: np.ndarray
    county_grid: np.ndarray

    counties: Dict[int, County] = Field(default_factory=dict)
    polities: Dict[int, Polity] = Field(default_factory=dict)
    cultures: List[Culture] = Field(default_factory=list)
    sub_cultures: List[SubCulture] = Field(default_factory=list)
    religions: List[Religion] = Field(default_factory=list)
    progress: List[str] = Field(default_factory=list)

    @field_validator(*GRID_FIELDS, mode="before")
    @classmethod
    def _as_readonly_array(cls, value: Any, info) -> np.ndarray:
        array = np.array(value, dtype=GRID_FIELDS[info.field_name])
        array.setflags(write=False)
        return array

    @field_serializer(*GRID_FIELDS, when_used="json")
    def _array_to_list(self, value: np.ndarray) -> list:
        return value.tolist()

    def to_snapshot(self) -> Dict[str, Any]:
        """Plain JSON-compatible structure of the whole world."""
        return self.model_dump(mode="json")

    @classmethod
    def from_snapshot(cls, snapshot: Dict[str, Any]) -> "World":
        """Rehydrate a world from its snapshot without regenerating it."""
        return cls.model_validate(snapshot)

    def realms(self) -> List[Polity]:
        """Top-level polities, by id."""
        return [p for _, p in sorted(self.polities.items()) if p.suzerain is None]

    def land_mask(self) -> np.ndarray:
        return BIOME_COSTS[self.biomes] < WATER_COST


@dataclass
class WorldState:
    """Mutable working state shared by the generation stages."""

    seed: str
    width: int
    height: int
    elevation: Optional[np.ndarray] = None
    moisture: Optional[np.ndarray] = None
    temperature: Optional[np.ndarray] = None
    river_flow: Optional[np.ndarray] = None
    biomes: Optional[np.ndarray] = None
    county_grid: Optional[np.ndarray] = None

    counties: Dict[int, County] = field(default_factory=dict)
    polities: Dict[int, Polity] = field(default_factory=dict)
    cultures: List[Culture] = field(default_factory=list)
    sub_cultures: List[SubCulture] = field(default_factory=list)
    religions: List[Religion] = field(default_factory=list)
    progress: List[str] = field(default_factory=list)

    # Scratch graphs, discarded at finalize
    county_adjacency: Dict[int, List[int]] = field(default_factory=dict)
    _county_biome_cost: Dict[int, float] = field(default_factory=dict)

    @property
    def n_cells(self) -> int:
        return self.width * self.height

    def land_mask(self) -> np.ndarray:
        return BIOME_COSTS[self.biomes] < WATER_COST

    def county_biome_cost(self, county_id: int) -> float:
        """Average biome movement cost over a county's cells."""
        cost = self._county_biome_cost.get(county_id)
        if cost is None:
            cells = self.counties[county_id].cells
            if cells:
                cost = float(BIOME_COSTS[self.biomes[cells]].mean())
            else:
                cost = float(WATER_COST)
            self._county_biome_cost[county_id] = cost
        return cost

    def culture(self, culture_id: Optional[int]) -> Optional[Culture]:
        if culture_id is None or not 0 <= culture_id < len(self.cultures):
            return None
        return self.cultures[culture_id]

    def polity_grid(self) -> np.ndarray:
        """Per-cell owning polity id, -1 where no county."""
        lookup = np.full(max(self.counties, default=-1) + 2, -1, dtype=np.int32)
        for cid, county in self.counties.items():
            if county.polity is not None:
                lookup[cid] = county.polity
        grid = np.asarray(self.county_grid)
        return np.where(grid >= 0, lookup[grid], -1).astype(np.int32)
