"""
World generation pipeline.

Runs every stage in order on a shared WorldState, reports progress through
an optional callback, then culls landless entities and freezes the result
into an immutable World.
"""

import structlog
from typing import Callable, List, Optional, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from .biomes import BiomeOptions
from .colors import assign_colors
from .diplomacy import DiplomacyOptions, DiplomacySimulator
from .exceptions import ConfigurationError, InvariantViolationError
from .hierarchy import check_acyclic, compute_power, realm_counties
from .history import AncientEmpire, HistoryOptions, simulate_history
from .internal_politics import InternalPolitics
from .labels import assign_label_positions
from .models import World, WorldState
from .names import NameGenerator
from .partition import CountyPartitioner, PartitionOptions
from .polities import PolityFormer, PolityOptions
from .prng import SeededPRNG
from .rulers import assign_rulers
from .sociology import SociologyOptions, SociologySpreader
from .terrain import TerrainOptions, generate_terrain

logger = structlog.get_logger()

ProgressCallback = Callable[[str], None]


class GenerationOptions(BaseModel):
    """Every tunable constant of the pipeline, grouped by stage."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    terrain: TerrainOptions = Field(default_factory=TerrainOptions, description="Terrain synthesis")
    biomes: BiomeOptions = Field(default_factory=BiomeOptions, description="Biome thresholds")
    partition: PartitionOptions = Field(default_factory=PartitionOptions, description="County partitioning")
    polities: PolityOptions = Field(default_factory=PolityOptions, description="Polity and realm formation")
    history: HistoryOptions = Field(default_factory=HistoryOptions, description="Ancient history pre-pass")
    sociology: SociologyOptions = Field(default_factory=SociologyOptions, description="Culture and religion spread")
    diplomacy: DiplomacyOptions = Field(default_factory=DiplomacyOptions, description="Diplomatic thresholds")


def validate_request(seed: str, width: int, height: int) -> None:
    if not seed:
        raise ConfigurationError("Seed must be a non-empty string")
    if width <= 0 or height <= 0:
        raise ConfigurationError(f"Grid dimensions must be positive, got {width}x{height}")


def cull_landless(state: WorldState) -> Tuple[int, int]:
    """
    Drop counties without cells and polities without land in their subtree.

    Every reference to a dropped entity is removed from the survivors.

    Returns:
        (culled counties, culled polities)
    """
    polities = state.polities
    empty_counties = {cid for cid, c in state.counties.items() if not c.cells}
    for cid in empty_counties:
        del state.counties[cid]
    for polity in polities.values():
        if empty_counties.intersection(polity.counties):
            polity.counties = [c for c in polity.counties if c not in empty_counties]
            if polity.counties and polity.capital_county in empty_counties:
                polity.capital_county = polity.counties[0]

    landless = {pid for pid in polities if not realm_counties(polities, pid)}

    for pid in landless:
        del polities[pid]
    if landless:
        for polity in polities.values():
            polity.vassals = [v for v in polity.vassals if v not in landless]
            polity.allies = [a for a in polity.allies if a not in landless]
            polity.at_war_with = [w for w in polity.at_war_with if w not in landless]
            polity.opinions = {k: v for k, v in polity.opinions.items() if k not in landless}
            for faction in polity.factions:
                faction.members = [m for m in faction.members if m not in landless]
            polity.factions = [f for f in polity.factions if f.leader not in landless]
        compute_power(polities, state.counties)

    if empty_counties or landless:
        logger.info(
            "Culled landless entities",
            counties=len(empty_counties),
            polities=len(landless),
        )
    return len(empty_counties), len(landless)


def check_invariants(state: WorldState) -> None:
    """Structural checks run before the world is frozen."""
    check_acyclic(state.polities)

    cell_sets = [c.cells for c in state.counties.values()]
    total = sum(len(cells) for cells in cell_sets)
    if total and len(np.unique(np.concatenate(cell_sets))) != total:
        raise InvariantViolationError("County cell sets overlap")

    for cid, county in state.counties.items():
        if county.polity is None or county.polity not in state.polities:
            raise InvariantViolationError(f"County {cid} belongs to no surviving polity")


def freeze(state: WorldState) -> World:
    return World(
        seed=state.seed,
        width=state.width,
        height=state.height,
        elevation=state.elevation,
        moisture=state.moisture,
        temperature=state.temperature,
        river_flow=state.river_flow,
        biomes=state.biomes,
        county_grid=state.county_grid,
        counties={cid: c.model_copy(deep=True) for cid, c in state.counties.items()},
        polities={pid: p.model_copy(deep=True) for pid, p in state.polities.items()},
        cultures=[c.model_copy(deep=True) for c in state.cultures],
        sub_cultures=[s.model_copy(deep=True) for s in state.sub_cultures],
        religions=[r.model_copy(deep=True) for r in state.religions],
        progress=list(state.progress),
    )


class WorldGenerator:
    """Runs the generation stages for one (seed, width, height) request."""

    def __init__(
        self,
        seed: str,
        width: int,
        height: int,
        progress: Optional[ProgressCallback] = None,
        options: Optional[GenerationOptions] = None,
    ):
        validate_request(seed, width, height)
        self.options = options or GenerationOptions()
        self.progress = progress
        self.state = WorldState(seed=seed, width=width, height=height)
        self.prng = SeededPRNG(seed)
        self.names = NameGenerator(self.prng)
        self.ancient_empires: List[AncientEmpire] = []
        self.world: Optional[World] = None

    def _report(self, label: str) -> None:
        status = f"{len(self.state.progress) + 1}. {label}..."
        self.state.progress.append(status)
        logger.info("Generation stage", status=status, seed=self.state.seed)
        if self.progress is not None:
            self.progress(status)

    def stages(self) -> List[Tuple[str, Callable[[], None]]]:
        stages = [
            ("Generating Terrain", self.generate_terrain),
            ("Partitioning Counties", self.partition_counties),
            ("Forming Base Polities", self.form_base_polities),
        ]
        if self.options.history.enabled:
            stages.append(("Simulating Ancient History", self.simulate_history))
        stages.extend([
            ("Forming Realms", self.form_realms),
            ("Spreading Cultures & Religions", self.spread_sociology),
            ("Assigning Rulers & Dynasties", self.assign_rulers),
            ("Simulating Diplomacy", self.simulate_diplomacy),
            ("Simulating Internal Politics", self.simulate_internal_politics),
            ("Calculating Label Positions", self.calculate_labels),
            ("Coloring the World", self.color_world),
            ("Finalizing World Data", self.finalize),
        ])
        return stages

    def generate_terrain(self) -> None:
        terrain = generate_terrain(
            self.state.width,
            self.state.height,
            self.prng,
            self.options.terrain,
            self.options.biomes,
        )
        self.state.elevation = terrain.elevation
        self.state.moisture = terrain.moisture
        self.state.temperature = terrain.temperature
        self.state.river_flow = terrain.river_flow
        self.state.biomes = terrain.biomes

    def partition_counties(self) -> None:
        CountyPartitioner(self.state, self.prng, self.names, self.options.partition).partition()

    def _polity_former(self) -> PolityFormer:
        return PolityFormer(self.state, self.prng, self.names, self.options.polities)

    def form_base_polities(self) -> None:
        self._polity_former().form_base_polities()

    def simulate_history(self) -> None:
        self.ancient_empires = simulate_history(
            self.state, self.prng, self.names, self.options.history
        )

    def form_realms(self) -> None:
        self._polity_former().form_realms()

    def spread_sociology(self) -> None:
        SociologySpreader(
            self.state,
            self.prng,
            self.names,
            self.options.sociology,
            self.ancient_empires,
        ).generate()

    def assign_rulers(self) -> None:
        assign_rulers(self.state, self.prng, self.names)

    def simulate_diplomacy(self) -> None:
        DiplomacySimulator(self.state, self.prng, self.options.diplomacy).simulate()

    def simulate_internal_politics(self) -> None:
        InternalPolitics(self.state, self.names).simulate()

    def calculate_labels(self) -> None:
        cull_landless(self.state)
        assign_label_positions(self.state)

    def color_world(self) -> None:
        assign_colors(self.state, self.prng.random)

    def finalize(self) -> None:
        check_invariants(self.state)
        self.state.county_adjacency = {}
        self.world = freeze(self.state)

    def run(self) -> World:
        logger.info(
            "Starting world generation",
            seed=self.state.seed,
            width=self.state.width,
            height=self.state.height,
        )
        for label, stage in self.stages():
            self._report(label)
            stage()

        logger.info(
            "World generation completed",
            seed=self.state.seed,
            counties=len(self.world.counties),
            polities=len(self.world.polities),
            realms=len(self.world.realms()),
        )
        return self.world


def generate(
    seed: str,
    width: int,
    height: int,
    progress: Optional[ProgressCallback] = None,
    options: Optional[GenerationOptions] = None,
) -> World:
    """
    Generate a complete world.

    Args:
        seed: Non-empty seed string; the same seed always yields the same world
        width: Grid width in cells
        height: Grid height in cells
        progress: Called with each ordered stage status
        options: Stage parameters, defaults when omitted

    Returns:
        The frozen World
    """
    return WorldGenerator(seed, width, height, progress, options).run()
