"""
Administrative partitioning of land into counties.

Capitals are sampled on distinct land cells, then every cell is claimed by
a multi-source cost-weighted expansion over the 4-connected grid. Short sea
crossings are allowed up to a limit on consecutive water steps. Land left
over (islands out of reach) goes to the nearest county centroid. Each county
then gets a development score from its land biomes and nearby development
cores.
"""

import numpy as np
import structlog
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from .adjacency import grid_neighbors, group_cells
from .biomes import BIOME_COSTS, BIOME_DEVS, WATER_BIOMES
from .exceptions import DegenerateGeometryError
from .expansion import expand
from .geometry import centroid, distance, round_half_up
from .models import County, WorldState
from .names import NameGenerator
from .prng import SeededPRNG

logger = structlog.get_logger()


@dataclass
class PartitionOptions:
    """County partitioning parameters."""

    cells_per_county: int = 100
    max_sampling_attempts_factor: int = 50
    cost_jitter: float = 2.0
    max_sea_distance: int = 4

    # Development
    base_development: float = 3.0
    biome_dev_weight: float = 2.0
    development_jitter: float = 2.0
    cells_per_core: int = 10000
    core_strength_min: float = 2.0
    core_strength_range: float = 8.0
    core_radius_divisor: float = 7.0


@dataclass
class DevelopmentCore:
    x: int
    y: int
    strength: float


def county_development(
    cells: Sequence[int],
    biomes: np.ndarray,
    width: int,
    cores: List[DevelopmentCore],
    rand: Callable[[], float],
    options: Optional[PartitionOptions] = None,
) -> int:
    """
    Development score of one county.

    Counties without land cells score 0 and consume no randomness.
    """
    o = options or PartitionOptions()
    if len(cells) == 0:
        return 0

    codes = biomes[np.asarray(cells, dtype=np.int64)]
    land = ~WATER_BIOMES[codes]
    if not land.any():
        return 0

    avg_biome_dev = float(BIOME_DEVS[codes[land]].mean())
    center = centroid(cells, width)

    radius = width / o.core_radius_divisor
    core_bonus = 0.0
    for core in cores:
        dist = distance(center, (core.x, core.y))
        if dist < radius:
            core_bonus += (1 - dist / radius) * core.strength

    jitter = (rand() - 0.5) * o.development_jitter
    value = o.base_development + avg_biome_dev * o.biome_dev_weight + core_bonus + jitter
    return round_half_up(max(1.0, value))


class CountyPartitioner:
    """Partitions the terrain into counties."""

    def __init__(
        self,
        state: WorldState,
        prng: SeededPRNG,
        names: NameGenerator,
        options: Optional[PartitionOptions] = None,
    ):
        self.state = state
        self.prng = prng
        self.names = names
        self.options = options or PartitionOptions()
        self.width = state.width
        self.height = state.height

    def _sample_land_cells(self, target: int, land: np.ndarray) -> List[int]:
        """Draw up to `target` distinct land cells within a bounded budget."""
        rand = self.prng.random
        budget = max(1, target) * self.options.max_sampling_attempts_factor
        chosen: List[int] = []
        taken = set()
        attempts = 0
        while len(chosen) < target and attempts < budget:
            attempts += 1
            x = int(rand() * self.width)
            y = int(rand() * self.height)
            idx = y * self.width + x
            if land[idx] and idx not in taken:
                taken.add(idx)
                chosen.append(idx)
        return chosen

    def sample_capitals(self) -> List[Tuple[int, int]]:
        land = self.state.land_mask()
        if not land.any():
            raise DegenerateGeometryError(
                "No land cells available for county capitals"
            )

        target = max(1, self.state.n_cells // self.options.cells_per_county)
        cells = self._sample_land_cells(target, land)
        if not cells:
            raise DegenerateGeometryError(
                f"Could not place any county capital within "
                f"{target * self.options.max_sampling_attempts_factor} attempts"
            )
        if len(cells) < target:
            logger.warning(
                "Placed fewer county capitals than targeted",
                target=target,
                placed=len(cells),
            )
        return [(idx % self.width, idx // self.width) for idx in cells]

    def assign_cells(self, capitals: List[Tuple[int, int]]) -> np.ndarray:
        """Cost-weighted expansion from the capitals; -1 marks unclaimed cells."""
        o = self.options
        rand = self.prng.random
        costs = BIOME_COSTS[self.state.biomes].tolist()
        water = WATER_BIOMES[self.state.biomes].tolist()
        neighbors = grid_neighbors(self.width, self.height)

        def step_cost(_src: int, dst: int, _owner: int, sea_distance: int):
            increment = costs[dst] + rand() * o.cost_jitter
            new_sea_distance = sea_distance + 1 if water[dst] else 0
            if new_sea_distance > o.max_sea_distance:
                return None
            return increment, new_sea_distance

        sources = [(i, y * self.width + x) for i, (x, y) in enumerate(capitals)]
        owners, _ = expand(
            self.state.n_cells, sources, neighbors.__getitem__, step_cost
        )
        return owners

    def claim_unassigned(self, county_grid: np.ndarray) -> int:
        """Give unreached land cells to the nearest county centroid."""
        land = self.state.land_mask()
        orphans = np.flatnonzero(land & (county_grid < 0))
        if len(orphans) == 0:
            return 0

        groups = group_cells(county_grid)
        ids = sorted(groups)
        centers = np.array([centroid(groups[cid].tolist(), self.width) for cid in ids])
        xs = (orphans % self.width).astype(np.float64)
        ys = (orphans // self.width).astype(np.float64)
        d = np.hypot(xs[:, None] - centers[None, :, 0], ys[:, None] - centers[None, :, 1])
        nearest = np.argmin(d, axis=1)
        county_grid[orphans] = np.array(ids, dtype=np.int32)[nearest]

        logger.info("Claimed unreachable land cells", cells=len(orphans))
        return len(orphans)

    def place_development_cores(self) -> List[DevelopmentCore]:
        o = self.options
        count = max(1, self.state.n_cells // o.cells_per_core)
        cells = self._sample_land_cells(count, self.state.land_mask())
        rand = self.prng.random
        return [
            DevelopmentCore(
                x=idx % self.width,
                y=idx // self.width,
                strength=o.core_strength_min + rand() * o.core_strength_range,
            )
            for idx in cells
        ]

    def partition(self) -> Dict[int, County]:
        """Run the partitioning and store counties and the county grid on the state."""
        logger.info("Starting county partitioning", seed=self.state.seed)

        capitals = self.sample_capitals()
        counties: Dict[int, County] = {}
        for i, seed_xy in enumerate(capitals):
            counties[i] = County(id=i, name=self.names.random_name(), capital_seed=seed_xy)

        county_grid = self.assign_cells(capitals)
        self.claim_unassigned(county_grid)

        for cid, cells in group_cells(county_grid).items():
            counties[cid].cells = sorted(cells.tolist())

        cores = self.place_development_cores()
        for cid in sorted(counties):
            counties[cid].development = county_development(
                counties[cid].cells,
                self.state.biomes,
                self.width,
                cores,
                self.prng.random,
                self.options,
            )

        self.state.county_grid = county_grid
        self.state.counties = counties

        logger.info(
            "County partitioning completed",
            counties=len(counties),
            development_cores=len(cores),
        )
        return counties
