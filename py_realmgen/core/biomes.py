"""
Biome classification from elevation, moisture and temperature.

This module implements:
- The biome table (display name, color, movement cost, development modifier)
- The elevation/temperature/moisture decision table
- River override for cells carrying flow above sea level
"""

import structlog
import numpy as np
from dataclasses import dataclass
from enum import IntEnum
from typing import Dict, Optional

logger = structlog.get_logger()

# Any biome at or above this movement cost is water.
WATER_COST = 1000


class BiomeType(IntEnum):
    """Biome codes stored in the world's biome grid."""

    DEEP_OCEAN = 0
    OCEAN = 1
    RIVER = 2
    WETLAND = 3
    BEACH = 4
    GRASSLAND = 5
    SAVANNA = 6
    FOREST = 7
    JUNGLE = 8
    TAIGA = 9
    TUNDRA = 10
    DESERT = 11
    MOUNTAIN = 12
    SNOW = 13


@dataclass(frozen=True)
class BiomeInfo:
    """Static properties of one biome."""

    name: str
    color: str
    cost: float
    dev: float

    @property
    def is_water(self) -> bool:
        return self.cost >= WATER_COST


BIOMES: Dict[BiomeType, BiomeInfo] = {
    BiomeType.DEEP_OCEAN: BiomeInfo("Deep Ocean", "#002244", 1000, 0),
    BiomeType.OCEAN: BiomeInfo("Ocean", "#003366", 1000, 0),
    BiomeType.RIVER: BiomeInfo("River", "#3498db", 10, 2),
    BiomeType.WETLAND: BiomeInfo("Wetland", "#2e8b57", 15, -0.5),
    BiomeType.BEACH: BiomeInfo("Beach", "#d9c28d", 2, 3),
    BiomeType.GRASSLAND: BiomeInfo("Grassland", "#55aa55", 1, 1),
    BiomeType.SAVANNA: BiomeInfo("Savanna", "#bda55d", 2, 0.5),
    BiomeType.FOREST: BiomeInfo("Forest", "#228833", 5, 1),
    BiomeType.JUNGLE: BiomeInfo("Jungle", "#1e5631", 8, 0.5),
    BiomeType.TAIGA: BiomeInfo("Taiga", "#006464", 7, 0.5),
    BiomeType.TUNDRA: BiomeInfo("Tundra", "#96a1a1", 10, -1),
    BiomeType.DESERT: BiomeInfo("Desert", "#c2b280", 3, 0),
    BiomeType.MOUNTAIN: BiomeInfo("Mountain", "#888888", 20, -1),
    BiomeType.SNOW: BiomeInfo("Snowy Peak", "#ffffff", 30, -2),
}

# Lookup arrays indexed by biome code
BIOME_COSTS = np.array([BIOMES[b].cost for b in BiomeType], dtype=np.float64)
BIOME_DEVS = np.array([BIOMES[b].dev for b in BiomeType], dtype=np.float64)
WATER_BIOMES = BIOME_COSTS >= WATER_COST


def is_water(biome: int) -> bool:
    """Check whether a biome code is impassable water."""
    return bool(WATER_BIOMES[biome])


@dataclass
class BiomeOptions:
    """Decision table thresholds."""

    deep_ocean_level: float = 0.2
    sea_level: float = 0.4
    beach_level: float = 0.42
    snow_level: float = 0.85
    mountain_level: float = 0.7

    cold_limit: float = 0.2
    cool_limit: float = 0.4
    hot_limit: float = 0.75
    cold_mountain_level: float = 0.6


def classify_biome(
    elevation: float,
    moisture: float,
    temperature: float,
    options: Optional[BiomeOptions] = None,
) -> BiomeType:
    """Classify a single cell using the decision table."""
    o = options or BiomeOptions()
    e, m, t = elevation, moisture, temperature

    if e < o.deep_ocean_level:
        return BiomeType.DEEP_OCEAN
    if e < o.sea_level:
        return BiomeType.OCEAN
    if e < o.beach_level:
        return BiomeType.BEACH
    if e > o.snow_level:
        return BiomeType.SNOW
    if e > o.mountain_level:
        return BiomeType.MOUNTAIN

    if t < o.cold_limit:
        return BiomeType.MOUNTAIN if e > o.cold_mountain_level else BiomeType.TUNDRA
    if t < o.cool_limit:
        return BiomeType.TAIGA if m > 0.4 else BiomeType.GRASSLAND
    if t > o.hot_limit:
        if m > 0.7:
            return BiomeType.JUNGLE
        if m > 0.5:
            return BiomeType.FOREST
        if m > 0.2:
            return BiomeType.SAVANNA
        return BiomeType.DESERT

    if m > 0.8 and e < 0.5:
        return BiomeType.WETLAND
    if m > 0.5:
        return BiomeType.FOREST
    if m > 0.2:
        return BiomeType.GRASSLAND
    return BiomeType.SAVANNA


class BiomeClassifier:
    """Classifies whole grids into biome codes."""

    def __init__(self, options: Optional[BiomeOptions] = None):
        self.options = options or BiomeOptions()

    def classify(
        self,
        elevation: np.ndarray,
        moisture: np.ndarray,
        temperature: np.ndarray,
        river_flow: np.ndarray,
    ) -> np.ndarray:
        """
        Classify every cell.

        Args:
            elevation: Normalized elevation per cell
            moisture: Normalized moisture per cell
            temperature: Normalized temperature per cell
            river_flow: River flow accumulator per cell

        Returns:
            int8 array of BiomeType codes
        """
        n = len(elevation)
        biomes = np.empty(n, dtype=np.int8)
        for i in range(n):
            if river_flow[i] > 0 and elevation[i] > self.options.beach_level:
                biomes[i] = BiomeType.RIVER
            else:
                biomes[i] = classify_biome(
                    float(elevation[i]),
                    float(moisture[i]),
                    float(temperature[i]),
                    self.options,
                )

        counts = np.bincount(biomes.astype(np.int64), minlength=len(BiomeType))
        logger.info(
            "Biome classification completed",
            land_cells=int((~WATER_BIOMES[biomes]).sum()),
            river_cells=int(counts[BiomeType.RIVER]),
        )
        return biomes
