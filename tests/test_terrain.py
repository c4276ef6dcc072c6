"""Tests for terrain synthesis and biome classification."""

import numpy as np
import pytest

from py_realmgen.core.biomes import (
    BIOME_COSTS,
    BIOMES,
    BiomeClassifier,
    BiomeOptions,
    BiomeType,
    WATER_COST,
    classify_biome,
    is_water,
)
from py_realmgen.core.prng import SeededPRNG
from py_realmgen.core.terrain import (
    TerrainGenerator,
    TerrainOptions,
    generate_terrain,
    normalize,
)


class TestBiomes:
    """Test the biome table and decision rules."""

    def test_water_iff_high_cost(self):
        for biome, info in BIOMES.items():
            assert info.is_water == (info.cost >= WATER_COST)
            assert is_water(int(biome)) == info.is_water

    def test_only_oceans_are_water(self):
        water = {b for b in BiomeType if is_water(int(b))}
        assert water == {BiomeType.DEEP_OCEAN, BiomeType.OCEAN}

    def test_cost_lookup_matches_table(self):
        for biome in BiomeType:
            assert BIOME_COSTS[int(biome)] == BIOMES[biome].cost

    @pytest.mark.parametrize(
        "elevation,moisture,temperature,expected",
        [
            (0.1, 0.5, 0.5, BiomeType.DEEP_OCEAN),
            (0.3, 0.5, 0.5, BiomeType.OCEAN),
            (0.41, 0.5, 0.5, BiomeType.BEACH),
            (0.9, 0.5, 0.5, BiomeType.SNOW),
            (0.75, 0.5, 0.5, BiomeType.MOUNTAIN),
            (0.5, 0.5, 0.1, BiomeType.TUNDRA),
            (0.65, 0.5, 0.1, BiomeType.MOUNTAIN),
            (0.5, 0.6, 0.3, BiomeType.TAIGA),
            (0.5, 0.2, 0.3, BiomeType.GRASSLAND),
            (0.5, 0.8, 0.9, BiomeType.JUNGLE),
            (0.5, 0.6, 0.9, BiomeType.FOREST),
            (0.5, 0.3, 0.9, BiomeType.SAVANNA),
            (0.5, 0.1, 0.9, BiomeType.DESERT),
            (0.45, 0.9, 0.5, BiomeType.WETLAND),
            (0.6, 0.6, 0.5, BiomeType.FOREST),
            (0.6, 0.3, 0.5, BiomeType.GRASSLAND),
            (0.6, 0.1, 0.5, BiomeType.SAVANNA),
        ],
    )
    def test_decision_table(self, elevation, moisture, temperature, expected):
        assert classify_biome(elevation, moisture, temperature) == expected

    def test_river_override_above_beach(self):
        """Cells with river flow above the beach level become rivers."""
        classifier = BiomeClassifier(BiomeOptions())
        elevation = np.array([0.5, 0.3, 0.5], dtype=np.float32)
        moisture = np.full(3, 0.3, dtype=np.float32)
        temperature = np.full(3, 0.5, dtype=np.float32)
        flow = np.array([1.0, 1.0, 0.0], dtype=np.float32)

        biomes = classifier.classify(elevation, moisture, temperature, flow)
        assert biomes.dtype == np.int8
        assert biomes[0] == BiomeType.RIVER
        assert biomes[1] == BiomeType.OCEAN
        assert biomes[2] == BiomeType.GRASSLAND


class TestTerrain:
    """Test the terrain pipeline on small grids."""

    @pytest.fixture
    def options(self):
        return TerrainOptions(erosion_iterations=1500)

    @pytest.fixture
    def terrain(self, options):
        return generate_terrain(40, 30, SeededPRNG("terrain_test"), options)

    def test_field_shapes_and_dtypes(self, terrain):
        n = 40 * 30
        for field in (terrain.elevation, terrain.moisture, terrain.temperature, terrain.river_flow):
            assert field.shape == (n,)
            assert field.dtype == np.float32
        assert terrain.biomes.shape == (n,)
        assert terrain.biomes.dtype == np.int8

    def test_normalized_fields(self, terrain):
        for field in (terrain.elevation, terrain.moisture, terrain.temperature):
            assert field.min() >= 0.0
            assert field.max() <= 1.0

    def test_river_flow_non_negative(self, terrain):
        assert terrain.river_flow.min() >= 0.0

    def test_biome_codes_valid(self, terrain):
        assert set(np.unique(terrain.biomes).tolist()) <= {int(b) for b in BiomeType}

    def test_deterministic(self, options):
        a = generate_terrain(32, 32, SeededPRNG("same"), options)
        b = generate_terrain(32, 32, SeededPRNG("same"), options)
        assert np.array_equal(a.elevation, b.elevation)
        assert np.array_equal(a.biomes, b.biomes)
        assert np.array_equal(a.river_flow, b.river_flow)

    def test_landmass_is_central(self, options):
        """The radial falloff keeps the grid border lower than the centre."""
        terrain = generate_terrain(48, 48, SeededPRNG("central"), options)
        grid = terrain.elevation.reshape(48, 48)
        border = np.concatenate([grid[0], grid[-1], grid[:, 0], grid[:, -1]])
        centre = grid[16:32, 16:32]
        assert centre.mean() > border.mean()

    def test_rivers_bounded_without_sources(self):
        """No cell qualifies as a source when the threshold is unreachable."""
        options = TerrainOptions(erosion_iterations=0, river_source_elevation=2.0)
        generator = TerrainGenerator(30, 30, SeededPRNG("dry"), options)
        generator.generate_elevation()
        flow = generator.generate_rivers()
        assert flow.sum() == 0

    def test_normalize_constant_field(self):
        assert np.array_equal(normalize(np.full(4, 3.0)), np.zeros(4))
