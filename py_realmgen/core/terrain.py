"""
Terrain synthesis on a rectangular grid.

This module implements:
- Fractal elevation (octave noise at domain-warped coordinates, radial falloff)
- Droplet-based hydraulic erosion
- Steepest-descent river tracing with local-minimum carving
- Moisture and temperature fields
- Biome classification with river override

All fields are flat arrays indexed by ``y * width + x``.
"""

import numpy as np
import structlog
from dataclasses import dataclass
from typing import List, Optional, Tuple

from scipy import ndimage

from .biomes import BiomeClassifier, BiomeOptions
from .noise import SimpleNoise
from .prng import SeededPRNG

logger = structlog.get_logger()

# 8-neighbour offsets (dx, dy), in scan order
EIGHT_NEIGHBORS: List[Tuple[int, int]] = [
    (-1, -1),
    (-1, 0),
    (-1, 1),
    (0, -1),
    (0, 1),
    (1, -1),
    (1, 0),
    (1, 1),
]


@dataclass
class TerrainOptions:
    """Terrain synthesis parameters."""

    # Fractal elevation
    octaves: int = 6
    persistence: float = 0.5
    lacunarity: float = 2.0
    initial_frequency: float = 2.0
    landmass_exponent: float = 1.2
    warp_frequency: float = 3.0
    warp_strength: float = 0.3

    # Hydraulic erosion
    erosion_iterations: int = 75000
    rain_amount: float = 0.1  # Kq
    evaporation_rate: float = 0.05  # Kw
    erosion_rate: float = 0.008  # Kr
    deposition_rate: float = 0.01  # Ks
    sediment_capacity: float = 0.1  # Kc

    # Rivers
    cells_per_river: int = 500
    river_source_elevation: float = 0.65
    sea_level: float = 0.42
    carve_depth: float = 0.01

    # Moisture
    water_level: float = 0.4
    moisture_radius: int = 20
    moisture_noise_scale: float = 50.0
    moisture_noise_weight: float = 0.3

    # Temperature
    altitude_cooling: float = 0.7


@dataclass
class Terrain:
    """Generated terrain fields."""

    width: int
    height: int
    elevation: np.ndarray
    moisture: np.ndarray
    temperature: np.ndarray
    river_flow: np.ndarray
    biomes: np.ndarray


def normalize(values: np.ndarray) -> np.ndarray:
    """Min-max normalize to [0, 1]; a flat field becomes all zeros."""
    lo = float(values.min())
    hi = float(values.max())
    if hi > lo:
        return (values - lo) / (hi - lo)
    return np.zeros_like(values)


class TerrainGenerator:
    """Builds the terrain fields for one world."""

    def __init__(
        self,
        width: int,
        height: int,
        prng: SeededPRNG,
        options: Optional[TerrainOptions] = None,
        biome_options: Optional[BiomeOptions] = None,
    ):
        self.width = width
        self.height = height
        self.prng = prng
        self.options = options or TerrainOptions()
        self.classifier = BiomeClassifier(biome_options)

        self.elevation: Optional[np.ndarray] = None
        self.river_flow: Optional[np.ndarray] = None

    def _grid_coordinates(self) -> Tuple[np.ndarray, np.ndarray]:
        ys, xs = np.mgrid[0 : self.height, 0 : self.width]
        return xs.ravel().astype(np.float64), ys.ravel().astype(np.float64)

    def generate_elevation(self) -> np.ndarray:
        """Layered noise at warped coordinates, shaped by a radial falloff."""
        o = self.options
        terrain_noise = SimpleNoise(self.prng.random)
        warp_noise = SimpleNoise(self.prng.derive("_warp").random)

        xs, ys = self._grid_coordinates()
        qx = xs / self.width
        qy = ys / self.height
        warp_x = warp_noise(qx * o.warp_frequency, qy * o.warp_frequency) * o.warp_strength
        warp_y = warp_noise(qy * o.warp_frequency, qx * o.warp_frequency) * o.warp_strength
        wx = qx + warp_x
        wy = qy + warp_y

        total = np.zeros_like(xs)
        frequency = o.initial_frequency
        amplitude = 1.0
        max_amplitude = 0.0
        for _ in range(o.octaves):
            total += terrain_noise(wx * frequency, wy * frequency) * amplitude
            max_amplitude += amplitude
            amplitude *= o.persistence
            frequency *= o.lacunarity
        noise_value = (total / max_amplitude + 1) / 2

        nx = wx - 0.5
        ny = wy - 0.5
        dist = np.sqrt(nx * nx + ny * ny) * 2
        falloff = np.maximum(0.0, 1 - dist * dist)

        elevation = np.power(noise_value * falloff, o.landmass_exponent)
        self.elevation = normalize(elevation)
        return self.elevation

    def run_erosion(self) -> np.ndarray:
        """
        Simulate water droplets moving material downhill.

        Each droplet rains on a random cell, splits its water across lower
        8-neighbours in proportion to the height difference, erodes the source
        by outflow, moves sediment up to capacity, deposits the excess and
        evaporates a fraction of the remaining water.
        """
        o = self.options
        w, h = self.width, self.height
        rand = self.prng.random
        elevation = self.elevation.tolist()
        n = len(elevation)
        water = [0.0] * n
        sediment = [0.0] * n

        for _ in range(o.erosion_iterations):
            x = int(rand() * w)
            y = int(rand() * h)
            idx = y * w + x
            water[idx] += o.rain_amount

            h_i = elevation[idx] + water[idx]
            total_diff = 0.0
            outflow = []
            for dx, dy in EIGHT_NEIGHBORS:
                nx, ny = x + dx, y + dy
                if 0 <= nx < w and 0 <= ny < h:
                    n_idx = ny * w + nx
                    diff = h_i - (elevation[n_idx] + water[n_idx])
                    if diff > 0:
                        total_diff += diff
                        outflow.append((n_idx, diff))

            if total_diff > 0:
                for n_idx, diff in outflow:
                    flow = min(water[idx], water[idx] * (diff / total_diff))
                    moved = min(sediment[idx], flow * o.sediment_capacity)
                    sediment[idx] -= moved
                    sediment[n_idx] += moved
                    eroded = o.erosion_rate * flow
                    elevation[idx] -= eroded
                    sediment[idx] += eroded
                    water[idx] -= flow
                    water[n_idx] += flow

            capacity = water[idx] * o.sediment_capacity
            if sediment[idx] > capacity:
                deposit = (sediment[idx] - capacity) * o.deposition_rate
                sediment[idx] -= deposit
                elevation[idx] += deposit
            water[idx] *= 1 - o.evaporation_rate

        self.elevation = normalize(np.array(elevation, dtype=np.float64))
        logger.info("Hydraulic erosion completed", iterations=o.erosion_iterations)
        return self.elevation

    def generate_rivers(self) -> np.ndarray:
        """Trace rivers downhill from random high-elevation sources."""
        o = self.options
        w, h = self.width, self.height
        rand = self.prng.random
        elevation = self.elevation.tolist()
        n = len(elevation)
        river_flow = [0.0] * n

        num_rivers = n // o.cells_per_river
        sources = []
        attempts = 0
        while attempts < num_rivers * 2 and len(sources) < num_rivers:
            attempts += 1
            x = int(rand() * w)
            y = int(rand() * h)
            if elevation[y * w + x] > o.river_source_elevation:
                sources.append((x, y))

        for x, y in sources:
            path = []
            # A carved minimum can trap the walk, so bound it by the grid size
            for _ in range(n):
                idx = y * w + x
                if elevation[idx] < o.sea_level:
                    break
                river_flow[idx] += 1
                path.append((x, y))

                lowest = None
                min_elevation = elevation[idx]
                for dx, dy in EIGHT_NEIGHBORS:
                    nx, ny = x + dx, y + dy
                    if 0 <= nx < w and 0 <= ny < h:
                        n_elev = elevation[ny * w + nx]
                        if n_elev < min_elevation:
                            min_elevation = n_elev
                            lowest = (nx, ny)

                if lowest is not None:
                    x, y = lowest
                else:
                    elevation[idx] -= o.carve_depth
                    if len(path) > 1:
                        x, y = path[-2]
                    else:
                        break

        self.elevation = np.array(elevation, dtype=np.float64)
        self.river_flow = np.array(river_flow, dtype=np.float64)
        logger.info(
            "Rivers traced",
            sources=len(sources),
            river_cells=int((self.river_flow > 0).sum()),
        )
        return self.river_flow

    def compute_moisture(self) -> np.ndarray:
        """Inverse-distance moisture from water and river cells plus noise."""
        o = self.options
        elevation = self.elevation.reshape(self.height, self.width)
        flow = self.river_flow.reshape(self.height, self.width)
        sources = ((elevation < o.water_level) | (flow > 0)).astype(np.float64)

        r = o.moisture_radius
        dy, dx = np.mgrid[-r : r + 1, -r : r + 1]
        dist = np.hypot(dx, dy)
        kernel = np.where(dist < r, (r - dist) / r, 0.0)
        moisture = ndimage.convolve(sources, kernel, mode="constant", cval=0.0).ravel()

        moisture_noise = SimpleNoise(self.prng.derive("_moisture").random)
        xs, ys = self._grid_coordinates()
        moisture = moisture + moisture_noise(
            xs / o.moisture_noise_scale, ys / o.moisture_noise_scale
        ) * o.moisture_noise_weight
        return normalize(moisture)

    def compute_temperature(self) -> np.ndarray:
        """Latitude band damped by altitude."""
        _, ys = self._grid_coordinates()
        half = self.height / 2
        latitude = 1.0 - np.abs(ys - half) / half
        altitude = 1.0 - self.elevation * self.options.altitude_cooling
        return normalize(latitude * altitude)

    def generate(self) -> Terrain:
        """Run the full terrain pipeline."""
        logger.info("Starting terrain generation", width=self.width, height=self.height)

        self.generate_elevation()
        self.run_erosion()
        self.generate_rivers()
        # Stored fields are float32; classify from exactly what is stored
        elevation = self.elevation.astype(np.float32)
        moisture = self.compute_moisture().astype(np.float32)
        temperature = self.compute_temperature().astype(np.float32)
        river_flow = self.river_flow.astype(np.float32)
        biomes = self.classifier.classify(elevation, moisture, temperature, river_flow)

        return Terrain(
            width=self.width,
            height=self.height,
            elevation=elevation,
            moisture=moisture,
            temperature=temperature,
            river_flow=river_flow,
            biomes=biomes,
        )


def generate_terrain(
    width: int,
    height: int,
    prng: SeededPRNG,
    options: Optional[TerrainOptions] = None,
    biome_options: Optional[BiomeOptions] = None,
) -> Terrain:
    """Convenience wrapper around TerrainGenerator."""
    return TerrainGenerator(width, height, prng, options, biome_options).generate()
