"""Shared fixtures for the world generation tests."""

import pytest

from py_realmgen.core.generator import GenerationOptions, generate
from py_realmgen.core.terrain import TerrainOptions


@pytest.fixture
def fast_options():
    """Default options with a short erosion pass."""
    return GenerationOptions(terrain=TerrainOptions(erosion_iterations=2000))


@pytest.fixture(scope="session")
def alpha_world():
    """The reference scenario: seed "alpha" on a 50x50 grid."""
    statuses = []
    world = generate("alpha", 50, 50, progress=statuses.append)
    return world, statuses
