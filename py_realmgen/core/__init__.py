"""
Core world generation functionality.
"""

from .exceptions import (
    ConfigurationError,
    DegenerateGeometryError,
    GenerationError,
    InvariantViolationError,
)
from .generator import GenerationOptions, WorldGenerator, generate
from .models import World
from .prng import SeededPRNG, seeded_random
from .worker import GenerationRequest, run_generation

__all__ = ['generate', 'GenerationOptions', 'WorldGenerator', 'World',
           'SeededPRNG', 'seeded_random', 'GenerationRequest', 'run_generation',
           'GenerationError', 'ConfigurationError', 'DegenerateGeometryError',
           'InvariantViolationError']
