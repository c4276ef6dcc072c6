"""
Seeded pseudo-random number generation.

A string seed is hash-mixed into a 32-bit state which is then iterated with
the Mulberry32 generator. Python's random and NumPy's random are never used
in generation code so that every run is reproducible from the seed alone.
"""

from typing import Callable, Sequence, TypeVar

from .exceptions import ConfigurationError

T = TypeVar("T")

_MASK = 0xFFFFFFFF


def _imul(a: int, b: int) -> int:
    """32-bit integer multiplication (wrapping)."""
    return (a * b) & _MASK


def hash_seed(seed: str) -> int:
    """Mix a seed string into a 32-bit unsigned state."""
    h = 1779033703
    for char in seed:
        h = _imul(h ^ ord(char), 2654435761)
    h = _imul(h ^ (h >> 16), 2246822507)
    h = _imul(h ^ (h >> 13), 3266489909)
    h ^= h >> 16
    return h & _MASK


class SeededPRNG:
    """
    Mulberry32 generator seeded from a string.

    Two instances built from the same seed produce the same infinite
    sequence of floats in [0, 1).
    """

    def __init__(self, seed: str):
        if not seed:
            raise ConfigurationError("Seed must be a non-empty string")
        self.seed = seed
        self.state = hash_seed(seed)
        self.call_count = 0

    def random(self) -> float:
        """Generate next random number in [0, 1)."""
        self.call_count += 1
        self.state = (self.state + 0x6D2B79F5) & _MASK
        t = self.state
        t = _imul(t ^ (t >> 15), t | 1)
        t ^= (t + _imul(t ^ (t >> 7), t | 61)) & _MASK
        return ((t ^ (t >> 14)) & _MASK) / 4294967296

    def randint(self, low: int, high: int) -> int:
        """Integer in [low, high] inclusive."""
        return low + int(self.random() * (high - low + 1))

    def choice(self, seq: Sequence[T]) -> T:
        """Choose a random element from a non-empty sequence."""
        if not seq:
            raise IndexError("Cannot choose from an empty sequence")
        return seq[int(self.random() * len(seq))]

    def chance(self, probability: float) -> bool:
        """Roll a single event with the given probability."""
        return self.random() < probability

    def derive(self, suffix: str) -> "SeededPRNG":
        """Independent generator for a derived seed (e.g. ``seed + "_warp"``)."""
        return SeededPRNG(self.seed + suffix)


def seeded_random(seed: str) -> Callable[[], float]:
    """Return a zero-argument callable producing the seed's float stream."""
    return SeededPRNG(seed).random
