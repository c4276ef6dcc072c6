"""
Seeded 2D gradient noise.

A 256-slot permutation table is shuffled with the caller's random stream and
doubled so corner hashes never need wrapping. Sampling works on scalars and on
NumPy arrays alike, which lets the terrain stage evaluate whole grids at once.
"""

from typing import Callable, Union

import numpy as np

ArrayLike = Union[float, np.ndarray]


def _fade(t: np.ndarray) -> np.ndarray:
    """Quintic smoothstep 6t^5 - 15t^4 + 10t^3."""
    return t * t * t * (t * (t * 6 - 15) + 10)


def _lerp(t: np.ndarray, a: np.ndarray, b: np.ndarray) -> np.ndarray:
    return a + t * (b - a)


def _grad(hash_value: np.ndarray, x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Dot product with one of 8 gradient directions picked by the hash."""
    h = hash_value & 7
    u = np.where(h < 4, x, y)
    v = np.where(h < 4, y, x)
    u = np.where(h & 1, -u, u)
    v = np.where(h & 2, -v, v)
    return u + v


class SimpleNoise:
    """
    Gradient noise generator bound to one permutation table.

    Instances built from independent random streams (e.g. ``seed + "_warp"``)
    have independent tables.
    """

    def __init__(self, random_fn: Callable[[], float]):
        p = list(range(256))
        for i in range(255, 0, -1):
            j = int(random_fn() * (i + 1))
            p[i], p[j] = p[j], p[i]
        self.perm = np.array(p + p, dtype=np.int64)

    def __call__(self, x: ArrayLike, y: ArrayLike) -> ArrayLike:
        scalar = np.isscalar(x) and np.isscalar(y)
        x = np.asarray(x, dtype=np.float64)
        y = np.asarray(y, dtype=np.float64)

        fx = np.floor(x)
        fy = np.floor(y)
        xi = fx.astype(np.int64) & 255
        yi = fy.astype(np.int64) & 255
        x = x - fx
        y = y - fy
        u = _fade(x)
        v = _fade(y)

        perm = self.perm
        aa = perm[xi] + yi
        ab = aa + 1
        ba = perm[xi + 1] + yi
        bb = ba + 1

        value = _lerp(
            v,
            _lerp(u, _grad(perm[aa], x, y), _grad(perm[ba], x - 1, y)),
            _lerp(u, _grad(perm[ab], x, y - 1), _grad(perm[bb], x - 1, y - 1)),
        )
        value = np.clip(value, -1.0, 1.0)
        if scalar:
            return float(value)
        return value
