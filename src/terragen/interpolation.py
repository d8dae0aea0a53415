"""Interpolation and blending helpers shared by all generators."""

from typing import TypeVar

import numpy as np
from numpy.typing import ArrayLike, NDArray

T = TypeVar("T")


def lerp(a: T, b: T, t) -> T:
    """Linear interpolation from a to b.

    Works for scalars and numpy arrays alike (anything supporting
    addition and scalar multiplication). ``t == 0`` returns ``a``
    exactly.
    """
    return a + (b - a) * t


def perlin_fade(t: ArrayLike) -> NDArray[np.float64]:
    """Perlin fade curve 6t^5 - 15t^4 + 10t^3."""
    t = np.asarray(t, dtype=np.float64)
    return t * t * t * (t * (t * 6.0 - 15.0) + 10.0)


def river_fade(t: ArrayLike) -> NDArray[np.float64]:
    """Cubic shaping curve t(1.5 + t(1 - 1.65t)) used for river banks."""
    t = np.asarray(t, dtype=np.float64)
    return t * (1.5 + t * (1.0 - 1.65 * t))


def smooth_min(
    acc: NDArray[np.float64],
    d: NDArray[np.float64],
    k: float,
) -> NDArray[np.float64]:
    """Polynomial smooth minimum of two distance fields.

    Result is never greater than ``min(acc, d)`` and differs from it by at
    most ``k / 4``.

    Args:
        acc: Accumulated distance so far.
        d: Next distance to blend in.
        k: Blend radius.

    Returns:
        Blended distance field.
    """
    h = np.clip(0.5 + 0.5 * (d - acc) / k, 0.0, 1.0)
    return lerp(d, acc, h) - k * h * (1.0 - h)


def normalize(vector: ArrayLike) -> NDArray[np.float64]:
    """Scale a 2D vector to unit length.

    Zero-length vectors come back as zero rather than NaN.
    """
    vector = np.asarray(vector, dtype=np.float64)
    length = np.hypot(vector[..., 0], vector[..., 1])
    safe = np.where(length > 0.0, length, 1.0)
    return np.where((length > 0.0)[..., None], vector / safe[..., None], 0.0)
