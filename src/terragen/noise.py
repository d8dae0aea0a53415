"""Tileable multi-octave gradient (Perlin) noise.

Each octave owns its own randomized lattice of unit gradient vectors. The
lattice is stored with two wrapped rows and columns so that the four
corners of any cell inside ``[0, size]`` can be read directly, and the
field is exactly periodic with period ``size`` on both axes.
"""

import math

import numpy as np
import structlog
from numpy.typing import ArrayLike, NDArray

from .exceptions import ConfigurationError, OutOfBoundsError
from .interpolation import lerp, normalize, perlin_fade
from .raster import pack_rgba, parallel_fill, to_u8

logger = structlog.get_logger()

# Gradient components are drawn from this range before normalization
GRADIENT_COMPONENT_RANGE = 5.0


def make_gradient_grid(size: int, seed: int) -> NDArray[np.float64]:
    """Build a wrapped (size + 2) x (size + 2) grid of unit gradients.

    Interior gradients are drawn for lattice points 0..size-1; the trailing
    rows and columns repeat the leading ones (index i holds lattice point
    i mod size), which makes bilinear lookups at the upper boundary seamless.

    Args:
        size: Lattice resolution.
        seed: Seed for this grid's random source.

    Returns:
        Read-only array of shape (size + 2, size + 2, 2), indexed [row, col].
    """
    rng = np.random.default_rng(seed)
    components = rng.uniform(
        -GRADIENT_COMPONENT_RANGE, GRADIENT_COMPONENT_RANGE, size=(size, size, 2)
    )
    interior = normalize(components)

    wrap = np.arange(size + 2) % size
    grid = interior[wrap][:, wrap]
    grid.setflags(write=False)
    return grid


def _corner_dot(
    gradients: NDArray[np.float64],
    dx: NDArray[np.float64],
    dy: NDArray[np.float64],
) -> NDArray[np.float64]:
    """Dot product of corner gradients with the corner-to-point offset."""
    return gradients[..., 0] * dx + gradients[..., 1] * dy


def _scalar_or_array(value: NDArray[np.float64], like: tuple) -> float | NDArray:
    if all(np.ndim(v) == 0 for v in like):
        return float(value)
    return value


class GradientNoiseField:
    """Seamless fractal gradient noise over the square ``[0, size]``."""

    def __init__(
        self,
        size: int,
        octaves: int,
        persistence: float,
        seed: int,
    ):
        """Build one gradient grid per octave.

        Args:
            size: Lattice resolution (number of cells per axis).
            octaves: Number of octaves.
            persistence: Amplitude ratio between successive octaves.
            seed: Base seed; octave i uses ``seed + i``.

        Raises:
            ConfigurationError: On a non-positive size or octave count, or a
                negative / non-finite persistence.
        """
        if size < 1:
            raise ConfigurationError(f"Lattice size must be >= 1, got {size}")
        if octaves < 1:
            raise ConfigurationError(f"Octave count must be >= 1, got {octaves}")
        if not math.isfinite(persistence) or persistence < 0:
            raise ConfigurationError(
                f"Persistence must be a finite value >= 0, got {persistence}"
            )

        self.size = int(size)
        self.octaves = int(octaves)
        self.persistence = float(persistence)
        self.seed = int(seed)

        self.grids: tuple[NDArray[np.float64], ...] = tuple(
            make_gradient_grid(self.size, self.seed + i) for i in range(self.octaves)
        )

        logger.debug(
            "gradient_grids_built",
            size=self.size,
            octaves=self.octaves,
            seed=self.seed,
        )

    @property
    def amplitude_sum(self) -> float:
        """Sum of octave amplitudes, the bound of the fractal sum."""
        return float(sum(self.persistence**i for i in range(self.octaves)))

    def evaluate(self, x: ArrayLike, y: ArrayLike, octave: int = 0) -> float | NDArray:
        """Gradient noise of one octave at (x, y).

        Coordinates must lie in ``[0, size]``; scalars give a float, arrays
        give an array of the broadcast shape.

        Raises:
            OutOfBoundsError: If a coordinate or the octave index is outside
                the lattice.
        """
        if not 0 <= octave < self.octaves:
            raise OutOfBoundsError(
                f"Octave {octave} outside [0, {self.octaves})"
            )
        xs = np.asarray(x, dtype=np.float64)
        ys = np.asarray(y, dtype=np.float64)
        self._check_bounds(xs, ys)

        value = self._sample(self.grids[octave], xs, ys)
        return _scalar_or_array(value, (x, y))

    def octave_evaluate(self, x: ArrayLike, y: ArrayLike) -> float | NDArray:
        """Fractal sum of all octaves, lowest frequency first.

        Octave i is sampled at frequency 2^i with amplitude persistence^i.
        Scaled coordinates are wrapped back into the lattice period.
        """
        xs = np.asarray(x, dtype=np.float64)
        ys = np.asarray(y, dtype=np.float64)
        self._check_bounds(xs, ys)

        total = np.zeros(np.broadcast(xs, ys).shape, dtype=np.float64)
        for i in range(self.octaves):
            total += self._octave_term(xs, ys, frequency_index=i, amplitude_index=i)
        return _scalar_or_array(total, (x, y))

    def reverse_octave_evaluate(self, x: ArrayLike, y: ArrayLike) -> float | NDArray:
        """Fractal sum traversed from the highest frequency down.

        Same octave terms as ``octave_evaluate`` (grid, frequency and
        amplitude stay paired), accumulated starting from the last grid.
        Results agree with the forward sum up to float rounding.
        """
        xs = np.asarray(x, dtype=np.float64)
        ys = np.asarray(y, dtype=np.float64)
        self._check_bounds(xs, ys)

        total = np.zeros(np.broadcast(xs, ys).shape, dtype=np.float64)
        for octave in reversed(range(self.octaves)):
            total += self._octave_term(
                xs, ys, frequency_index=octave, amplitude_index=octave
            )
        return _scalar_or_array(total, (x, y))

    def rasterize(
        self,
        width: int,
        height: int,
        max_workers: int | None = None,
    ) -> NDArray[np.uint8]:
        """Render one full lattice period as a heightmap texture.

        The fractal sum is normalized by the amplitude sum, clamped to
        [-1, 1] and stored in the green channel.

        Returns:
            RGBA array of shape (height, width, 4).
        """
        x_scale = self.size / width if width > 0 else 0.0
        y_scale = self.size / height if height > 0 else 0.0
        norm = self.amplitude_sum

        def fill(start: int, stop: int) -> NDArray[np.uint8]:
            py, px = np.mgrid[start:stop, 0:width]
            values = self.octave_evaluate(px * x_scale, py * y_scale) / norm
            values = np.clip(values, -1.0, 1.0)
            green = to_u8((values + 1.0) / 2.0 * 255.0)
            return pack_rgba(green=green)

        pixels = parallel_fill(
            height, width, fill, channels=4, dtype=np.uint8, max_workers=max_workers
        )
        logger.debug("heightmap_rasterized", width=width, height=height)
        return pixels

    def _octave_term(
        self,
        xs: NDArray[np.float64],
        ys: NDArray[np.float64],
        frequency_index: int,
        amplitude_index: int,
    ) -> NDArray[np.float64]:
        frequency = 2.0**frequency_index
        amplitude = self.persistence**amplitude_index
        # Grid is periodic, so wrapping is seamless
        fx = np.mod(xs * frequency, self.size)
        fy = np.mod(ys * frequency, self.size)
        return amplitude * self._sample(self.grids[frequency_index], fx, fy)

    def _check_bounds(self, xs: NDArray[np.float64], ys: NDArray[np.float64]) -> None:
        inside = (xs >= 0) & (xs <= self.size)
        inside_y = (ys >= 0) & (ys <= self.size)
        if not (np.all(inside) and np.all(inside_y)):
            raise OutOfBoundsError(
                f"Noise queried outside [0, {self.size}] "
                f"(x in [{np.min(xs)}, {np.max(xs)}], y in [{np.min(ys)}, {np.max(ys)}])"
            )

    @staticmethod
    def _sample(
        grid: NDArray[np.float64],
        xs: NDArray[np.float64],
        ys: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        x0 = np.floor(xs).astype(np.intp)
        y0 = np.floor(ys).astype(np.intp)
        x1 = x0 + 1
        y1 = y0 + 1

        fx = xs - x0
        fy = ys - y0

        bottom_left = _corner_dot(grid[y0, x0], fx, fy)
        bottom_right = _corner_dot(grid[y0, x1], fx - 1.0, fy)
        top_left = _corner_dot(grid[y1, x0], fx, fy - 1.0)
        top_right = _corner_dot(grid[y1, x1], fx - 1.0, fy - 1.0)

        u = perlin_fade(fx)
        v = perlin_fade(fy)

        bottom = lerp(bottom_left, bottom_right, u)
        top = lerp(top_left, top_right, u)
        return lerp(bottom, top, v)
