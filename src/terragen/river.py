"""River field: a randomized cubic Bezier curve rasterized as a distance falloff.

The river runs between two points on different sides of the square terrain
domain. Its two inner control points start on the straight line between the
endpoints and are nudged outward by ``random_shift`` to make the river
meander. Rasterization finds, for every texel, the nearest point on the curve
with a fixed number of Newton steps from several seeds along the curve.
"""

import math
from enum import IntEnum

import numpy as np
import structlog
from numpy.typing import ArrayLike, NDArray

from .exceptions import ConfigurationError
from .interpolation import lerp, normalize, river_fade
from .raster import pack_rgba, parallel_fill, to_u8

logger = structlog.get_logger()

NEWTON_ITERATIONS = 5
# Seeds are spread evenly over [0, 1]: i / NEWTON_SEED_DIVISIONS for i in 0..=divisions
NEWTON_SEED_DIVISIONS = 5
CONTROL_POINT_JITTER = 0.1
MAX_SIDE_DRAWS = 64

# Padding texels on each side of a rasterized river buffer
RIVER_PADDING = 1


class Side(IntEnum):
    """Side of the square terrain domain."""

    TOP = 0
    BOTTOM = 1
    LEFT = 2
    RIGHT = 3


def point_on_side(side: Side, offset: float, terrain_size: float) -> NDArray[np.float64]:
    """Point ``offset`` along the given side of the square [0, terrain_size]^2."""
    if side == Side.TOP:
        return np.array([offset, 0.0])
    if side == Side.BOTTOM:
        return np.array([offset, terrain_size])
    if side == Side.LEFT:
        return np.array([0.0, offset])
    return np.array([terrain_size, offset])


def bezier_coefficients(points: ArrayLike) -> NDArray[np.float64]:
    """Power-basis coefficients of a cubic Bezier curve.

    Args:
        points: The four control points, shape (4, 2).

    Returns:
        Array ``c`` of shape (4, 2) with B(t) = c0 + c1 t + c2 t^2 + c3 t^3.
    """
    p0, p1, p2, p3 = np.asarray(points, dtype=np.float64)
    return np.array(
        [
            p0,
            -3.0 * p0 + 3.0 * p1,
            3.0 * p0 - 6.0 * p1 + 3.0 * p2,
            -p0 + 3.0 * p1 - 3.0 * p2 + p3,
        ]
    )


def bezier_point(coefficients: NDArray[np.float64], t: ArrayLike) -> NDArray[np.float64]:
    """B(t); ``t`` of shape S gives points of shape S + (2,)."""
    t = np.asarray(t, dtype=np.float64)[..., None]
    c0, c1, c2, c3 = coefficients
    return c0 + t * (c1 + t * (c2 + t * c3))


def bezier_derivative(
    coefficients: NDArray[np.float64], t: ArrayLike
) -> NDArray[np.float64]:
    """B'(t)."""
    t = np.asarray(t, dtype=np.float64)[..., None]
    _, c1, c2, c3 = coefficients
    return c1 + t * (2.0 * c2 + 3.0 * t * c3)


def bezier_second_derivative(
    coefficients: NDArray[np.float64], t: ArrayLike
) -> NDArray[np.float64]:
    """B''(t)."""
    t = np.asarray(t, dtype=np.float64)[..., None]
    _, _, c2, c3 = coefficients
    return 2.0 * c2 + 6.0 * t * c3


def newton_project(
    coefficients: NDArray[np.float64],
    points: NDArray[np.float64],
    initial_t: ArrayLike,
    iterations: int = NEWTON_ITERATIONS,
) -> NDArray[np.float64]:
    """Refine curve parameters toward the nearest point to each query point.

    Runs Newton's method on f(t) = (B(t) - p) . B'(t), the derivative of half
    the squared distance, for exactly ``iterations`` steps. There is no
    convergence test and no guard on the denominator; steps that divide by
    zero produce non-finite parameters which callers must discard.

    Args:
        coefficients: Curve coefficients from ``bezier_coefficients``.
        points: Query points, shape S + (2,).
        initial_t: Starting parameters, broadcastable to S.
        iterations: Number of Newton steps.

    Returns:
        Refined parameters of shape S (not clamped).
    """
    t = np.broadcast_to(
        np.asarray(initial_t, dtype=np.float64), points.shape[:-1]
    ).copy()

    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        for _ in range(iterations):
            pointing = bezier_point(coefficients, t) - points
            tangent = bezier_derivative(coefficients, t)
            curvature = bezier_second_derivative(coefficients, t)

            numerator = np.sum(pointing * tangent, axis=-1)
            denominator = np.sum(tangent * tangent, axis=-1) + np.sum(
                pointing * curvature, axis=-1
            )
            t = t - numerator / denominator

    return t


def river_intensity(
    distance: NDArray[np.float64],
    terrain_size: float,
    size: float,
) -> NDArray[np.uint8]:
    """Map curve distances to red-channel intensity.

    The distance is normalized by the terrain extent, shaped with
    ``river_fade`` and scaled back, then fed through a linear falloff that
    reaches zero at ``size``. Distances of ``size`` or more are dark.
    """
    normalized = np.clip(distance / terrain_size, 0.0, 1.0)
    shaped = river_fade(normalized) * terrain_size
    falloff = np.clip(1.0 - shaped / size, 0.0, 1.0)
    red = to_u8(lerp(0.0, 255.0, falloff))
    return np.where(distance < size, red, 0).astype(np.uint8)


class CurveRiverField:
    """A single meandering river around a cubic Bezier curve."""

    def __init__(self, terrain_size: float, size: float, seed: int):
        """Pick endpoints on two distinct sides and straight-line control points.

        Args:
            terrain_size: Side length of the square terrain domain.
            size: River radius; texels farther than this from the curve are dark.
            seed: Seed for the river's random source.

        Raises:
            ConfigurationError: On a non-positive terrain size or river size.
        """
        if not math.isfinite(terrain_size) or terrain_size <= 0:
            raise ConfigurationError(
                f"terrain_size must be a finite value > 0, got {terrain_size}"
            )
        if not math.isfinite(size) or size <= 0:
            raise ConfigurationError(f"River size must be a finite value > 0, got {size}")

        self.terrain_size = float(terrain_size)
        self.size = float(size)
        self.seed = int(seed)
        self._rng = np.random.default_rng(seed)

        self.starting_side = Side(int(self._rng.integers(0, 4)))
        starting_offset = self._rng.uniform(0.0, self.terrain_size)
        self.starting_point = point_on_side(
            self.starting_side, starting_offset, self.terrain_size
        )

        self.ending_side = self._draw_ending_side()
        ending_offset = self._rng.uniform(0.0, self.terrain_size)
        self.ending_point = point_on_side(
            self.ending_side, ending_offset, self.terrain_size
        )

        self.control_points = tuple(
            lerp(self.starting_point, self.ending_point, fraction)
            + self._rng.uniform(-CONTROL_POINT_JITTER, CONTROL_POINT_JITTER, size=2)
            for fraction in (1.0 / 3.0, 2.0 / 3.0)
        )

        logger.debug(
            "river_curve_built",
            starting_side=self.starting_side.name,
            ending_side=self.ending_side.name,
            seed=self.seed,
        )

    @property
    def bezier_points(self) -> NDArray[np.float64]:
        """Control polygon P0..P3, shape (4, 2)."""
        return np.array(
            [self.starting_point, *self.control_points, self.ending_point]
        )

    def coefficients(self) -> NDArray[np.float64]:
        return bezier_coefficients(self.bezier_points)

    def random_shift(self, iterations: int) -> None:
        """Nudge both control points outward, ``iterations`` times.

        Each round moves a control point by a random unit vector scaled by its
        dot product with the persuasion vector, the unit direction from the
        point's straight-line reference position to the point. The move
        therefore never points back toward the straight line. Both points
        of a round are computed from the pre-round curve.

        Raises:
            ConfigurationError: If ``iterations`` is negative.
        """
        if iterations < 0:
            raise ConfigurationError(f"Shift iterations must be >= 0, got {iterations}")

        for _ in range(iterations):
            shifted = []
            for i, control_point in enumerate(self.control_points):
                reference = lerp(
                    self.starting_point, self.ending_point, (i + 1.0) / 3.0
                )
                persuasion = normalize(control_point - reference)
                random_vector = normalize(self._rng.uniform(-1.0, 1.0, size=2))
                weighted = random_vector * float(persuasion @ random_vector)
                shifted.append(control_point + weighted)
            self.control_points = tuple(shifted)

        logger.debug("river_shifted", iterations=iterations)

    def nearest_distance(self, points: ArrayLike) -> NDArray[np.float64]:
        """Distance from each point to the curve.

        Newton refinement runs from evenly spaced seeds; refined parameters
        are clamped to [0, 1]. The endpoints P0 and P3 are always candidates,
        and non-finite candidates never win the minimum.

        Args:
            points: Query points, shape S + (2,).

        Returns:
            Distances of shape S.
        """
        points = np.asarray(points, dtype=np.float64)
        coefficients = self.coefficients()

        best = np.minimum(
            np.hypot(*np.moveaxis(points - self.starting_point, -1, 0)),
            np.hypot(*np.moveaxis(points - self.ending_point, -1, 0)),
        )

        with np.errstate(invalid="ignore", over="ignore"):
            for i in range(NEWTON_SEED_DIVISIONS + 1):
                seed_t = i / NEWTON_SEED_DIVISIONS
                t = newton_project(coefficients, points, seed_t)
                t = np.clip(t, 0.0, 1.0)
                offset = bezier_point(coefficients, t) - points
                candidate = np.hypot(offset[..., 0], offset[..., 1])
                best = np.where(np.isfinite(candidate), np.fmin(best, candidate), best)

        return best

    def texel_positions(self, terrain_size: float, resolution: int) -> NDArray[np.float64]:
        """Terrain-space centers of the padded texel grid.

        Texel (row j, col i) of the (resolution + 2)^2 buffer has center
        ((i - 1 + 0.5) * step, (j - 1 + 0.5) * step) with
        step = terrain_size / resolution. Rows and columns 1..resolution
        cover [0, terrain_size]; row/column 0 and resolution + 1 are the
        padding texels just outside.
        """
        step = terrain_size / resolution
        coords = (np.arange(resolution + 2 * RIVER_PADDING) - RIVER_PADDING + 0.5) * step
        xs, ys = np.meshgrid(coords, coords)
        return np.stack([xs, ys], axis=-1)

    def distance_field(
        self,
        terrain_size: float,
        resolution: int,
        max_workers: int | None = None,
    ) -> NDArray[np.float64]:
        """Curve distance for every texel of the padded grid.

        Returns:
            Array of shape (resolution + 2, resolution + 2).
        """
        _check_raster_args(terrain_size, resolution)
        positions = self.texel_positions(terrain_size, resolution)
        side = resolution + 2 * RIVER_PADDING

        def fill(start: int, stop: int) -> NDArray[np.float64]:
            return self.nearest_distance(positions[start:stop])

        return parallel_fill(side, side, fill, max_workers=max_workers)

    def rasterize(
        self,
        terrain_size: float,
        resolution: int,
        max_workers: int | None = None,
    ) -> NDArray[np.uint8]:
        """Render the river as red intensity over the padded texel grid.

        The buffer is (resolution + 2) x (resolution + 2): one padding texel
        on every side of the resolution x resolution area that covers the
        terrain. See ``texel_positions`` for the texel-to-terrain mapping.

        Returns:
            RGBA array of shape (resolution + 2, resolution + 2, 4).
        """
        _check_raster_args(terrain_size, resolution)
        positions = self.texel_positions(terrain_size, resolution)
        side = resolution + 2 * RIVER_PADDING

        def fill(start: int, stop: int) -> NDArray[np.uint8]:
            distance = self.nearest_distance(positions[start:stop])
            red = river_intensity(distance, terrain_size, self.size)
            return pack_rgba(red=red, alpha=255)

        pixels = parallel_fill(
            side, side, fill, channels=4, dtype=np.uint8, max_workers=max_workers
        )
        logger.debug("river_rasterized", resolution=resolution, padded_side=side)
        return pixels

    def _draw_ending_side(self) -> Side:
        for _ in range(MAX_SIDE_DRAWS):
            side = Side(int(self._rng.integers(0, 4)))
            if side != self.starting_side:
                return side
        raise ConfigurationError(
            f"Could not draw a river end side distinct from {self.starting_side.name} "
            f"in {MAX_SIDE_DRAWS} draws"
        )


def _check_raster_args(terrain_size: float, resolution: int) -> None:
    if not math.isfinite(terrain_size) or terrain_size <= 0:
        raise ConfigurationError(
            f"terrain_size must be a finite value > 0, got {terrain_size}"
        )
    if resolution < 1:
        raise ConfigurationError(f"Resolution must be >= 1, got {resolution}")
