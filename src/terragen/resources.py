"""Resource distribution mask: clustered deposits blended with a smooth minimum."""

import math

import numpy as np
import structlog
from numpy.typing import NDArray

from .exceptions import ConfigurationError
from .interpolation import lerp, smooth_min
from .raster import pack_rgba, parallel_fill, to_u8

logger = structlog.get_logger()

DEFAULT_MAX_PLACEMENT_ATTEMPTS = 10_000

# Marker written to the green channel of every pixel inside a deposit
RESOURCE_MARKER = 255


def place_cluster_center(
    centers: list[NDArray[np.float64]],
    min_separation: float,
    texture_size: int,
    rng: np.random.Generator,
    max_attempts: int = DEFAULT_MAX_PLACEMENT_ATTEMPTS,
    index: int = 0,
) -> NDArray[np.float64]:
    """Draw one cluster center by rejection sampling.

    Candidates are integer texel positions in [0, texture_size). A candidate
    closer than ``min_separation`` to any accepted center is redrawn and the
    check restarts from the first center.

    Args:
        centers: Centers accepted so far.
        min_separation: Minimum distance between any two centers.
        texture_size: Side of the texel domain.
        rng: Random number generator (consumed sequentially).
        max_attempts: Draws allowed before giving up.
        index: Cluster number, for error messages and logs.

    Returns:
        The accepted center.

    Raises:
        ConfigurationError: If no valid center is found within
            ``max_attempts`` draws.
    """
    min_sq = min_separation * min_separation
    candidate = rng.integers(0, texture_size, size=2).astype(np.float64)
    attempts = 1

    j = 0
    while j < len(centers):
        offset = candidate - centers[j]
        if float(offset @ offset) < min_sq:
            if attempts >= max_attempts:
                raise ConfigurationError(
                    f"Could not place cluster {index} with separation "
                    f"{min_separation} in a {texture_size}x{texture_size} "
                    f"texture after {max_attempts} attempts"
                )
            candidate = rng.integers(0, texture_size, size=2).astype(np.float64)
            attempts += 1
            j = 0
            continue
        j += 1

    if attempts > 1:
        logger.debug("cluster_center_resampled", cluster=index, attempts=attempts)
    return candidate


class SmoothMinResourceField:
    """Blotchy resource-density mask built around rejection-sampled clusters.

    ``origin_points`` holds, for each cluster, its center followed by
    ``points_per_splat`` jittered points, all in texel space.
    """

    def __init__(
        self,
        splat_count: int,
        splat_spread: float,
        min_splat_separation: float,
        points_per_splat: int,
        magnitude: float,
        falloff_spread: float,
        texture_size: int,
        seed: int,
        max_placement_attempts: int = DEFAULT_MAX_PLACEMENT_ATTEMPTS,
    ):
        _validate(
            splat_count,
            splat_spread,
            min_splat_separation,
            points_per_splat,
            magnitude,
            falloff_spread,
            texture_size,
            max_placement_attempts,
        )

        self.magnitude = float(magnitude)
        self.falloff_spread = float(falloff_spread)
        self.texture_size = int(texture_size)
        self.points_per_splat = int(points_per_splat)
        self.seed = int(seed)

        rng = np.random.default_rng(seed)
        centers: list[NDArray[np.float64]] = []
        points: list[NDArray[np.float64]] = []

        # Jitter draws are interleaved with placement, cluster by cluster
        for index in range(splat_count):
            center = place_cluster_center(
                centers,
                min_splat_separation,
                self.texture_size,
                rng,
                max_attempts=max_placement_attempts,
                index=index,
            )
            centers.append(center)
            points.append(center)
            for _ in range(self.points_per_splat):
                points.append(
                    rng.uniform(center - splat_spread, center + splat_spread)
                )

        self.cluster_centers = np.array(centers, dtype=np.float64)
        self.origin_points = np.array(points, dtype=np.float64)
        self.cluster_centers.setflags(write=False)
        self.origin_points.setflags(write=False)

        logger.debug(
            "resource_field_built",
            clusters=len(self.cluster_centers),
            points=len(self.origin_points),
            seed=self.seed,
        )

    def distance_field(
        self,
        width: int,
        height: int,
        max_workers: int | None = None,
    ) -> NDArray[np.float64]:
        """Smooth-minimum distance from every texel to the origin points.

        Distances are folded in ``origin_points`` order. A fold step that
        produces a non-finite value is discarded and the previous
        accumulator kept.

        Returns:
            Array of shape (height, width).
        """

        def fill(start: int, stop: int) -> NDArray[np.float64]:
            py, px = np.mgrid[start:stop, 0:width].astype(np.float64)
            return self._blend_distances(px, py)

        return parallel_fill(height, width, fill, max_workers=max_workers)

    def rasterize(
        self,
        width: int,
        height: int,
        max_workers: int | None = None,
    ) -> NDArray[np.uint8]:
        """Render the resource mask.

        Texels within ``magnitude`` of the blended origin set get a red
        intensity ramping up over ``falloff_spread`` plus the green marker;
        everything else is opaque black.

        Returns:
            RGBA array of shape (height, width, 4).
        """

        def fill(start: int, stop: int) -> NDArray[np.uint8]:
            py, px = np.mgrid[start:stop, 0:width].astype(np.float64)
            distance = self._blend_distances(px, py)
            return self._shade(distance)

        pixels = parallel_fill(
            height, width, fill, channels=4, dtype=np.uint8, max_workers=max_workers
        )
        logger.debug("resource_map_rasterized", width=width, height=height)
        return pixels

    def _blend_distances(
        self,
        px: NDArray[np.float64],
        py: NDArray[np.float64],
    ) -> NDArray[np.float64]:
        acc = np.full(px.shape, np.inf)
        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            for ox, oy in self.origin_points:
                d = np.hypot(px - ox, py - oy)
                blended = np.where(np.isinf(acc), d, smooth_min(acc, d, self.magnitude))
                acc = np.where(np.isfinite(blended), blended, acc)
        return acc

    def _shade(self, distance: NDArray[np.float64]) -> NDArray[np.uint8]:
        inside = distance <= self.magnitude
        t = np.clip(self.magnitude - distance, 0.0, self.falloff_spread) / self.falloff_spread
        red = np.where(inside, to_u8(lerp(0.0, 255.0, t)), 0)
        green = np.where(inside, RESOURCE_MARKER, 0)
        return pack_rgba(red=red, green=green, alpha=255)


def _validate(
    splat_count: int,
    splat_spread: float,
    min_splat_separation: float,
    points_per_splat: int,
    magnitude: float,
    falloff_spread: float,
    texture_size: int,
    max_placement_attempts: int,
) -> None:
    if splat_count < 1:
        raise ConfigurationError(f"splat_count must be >= 1, got {splat_count}")
    if points_per_splat < 0:
        raise ConfigurationError(
            f"points_per_splat must be >= 0, got {points_per_splat}"
        )
    if texture_size < 1:
        raise ConfigurationError(f"texture_size must be >= 1, got {texture_size}")
    if max_placement_attempts < 1:
        raise ConfigurationError(
            f"max_placement_attempts must be >= 1, got {max_placement_attempts}"
        )
    for name, value in (
        ("splat_spread", splat_spread),
        ("min_splat_separation", min_splat_separation),
    ):
        if not math.isfinite(value) or value < 0:
            raise ConfigurationError(f"{name} must be a finite value >= 0, got {value}")
    for name, value in (("magnitude", magnitude), ("falloff_spread", falloff_spread)):
        if not math.isfinite(value) or value <= 0:
            raise ConfigurationError(f"{name} must be a finite value > 0, got {value}")
