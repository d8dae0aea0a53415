"""Shared test fixtures for terrain content tests."""

import numpy as np
import pytest

from terragen.config import (
    NoiseFieldConfig,
    ResourceFieldConfig,
    RiverFieldConfig,
    TerrainContentConfig,
)
from terragen.river import CurveRiverField


@pytest.fixture
def small_config() -> TerrainContentConfig:
    """Content config small enough to generate in well under a second."""
    return TerrainContentConfig(
        seed=5,
        heightmap=NoiseFieldConfig(
            lattice_size=3, octaves=2, persistence=0.5, texture_size=32
        ),
        resources=ResourceFieldConfig(
            splat_count=2,
            splat_spread=2.0,
            min_splat_separation=8.0,
            points_per_splat=2,
            magnitude=4.0,
            falloff_spread=2.0,
            texture_size=32,
        ),
        river=RiverFieldConfig(
            terrain_size=10.0, size=1.0, shift_iterations=5, resolution=32
        ),
        max_workers=2,
    )


@pytest.fixture
def straight_river() -> CurveRiverField:
    """River forced onto the segment (0, 0) -> (3, 0) with uniform speed.

    Control points at thirds give B(t) = (3t, 0).
    """
    river = CurveRiverField(terrain_size=10.0, size=1.0, seed=0)
    river.starting_point = np.array([0.0, 0.0])
    river.control_points = (np.array([1.0, 0.0]), np.array([2.0, 0.0]))
    river.ending_point = np.array([3.0, 0.0])
    return river
