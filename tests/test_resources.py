"""Tests for the smooth-minimum resource mask."""

import numpy as np
import pytest

from terragen.exceptions import ConfigurationError
from terragen.resources import (
    RESOURCE_MARKER,
    SmoothMinResourceField,
    place_cluster_center,
)


def make_field(**overrides) -> SmoothMinResourceField:
    params = dict(
        splat_count=3,
        splat_spread=3.0,
        min_splat_separation=12.0,
        points_per_splat=4,
        magnitude=5.0,
        falloff_spread=2.0,
        texture_size=48,
        seed=1,
    )
    params.update(overrides)
    return SmoothMinResourceField(**params)


def hard_min_distance(field: SmoothMinResourceField, width: int, height: int) -> np.ndarray:
    py, px = np.mgrid[0:height, 0:width].astype(np.float64)
    ox = field.origin_points[:, 0][:, None, None]
    oy = field.origin_points[:, 1][:, None, None]
    return np.hypot(px - ox, py - oy).min(axis=0)


class TestClusterPlacement:
    """Tests for rejection-sampled cluster centers."""

    def test_centers_respect_separation(self) -> None:
        """No two centers are closer than the minimum separation."""
        field = make_field(
            splat_count=5, min_splat_separation=20.0, texture_size=128, seed=3
        )
        centers = field.cluster_centers
        assert centers.shape == (5, 2)
        for i in range(len(centers)):
            for j in range(i + 1, len(centers)):
                assert np.hypot(*(centers[i] - centers[j])) >= 20.0

    def test_centers_are_integer_texels(self) -> None:
        """Centers are drawn on the texel grid inside the texture."""
        field = make_field(seed=9)
        centers = field.cluster_centers
        np.testing.assert_array_equal(centers, np.floor(centers))
        assert np.all(centers >= 0)
        assert np.all(centers < field.texture_size)

    def test_origin_layout(self) -> None:
        """Each cluster is its center followed by its jittered points."""
        field = make_field(points_per_splat=4, splat_spread=3.0, seed=4)
        stride = field.points_per_splat + 1
        assert field.origin_points.shape == (3 * stride, 2)
        for i, center in enumerate(field.cluster_centers):
            group = field.origin_points[i * stride : (i + 1) * stride]
            np.testing.assert_array_equal(group[0], center)
            assert np.all(np.abs(group[1:] - center) <= 3.0)

    def test_no_jitter_points(self) -> None:
        """Clusters may consist of their center alone."""
        field = make_field(points_per_splat=0)
        np.testing.assert_array_equal(field.origin_points, field.cluster_centers)

    def test_points_read_only(self) -> None:
        """Placement results are frozen after construction."""
        field = make_field()
        with pytest.raises(ValueError):
            field.origin_points[0, 0] = -1.0

    def test_unsatisfiable_separation(self) -> None:
        """Placement gives up after the attempt cap."""
        with pytest.raises(ConfigurationError, match="Could not place cluster 1"):
            make_field(
                splat_count=3,
                min_splat_separation=1000.0,
                texture_size=16,
                max_placement_attempts=50,
            )

    def test_place_first_center(self) -> None:
        """The first center is accepted without any redraws."""
        rng = np.random.default_rng(0)
        expected = np.random.default_rng(0).integers(0, 10, size=2)
        center = place_cluster_center([], 5.0, 10, rng)
        np.testing.assert_array_equal(center, expected)

    def test_place_rejects_close_candidates(self) -> None:
        """Accepted centers keep their distance from existing ones."""
        rng = np.random.default_rng(12)
        existing = [np.array([5.0, 5.0])]
        for _ in range(20):
            center = place_cluster_center(existing, 4.0, 10, rng)
            assert np.hypot(*(center - existing[0])) >= 4.0


class TestDistanceField:
    """Tests for the blended distance field."""

    def test_below_hard_minimum(self) -> None:
        """Smooth minimum never exceeds the hard minimum."""
        field = make_field()
        blended = field.distance_field(48, 48)
        hard = hard_min_distance(field, 48, 48)
        assert np.all(blended <= hard + 1e-9)

    def test_bounded_blend(self) -> None:
        """Each fold lowers the result by at most a quarter of the radius."""
        field = make_field()
        blended = field.distance_field(48, 48)
        hard = hard_min_distance(field, 48, 48)
        folds = len(field.origin_points) - 1
        assert np.all(blended >= hard - folds * field.magnitude / 4 - 1e-9)

    def test_small_radius_is_hard_minimum(self) -> None:
        """A tiny blend radius reduces to the plain minimum."""
        field = make_field(magnitude=1e-3, falloff_spread=1e-3)
        blended = field.distance_field(48, 48)
        hard = hard_min_distance(field, 48, 48)
        np.testing.assert_allclose(blended, hard, atol=len(field.origin_points) * 1e-3)

    def test_all_finite(self) -> None:
        """Every texel gets a finite distance."""
        field = make_field()
        assert np.all(np.isfinite(field.distance_field(48, 48)))

    def test_worker_count_irrelevant(self) -> None:
        """Serial and parallel evaluation agree."""
        field = make_field()
        np.testing.assert_array_equal(
            field.distance_field(48, 48, max_workers=1),
            field.distance_field(48, 48, max_workers=5),
        )


class TestRasterize:
    """Tests for resource mask rasterization."""

    def test_single_cluster_center_is_full(self) -> None:
        """Texel at the only cluster center is at full intensity."""
        field = SmoothMinResourceField(
            splat_count=1,
            splat_spread=2.0,
            min_splat_separation=0.0,
            points_per_splat=3,
            magnitude=8.0,
            falloff_spread=4.0,
            texture_size=64,
            seed=7,
        )
        pixels = field.rasterize(64, 64)
        cx, cy = field.cluster_centers[0].astype(int)
        np.testing.assert_array_equal(pixels[cy, cx], [255, RESOURCE_MARKER, 0, 255])

    def test_far_texel_is_black(self) -> None:
        """Texels far from every cluster are opaque black."""
        field = SmoothMinResourceField(
            splat_count=1,
            splat_spread=2.0,
            min_splat_separation=0.0,
            points_per_splat=3,
            magnitude=8.0,
            falloff_spread=4.0,
            texture_size=64,
            seed=7,
        )
        pixels = field.rasterize(64, 64)
        cx, cy = field.cluster_centers[0]
        col = 63 if cx < 32 else 0
        row = 63 if cy < 32 else 0
        np.testing.assert_array_equal(pixels[row, col], [0, 0, 0, 255])

    def test_channels(self) -> None:
        """Marker and intensity only appear together; blue is unused."""
        field = make_field()
        pixels = field.rasterize(48, 48)
        assert pixels.shape == (48, 48, 4)
        assert pixels.dtype == np.uint8
        red, green, blue, alpha = np.moveaxis(pixels, -1, 0)
        assert np.all(blue == 0)
        assert np.all(alpha == 255)
        assert set(np.unique(green)) <= {0, RESOURCE_MARKER}
        assert np.all(red[green == 0] == 0)
        assert np.any(green == RESOURCE_MARKER)

    def test_marker_matches_distance(self) -> None:
        """Deposits cover exactly the texels within the magnitude."""
        field = make_field()
        pixels = field.rasterize(48, 48)
        distance = field.distance_field(48, 48)
        np.testing.assert_array_equal(
            pixels[..., 1] == RESOURCE_MARKER, distance <= field.magnitude
        )

    def test_deterministic(self) -> None:
        """Same seed gives byte-identical masks."""
        a = make_field(seed=17).rasterize(48, 48)
        b = make_field(seed=17).rasterize(48, 48)
        np.testing.assert_array_equal(a, b)

    def test_worker_count_irrelevant(self) -> None:
        """Serial and parallel rasterization agree."""
        field = make_field()
        np.testing.assert_array_equal(
            field.rasterize(40, 56, max_workers=1),
            field.rasterize(40, 56, max_workers=4),
        )


class TestConfiguration:
    """Tests for constructor validation."""

    @pytest.mark.parametrize(
        "overrides",
        [
            {"splat_count": 0},
            {"points_per_splat": -1},
            {"texture_size": 0},
            {"magnitude": 0.0},
            {"falloff_spread": 0.0},
            {"splat_spread": -1.0},
            {"min_splat_separation": float("inf")},
            {"max_placement_attempts": 0},
        ],
    )
    def test_invalid_parameters(self, overrides: dict) -> None:
        """Degenerate parameters fail fast."""
        with pytest.raises(ConfigurationError):
            make_field(**overrides)
