"""
Tests for the primitive raster operations.

Tests for:
- normalized_difference
- circle_kernel / focal_max (dilation)
- connected_pixel_count / sieve
- directional_distance_transform
- mosaic_first_valid
- reproject_to_grid
"""

import math

import numpy as np
import pytest

from msscvm.raster import (
    circle_kernel,
    connected_pixel_count,
    directional_distance_transform,
    focal_max,
    mosaic_first_valid,
    normalized_difference,
    reproject_to_grid,
    sieve,
)


class TestNormalizedDifference:
    """Tests for normalized_difference."""

    def test_values(self):
        nd = normalized_difference(np.array([0.3, 0.1]), np.array([0.1, 0.3]))
        np.testing.assert_allclose(nd, [0.5, -0.5], rtol=1e-6)
        assert nd.dtype == np.float32

    def test_zero_denominator(self):
        nd = normalized_difference(np.zeros((3, 3)), np.zeros((3, 3)))
        assert np.all(nd == 0)
        assert np.all(np.isfinite(nd))


class TestFocalMax:
    """Tests for circle_kernel and focal_max."""

    def test_circle_kernel(self):
        kernel = circle_kernel(2)
        assert kernel.shape == (5, 5)
        assert kernel.sum() == 13
        assert not kernel[0, 0]
        assert kernel[0, 2] and kernel[2, 0] and kernel[1, 1]

    def test_negative_radius(self):
        with pytest.raises(ValueError):
            circle_kernel(-1)

    def test_single_pixel_becomes_disk(self):
        layer = np.zeros((9, 9), dtype=bool)
        layer[4, 4] = True
        dilated = focal_max(layer, radius=2)
        assert dilated.dtype == bool
        np.testing.assert_array_equal(dilated[2:7, 2:7], circle_kernel(2))
        assert dilated.sum() == 13

    def test_dilation_is_extensive(self):
        rng = np.random.RandomState(42)
        for _ in range(5):
            layer = rng.uniform(size=(30, 30)) > 0.9
            dilated = focal_max(layer, radius=2)
            assert np.all(dilated[layer])
            assert dilated.sum() >= layer.sum()

    def test_edge_pixels_do_not_wrap(self):
        layer = np.zeros((6, 6), dtype=bool)
        layer[0, 0] = True
        dilated = focal_max(layer, radius=1)
        assert not dilated[5, 5]
        assert not dilated[0, 5]

    def test_numeric_input(self):
        layer = np.zeros((5, 5), dtype=np.float32)
        layer[2, 2] = 3.0
        dilated = focal_max(layer, radius=1)
        assert dilated[2, 3] == 3.0
        assert dilated[1, 1] == 0.0


class TestSieve:
    """Tests for connected_pixel_count and sieve."""

    def test_connected_pixel_count(self):
        layer = np.zeros((6, 6), dtype=bool)
        layer[0, 0] = True
        layer[3:5, 3:5] = True
        counts = connected_pixel_count(layer)
        assert counts[0, 0] == 1
        assert np.all(counts[3:5, 3:5] == 4)
        assert counts[2, 2] == 0

    def test_count_capped(self):
        layer = np.ones((5, 5), dtype=bool)
        assert connected_pixel_count(layer, max_size=9).max() == 9

    def test_empty_layer(self):
        counts = connected_pixel_count(np.zeros((4, 4), dtype=bool))
        assert counts.sum() == 0

    def test_single_pixel_removed(self):
        layer = np.zeros((10, 10), dtype=bool)
        layer[5, 5] = True
        assert not sieve(layer, 9).any()

    def test_3x3_block_retained(self):
        layer = np.zeros((10, 10), dtype=bool)
        layer[2:5, 2:5] = True
        np.testing.assert_array_equal(sieve(layer, 9), layer)

    def test_connectivity(self):
        # Nine pixels joined only through corners
        layer = np.eye(9, dtype=bool)
        assert sieve(layer, 9, eight_connected=True).sum() == 9
        assert sieve(layer, 9, eight_connected=False).sum() == 0


class TestDirectionalDistanceTransform:
    """Tests for directional_distance_transform."""

    @pytest.fixture
    def layer(self):
        layer = np.zeros((20, 20), dtype=bool)
        layer[5, 10] = True
        return layer

    def test_source_pixels_zero(self, layer):
        distance = directional_distance_transform(layer, 0.0, 10)
        assert distance[5, 10] == 0.0

    def test_east(self, layer):
        # Searching east from (5, 4) reaches (5, 10) after 6 pixels
        distance = directional_distance_transform(layer, 0.0, 10)
        assert distance[5, 4] == pytest.approx(6.0)
        assert np.isinf(distance[5, 11])
        assert np.isinf(distance[6, 4])

    def test_north(self, layer):
        distance = directional_distance_transform(layer, 90.0, 10)
        assert distance[8, 10] == pytest.approx(3.0)
        assert np.isinf(distance[2, 10])

    def test_diagonal(self, layer):
        distance = directional_distance_transform(layer, 45.0, 10)
        assert distance[8, 7] == pytest.approx(math.hypot(3, 3))

    def test_max_distance(self, layer):
        distance = directional_distance_transform(layer, 0.0, 3)
        assert distance[5, 7] == pytest.approx(3.0)
        assert np.isinf(distance[5, 6])

    def test_nearest_wins(self):
        layer = np.zeros((5, 20), dtype=bool)
        layer[2, 8] = True
        layer[2, 15] = True
        distance = directional_distance_transform(layer, 0.0, 20)
        assert distance[2, 5] == pytest.approx(3.0)
        assert distance[2, 12] == pytest.approx(3.0)


class TestMosaic:
    """Tests for mosaic_first_valid."""

    def test_priority(self):
        override = np.array([[np.nan, 1.0], [5.0, np.nan]])
        fallback = np.array([[2.0, 2.0], [2.0, 2.0]])
        mosaic = mosaic_first_valid([override, fallback])
        np.testing.assert_array_equal(mosaic, [[2.0, 1.0], [5.0, 2.0]])

    def test_missing_everywhere_stays_nan(self):
        mosaic = mosaic_first_valid([np.full((2, 2), np.nan), np.array([[1.0, np.nan], [1.0, 1.0]])])
        assert np.isnan(mosaic[0, 1])
        assert mosaic[0, 0] == 1.0

    def test_inputs_not_modified(self):
        override = np.array([np.nan, 1.0])
        mosaic_first_valid([override, np.array([3.0, 3.0])])
        assert np.isnan(override[0])

    def test_empty(self):
        with pytest.raises(ValueError):
            mosaic_first_valid([])


class TestReproject:
    """Tests for reproject_to_grid."""

    def test_same_grid_copies(self, make_grid):
        grid = make_grid(4, 4)
        data = np.arange(16, dtype=np.float32).reshape(4, 4)
        out = reproject_to_grid(data, grid, grid)
        np.testing.assert_array_equal(out, data)
        assert out.dtype == np.float64

    def test_nodata_becomes_nan(self, make_grid):
        grid = make_grid(2, 2)
        out = reproject_to_grid(np.array([[-9999.0, 1.0], [2.0, 3.0]]), grid, grid, src_nodata=-9999.0)
        assert np.isnan(out[0, 0])
        assert out[1, 1] == 3.0

    def test_upsample_nearest(self, make_grid):
        src = make_grid(10, 10, resolution=60.0)
        dst = make_grid(20, 20, resolution=30.0)
        data = np.arange(100, dtype=np.float64).reshape(10, 10)
        out = reproject_to_grid(data, src, dst, resampling="nearest")
        assert out.shape == (20, 20)
        np.testing.assert_array_equal(out[0:2, 0:2], data[0, 0])
        np.testing.assert_array_equal(out[18:20, 18:20], data[9, 9])

    def test_unknown_resampling(self, make_grid):
        with pytest.raises(ValueError, match="Unknown resampling"):
            reproject_to_grid(np.zeros((4, 4)), make_grid(4, 4), make_grid(8, 8, resolution=30.0), "fancy")
