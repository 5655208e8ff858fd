"""Tests for the hexagon grid builder."""

import math

import numpy as np
import pytest

from hexmeta.binning.grid import HexGrid, build_grid, parse_resolution
from hexmeta.errors import DegenerateInputError, InvalidParameterError, ShapeMismatchError


class TestBuildGrid:
    """Grid geometry and parameter validation."""

    def test_bounds_and_dimensions(self, two_clusters):
        """Grid spans the bounding box with one spare column."""
        grid = build_grid(two_clusters, 4)
        assert grid.xbnds == (0.0, 10.0)
        assert grid.ybnds == (0.0, 10.0)
        assert grid.n_cols == 5
        assert grid.n_rows == 6
        assert grid.n_tiles == 30
        assert grid.n_points == 6

    def test_regular_hexagons_for_single_resolution(self, random_points):
        """A single resolution yields regular hexagons in data space."""
        grid = build_grid(random_points, 20)
        assert grid.width == pytest.approx(grid.x_range / 20)
        assert grid.hex_height == pytest.approx(grid.width * 2 / math.sqrt(3))
        assert grid.row_height == pytest.approx(grid.width * math.sqrt(3) / 2)

    def test_pair_resolution_sets_row_count(self):
        """With (nx, ny), ny row steps span the y-range."""
        points = np.array([[0.0, 0.0], [4.0, 2.0]])
        grid = build_grid(points, (4, 8))
        assert grid.width == pytest.approx(1.0)
        assert grid.row_height == pytest.approx(2.0 / 8)
        assert grid.nbins == (4, 8)

    def test_rows_cover_y_range(self, random_points):
        """The top of the bounding box lies within the allocated rows."""
        grid = build_grid(random_points, 15)
        top_row_center = grid.ybnds[0] + (grid.n_rows - 1) * grid.row_height
        assert top_row_center >= grid.ybnds[1]

    def test_tile_centers_offset_odd_rows(self, two_clusters):
        """Odd rows are shifted by half a tile width."""
        grid = build_grid(two_clusters, 4)
        x, y = grid.tile_centers(np.array([0, grid.n_cols, 2 * grid.n_cols + 1]))
        assert x[0] == pytest.approx(0.0)
        assert x[1] == pytest.approx(grid.width / 2)
        assert x[2] == pytest.approx(grid.width)
        assert y[1] == pytest.approx(grid.row_height)
        assert y[2] == pytest.approx(2 * grid.row_height)

    def test_dict_round_trip(self, random_points):
        """Grid parameters survive to_dict/from_dict."""
        grid = build_grid(random_points, (12, 9))
        assert HexGrid.from_dict(grid.to_dict()) == grid


class TestGridErrors:
    """Invalid inputs fail before any binning."""

    def test_resolution_one_is_invalid(self, two_clusters):
        with pytest.raises(InvalidParameterError):
            build_grid(two_clusters, 1)

    @pytest.mark.parametrize("nbins", [0, -3, 2.5, "10", True, (4,), (4, 1), (4, 5, 6)])
    def test_malformed_resolution(self, two_clusters, nbins):
        with pytest.raises(InvalidParameterError):
            build_grid(two_clusters, nbins)

    def test_zero_width_is_degenerate(self):
        """All points sharing one x value leave nothing to bin across."""
        points = np.array([[1.0, 0.0], [1.0, 2.0], [1.0, 5.0]])
        with pytest.raises(DegenerateInputError):
            build_grid(points, 10)

    def test_zero_height_is_degenerate(self):
        points = np.array([[0.0, 3.0], [2.0, 3.0]])
        with pytest.raises(DegenerateInputError):
            build_grid(points, 10)

    def test_empty_point_set_is_degenerate(self):
        with pytest.raises(DegenerateInputError):
            build_grid(np.empty((0, 2)), 10)

    def test_non_finite_coordinates(self):
        points = np.array([[0.0, 0.0], [np.nan, 1.0], [2.0, 2.0]])
        with pytest.raises(InvalidParameterError):
            build_grid(points, 10)

    def test_wrong_point_shape(self):
        with pytest.raises(ShapeMismatchError):
            build_grid(np.zeros((5, 3)), 10)


class TestParseResolution:
    def test_single(self):
        assert parse_resolution(40) == (40, 0)

    def test_pair(self):
        assert parse_resolution([40, 30]) == (40, 30)

    def test_numpy_integer(self):
        assert parse_resolution(np.int64(12)) == (12, 0)
