"""Tests for output grid planning."""

import numpy as np
import pytest

from lidar_idw.interpolation.grid import plan_grid
from lidar_idw.utils.config import ConfigurationError


def test_grid_from_unit_square():
    grid = plan_grid((0.0, 1.0, 0.0, 1.0), 1.0)

    assert (grid.north, grid.south, grid.east, grid.west) == (1.5, -0.5, 1.5, -0.5)
    assert grid.shape == (2, 2)
    assert grid.cell_center(0, 0) == (1.0, 0.0)
    assert grid.cell_center(1, 0) == (0.0, 0.0)
    assert grid.cell_center(1, 1) == (0.0, 1.0)


def test_grid_covers_bounds():
    bounds = (100.2, 163.9, 200.7, 241.3)
    grid = plan_grid(bounds, 0.5)

    assert grid.west == pytest.approx(99.95)
    assert grid.north == pytest.approx(241.55)
    assert grid.east >= bounds[1]
    assert grid.south <= bounds[2]
    assert grid.east == grid.west + grid.cols * 0.5
    assert grid.south == grid.north - grid.rows * 0.5


def test_cell_centres_step_by_resolution():
    grid = plan_grid((0.0, 10.0, 0.0, 4.0), 2.0)
    centers = grid.row_centers(1)

    assert centers.shape == (grid.cols, 2)
    assert np.all(centers[:, 0] == grid.row_northing(1))
    np.testing.assert_allclose(np.diff(centers[:, 1]), 2.0)
    assert grid.row_northing(0) - grid.row_northing(1) == pytest.approx(2.0)


def test_single_point_gives_one_cell():
    grid = plan_grid((5.0, 5.0, 7.0, 7.0), 1.0)
    assert grid.shape == (1, 1)
    assert grid.cell_center(0, 0) == (7.0, 5.0)


def test_empty_bounds_degenerate_to_origin():
    grid = plan_grid(None, 2.0)

    assert grid.shape == (1, 1)
    assert (grid.north, grid.south, grid.east, grid.west) == (1.0, -1.0, 1.0, -1.0)
    assert grid.cell_center(0, 0) == (0.0, 0.0)


@pytest.mark.parametrize("resolution", [0.0, -1.0, float("nan")])
def test_invalid_resolution(resolution):
    with pytest.raises(ConfigurationError):
        plan_grid((0.0, 1.0, 0.0, 1.0), resolution)
