"""
Output grid planning.

The grid is anchored at the north-west corner half a cell outside the point
bounds and tiles southwards and eastwards in whole cells.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from ..utils.config import ConfigurationError


@dataclass(frozen=True)
class GridSpec:
    """
    Extent and shape of an output raster.

    Attributes:
        north, south, east, west: Outer cell edges in map units
        resolution: Cell size
        rows, cols: Grid shape; row 0 is the northernmost row, col 0 the westernmost
    """

    north: float
    south: float
    east: float
    west: float
    resolution: float
    rows: int
    cols: int

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.rows, self.cols)

    def row_northing(self, row: int) -> float:
        return (self.north - self.resolution / 2) - row * self.resolution

    def col_eastings(self) -> np.ndarray:
        return np.arange(self.cols) * self.resolution + (self.west + self.resolution / 2)

    def cell_center(self, row: int, col: int) -> Tuple[float, float]:
        """(northing, easting) of a cell centre."""
        easting = col * self.resolution + (self.west + self.resolution / 2)
        return (self.row_northing(row), easting)

    def row_centers(self, row: int) -> np.ndarray:
        """(cols, 2) array of (northing, easting) centres along one row."""
        eastings = self.col_eastings()
        return np.column_stack([np.full(self.cols, self.row_northing(row)), eastings])


def plan_grid(
    bounds: Optional[Tuple[float, float, float, float]],
    resolution: float,
) -> GridSpec:
    """
    Derive the output grid from point bounds.

    Args:
        bounds: (min_x, max_x, min_y, max_y) of the filtered points, or None
            when no point qualified; the grid then degenerates to a single
            cell centred on the origin.
        resolution: Cell size, must be positive

    Returns:
        GridSpec with at least one row and one column

    Raises:
        ConfigurationError: If resolution is not positive
    """
    if not resolution > 0:
        raise ConfigurationError(f"Resolution must be positive, got {resolution}")

    if bounds is None:
        bounds = (0.0, 0.0, 0.0, 0.0)
    min_x, max_x, min_y, max_y = bounds

    west = min_x - 0.5 * resolution
    north = max_y + 0.5 * resolution
    rows = max(1, int(math.ceil((north - min_y) / resolution)))
    cols = max(1, int(math.ceil((max_x - west) / resolution)))
    south = north - rows * resolution
    east = west + cols * resolution

    return GridSpec(
        north=north,
        south=south,
        east=east,
        west=west,
        resolution=resolution,
        rows=rows,
        cols=cols,
    )
