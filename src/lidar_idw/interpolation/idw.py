"""
Inverse Distance Weighting estimator.

Each cell takes the K nearest points of the spatial index. A point lying
exactly on the cell centre supplies the value outright; otherwise points
closer than the search cutoff are weighted by ``1 / distance**weight`` and
the weights are normalised over all contributors.
"""

from __future__ import annotations

import math
from typing import Callable, Optional, Tuple

import numpy as np

from ..utils.config import Attribute, RunConfig
from ..utils.logging import setup_logger
from ..utils.point_cloud_filters import pack_rgb, unpack_rgb
from .grid import GridSpec
from .spatial_index import SpatialIndex

logger = setup_logger(__name__)

NO_DATA = -32768.0


def inverse_distance_weights(dist_sq: np.ndarray, weight: float, max_dist_sq: float) -> np.ndarray:
    """
    Weight of each neighbour, zero for neighbours that do not contribute.

    A neighbour contributes when ``0 < d² < max_dist²``.
    """
    contributes = (dist_sq > 0.0) & (dist_sq < max_dist_sq)
    weights = np.zeros_like(dist_sq, dtype=np.float64)
    np.divide(1.0, np.power(np.sqrt(dist_sq), weight), out=weights, where=contributes)
    return weights


def weighted_estimates(
    dist_sq: np.ndarray,
    values: np.ndarray,
    weight: float,
    max_dist_sq: float = math.inf,
    rgb: bool = False,
) -> np.ndarray:
    """
    Combine neighbour values into one estimate per query.

    Args:
        dist_sq: (n, k) squared distances, ascending along each row
        values: (n, k) neighbour values
        weight: Weight exponent
        max_dist_sq: Squared search cutoff
        rgb: Treat values as packed colours and weight each channel separately

    Returns:
        (n,) estimates, NO_DATA where no neighbour contributed
    """
    dist_sq = np.asarray(dist_sq, dtype=np.float64)
    values = np.asarray(values, dtype=np.float64)
    out = np.full(dist_sq.shape[0], NO_DATA, dtype=np.float64)
    if dist_sq.size == 0:
        return out

    exact = dist_sq == 0.0
    has_exact = exact.any(axis=1)

    # First pass: total weight per cell
    weights = inverse_distance_weights(dist_sq, weight, max_dist_sq)
    sum_weights = weights.sum(axis=1)

    weighted = (sum_weights > 0.0) & ~has_exact
    if weighted.any():
        w = weights[weighted]
        total = sum_weights[weighted, None]
        # Second pass: normalised weighted sum
        if rgb:
            red, green, blue = unpack_rgb(values[weighted])
            channels = [
                np.sum(w * channel / total, axis=1).astype(np.int64)
                for channel in (red, green, blue)
            ]
            out[weighted] = pack_rgb(*channels)
        else:
            out[weighted] = np.sum(w * values[weighted] / total, axis=1)

    if has_exact.any():
        first_exact = np.argmax(exact[has_exact], axis=1)
        out[has_exact] = values[has_exact, first_exact]

    return out


def estimate(
    cell_center,
    index: SpatialIndex,
    k: int,
    weight_exp: float,
    max_dist_sq: float = math.inf,
    rgb: bool = False,
) -> Tuple[float, bool]:
    """
    Estimate the value at one (northing, easting) position.

    Returns:
        Tuple of (value, is_no_data)
    """
    dist_sq, values = index.query_many(np.asarray(cell_center, dtype=np.float64)[None, :], k)
    value = float(weighted_estimates(dist_sq, values, weight_exp, max_dist_sq, rgb)[0])
    exact = bool((dist_sq[0] == 0.0).any())
    contributed = inverse_distance_weights(dist_sq[0], weight_exp, max_dist_sq).sum() > 0.0
    return value, not (exact or contributed)


class IDWEstimator:
    """Fills an output grid from a spatial index, one row at a time."""

    def __init__(
        self,
        index: SpatialIndex,
        n_neighbors: int = 8,
        weight: float = 2.0,
        max_dist_sq: float = math.inf,
        rgb: bool = False,
    ):
        self.index = index
        self.n_neighbors = int(n_neighbors)
        self.weight = float(weight)
        self.max_dist_sq = float(max_dist_sq)
        self.rgb = rgb

    @classmethod
    def from_config(cls, index: SpatialIndex, config: RunConfig) -> 'IDWEstimator':
        return cls(
            index,
            n_neighbors=config.n_neighbors,
            weight=config.weight,
            max_dist_sq=config.max_distance_sq,
            rgb=config.attribute is Attribute.RGB,
        )

    def estimate(self, cell_center) -> Tuple[float, bool]:
        return estimate(cell_center, self.index, self.n_neighbors, self.weight, self.max_dist_sq, self.rgb)

    def estimate_row(self, centers: np.ndarray) -> np.ndarray:
        dist_sq, values = self.index.query_many(centers, self.n_neighbors)
        return weighted_estimates(dist_sq, values, self.weight, self.max_dist_sq, self.rgb)

    def fill(
        self,
        grid: GridSpec,
        is_cancelled: Optional[Callable[[], bool]] = None,
    ) -> Optional[np.ndarray]:
        """
        Estimate every cell of the grid.

        ``is_cancelled`` is polled after each row.

        Returns:
            (rows, cols) float64 surface, or None if the fill was cancelled
        """
        surface = np.full(grid.shape, NO_DATA, dtype=np.float64)
        if len(self.index) == 0:
            logger.warning("No points to interpolate; the surface is all no-data")

        for row in range(grid.rows):
            if len(self.index) > 0:
                surface[row] = self.estimate_row(grid.row_centers(row))
            if is_cancelled is not None and is_cancelled():
                logger.info(f"Grid fill cancelled after row {row + 1}/{grid.rows}")
                return None

        n_valid = int(np.count_nonzero(surface != NO_DATA))
        logger.debug(f"Filled {grid.rows}x{grid.cols} grid, {n_valid:,} cells with data")
        return surface
