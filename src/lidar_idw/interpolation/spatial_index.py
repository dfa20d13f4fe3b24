"""
Nearest-neighbour index over the filtered points of one file.

Wraps scikit-learn's KD-tree backed NearestNeighbors. Squared distances are
recomputed from the stored coordinates so that coincident points report an
exact 0 and comparisons never go through a square root.
"""

import logging
from typing import List, Tuple

import numpy as np
from sklearn.neighbors import NearestNeighbors

logger = logging.getLogger(__name__)


class SpatialIndex:
    """
    Read-only k-nearest-neighbour index in (northing, easting) order.

    Parameters
    ----------
    positions : np.ndarray, shape (n_points, 2)
        Point positions as (northing, easting)
    values : np.ndarray, shape (n_points,)
        Attribute value of each point
    leaf_size : int, default=30
        Leaf size passed to the KD-tree
    """

    def __init__(self, positions: np.ndarray, values: np.ndarray, leaf_size: int = 30):
        positions = np.asarray(positions, dtype=np.float64).reshape(-1, 2)
        values = np.asarray(values, dtype=np.float64)
        if values.shape[0] != positions.shape[0]:
            raise ValueError(
                f"values must match positions, got {values.shape[0]} for {positions.shape[0]} points"
            )

        # Own a copy so callers cannot mutate the indexed data
        self._positions = positions.copy()
        self._values = values.copy()
        self._positions.setflags(write=False)
        self._values.setflags(write=False)

        self._model = None
        if len(self) > 0:
            self._model = NearestNeighbors(algorithm='kd_tree', leaf_size=leaf_size)
            self._model.fit(self._positions)

    @classmethod
    def build(cls, filtered) -> 'SpatialIndex':
        """Build an index from FilteredPoints."""
        index = cls(filtered.positions, filtered.values)
        logger.debug(f"Built spatial index over {len(index):,} points")
        return index

    def __len__(self) -> int:
        return int(self._positions.shape[0])

    def query_many(self, queries: np.ndarray, k: int) -> Tuple[np.ndarray, np.ndarray]:
        """
        Find the k nearest points of each query position.

        Returns
        -------
        dist_sq : np.ndarray, shape (n_queries, min(k, n_points))
            Squared distances, ascending along each row
        values : np.ndarray, shape (n_queries, min(k, n_points))
            Attribute values matching ``dist_sq``
        """
        queries = np.asarray(queries, dtype=np.float64).reshape(-1, 2)
        k = min(int(k), len(self))
        if k <= 0 or self._model is None:
            empty = np.empty((queries.shape[0], 0), dtype=np.float64)
            return empty, empty.copy()

        indices = self._model.kneighbors(queries, n_neighbors=k, return_distance=False)

        offsets = self._positions[indices] - queries[:, None, :]
        dist_sq = np.einsum('qkd,qkd->qk', offsets, offsets)

        # Re-sort on the exact squared distances; ties keep the tree order
        order = np.argsort(dist_sq, axis=1, kind='stable')
        dist_sq = np.take_along_axis(dist_sq, order, axis=1)
        values = self._values[np.take_along_axis(indices, order, axis=1)]
        return dist_sq, values

    def query(self, position, k: int) -> List[Tuple[float, float]]:
        """
        Find the k nearest points to one (northing, easting) position.

        Returns a list of (distance², value) pairs ascending by distance,
        shorter than k when the index holds fewer points.
        """
        dist_sq, values = self.query_many(np.asarray(position, dtype=np.float64)[None, :], k)
        return [(float(d), float(v)) for d, v in zip(dist_sq[0], values[0])]
