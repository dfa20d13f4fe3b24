"""
Point Cloud Filtering Utilities

Selects the points of a file that take part in an interpolation run and
extracts the attribute value interpolated at each of them.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Tuple

import numpy as np

from .config import Attribute, ReturnPolicy, NUM_CLASSIFICATION_CODES

if TYPE_CHECKING:
    from ..preprocessing.loader import PointRecords

OPAQUE_ALPHA = 0xFF000000


@dataclass(frozen=True)
class FilteredPoints:
    """
    Points surviving the filter for one file.

    Attributes:
        positions: (N, 2) array of (northing, easting)
        values: (N,) attribute values as float64
        bounds: (min_x, max_x, min_y, max_y) of the positions, or None when empty
    """

    positions: np.ndarray
    values: np.ndarray
    bounds: Optional[Tuple[float, float, float, float]]

    def __len__(self) -> int:
        return int(self.values.shape[0])


def create_exclusion_mask(classification: np.ndarray, exclusion_table: np.ndarray) -> np.ndarray:
    """Create a boolean mask that is True for points whose class is excluded.

    Codes beyond the table size are never excluded.

    Examples:
        >>> table = np.zeros(32, dtype=bool); table[2] = True
        >>> create_exclusion_mask(np.array([1, 2, 40]), table)
        array([False,  True, False])
    """
    classification = np.asarray(classification, dtype=np.int64)
    excluded = np.zeros(classification.shape[0], dtype=bool)
    in_table = classification < min(len(exclusion_table), NUM_CLASSIFICATION_CODES)
    excluded[in_table] = exclusion_table[classification[in_table]]
    return excluded


def create_return_mask(
    return_number: np.ndarray,
    number_of_returns: np.ndarray,
    policy: ReturnPolicy,
) -> np.ndarray:
    """Create a boolean mask for the return-number policy."""
    if policy is ReturnPolicy.FIRST:
        return np.asarray(return_number) == 1
    if policy is ReturnPolicy.LAST:
        return np.asarray(return_number) == np.asarray(number_of_returns)
    return np.ones(len(return_number), dtype=bool)


def create_point_mask(
    records: "PointRecords",
    exclusion_table: np.ndarray,
    policy: ReturnPolicy,
) -> np.ndarray:
    """Mask of points that are not withheld, not excluded by class and match the policy."""
    mask = ~np.asarray(records.withheld, dtype=bool)
    mask &= ~create_exclusion_mask(records.classification, exclusion_table)
    mask &= create_return_mask(records.return_number, records.number_of_returns, policy)
    return mask


def pack_rgb(red, green, blue) -> np.ndarray:
    """
    Pack 8-bit channels into one value: alpha 255, then blue, green, red (LSB).

    The packed word is returned as a signed 32-bit integer widened to float64,
    which is how raster consumers read colour cells back.
    """
    red = np.asarray(red, dtype=np.int64) & 0xFF
    green = np.asarray(green, dtype=np.int64) & 0xFF
    blue = np.asarray(blue, dtype=np.int64) & 0xFF
    packed = OPAQUE_ALPHA | (blue << 16) | (green << 8) | red
    signed = np.where(packed >= 2**31, packed - 2**32, packed)
    return np.asarray(signed, dtype=np.float64)


def unpack_rgb(packed) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Split packed values into (red, green, blue) channel arrays."""
    word = np.asarray(packed, dtype=np.float64).astype(np.int64)
    return word & 0xFF, (word >> 8) & 0xFF, (word >> 16) & 0xFF


def _colour_bytes(red, green, blue) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    # LAS stores colour as 16-bit; 8-bit data is often written unscaled
    channels = [np.asarray(c, dtype=np.int64) for c in (red, green, blue)]
    if any(c.size and c.max() > 255 for c in channels):
        channels = [c >> 8 for c in channels]
    return tuple(channels)


def extract_attribute(records: "PointRecords", attribute: Attribute, mask: np.ndarray) -> np.ndarray:
    """
    Extract the values to interpolate for the masked points.

    Raises:
        ValueError: If RGB is requested but the file carries no colour
    """
    if attribute is Attribute.ELEVATION:
        return np.asarray(records.z, dtype=np.float64)[mask]
    if attribute is Attribute.INTENSITY:
        return np.asarray(records.intensity, dtype=np.float64)[mask]
    if attribute is Attribute.CLASSIFICATION:
        return np.asarray(records.classification, dtype=np.float64)[mask]
    if attribute is Attribute.SCAN_ANGLE:
        return np.asarray(records.scan_angle, dtype=np.float64)[mask]

    if not records.has_colour:
        raise ValueError("RGB interpolation requested but the point format has no colour channels")
    # 8- or 16-bit colour is decided over the whole file, not the selection
    red, green, blue = _colour_bytes(records.red, records.green, records.blue)
    return pack_rgb(red[mask], green[mask], blue[mask])


def filter_points(
    records: "PointRecords",
    attribute: Attribute,
    policy: ReturnPolicy,
    exclusion_table: np.ndarray,
) -> FilteredPoints:
    """
    Select the qualifying points of a file and pair them with their attribute.

    Positions are stored as (northing, easting), the axis order used by the
    spatial index for both build and query.
    """
    mask = create_point_mask(records, exclusion_table, policy)
    x = np.asarray(records.x, dtype=np.float64)[mask]
    y = np.asarray(records.y, dtype=np.float64)[mask]
    values = extract_attribute(records, attribute, mask)

    bounds = None
    if x.size:
        bounds = (float(x.min()), float(x.max()), float(y.min()), float(y.max()))

    return FilteredPoints(
        positions=np.column_stack([y, x]),
        values=values,
        bounds=bounds,
    )


def get_filter_statistics(
    total_points: int,
    filtered_points: int,
    policy: ReturnPolicy,
    exclusion_table: np.ndarray,
) -> dict:
    """Generate statistics about point filtering results.

    Useful for logging and validation of filtering operations.
    """
    percentage = (filtered_points / total_points * 100.0) if total_points > 0 else 0.0
    excluded = [int(code) for code in np.flatnonzero(exclusion_table)]

    if excluded:
        filter_desc = f"{policy.value}, excluding classes {excluded}"
    else:
        filter_desc = policy.value

    return {
        "total_points": total_points,
        "filtered_points": filtered_points,
        "percentage": percentage,
        "filter_description": filter_desc,
        "excluded_classes": excluded,
    }
