"""
Point Cloud Data Loader

This module handles reading LAS/LAZ point records and cheap header metadata.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import laspy
import numpy as np

from ..utils.logging import setup_logger

logger = setup_logger(__name__)

SUPPORTED_SUFFIXES = ('.las', '.laz')

# Scan angle of the extended point formats (6-10) is stored in 0.006 degree steps
EXTENDED_SCAN_ANGLE_SCALE = 0.006


@dataclass(frozen=True)
class PointRecords:
    """
    Column arrays of the point records of one file.

    Colour arrays are None when the point format carries no RGB.
    """

    x: np.ndarray
    y: np.ndarray
    z: np.ndarray
    intensity: np.ndarray
    classification: np.ndarray
    return_number: np.ndarray
    number_of_returns: np.ndarray
    withheld: np.ndarray
    scan_angle: np.ndarray
    red: Optional[np.ndarray] = None
    green: Optional[np.ndarray] = None
    blue: Optional[np.ndarray] = None

    def __len__(self) -> int:
        return int(self.x.shape[0])

    @property
    def has_colour(self) -> bool:
        return self.red is not None and self.green is not None and self.blue is not None


class PointCloudLoader:
    """
    A class for reading point records from LAS/LAZ files.

    Features:
    - Support for LAS/LAZ formats using laspy
    - Header-only point counts for scheduling
    - Scan angle normalised to degrees across point formats
    """

    def _check_path(self, file_path: str | Path) -> Path:
        file_path = Path(file_path)

        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        if file_path.suffix.lower() not in SUPPORTED_SUFFIXES:
            raise ValueError(f"Unsupported file format: {file_path.suffix}")

        return file_path

    def count_points(self, file_path: str | Path) -> int:
        """
        Number of point records declared in the file header.

        Only the header is read, no point data is parsed.
        """
        file_path = self._check_path(file_path)
        with laspy.open(file_path) as reader:
            return int(reader.header.point_count)

    def read_records(self, file_path: str | Path) -> PointRecords:
        """
        Read all point records of a file.

        Args:
            file_path: Path to the LAS/LAZ file

        Returns:
            PointRecords with one entry per point in file order

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file format is unsupported
        """
        file_path = self._check_path(file_path)
        logger.debug(f"Reading point records from {file_path}")

        las = laspy.read(file_path)
        dimensions = set(las.point_format.dimension_names)
        n = len(las.points)

        if 'scan_angle_rank' in dimensions:
            scan_angle = np.asarray(las.scan_angle_rank, dtype=np.float64)
        elif 'scan_angle' in dimensions:
            scan_angle = np.asarray(las.scan_angle, dtype=np.float64) * EXTENDED_SCAN_ANGLE_SCALE
        else:
            scan_angle = np.zeros(n, dtype=np.float64)

        red = green = blue = None
        if {'red', 'green', 'blue'} <= dimensions:
            red = np.asarray(las.red)
            green = np.asarray(las.green)
            blue = np.asarray(las.blue)

        return PointRecords(
            x=np.asarray(las.x, dtype=np.float64),
            y=np.asarray(las.y, dtype=np.float64),
            z=np.asarray(las.z, dtype=np.float64),
            intensity=np.asarray(las.intensity),
            classification=np.asarray(las.classification),
            return_number=np.asarray(las.return_number),
            number_of_returns=np.asarray(las.number_of_returns),
            withheld=np.asarray(las.withheld, dtype=bool),
            scan_angle=scan_angle,
            red=red,
            green=green,
            blue=blue,
        )
