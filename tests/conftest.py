"""Shared fixtures: synthetic LAS files written with laspy."""

from pathlib import Path
from typing import Optional

import laspy
import numpy as np
import pytest


def write_las(
    path: Path,
    x,
    y,
    z,
    *,
    intensity=None,
    classification=None,
    return_number=None,
    number_of_returns=None,
    withheld=None,
    scan_angle_rank=None,
    rgb: Optional[np.ndarray] = None,
    point_format: int = 3,
) -> Path:
    """Write a LAS 1.2 file (point format 3 unless given) with millimetre precision."""
    x = np.asarray(x, dtype=np.float64)
    n = len(x)

    header = laspy.LasHeader(point_format=point_format, version="1.2")
    header.offsets = np.zeros(3)
    header.scales = np.array([0.001, 0.001, 0.001])

    las = laspy.LasData(header)
    las.x = x
    las.y = np.asarray(y, dtype=np.float64)
    las.z = np.asarray(z, dtype=np.float64)
    las.intensity = np.asarray(intensity if intensity is not None else np.full(n, 100), dtype=np.uint16)
    las.classification = np.asarray(
        classification if classification is not None else np.full(n, 2), dtype=np.uint8
    )
    las.return_number = np.asarray(return_number if return_number is not None else np.ones(n), dtype=np.uint8)
    las.number_of_returns = np.asarray(
        number_of_returns if number_of_returns is not None else np.ones(n), dtype=np.uint8
    )
    las.withheld = np.asarray(withheld if withheld is not None else np.zeros(n), dtype=bool)
    las.scan_angle_rank = np.asarray(
        scan_angle_rank if scan_angle_rank is not None else np.zeros(n), dtype=np.int8
    )
    if rgb is not None:
        rgb = np.asarray(rgb, dtype=np.uint16)
        las.red = rgb[:, 0]
        las.green = rgb[:, 1]
        las.blue = rgb[:, 2]

    las.write(str(path))
    return path


@pytest.fixture
def las_factory(tmp_path):
    """Factory writing LAS files into the test's temporary directory."""

    def _make(name: str, x, y, z, **kwargs) -> Path:
        return write_las(tmp_path / name, x, y, z, **kwargs)

    return _make


@pytest.fixture
def three_point_las(las_factory):
    """Points (0,0)=10, (1,0)=20, (0,1)=30."""
    return las_factory("three.las", [0.0, 1.0, 0.0], [0.0, 0.0, 1.0], [10.0, 20.0, 30.0])


class RecordingHost:
    """Host double that records every callback."""

    def __init__(self):
        self.feedback = []
        self.progress = []
        self.results = []
        self.completed = 0

    def report_feedback(self, message: str) -> None:
        self.feedback.append(message)

    def report_progress(self, label: str, percent: int) -> None:
        self.progress.append((label, percent))

    def report_result(self, path: str) -> None:
        self.results.append(path)

    def signal_complete(self) -> None:
        self.completed += 1


@pytest.fixture
def host():
    return RecordingHost()


@pytest.fixture(autouse=True)
def _reset_cancellation():
    from lidar_idw.acceleration.progress import clear_cancel

    clear_cancel()
    yield
    clear_cancel()
