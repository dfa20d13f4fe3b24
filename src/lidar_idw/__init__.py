"""
LiDAR IDW Interpolation Package

A Python package for turning LiDAR point clouds into raster surfaces by
Inverse Distance Weighting. Points are selected by return number and
classification, indexed with a KD-tree, and every output cell is estimated
from its K nearest points. Many input files are processed in parallel,
largest first, each producing its own Whitebox raster.
"""

__version__ = "0.1.0"

from .interpolation import *
from .acceleration import *
from .preprocessing import *
from .utils import *

__all__ = [
    "interpolation",
    "acceleration",
    "preprocessing",
    "utils",
]
