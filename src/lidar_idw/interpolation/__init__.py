"""
Interpolation Module

Spatial indexing, grid planning and the IDW estimator, plus the per-file
pipeline that runs them over many input files.
"""

from .spatial_index import SpatialIndex
from .grid import GridSpec, plan_grid
from .idw import NO_DATA, IDWEstimator, estimate, weighted_estimates
from .pipeline import FileResult, IDWInterpolator, RunSummary, run_host

__all__ = [
    "SpatialIndex",
    "GridSpec",
    "plan_grid",
    "NO_DATA",
    "IDWEstimator",
    "estimate",
    "weighted_estimates",
    "FileResult",
    "IDWInterpolator",
    "RunSummary",
    "run_host",
]
