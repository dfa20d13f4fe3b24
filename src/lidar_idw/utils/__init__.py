"""
Utility Functions Module

This module provides common utility functions used across the package.
- Logging
- Run configuration
- Point filtering and attribute extraction
- Raster export (Whitebox and GeoTIFF)
"""

from .logging import setup_logger
from .config import (
    AppConfig,
    Attribute,
    ClassExclusionConfig,
    ConfigurationError,
    ReturnPolicy,
    RunConfig,
    load_config,
    parse_host_args,
)
from .point_cloud_filters import (
    FilteredPoints,
    filter_points,
    pack_rgb,
    unpack_rgb,
    get_filter_statistics,
)
from .export import (
    derive_output_header,
    export_surface_to_whitebox,
    export_surface_to_geotiff,
    read_header,
    read_whitebox_surface,
    detect_crs_from_laz,
)

__all__ = [
    "setup_logger",
    "AppConfig",
    "Attribute",
    "ClassExclusionConfig",
    "ConfigurationError",
    "ReturnPolicy",
    "RunConfig",
    "load_config",
    "parse_host_args",
    "FilteredPoints",
    "filter_points",
    "pack_rgb",
    "unpack_rgb",
    "get_filter_statistics",
    "derive_output_header",
    "export_surface_to_whitebox",
    "export_surface_to_geotiff",
    "read_header",
    "read_whitebox_surface",
    "detect_crs_from_laz",
]
