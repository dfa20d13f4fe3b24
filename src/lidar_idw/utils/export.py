"""
Export utilities for interpolated surfaces.

Provides functions to write surfaces as:
- Whitebox rasters (text ``.dep`` header plus binary ``.tas`` grid)
- GeoTIFF rasters for use in QGIS and similar GIS software
"""

from __future__ import annotations

import re
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, List, TYPE_CHECKING

import numpy as np

from .config import Attribute
from .logging import setup_logger

if TYPE_CHECKING:
    from ..interpolation.grid import GridSpec

logger = setup_logger(__name__)

HEADER_EXTENSION = ".dep"
DATA_EXTENSION = ".tas"

TOOL_NAME = "LiDAR_IDW_interpolation"
TOOL_DESCRIPTIVE_NAME = "IDW Interpolation (LiDAR)"

# Placeholders; consumers recompute the range from the data
PLACEHOLDER_MIN = float(2**31 - 1)
PLACEHOLDER_MAX = float(-(2**31))

NOT_SPECIFIED = "not specified"


def derive_output_header(input_path: str | Path, suffix: str) -> Path:
    """
    Output header path for an input point file.

    The input extension is replaced by `` <suffix>.dep``, e.g.
    ``tile.las`` with suffix ``IDW`` becomes ``tile IDW.dep``.
    """
    input_path = Path(input_path)
    suffix = suffix.strip()
    stem = f"{input_path.stem} {suffix}" if suffix else input_path.stem
    return input_path.with_name(stem + HEADER_EXTENSION)


def data_path_for(header_path: str | Path) -> Path:
    return Path(header_path).with_suffix(DATA_EXTENSION)


def remove_existing_output(header_path: str | Path) -> bool:
    """Delete an existing header and its paired data file. Returns True if one existed."""
    header_path = Path(header_path)
    if not header_path.exists():
        return False
    header_path.unlink()
    data_path_for(header_path).unlink(missing_ok=True)
    logger.debug(f"Removed existing output {header_path}")
    return True


def preferred_palette(attribute: Attribute) -> str:
    if attribute is Attribute.RGB:
        return "rgb.pal"
    if attribute is Attribute.INTENSITY:
        return "grey.pal"
    return "spectrum.pal"


def byte_order_label() -> str:
    return "LITTLE_ENDIAN" if sys.byteorder == "little" else "BIG_ENDIAN"


def build_header_lines(
    grid: "GridSpec",
    attribute: Attribute,
    nodata: float,
    metadata: Optional[List[str]] = None,
) -> List[str]:
    """Header lines of a Whitebox raster, in the order readers expect them."""
    fields = [
        ("Min", str(PLACEHOLDER_MIN)),
        ("Max", str(PLACEHOLDER_MAX)),
        ("North", str(float(grid.north))),
        ("South", str(float(grid.south))),
        ("East", str(float(grid.east))),
        ("West", str(float(grid.west))),
        ("Cols", str(int(grid.cols))),
        ("Rows", str(int(grid.rows))),
        ("Data Type", "float"),
        ("Z Units", NOT_SPECIFIED),
        ("XY Units", NOT_SPECIFIED),
        ("Projection", NOT_SPECIFIED),
        ("Data Scale", "rgb" if attribute is Attribute.RGB else "continuous"),
        ("Preferred Palette", preferred_palette(attribute)),
        ("NoData", str(float(nodata))),
        ("Byte Order", byte_order_label()),
    ]
    lines = [f"{key}:\t{value}" for key, value in fields]
    for entry in metadata or []:
        lines.append(f"Metadata Entry:\t{entry}")
    return lines


def read_header(header_path: str | Path) -> dict:
    """Parse a Whitebox header into a dict; metadata entries are collected in a list."""
    header = {"Metadata Entry": []}
    with Path(header_path).open("r", encoding="utf-8") as f:
        for line in f:
            key, sep, value = line.rstrip("\n").partition(":\t")
            if not sep:
                continue
            if key == "Metadata Entry":
                header[key].append(value)
            else:
                header[key] = value
    return header


def export_surface_to_whitebox(
    surface: np.ndarray,
    grid: "GridSpec",
    header_path: str | Path,
    *,
    attribute: Attribute = Attribute.ELEVATION,
    nodata: float = -32768.0,
    created: Optional[datetime] = None,
) -> Path:
    """
    Write a surface as a Whitebox raster.

    The body holds the row-major grid as float64 in native byte order.
    Existing output with the same name is replaced.

    Args:
        surface: (rows, cols) array of cell values
        grid: Grid the surface was computed on
        header_path: Path of the ``.dep`` header; the body goes next to it
        attribute: Interpolated attribute, selects data scale and palette
        nodata: NoData value written to the header
        created: Creation timestamp for the metadata entry (default: now)

    Returns:
        Path to the header file
    """
    header_path = Path(header_path)
    surface = np.asarray(surface, dtype=np.float64)
    if surface.shape != (grid.rows, grid.cols):
        raise ValueError(f"surface must be {(grid.rows, grid.cols)}, got {surface.shape}")

    header_path.parent.mkdir(parents=True, exist_ok=True)
    remove_existing_output(header_path)

    created = created or datetime.now()
    metadata = [
        f"Created by the {TOOL_DESCRIPTIVE_NAME} tool.",
        f"Created on {created.strftime('%a %b %d %H:%M:%S %Y')}",
    ]
    lines = build_header_lines(grid, attribute, nodata, metadata)
    header_path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    np.ascontiguousarray(surface).tofile(data_path_for(header_path))

    logger.info(f"Exported surface ({grid.cols}x{grid.rows}) to {header_path}")
    return header_path


def read_whitebox_surface(header_path: str | Path) -> np.ndarray:
    """Read the grid body of a Whitebox raster written by this module."""
    header = read_header(header_path)
    rows, cols = int(header["Rows"]), int(header["Cols"])
    dtype = np.dtype("<f8" if header["Byte Order"] == "LITTLE_ENDIAN" else ">f8")
    data = np.fromfile(data_path_for(header_path), dtype=dtype)
    return data.reshape(rows, cols)


def detect_crs_from_laz(laz_path: str) -> Optional[str]:
    """
    Attempt to detect CRS from a LAZ/LAS file.

    Reads the file header and looks for a WKT VLR to extract the
    coordinate reference system.

    Args:
        laz_path: Path to LAZ/LAS file

    Returns:
        EPSG string (e.g., "EPSG:25833") if found, None otherwise
    """
    try:
        import laspy

        with laspy.open(laz_path) as reader:
            for vlr in reader.header.vlrs:
                # WKT VLR has record_id 2112 and user_id "LASF_Projection"
                if vlr.user_id == "LASF_Projection" and vlr.record_id == 2112:
                    wkt = vlr.record_data.decode("utf-8", errors="ignore").strip("\x00")
                    epsg = _extract_epsg_from_wkt(wkt)
                    if epsg:
                        return epsg

    except Exception as e:
        logger.debug(f"Could not detect CRS from {laz_path}: {e}")

    return None


def _extract_epsg_from_wkt(wkt: str) -> Optional[str]:
    """Extract EPSG code from WKT string."""
    # Look for AUTHORITY["EPSG","25833"] or similar patterns
    matches = re.findall(r'AUTHORITY\s*\[\s*"EPSG"\s*,\s*"(\d+)"\s*\]', wkt, re.IGNORECASE)
    if matches:
        # The last authority of a WKT1 string belongs to the whole CRS
        return f"EPSG:{matches[-1]}"

    # Look for ID["EPSG",25833] (WKT2 format)
    matches = re.findall(r'ID\s*\[\s*"EPSG"\s*,\s*(\d+)\s*\]', wkt, re.IGNORECASE)
    if matches:
        return f"EPSG:{matches[-1]}"

    return None


def export_surface_to_geotiff(
    surface: np.ndarray,
    grid: "GridSpec",
    output_path: str | Path,
    *,
    crs: Optional[str] = None,
    nodata: float = -32768.0,
) -> Path:
    """
    Export a surface to a GeoTIFF file.

    Args:
        surface: (rows, cols) array, row 0 north
        grid: Grid the surface was computed on
        output_path: Path for output GeoTIFF file
        crs: Coordinate reference system, written only when known
        nodata: NoData value for missing cells

    Returns:
        Path to created file
    """
    import rasterio
    from rasterio.transform import from_bounds

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    data = np.asarray(surface, dtype=np.float64)
    transform = from_bounds(grid.west, grid.south, grid.east, grid.north, grid.cols, grid.rows)

    with rasterio.open(
        str(output_path),
        "w",
        driver="GTiff",
        height=grid.rows,
        width=grid.cols,
        count=1,
        dtype=data.dtype,
        crs=crs,
        transform=transform,
        nodata=nodata,
        compress="lzw",
    ) as dst:
        dst.write(data, 1)

    logger.info(f"Exported GeoTIFF ({grid.cols}x{grid.rows}) to {output_path}")
    return output_path
