"""
Command line entry point for IDW interpolation of LiDAR files.

Settings come from a YAML configuration (config/default.yaml unless
--config is given); command line options override it.
"""

import argparse
import logging
import sys
from typing import List, Optional

from .acceleration.progress import LoggingHost
from .interpolation.pipeline import IDWInterpolator
from .utils.config import (
    AppConfig,
    ClassExclusionConfig,
    ConfigurationError,
    build_run_config,
    load_config,
)
from .utils.logging import set_package_level, setup_logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lidar-idw",
        description="Interpolate LiDAR point files into rasters by inverse distance weighting",
    )
    parser.add_argument("files", nargs="+", help="Input LAS/LAZ files (';'-separated lists are accepted)")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to YAML configuration file (defaults to config/default.yaml)",
    )
    parser.add_argument("--suffix", type=str, default=None, help="Appended to each output file name")
    parser.add_argument(
        "--attribute",
        type=str,
        default=None,
        help="Attribute to interpolate: elevation, intensity, classification, 'scan angle' or rgb",
    )
    parser.add_argument(
        "--returns",
        type=str,
        default=None,
        help="Return-number policy: 'all points', 'first return' or 'last return'",
    )
    parser.add_argument("--weight", type=float, default=None, help="Inverse-distance weight exponent")
    parser.add_argument(
        "--max-distance",
        type=str,
        default=None,
        help="Search cutoff in map units, or 'not specified' for none",
    )
    parser.add_argument("--neighbors", type=int, default=None, help="Number of nearest points per cell")
    parser.add_argument("--resolution", type=float, default=None, help="Output cell size")
    parser.add_argument(
        "--exclude",
        nargs="*",
        default=None,
        choices=ClassExclusionConfig.flag_names(),
        help="Point classes to leave out; replaces the configured exclusion set",
    )
    parser.add_argument("--workers", type=int, default=None, help="Worker threads (default: CPU count)")
    parser.add_argument("--geotiff", action="store_true", help="Also write a GeoTIFF per surface")
    return parser


def apply_overrides(cfg: AppConfig, args: argparse.Namespace) -> AppConfig:
    """Return a copy of the configuration with command line values applied."""
    values = cfg.interpolation.model_dump()
    overrides = {
        "suffix": args.suffix,
        "attribute": args.attribute,
        "return_policy": args.returns,
        "weight": args.weight,
        "max_distance": args.max_distance,
        "n_neighbors": args.neighbors,
        "resolution": args.resolution,
    }
    values.update({k: v for k, v in overrides.items() if v is not None})
    if args.exclude is not None:
        values["exclude"] = {name: True for name in args.exclude}

    updates = {"interpolation": build_run_config(**values)}
    if args.workers is not None:
        updates["parallel"] = cfg.parallel.model_copy(update={"n_workers": max(1, args.workers)})
    if args.geotiff:
        updates["output"] = cfg.output.model_copy(update={"write_geotiff": True})
    return cfg.model_copy(update=updates)


def split_files(entries: List[str]) -> List[str]:
    files = []
    for entry in entries:
        files.extend(f.strip() for f in entry.split(";") if f.strip())
    return files


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        cfg = apply_overrides(load_config(args.config), args)
    except (ConfigurationError, FileNotFoundError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    log_level = getattr(logging, cfg.logging.level.upper(), logging.INFO)
    logger = setup_logger(__name__, level=log_level, log_file=cfg.logging.file)
    set_package_level(log_level)

    interpolator = IDWInterpolator.from_app_config(cfg, LoggingHost(logger))
    summary = interpolator.run(split_files(args.files))

    for result in summary.results:
        if result.ok:
            logger.info(f"{result.input_path} -> {result.output_path}")
        elif result.cancelled:
            logger.warning(f"{result.input_path}: cancelled")
        else:
            logger.error(f"{result.input_path}: {result.error}")

    return 0 if summary.ok else 1


if __name__ == "__main__":
    sys.exit(main())
