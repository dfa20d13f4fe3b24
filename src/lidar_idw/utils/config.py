"""
Configuration management for lidar-idw.

Provides typed pydantic models for a run, the host argument-vector parser
and a YAML loader with sensible defaults.
"""

from __future__ import annotations

import math
from enum import Enum
from pathlib import Path
from typing import Optional, Literal, List, Any, Dict, Sequence, Tuple

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
import yaml


# Classification codes addressed by the exclusion table. There can be up to
# 32 classes in the LAS format, the first ten are named.
NUM_CLASSIFICATION_CODES = 32

NOT_SPECIFIED = "not specified"


class ConfigurationError(ValueError):
    """Raised when run parameters are missing or invalid."""


class Attribute(str, Enum):
    """Point attribute that is interpolated onto the grid."""

    ELEVATION = "elevation"
    INTENSITY = "intensity"
    CLASSIFICATION = "classification"
    SCAN_ANGLE = "scan angle"
    RGB = "rgb"

    @classmethod
    def parse(cls, value: Any) -> "Attribute":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        aliases = {
            "z": cls.ELEVATION,
            "z (elevation)": cls.ELEVATION,
            "elevation": cls.ELEVATION,
            "intensity": cls.INTENSITY,
            "classification": cls.CLASSIFICATION,
            "class": cls.CLASSIFICATION,
            "scan angle": cls.SCAN_ANGLE,
            "scan_angle": cls.SCAN_ANGLE,
            "rgb": cls.RGB,
            "rgb data": cls.RGB,
        }
        try:
            return aliases[key]
        except KeyError:
            raise ConfigurationError(f"Unknown attribute to interpolate: {value!r}") from None


class ReturnPolicy(str, Enum):
    """Which returns of a pulse take part in the interpolation."""

    ALL = "all points"
    FIRST = "first return"
    LAST = "last return"

    @classmethod
    def parse(cls, value: Any) -> "ReturnPolicy":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        aliases = {
            "all": cls.ALL,
            "all points": cls.ALL,
            "first": cls.FIRST,
            "first return": cls.FIRST,
            "last": cls.LAST,
            "last return": cls.LAST,
        }
        try:
            return aliases[key]
        except KeyError:
            raise ConfigurationError(f"Unknown return-number policy: {value!r}") from None


# -----------------------
# Typed config structures
# -----------------------


class ClassExclusionConfig(BaseModel):
    """Named exclusion flags; the field order maps to classification codes 0-9."""

    model_config = ConfigDict(frozen=True)

    never_classified: bool = Field(default=False)
    unclassified: bool = Field(default=False)
    ground: bool = Field(default=False)
    low_vegetation: bool = Field(default=False)
    medium_vegetation: bool = Field(default=False)
    high_vegetation: bool = Field(default=False)
    building: bool = Field(default=False)
    low_point: bool = Field(default=False)
    model_key_point: bool = Field(default=False)
    water: bool = Field(default=False)

    @classmethod
    def flag_names(cls) -> List[str]:
        return list(cls.model_fields)

    def excluded_codes(self) -> List[int]:
        return [code for code, name in enumerate(self.flag_names()) if getattr(self, name)]

    def table(self) -> np.ndarray:
        """Fixed-size lookup table indexed by classification code."""
        table = np.zeros(NUM_CLASSIFICATION_CODES, dtype=bool)
        table[self.excluded_codes()] = True
        return table


class RunConfig(BaseModel):
    """Parameters shared read-only by every file task of a run."""

    model_config = ConfigDict(frozen=True)

    suffix: str = Field(default="IDW", description="Appended to the input file name of each output")
    attribute: Attribute = Field(default=Attribute.ELEVATION)
    return_policy: ReturnPolicy = Field(default=ReturnPolicy.ALL)
    weight: float = Field(default=2.0, ge=0.0, description="Inverse-distance weight exponent")
    max_distance: Optional[float] = Field(
        default=None,
        gt=0.0,
        description="Search cutoff in map units (None = no cutoff)",
    )
    n_neighbors: int = Field(default=8, ge=1, description="Number of nearest points used per cell")
    resolution: float = Field(default=1.0, gt=0.0, description="Output cell size in map units")
    exclude: ClassExclusionConfig = Field(default_factory=ClassExclusionConfig)

    @field_validator("attribute", mode="before")
    @classmethod
    def _parse_attribute(cls, value: Any) -> Attribute:
        return Attribute.parse(value)

    @field_validator("return_policy", mode="before")
    @classmethod
    def _parse_return_policy(cls, value: Any) -> ReturnPolicy:
        return ReturnPolicy.parse(value)

    @field_validator("max_distance", mode="before")
    @classmethod
    def _parse_max_distance(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().lower() == NOT_SPECIFIED:
            return None
        return value

    @field_validator("suffix")
    @classmethod
    def _strip_suffix(cls, value: str) -> str:
        return value.strip()

    @property
    def max_distance_sq(self) -> float:
        """Squared search cutoff; infinity when no cutoff is configured."""
        if self.max_distance is None:
            return math.inf
        return self.max_distance * self.max_distance

    @property
    def exclusion_table(self) -> np.ndarray:
        return self.exclude.table()


class ParallelConfig(BaseModel):
    n_workers: Optional[int] = Field(
        default=None,
        ge=1,
        description="Number of worker threads (None = auto-detect: cpu_count)",
    )


class OutputConfig(BaseModel):
    write_geotiff: bool = Field(default=False, description="Also write each surface as a GeoTIFF")
    crs: Optional[str] = Field(
        default=None,
        description="CRS for GeoTIFF output (None = detect from the LAS header)",
    )


class LoggingConfig(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")
    file: Optional[str] = Field(default=None)


class AppConfig(BaseModel):
    interpolation: RunConfig = Field(default_factory=RunConfig)
    parallel: ParallelConfig = Field(default_factory=ParallelConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# -----------------------
# Host argument vector
# -----------------------


def _parse_bool(text: str) -> bool:
    return text.strip().lower() == "true"


def parse_host_args(args: Sequence[str]) -> Tuple[List[str], RunConfig]:
    """
    Parse the argument vector handed over by the host application.

    Layout: ``[files, suffix, attribute, return policy, weight, max distance,
    neighbours, resolution, <10 exclusion flags>]`` where ``files`` is a
    semicolon-delimited list and ``max distance`` may be "not specified".
    Missing trailing exclusion flags default to False.

    Returns:
        Tuple of (input file paths, RunConfig)

    Raises:
        ConfigurationError: If a required value is missing or unparsable
    """
    if not args:
        raise ConfigurationError("Plugin parameters have not been set.")
    if len(args) < 8:
        raise ConfigurationError(
            f"Expected at least 8 parameters, got {len(args)}."
        )

    files = [f.strip() for f in args[0].split(";") if f.strip()]
    if not files:
        raise ConfigurationError("One or more of the input parameters have not been set properly.")

    flag_names = ClassExclusionConfig.flag_names()
    flags = {
        name: _parse_bool(value)
        for name, value in zip(flag_names, args[8:8 + len(flag_names)])
    }

    try:
        weight = float(args[4])
        max_distance = None if args[5].strip().lower() == NOT_SPECIFIED else float(args[5])
        n_neighbors = int(args[6])
        resolution = float(args[7])
    except ValueError as e:
        raise ConfigurationError(f"Unparsable numeric parameter: {e}") from e

    config = build_run_config(
        suffix=args[1],
        attribute=args[2],
        return_policy=args[3],
        weight=weight,
        max_distance=max_distance,
        n_neighbors=n_neighbors,
        resolution=resolution,
        exclude=flags,
    )
    return files, config


def build_run_config(**values: Any) -> RunConfig:
    """Validate keyword values into a RunConfig, raising ConfigurationError."""
    try:
        return RunConfig.model_validate(values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid run parameters: {e}") from e


# -----------------------
# Loader
# -----------------------


def _project_root() -> Path:
    """
    Resolve the repository root directory.

    File is at: repo_root/src/lidar_idw/utils/config.py
    """
    return Path(__file__).resolve().parents[3]


def load_config(path: Optional[str | Path] = None, *, allow_missing: bool = True) -> AppConfig:
    """
    Load configuration from YAML into a typed AppConfig.

    Search order when path is None:
    1) repo_root/config/default.yaml
    2) if missing and allow_missing=True: return default AppConfig()

    Args:
        path: Explicit YAML file path.
        allow_missing: If True, returns defaults when file missing; otherwise raises.

    Returns:
        AppConfig instance
    """
    cfg_path: Path
    if path is None:
        cfg_path = _project_root() / "config" / "default.yaml"
    else:
        cfg_path = Path(path)

    if not cfg_path.exists():
        if allow_missing:
            return AppConfig()
        raise FileNotFoundError(f"Config file not found: {cfg_path}")

    with cfg_path.open("r", encoding="utf-8") as f:
        raw: Dict[str, Any] = yaml.safe_load(f) or {}

    try:
        return AppConfig.model_validate(raw)
    except ValidationError as e:
        # Re-raise with context to help users fix the YAML
        raise ConfigurationError(f"Invalid configuration in {cfg_path}: {e}") from e
