"""
Configuration settings for the roof measurement engine
"""

import copy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union
import os

from dotenv import load_dotenv
from loguru import logger

from .exceptions import ConfigurationError


@dataclass
class ExtractorConfig:
    """Planar face extraction thresholds"""
    # Decimal places used to build vertex keys
    vertex_precision: int = 8

    # Faces smaller than this are numerical noise (square meters)
    # Empirical, needs calibration against survey data
    min_face_area_sqm: float = 1.0

    # Maximum hops per traced face. None = number of input segments
    max_face_hops: Optional[int] = None

    # Drop segments with an unconnected endpoint before tracing
    prune_dangling_segments: bool = True

    # Merge endpoints closer than this (meters). 0 disables snapping
    snap_tolerance_m: float = 0.0

    # Join strokes that continue each other in a straight line
    merge_collinear_segments: bool = False
    merge_tolerance_m: float = 0.5
    merge_angle_tolerance_deg: float = 10.0


@dataclass
class ClassifierConfig:
    """Edge classification heuristics"""
    # Half-width of the ambiguous band around 45 degrees (labelled "wall")
    ambiguity_band_deg: float = 5.0

    # Below this long/short ratio the bounding rectangle has no usable long axis
    square_aspect_tolerance: float = 1.05

    # Label every perimeter edge of a hip roof as eave
    use_roof_type: bool = False

    # Add a ridge (gable) or hip lines (hip) derived from the outline
    infer_ridge_lines: bool = False


@dataclass
class PitchConfig:
    """Roof pitch defaults and limits"""
    default_pitch: str = "4/12"

    # Steepest accepted rise/run (3.0 == 36/12)
    max_slope: float = 3.0


@dataclass
class ValidationConfig:
    """Plausibility limits for detected roof polygons"""
    min_area_sqft: float = 120.0
    max_area_sqft: float = 50000.0
    max_vertices: int = 50
    max_aspect_ratio: float = 10.0


@dataclass
class MeasurementConfig:
    """Top-level configuration"""
    # Distance/area model: "spherical", "ellipsoidal" or "planar"
    metric: str = "spherical"

    extractor: ExtractorConfig = field(default_factory=ExtractorConfig)
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    pitch: PitchConfig = field(default_factory=PitchConfig)
    validation: ValidationConfig = field(default_factory=ValidationConfig)


# Global config instance
config = MeasurementConfig()


def get_config() -> MeasurementConfig:
    """Get global configuration"""
    return config


ENV_PREFIX = "ROOFMEASURE_"


def load_env_overrides(
    cfg: Optional[MeasurementConfig] = None,
    env_file: Optional[Union[str, Path]] = None
) -> MeasurementConfig:
    """
    Apply ROOFMEASURE_* environment variables (and an optional .env file)
    on top of a copy of a configuration.

    Recognised variables:
        ROOFMEASURE_METRIC, ROOFMEASURE_MIN_FACE_AREA_SQM,
        ROOFMEASURE_MAX_FACE_HOPS, ROOFMEASURE_VERTEX_PRECISION,
        ROOFMEASURE_SNAP_TOLERANCE_M, ROOFMEASURE_MERGE_COLLINEAR,
        ROOFMEASURE_INFER_RIDGE_LINES, ROOFMEASURE_DEFAULT_PITCH

    The passed (or global) configuration is never modified.
    """
    cfg = copy.deepcopy(cfg or get_config())

    if env_file is not None:
        load_dotenv(env_file, override=False)  # Don't override existing env vars
        logger.debug(f"Loaded .env file from {env_file}")
    else:
        load_dotenv()

    def _get(name: str) -> Optional[str]:
        value = os.getenv(ENV_PREFIX + name)
        return value if value not in (None, "") else None

    try:
        if _get("METRIC"):
            cfg.metric = _get("METRIC").strip().lower()
        if _get("MIN_FACE_AREA_SQM"):
            cfg.extractor.min_face_area_sqm = float(_get("MIN_FACE_AREA_SQM"))
        if _get("MAX_FACE_HOPS"):
            cfg.extractor.max_face_hops = int(_get("MAX_FACE_HOPS"))
        if _get("VERTEX_PRECISION"):
            cfg.extractor.vertex_precision = int(_get("VERTEX_PRECISION"))
        if _get("SNAP_TOLERANCE_M"):
            cfg.extractor.snap_tolerance_m = float(_get("SNAP_TOLERANCE_M"))
        if _get("MERGE_COLLINEAR"):
            cfg.extractor.merge_collinear_segments = _parse_bool(_get("MERGE_COLLINEAR"))
        if _get("INFER_RIDGE_LINES"):
            cfg.classifier.infer_ridge_lines = _parse_bool(_get("INFER_RIDGE_LINES"))
        if _get("DEFAULT_PITCH"):
            cfg.pitch.default_pitch = _get("DEFAULT_PITCH").strip()
    except ValueError as e:
        raise ConfigurationError(f"Invalid {ENV_PREFIX}* environment value: {e}") from e

    validate_config(cfg)
    return cfg


def _parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("1", "true", "yes", "on"):
        return True
    if lowered in ("0", "false", "no", "off"):
        return False
    raise ValueError(f"expected a boolean, got {value!r}")


def validate_config(config: MeasurementConfig) -> None:
    """
    Validate that all configuration values are usable.
    Raises ConfigurationError listing every problem found.
    """
    errors = []

    if config.metric not in ("spherical", "ellipsoidal", "planar"):
        errors.append(f"metric must be spherical, ellipsoidal or planar, got {config.metric!r}")

    ext = config.extractor
    if not 0 <= ext.vertex_precision <= 12:
        errors.append(f"extractor.vertex_precision must be between 0 and 12, got {ext.vertex_precision}")
    if ext.min_face_area_sqm < 0:
        errors.append(f"extractor.min_face_area_sqm must not be negative, got {ext.min_face_area_sqm}")
    if ext.max_face_hops is not None and ext.max_face_hops < 3:
        errors.append(f"extractor.max_face_hops must be at least 3, got {ext.max_face_hops}")
    if ext.snap_tolerance_m < 0:
        errors.append(f"extractor.snap_tolerance_m must not be negative, got {ext.snap_tolerance_m}")
    if ext.merge_tolerance_m < 0:
        errors.append(f"extractor.merge_tolerance_m must not be negative, got {ext.merge_tolerance_m}")
    if not 0 <= ext.merge_angle_tolerance_deg < 90:
        errors.append(
            f"extractor.merge_angle_tolerance_deg must be in [0, 90), got {ext.merge_angle_tolerance_deg}"
        )

    cls = config.classifier
    if not 0 <= cls.ambiguity_band_deg < 45:
        errors.append(f"classifier.ambiguity_band_deg must be in [0, 45), got {cls.ambiguity_band_deg}")
    if cls.square_aspect_tolerance < 1.0:
        errors.append(f"classifier.square_aspect_tolerance must be >= 1.0, got {cls.square_aspect_tolerance}")

    if config.pitch.max_slope <= 0:
        errors.append(f"pitch.max_slope must be positive, got {config.pitch.max_slope}")

    val = config.validation
    if val.min_area_sqft < 0 or val.max_area_sqft <= val.min_area_sqft:
        errors.append(
            f"validation area range is invalid: {val.min_area_sqft} - {val.max_area_sqft} sq ft"
        )
    if val.max_vertices < 3:
        errors.append(f"validation.max_vertices must be at least 3, got {val.max_vertices}")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigurationError(error_msg)
