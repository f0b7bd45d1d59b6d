"""
Roof measurement engine

Drawn line segments -> closed roof faces -> labelled structures ->
pitch-adjusted property take-off.
"""

from .config import MeasurementConfig, config, get_config, load_env_overrides, validate_config
from .exceptions import (
    RoofMeasureError, InvalidGeometryError, InvalidPitchError,
    InvalidMeasurementError, ConfigurationError, StructureNotFoundError
)
from .pipeline import RoofMeasurementPipeline

__version__ = "0.1.0"

__all__ = [
    "MeasurementConfig",
    "config",
    "get_config",
    "load_env_overrides",
    "validate_config",
    "RoofMeasureError",
    "InvalidGeometryError",
    "InvalidPitchError",
    "InvalidMeasurementError",
    "ConfigurationError",
    "StructureNotFoundError",
    "RoofMeasurementPipeline",
]
