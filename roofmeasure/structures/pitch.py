"""
Pitch-adjusted area calculations

Plan (top-down) area is converted to true surface area with the slope
factor 1 / cos(atan(rise / run)). One roofing square is 100 sq ft.
"""

import math
import re
from dataclasses import dataclass
from typing import List, Union

from ..exceptions import InvalidPitchError, InvalidMeasurementError

SQFT_PER_SQUARE = 100.0
STANDARD_RUN = 12.0

# Max rise/run accepted by parse_pitch unless overridden (36/12)
DEFAULT_MAX_SLOPE = 3.0

_PITCH_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(?:[/:]\s*(\d+(?:\.\d+)?))?\s*$")


@dataclass(frozen=True)
class PitchRatio:
    """Roof slope as rise over run (4/12 = 4 inches of rise per 12 of run)"""
    rise: float
    run: float = STANDARD_RUN

    def __post_init__(self):
        if not (math.isfinite(self.rise) and math.isfinite(self.run)):
            raise InvalidPitchError(f"Pitch must be finite, got {self.rise}/{self.run}")
        if self.run <= 0:
            raise InvalidPitchError(f"Pitch run must be positive, got {self.run}")
        if self.rise < 0:
            raise InvalidPitchError(f"Pitch rise must not be negative, got {self.rise}")

    @property
    def slope(self) -> float:
        return self.rise / self.run

    @property
    def angle_deg(self) -> float:
        return math.degrees(math.atan(self.slope))

    @property
    def factor(self) -> float:
        return pitch_factor(self)

    @property
    def label(self) -> str:
        return f"{self.rise:g}/{self.run:g}"

    def __str__(self) -> str:
        return self.label


FLAT = PitchRatio(0.0)

PITCH_PRESETS: List[str] = [
    "0/12", "1/12", "2/12", "3/12", "4/12", "5/12", "6/12",
    "7/12", "8/12", "9/12", "10/12", "12/12", "14/12", "16/12",
]


def parse_pitch(value: Union[str, PitchRatio, float, int], max_slope: float = DEFAULT_MAX_SLOPE) -> PitchRatio:
    """
    Parse "6/12", "6:12" or a bare rise "6" (over 12) into a PitchRatio

    Raises InvalidPitchError for malformed text or slopes outside [0, max_slope].
    """
    if isinstance(value, PitchRatio):
        pitch = value
    elif isinstance(value, bool):
        raise InvalidPitchError(f"Invalid pitch: {value!r}")
    elif isinstance(value, (int, float)):
        pitch = PitchRatio(float(value))
    elif isinstance(value, str):
        match = _PITCH_PATTERN.match(value)
        if not match:
            raise InvalidPitchError(f"Invalid pitch: {value!r} (expected e.g. '4/12')")
        rise = float(match.group(1))
        run = float(match.group(2)) if match.group(2) is not None else STANDARD_RUN
        pitch = PitchRatio(rise, run)
    else:
        raise InvalidPitchError(f"Invalid pitch type: {type(value).__name__}")

    if pitch.slope > max_slope:
        raise InvalidPitchError(
            f"Pitch {pitch.label} exceeds maximum slope {max_slope * STANDARD_RUN:g}/12"
        )

    return pitch


def pitch_factor(pitch: PitchRatio) -> float:
    """Surface/plan ratio: 1 / cos(atan(rise / run))"""
    return 1.0 / math.cos(math.atan(pitch.slope))


def _check_area(value: float, name: str) -> None:
    if not isinstance(value, (int, float)) or isinstance(value, bool) or not math.isfinite(value):
        raise InvalidMeasurementError(f"{name} must be a finite number, got {value!r}")
    if value < 0:
        raise InvalidMeasurementError(f"{name} must not be negative, got {value}")


def surface_area(plan_area_sqft: float, pitch: PitchRatio) -> float:
    """True sloped area for a plan area; flat roofs return the plan area"""
    _check_area(plan_area_sqft, "plan_area_sqft")
    if pitch.rise == 0:
        return float(plan_area_sqft)
    return plan_area_sqft * pitch_factor(pitch)


def plan_squares(plan_area_sqft: float) -> float:
    _check_area(plan_area_sqft, "plan_area_sqft")
    return plan_area_sqft / SQFT_PER_SQUARE


def surface_squares(surface_area_sqft: float) -> float:
    _check_area(surface_area_sqft, "surface_area_sqft")
    return surface_area_sqft / SQFT_PER_SQUARE
