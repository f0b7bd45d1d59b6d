"""
Roof type detection from a perimeter outline
"""

from typing import Sequence, Tuple

from loguru import logger

from .models import RoofType
from ..geometry.geometry_utils import GeometryUtils
from ..geometry.utils import Metric, SPHERICAL, open_ring


def detect_roof_type(
    ring: Sequence[Sequence[float]],
    metric: Metric = SPHERICAL
) -> Tuple[RoofType, float]:
    """
    Guess the roof type of an outline from its corners

    Heuristic:
    - < 3 points: flat, confidence 0
    - 4 right-angle corners: gable if the outline is elongated
      (aspect > 1.5), else hip
    - 5 to 8 corners: hip
    - > 8 corners or mostly non-right angles: complex
    - otherwise gable

    Returns:
        (RoofType, confidence in [0, 1])
    """
    points = open_ring(ring)
    if len(points) < 3:
        return RoofType.FLAT, 0.0

    local = metric.to_local(points)
    angles = GeometryUtils.corner_angles(local)
    right_angles = sum(1 for a in angles if abs(a - 90) < 10)
    n = len(points)

    if n == 4 and right_angles == 4:
        rect = GeometryUtils.oriented_rectangle(local)
        aspect = rect["aspect_ratio"] if rect else 1.0
        if aspect > 1.5:
            result = (RoofType.GABLE, 0.85)
        else:
            result = (RoofType.HIP, 0.75)
    elif 5 <= n <= 8:
        result = (RoofType.HIP, 0.8)
    elif n > 8 or right_angles < n * 0.5:
        result = (RoofType.COMPLEX, 0.7)
    else:
        result = (RoofType.GABLE, 0.6)

    logger.debug(f"Roof type {result[0].value} ({result[1]:.0%}) from {n} corners, {right_angles} right angles")
    return result
