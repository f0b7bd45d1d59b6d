"""
Interior roof lines inferred from an outline

Without hand-drawn ridge lines a property reports no ridge or hip
footage. For simple outlines the lines can be estimated:

- gable: one ridge along the long axis, between the midpoints of the
  short sides of the minimum bounding rectangle
- hip: one hip line from the centroid to every real corner

Every line is clipped to the outline.
"""

import math
from typing import List, Optional, Sequence, Tuple

from loguru import logger
from shapely.geometry import LineString, Polygon

from .models import EdgeClass, RidgeLine, RoofType
from ..geometry.geometry_utils import GeometryUtils
from ..geometry.utils import Metric, SPHERICAL, open_ring

# Corners flatter than this (interior angle, degrees) are not hip corners
HIP_CORNER_MAX_ANGLE = 150.0


def infer_roof_lines(
    ring: Sequence[Sequence[float]],
    roof_type: RoofType,
    metric: Metric = SPHERICAL,
    label: str = ""
) -> List[RidgeLine]:
    """
    Estimate the ridge or hip lines of a simple roof

    Args:
        ring: Outline in the metric's coordinates
        roof_type: Detected roof type; only gable and hip produce lines
        metric: Distance model for line lengths
        label: Prefix for line labels ("A" -> "A-ridge", "A-hip1", ...)

    Returns:
        Inferred RidgeLines (empty for flat/complex roofs or degenerate input)
    """
    points = open_ring(ring)
    if len(points) < 3:
        return []

    origin = (
        sum(p[0] for p in points) / len(points),
        sum(p[1] for p in points) / len(points)
    )
    local = metric.to_local(points, origin)
    outline = Polygon(local)
    if not outline.is_valid or outline.area <= 0:
        logger.debug(f"Structure {label}: outline not usable for roof line inference")
        return []

    if roof_type is RoofType.GABLE:
        pieces = [(f"{label}-ridge", EdgeClass.RIDGE, _gable_ridge(local, outline))]
    elif roof_type is RoofType.HIP:
        pieces = [
            (f"{label}-hip{i + 1}", EdgeClass.HIP, line)
            for i, line in enumerate(_hip_lines(local, outline))
        ]
    else:
        return []

    lines = []
    for line_label, line_class, local_line in pieces:
        if local_line is None:
            continue
        coords = _from_local(local_line, origin, metric)
        lines.append(RidgeLine(
            label=line_label,
            coordinates=coords,
            length_m=metric.line_length(coords),
            line_class=line_class,
            metadata={"inferred": True}
        ))

    logger.debug(f"Structure {label}: inferred {len(lines)} {roof_type.value} lines")
    return lines


def _gable_ridge(local: List[Tuple[float, float]], outline: Polygon) -> Optional[List[Tuple[float, float]]]:
    rect = GeometryUtils.oriented_rectangle(local)
    if rect is None:
        return None

    c = rect["corners"]
    side_a = math.hypot(c[1][0] - c[0][0], c[1][1] - c[0][1])
    side_b = math.hypot(c[2][0] - c[1][0], c[2][1] - c[1][1])

    # Short sides are opposite each other
    if side_a <= side_b:
        ends = ((c[0], c[1]), (c[2], c[3]))
    else:
        ends = ((c[1], c[2]), (c[3], c[0]))

    start, end = [((p[0] + q[0]) / 2, (p[1] + q[1]) / 2) for p, q in ends]
    return _clip(LineString([start, end]), outline)


def _hip_lines(local: List[Tuple[float, float]], outline: Polygon) -> List[List[Tuple[float, float]]]:
    center = outline.centroid
    angles = GeometryUtils.corner_angles(local)

    lines = []
    for corner, angle in zip(local, angles):
        if angle >= HIP_CORNER_MAX_ANGLE:
            continue
        clipped = _clip(LineString([(center.x, center.y), corner]), outline)
        if clipped is not None:
            lines.append(clipped)
    return lines


def _clip(line: LineString, outline: Polygon) -> Optional[List[Tuple[float, float]]]:
    """Longest piece of a line inside the outline"""
    inside = line.intersection(outline)
    if inside.is_empty:
        return None

    if inside.geom_type == "LineString":
        parts = [inside]
    else:
        parts = [g for g in getattr(inside, "geoms", []) if g.geom_type == "LineString"]
    if not parts:
        return None

    longest = max(parts, key=lambda g: g.length)
    if longest.length <= 0:
        return None
    return [(x, y) for x, y in longest.coords]


def _from_local(
    coords: List[Tuple[float, float]],
    origin: Tuple[float, float],
    metric: Metric
) -> List[Tuple[float, float]]:
    if not metric.geographic:
        return coords
    return GeometryUtils.local_to_degrees(coords, origin[0], origin[1])
