"""
Drawing cleanup before face extraction

Hand-drawn strokes rarely meet exactly. These helpers merge nearby
endpoints, join strokes that continue each other in a straight line and
drop repeated strokes so the planar subdivision is clean.
"""

from dataclasses import replace
from typing import List, Optional, Sequence, Tuple, TypeVar

from loguru import logger

from .geometry_utils import GeometryUtils
from .utils import Metric, SPHERICAL, vertex_key

S = TypeVar("S")  # any frozen segment dataclass with `id` and `coordinates`


def snap_endpoints(
    segments: Sequence[S],
    tolerance_m: float,
    metric: Metric = SPHERICAL
) -> List[S]:
    """
    Merge segment endpoints lying within tolerance_m of each other

    Endpoints are clustered greedily in input order; every member of a
    cluster is moved to the cluster mean. Interior polyline points are
    left untouched.
    """
    if tolerance_m <= 0 or not segments:
        return list(segments)

    # (segment index, 0 for start / -1 for end)
    clusters: List[List[Tuple[int, int]]] = []
    anchors: List[Tuple[float, float]] = []

    for seg_idx, seg in enumerate(segments):
        for end_idx in (0, -1):
            point = seg.coordinates[end_idx]
            for cluster_idx, anchor in enumerate(anchors):
                if metric.segment_length(anchor, point) < tolerance_m:
                    clusters[cluster_idx].append((seg_idx, end_idx))
                    break
            else:
                anchors.append(point)
                clusters.append([(seg_idx, end_idx)])

    snapped = [list(seg.coordinates) for seg in segments]
    moved = 0
    for members in clusters:
        if len(members) < 2:
            continue
        points = [segments[s].coordinates[e] for s, e in members]
        mean = (
            sum(p[0] for p in points) / len(points),
            sum(p[1] for p in points) / len(points)
        )
        for seg_idx, end_idx in members:
            if snapped[seg_idx][end_idx] != mean:
                moved += 1
            snapped[seg_idx][end_idx] = mean

    if moved:
        logger.debug(f"Snapped {moved} endpoints within {tolerance_m}m")

    return [
        replace(seg, coordinates=tuple(coords))
        for seg, coords in zip(segments, snapped)
    ]


def remove_duplicate_segments(
    segments: Sequence[S],
    precision: int = 8
) -> List[S]:
    """Drop strokes that repeat an earlier stroke (either direction)"""
    seen = set()
    unique = []

    for seg in segments:
        keys = tuple(vertex_key(c, precision) for c in seg.coordinates)
        signature = min(keys, tuple(reversed(keys)))
        if signature in seen:
            logger.debug(f"Dropping duplicate segment {seg.id}")
            continue
        seen.add(signature)
        unique.append(seg)

    return unique


def merge_collinear_segments(
    segments: Sequence[S],
    tolerance_m: float = 0.5,
    angle_tolerance_deg: float = 10.0,
    metric: Metric = SPHERICAL
) -> List[S]:
    """
    Join strokes that continue each other in a straight line

    Two strokes are joined when one ends within tolerance_m of where the
    other starts (either stroke may be reversed), their directions at the
    join differ by less than angle_tolerance_deg, and no other stroke ends
    at that point. The join vertex is dropped, so a side drawn in pieces
    becomes a single edge. Junctions where three or more strokes meet are
    left alone.
    """
    merged = list(segments)
    if len(merged) < 2:
        return merged

    joins = 0
    changed = True
    while changed:
        changed = False
        for i in range(len(merged)):
            for j in range(i + 1, len(merged)):
                joined = _join_collinear(merged[i], merged[j], merged, tolerance_m, angle_tolerance_deg, metric)
                if joined is not None:
                    merged[i] = joined
                    del merged[j]
                    joins += 1
                    changed = True
                    break
            if changed:
                break

    if joins:
        logger.debug(f"Merged {joins} collinear stroke joins ({len(segments)} -> {len(merged)} segments)")

    return merged


def _join_collinear(
    first: S,
    second: S,
    segments: Sequence[S],
    tolerance_m: float,
    angle_tolerance_deg: float,
    metric: Metric
) -> Optional[S]:
    forward = list(first.coordinates)
    for a in (forward, forward[::-1]):
        for b in (list(second.coordinates), list(second.coordinates)[::-1]):
            joint = a[-1]
            if metric.segment_length(joint, b[0]) > tolerance_m:
                continue
            # Closing a loop would collapse it
            if metric.segment_length(a[0], b[-1]) <= tolerance_m:
                continue
            if _endpoint_count(joint, segments, tolerance_m, metric) != 2:
                continue
            if _turn_angle(a[-2], joint, b[0], b[1], metric) >= angle_tolerance_deg:
                continue
            return replace(
                first,
                id=f"{first.id}+{second.id}",
                coordinates=tuple(a[:-1] + b[1:])
            )
    return None


def _endpoint_count(point, segments: Sequence[S], tolerance_m: float, metric: Metric) -> int:
    return sum(
        1
        for seg in segments
        for end in (seg.coordinates[0], seg.coordinates[-1])
        if metric.segment_length(point, end) <= tolerance_m
    )


def _turn_angle(a_start, a_end, b_start, b_end, metric: Metric) -> float:
    """Change of heading (0-180 degrees) from leg a to leg b"""
    local = metric.to_local([a_start, a_end, b_start, b_end])
    heading_a = GeometryUtils.bearing(local[0], local[1])
    heading_b = GeometryUtils.bearing(local[2], local[3])
    diff = abs(heading_a - heading_b) % 360.0
    return 360.0 - diff if diff > 180.0 else diff
