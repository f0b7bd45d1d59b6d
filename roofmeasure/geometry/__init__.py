"""
Geometry helpers for roof measurement

- utils: geodesic area, perimeter and length (spherical, ellipsoidal, planar)
- GeometryUtils: local projection, bearings, oriented bounding rectangle
- cleanup: endpoint snapping, collinear joins and duplicate-segment removal
"""

from .utils import (
    Metric, SPHERICAL, ELLIPSOIDAL, PLANAR, get_metric,
    area, perimeter, segment_length, line_length, centroid,
    vertex_key, m_to_ft, sqm_to_sqft, FEET_PER_METER, SQFT_PER_SQM
)
from .geometry_utils import GeometryUtils
from .cleanup import snap_endpoints, merge_collinear_segments, remove_duplicate_segments

__all__ = [
    "Metric",
    "SPHERICAL",
    "ELLIPSOIDAL",
    "PLANAR",
    "get_metric",
    "area",
    "perimeter",
    "segment_length",
    "line_length",
    "centroid",
    "vertex_key",
    "m_to_ft",
    "sqm_to_sqft",
    "FEET_PER_METER",
    "SQFT_PER_SQM",
    "GeometryUtils",
    "snap_endpoints",
    "merge_collinear_segments",
    "remove_duplicate_segments",
]
