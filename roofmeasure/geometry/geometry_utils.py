"""
Geometry utilities for coordinate transformations and roof outline analysis
"""

import math
from typing import List, Tuple, Dict, Any, Optional, Sequence

from shapely.geometry import Polygon

from .utils import Metric, SPHERICAL, open_ring, M_PER_DEG, sqm_to_sqft


class GeometryUtils:
    """Utility functions for geometric operations"""

    @staticmethod
    def local_to_degrees(
        local_coords: Sequence[Sequence[float]],
        ref_lon: float,
        ref_lat: float
    ) -> List[Tuple[float, float]]:
        """
        Convert local [x, y] meters to [lon, lat] degrees
        """
        m_per_deg_lon = M_PER_DEG * math.cos(math.radians(ref_lat))

        return [
            (ref_lon + x / m_per_deg_lon, ref_lat + y / M_PER_DEG)
            for x, y in local_coords
        ]

    @staticmethod
    def bearing(start: Sequence[float], end: Sequence[float]) -> float:
        """Compass bearing in local coords (0 = north, 90 = east)"""
        dx = end[0] - start[0]
        dy = end[1] - start[1]
        if dx == 0 and dy == 0:
            return 0.0
        angle = math.degrees(math.atan2(dx, dy))
        if angle < 0:
            angle += 360
        return angle

    @staticmethod
    def get_polygon_edges(
        coords: Sequence[Sequence[float]]
    ) -> List[Dict[str, Any]]:
        """
        Get edges of polygon with their properties

        Returns list of edges with start, end, length, and direction
        (local coordinates in, local lengths out)
        """
        points = open_ring(coords)
        if len(points) < 2:
            return []

        edges = []
        n = len(points)

        for i in range(n):
            start = points[i]
            end = points[(i + 1) % n]

            length = math.hypot(end[0] - start[0], end[1] - start[1])
            angle = GeometryUtils.bearing(start, end)

            edges.append({
                "index": i,
                "start": start,
                "end": end,
                "length_m": length,
                "bearing": angle,
                "direction": GeometryUtils._angle_to_direction(angle)
            })

        return edges

    @staticmethod
    def _angle_to_direction(angle: float) -> str:
        """Convert bearing angle to cardinal direction"""
        if angle < 22.5 or angle >= 337.5:
            return "north"
        elif angle < 67.5:
            return "northeast"
        elif angle < 112.5:
            return "east"
        elif angle < 157.5:
            return "southeast"
        elif angle < 202.5:
            return "south"
        elif angle < 247.5:
            return "southwest"
        elif angle < 292.5:
            return "west"
        else:
            return "northwest"

    @staticmethod
    def axis_difference(bearing_a: float, bearing_b: float) -> float:
        """Angle between two undirected lines, folded into [0, 90]"""
        diff = abs(bearing_a - bearing_b) % 180.0
        return 180.0 - diff if diff > 90.0 else diff

    @staticmethod
    def oriented_rectangle(
        local_coords: Sequence[Sequence[float]]
    ) -> Optional[Dict[str, Any]]:
        """
        Minimum-area rotated bounding rectangle of a local ring

        Returns corners, long axis bearing (0-180), long/short side lengths
        and aspect ratio, or None for degenerate input.
        """
        points = open_ring(local_coords)
        if len(points) < 3:
            return None

        rect = Polygon(points).minimum_rotated_rectangle
        if rect.geom_type != "Polygon" or rect.area <= 0:
            return None

        corners = list(rect.exterior.coords)[:4]
        side_a = math.hypot(corners[1][0] - corners[0][0], corners[1][1] - corners[0][1])
        side_b = math.hypot(corners[2][0] - corners[1][0], corners[2][1] - corners[1][1])

        if side_a >= side_b:
            long_start, long_end = corners[0], corners[1]
        else:
            long_start, long_end = corners[1], corners[2]

        long_side = max(side_a, side_b)
        short_side = min(side_a, side_b)

        return {
            "corners": corners,
            "axis_bearing": GeometryUtils.bearing(long_start, long_end) % 180.0,
            "length_m": long_side,
            "width_m": short_side,
            "aspect_ratio": long_side / short_side if short_side > 0 else float("inf")
        }

    @staticmethod
    def corner_angles(local_coords: Sequence[Sequence[float]]) -> List[float]:
        """Interior angle (0-180 degrees) at every vertex of a local ring"""
        points = open_ring(local_coords)
        n = len(points)
        angles = []

        for i in range(n):
            prev = points[(i - 1) % n]
            curr = points[i]
            nxt = points[(i + 1) % n]

            v1 = (prev[0] - curr[0], prev[1] - curr[1])
            v2 = (nxt[0] - curr[0], nxt[1] - curr[1])
            mag1 = math.hypot(*v1)
            mag2 = math.hypot(*v2)

            if mag1 == 0 or mag2 == 0:
                angles.append(0.0)
                continue

            cos_angle = (v1[0] * v2[0] + v1[1] * v2[1]) / (mag1 * mag2)
            angles.append(math.degrees(math.acos(max(-1.0, min(1.0, cos_angle)))))

        return angles

    @staticmethod
    def validate_roof_polygon(
        ring: Sequence[Sequence[float]],
        metric: Metric = SPHERICAL,
        min_area_sqft: float = 120.0,
        max_area_sqft: float = 50000.0,
        max_vertices: int = 50,
        max_aspect_ratio: float = 10.0
    ) -> Tuple[bool, Optional[str]]:
        """
        Check that a polygon is plausible as a roof outline

        Returns (valid, reason); reason is None when valid.
        """
        points = open_ring(ring)

        if len(points) < 3:
            return False, "Polygon must have at least 3 vertices"

        if len(points) > max_vertices:
            return False, f"Polygon has too many vertices (max {max_vertices})"

        area_sqft = sqm_to_sqft(metric.area(points))
        if area_sqft < min_area_sqft:
            return False, f"Area too small: {round(area_sqft)} sq ft (minimum {min_area_sqft:g})"
        if area_sqft > max_area_sqft:
            return False, f"Area too large: {round(area_sqft)} sq ft (maximum {max_area_sqft:g})"

        local = metric.to_local(points)
        xs = [p[0] for p in local]
        ys = [p[1] for p in local]
        width = max(xs) - min(xs)
        height = max(ys) - min(ys)

        if min(width, height) <= 0 or max(width, height) / min(width, height) > max_aspect_ratio:
            return False, "Polygon aspect ratio too extreme"

        return True, None
