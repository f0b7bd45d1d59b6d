"""
Geodesic math utilities

Area, perimeter and edge length over [lon, lat] coordinate lists.
Accuracy targets property-sized extents (tens to low hundreds of meters).
"""

import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from pyproj import Geod
from shapely.geometry import Polygon

from ..exceptions import ConfigurationError

Coordinate = Tuple[float, float]

EARTH_RADIUS_M = 6371000  # Mean earth radius in meters
M_PER_DEG = math.radians(1) * EARTH_RADIUS_M

FEET_PER_METER = 3.28084
SQFT_PER_SQM = 10.7639

_GEOD = Geod(ellps="WGS84")


def m_to_ft(meters: float) -> float:
    return meters * FEET_PER_METER


def sqm_to_sqft(square_meters: float) -> float:
    return square_meters * SQFT_PER_SQM


def vertex_key(coord: Sequence[float], precision: int = 8) -> str:
    """Canonical string for point equality without floating-point drift"""
    lon = round(float(coord[0]), precision) + 0.0  # normalises -0.0
    lat = round(float(coord[1]), precision) + 0.0
    return f"{lon:.{precision}f},{lat:.{precision}f}"


def open_ring(coords: Sequence[Sequence[float]]) -> List[Coordinate]:
    """Return ring vertices without a duplicate closing point"""
    points = [(float(c[0]), float(c[1])) for c in coords]
    if len(points) > 1 and points[0] == points[-1]:
        points = points[:-1]
    return points


def close_polygon(coords: Sequence[Sequence[float]]) -> List[Coordinate]:
    """Ensure polygon is closed (first point == last point)"""
    points = [(float(c[0]), float(c[1])) for c in coords]
    if points and points[0] != points[-1]:
        points.append(points[0])
    return points


def haversine_distance(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float
) -> float:
    """Calculate distance between two points in meters"""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = math.sin(delta_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def segment_length(a: Sequence[float], b: Sequence[float]) -> float:
    """Great-circle length of a single edge in meters"""
    return haversine_distance(a[1], a[0], b[1], b[0])


def line_length(coords: Sequence[Sequence[float]]) -> float:
    """Calculate length of a line string in meters"""
    if len(coords) < 2:
        return 0.0

    return sum(segment_length(coords[i], coords[i + 1]) for i in range(len(coords) - 1))


def perimeter(ring: Sequence[Sequence[float]]) -> float:
    """Calculate ring perimeter in meters, including the closing edge"""
    points = open_ring(ring)
    if len(points) < 3:
        return 0.0

    n = len(points)
    return sum(segment_length(points[i], points[(i + 1) % n]) for i in range(n))


def project_to_local(
    coords: Sequence[Sequence[float]],
    ref_lon: float,
    ref_lat: float
) -> List[Tuple[float, float]]:
    """Equirectangular projection of [lon, lat] to local [x, y] meters"""
    m_per_deg_lon = M_PER_DEG * math.cos(math.radians(ref_lat))
    return [((c[0] - ref_lon) * m_per_deg_lon, (c[1] - ref_lat) * M_PER_DEG) for c in coords]


def signed_area_local(points: Sequence[Sequence[float]]) -> float:
    """Shoelace signed area; positive for counter-clockwise rings"""
    n = len(points)
    if n < 3:
        return 0.0

    total = 0.0
    for i in range(n):
        j = (i + 1) % n
        total += points[i][0] * points[j][1]
        total -= points[j][0] * points[i][1]

    return total / 2.0


def area(ring: Sequence[Sequence[float]]) -> float:
    """
    Unsigned ring area in square meters

    Projects about the mean vertex so the result does not depend on the
    starting vertex or winding direction.
    """
    points = open_ring(ring)
    if len(points) < 3:
        return 0.0

    ref_lon = sum(p[0] for p in points) / len(points)
    ref_lat = sum(p[1] for p in points) / len(points)

    return abs(signed_area_local(project_to_local(points, ref_lon, ref_lat)))


def centroid(ring: Sequence[Sequence[float]]) -> Coordinate:
    """Area-weighted centroid; vertex mean for degenerate rings"""
    points = open_ring(ring)
    if not points:
        return (0.0, 0.0)

    if len(points) >= 3:
        poly = Polygon(points)
        if poly.area > 0:
            c = poly.centroid
            return (c.x, c.y)

    return (
        sum(p[0] for p in points) / len(points),
        sum(p[1] for p in points) / len(points)
    )


def ellipsoidal_area(ring: Sequence[Sequence[float]]) -> float:
    points = open_ring(ring)
    if len(points) < 3:
        return 0.0
    poly_area, _ = _GEOD.polygon_area_perimeter([p[0] for p in points], [p[1] for p in points])
    return abs(poly_area)


def ellipsoidal_perimeter(ring: Sequence[Sequence[float]]) -> float:
    points = open_ring(ring)
    if len(points) < 3:
        return 0.0
    _, poly_perimeter = _GEOD.polygon_area_perimeter([p[0] for p in points], [p[1] for p in points])
    return poly_perimeter


def ellipsoidal_segment_length(a: Sequence[float], b: Sequence[float]) -> float:
    _, _, distance = _GEOD.inv(a[0], a[1], b[0], b[1])
    return distance


def planar_area(ring: Sequence[Sequence[float]]) -> float:
    points = open_ring(ring)
    if len(points) < 3:
        return 0.0
    return abs(signed_area_local(points))


def planar_segment_length(a: Sequence[float], b: Sequence[float]) -> float:
    return math.hypot(b[0] - a[0], b[1] - a[1])


def planar_perimeter(ring: Sequence[Sequence[float]]) -> float:
    points = open_ring(ring)
    if len(points) < 3:
        return 0.0
    n = len(points)
    return sum(planar_segment_length(points[i], points[(i + 1) % n]) for i in range(n))


@dataclass(frozen=True)
class Metric:
    """
    A consistent set of area/perimeter/length functions

    geographic metrics take [lon, lat] degrees; the planar metric takes
    coordinates that are already meters in a local frame.
    """
    name: str
    area: Callable[[Sequence[Sequence[float]]], float]
    perimeter: Callable[[Sequence[Sequence[float]]], float]
    segment_length: Callable[[Sequence[float], Sequence[float]], float]
    geographic: bool = True

    def line_length(self, coords: Sequence[Sequence[float]]) -> float:
        if len(coords) < 2:
            return 0.0
        return sum(self.segment_length(coords[i], coords[i + 1]) for i in range(len(coords) - 1))

    def to_local(
        self,
        coords: Sequence[Sequence[float]],
        origin: Optional[Sequence[float]] = None
    ) -> List[Tuple[float, float]]:
        """Map coordinates into a local metric frame for angle work"""
        if not self.geographic:
            return [(float(c[0]), float(c[1])) for c in coords]
        if origin is None:
            if not coords:
                return []
            origin = (
                sum(c[0] for c in coords) / len(coords),
                sum(c[1] for c in coords) / len(coords)
            )
        return project_to_local(coords, origin[0], origin[1])


SPHERICAL = Metric("spherical", area, perimeter, segment_length)
ELLIPSOIDAL = Metric("ellipsoidal", ellipsoidal_area, ellipsoidal_perimeter, ellipsoidal_segment_length)
PLANAR = Metric("planar", planar_area, planar_perimeter, planar_segment_length, geographic=False)

_METRICS = {m.name: m for m in (SPHERICAL, ELLIPSOIDAL, PLANAR)}


def get_metric(name: str) -> Metric:
    """Look up a metric by name"""
    try:
        return _METRICS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown metric '{name}', expected one of {sorted(_METRICS)}"
        ) from None
