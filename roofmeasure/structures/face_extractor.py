"""
Planar face extraction

Turns an unordered set of drawn line segments into the closed faces
they bound, using half-edge face traversal over a vertex arena keyed by
rounded coordinates.
"""

import math
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from loguru import logger

from .models import DetectedPolygon, LineSegment
from ..config import ExtractorConfig, get_config
from ..exceptions import InvalidGeometryError
from ..geometry.cleanup import merge_collinear_segments, remove_duplicate_segments, snap_endpoints
from ..geometry.utils import Coordinate, Metric, get_metric, signed_area_local, vertex_key, centroid

TAU = 2 * math.pi
_ZERO_TURN = 1e-12


@dataclass
class _HalfEdge:
    """One traversable direction of a segment; the twin is index ^ 1"""
    origin: int
    dest: int
    segment: int
    path: Tuple[Coordinate, ...]
    angle: float  # direction of the first leg leaving origin, radians CCW from east


class PlanarFaceExtractor:
    """
    Extracts closed polygons from drawn line segments

    Algorithm:
    1. Every segment contributes a forward and a backward directed edge
    2. Vertices live in an arena indexed by vertex key; each vertex keeps
       its outgoing edges sorted by angle of travel
    3. Vertex degree = number of segments touching the vertex
    4. From each unvisited edge, walk the boundary: at every vertex take
       the outgoing edge with the smallest positive clockwise offset from
       the reverse of the incoming direction, never the immediate
       backtrack. Stop back at the start vertex, or give up at a dead end
       or after max hops
    5. Keep boundaries with >= 3 distinct vertices, all of degree >= 2,
       traced counter-clockwise (clockwise walks outline the unbounded side
       of a component)
    6. Deduplicate by sorted vertex keys, drop faces under the minimum
       area and return the rest largest first

    Interior faces (dormers, split planes) are returned alongside the
    envelope; deciding which one is a hole is up to the caller.
    """

    def __init__(
        self,
        config: Optional[ExtractorConfig] = None,
        metric: Optional[Metric] = None
    ):
        global_config = get_config()
        self.config = config or global_config.extractor
        self.metric = metric or get_metric(global_config.metric)

    def extract(self, segments: Iterable[Any]) -> List[DetectedPolygon]:
        """
        Find all closed faces bounded by the given segments

        Args:
            segments: LineSegment objects, {"id", "coordinates"} mappings,
                or bare coordinate lists

        Returns:
            DetectedPolygon list sorted by descending area
        """
        raw = list(segments)

        # Closed strokes count as their individual sides
        usable = self._normalize(raw)
        if len(usable) < 3:
            logger.debug(f"Only {len(usable)} segments - cannot bound a face")
            return []

        precision = self.config.vertex_precision

        if self.config.snap_tolerance_m > 0:
            usable = snap_endpoints(usable, self.config.snap_tolerance_m, self.metric)
            usable = self._drop_degenerate(usable)

        if self.config.merge_collinear_segments:
            usable = merge_collinear_segments(
                usable,
                tolerance_m=self.config.merge_tolerance_m,
                angle_tolerance_deg=self.config.merge_angle_tolerance_deg,
                metric=self.metric
            )
            usable = self._drop_degenerate(usable)

        usable = remove_duplicate_segments(usable, precision)

        if self.config.prune_dangling_segments:
            usable = self._prune_dangling(usable)

        if len(usable) < 3:
            logger.debug(f"{len(usable)} usable segments after cleanup - no faces")
            return []

        faces = self._trace_faces(usable)

        logger.info(f"Extracted {len(faces)} faces from {len(raw)} segments")
        return faces

    # ------------------------------------------------------------------
    # Input handling
    # ------------------------------------------------------------------

    def _coerce(self, item: Any, index: int) -> Optional[LineSegment]:
        if isinstance(item, LineSegment):
            segment_id, coords = item.id, item.coordinates
        elif isinstance(item, Mapping):
            segment_id = item.get("id", str(index))
            coords = item.get("coordinates") or []
        elif isinstance(item, Sequence) and not isinstance(item, str):
            segment_id, coords = str(index), item
        else:
            raise InvalidGeometryError(f"Segment {index} is not a coordinate list: {item!r}")

        if len(coords) < 2:
            logger.warning(f"Skipping segment {segment_id}: needs at least 2 points, got {len(coords)}")
            return None

        points = []
        for coord in coords:
            try:
                x, y = float(coord[0]), float(coord[1])
            except (TypeError, ValueError, IndexError) as e:
                raise InvalidGeometryError(f"Segment {segment_id} has a malformed coordinate {coord!r}") from e
            if not (math.isfinite(x) and math.isfinite(y)):
                raise InvalidGeometryError(f"Segment {segment_id} has a non-finite coordinate {coord!r}")
            if self.metric.geographic and (abs(x) > 180 or abs(y) > 90):
                raise InvalidGeometryError(f"Segment {segment_id} has an out-of-range lon/lat {coord!r}")
            points.append((x, y))

        return LineSegment.from_coords(segment_id, points)

    def _normalize(self, raw: List[Any]) -> List[LineSegment]:
        """Coerce input, drop repeated points and split closed strokes"""
        precision = self.config.vertex_precision
        result: List[LineSegment] = []

        for index, item in enumerate(raw):
            segment = self._coerce(item, index)
            if segment is None:
                continue

            points: List[Coordinate] = []
            for point in segment.coordinates:
                if points and vertex_key(points[-1], precision) == vertex_key(point, precision):
                    continue
                points.append(point)

            if len(points) < 2:
                logger.debug(f"Skipping zero-length segment {segment.id}")
                continue

            if vertex_key(points[0], precision) == vertex_key(points[-1], precision):
                # A single closed stroke: treat each leg as its own segment
                if len(points) < 4:
                    logger.debug(f"Skipping degenerate closed stroke {segment.id}")
                    continue
                for i in range(len(points) - 1):
                    result.append(LineSegment.from_coords(f"{segment.id}#{i}", points[i:i + 2]))
                continue

            result.append(LineSegment.from_coords(segment.id, points))

        return result

    def _drop_degenerate(self, segments: List[LineSegment]) -> List[LineSegment]:
        precision = self.config.vertex_precision
        return [
            s for s in segments
            if vertex_key(s.start, precision) != vertex_key(s.end, precision)
        ]

    def _prune_dangling(self, segments: List[LineSegment]) -> List[LineSegment]:
        """Repeatedly remove segments with an endpoint no other segment touches"""
        precision = self.config.vertex_precision
        current = segments

        while True:
            degree = Counter()
            for s in current:
                degree[vertex_key(s.start, precision)] += 1
                degree[vertex_key(s.end, precision)] += 1

            kept = [
                s for s in current
                if degree[vertex_key(s.start, precision)] >= 2
                and degree[vertex_key(s.end, precision)] >= 2
            ]

            if len(kept) == len(current):
                break

            logger.debug(f"Pruned {len(current) - len(kept)} dangling segments")
            current = kept

        return current

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def _trace_faces(self, segments: List[LineSegment]) -> List[DetectedPolygon]:
        precision = self.config.vertex_precision

        vertex_index: Dict[str, int] = {}
        vertices: List[Coordinate] = []
        degree: List[int] = []

        def index_of(point: Coordinate) -> int:
            key = vertex_key(point, precision)
            if key not in vertex_index:
                vertex_index[key] = len(vertices)
                vertices.append(point)
                degree.append(0)
            return vertex_index[key]

        endpoints = []
        for s in segments:
            a, b = index_of(s.start), index_of(s.end)
            degree[a] += 1
            degree[b] += 1
            endpoints.append((a, b))

        all_points = [p for s in segments for p in s.coordinates]
        origin = (
            sum(p[0] for p in all_points) / len(all_points),
            sum(p[1] for p in all_points) / len(all_points)
        )

        def leg_angle(p: Coordinate, q: Coordinate) -> float:
            (x0, y0), (x1, y1) = self.metric.to_local([p, q], origin)
            return math.atan2(y1 - y0, x1 - x0) % TAU

        edges: List[_HalfEdge] = []
        outgoing: List[List[int]] = [[] for _ in vertices]

        for seg_idx, (s, (a, b)) in enumerate(zip(segments, endpoints)):
            path = (vertices[a],) + tuple(s.coordinates[1:-1]) + (vertices[b],)
            back = tuple(reversed(path))
            for start, end, p in ((a, b, path), (b, a, back)):
                outgoing[start].append(len(edges))
                edges.append(_HalfEdge(start, end, seg_idx, p, leg_angle(p[0], p[1])))

        for out in outgoing:
            out.sort(key=lambda e: edges[e].angle)

        max_hops = self.config.max_face_hops or len(segments)
        visited = [False] * len(edges)
        faces: List[DetectedPolygon] = []
        signatures = set()

        for start_edge in range(len(edges)):
            if visited[start_edge]:
                continue

            closed, walk = self._walk(start_edge, edges, outgoing, max_hops)
            for e in walk:
                visited[e] = True

            if not closed:
                continue

            face = self._build_face(walk, edges, segments, degree, origin)
            if face is None or face.signature in signatures:
                continue

            signatures.add(face.signature)
            faces.append(face)

        faces.sort(key=lambda f: -f.area_sqm)
        return faces

    def _walk(
        self,
        start_edge: int,
        edges: List[_HalfEdge],
        outgoing: List[List[int]],
        max_hops: int
    ) -> Tuple[bool, List[int]]:
        """Follow tightest clockwise turns from start_edge; returns (closed, edges walked)"""
        start_vertex = edges[start_edge].origin
        walk = [start_edge]
        current = start_edge

        while True:
            if edges[current].dest == start_vertex:
                return True, walk
            if len(walk) >= max_hops:
                logger.debug(f"Trace from edge {start_edge} exceeded {max_hops} hops")
                return False, walk

            nxt = self._next_edge(current, edges, outgoing)
            if nxt is None:
                return False, walk

            walk.append(nxt)
            current = nxt

    @staticmethod
    def _next_edge(
        incoming: int,
        edges: List[_HalfEdge],
        outgoing: List[List[int]]
    ) -> Optional[int]:
        twin = incoming ^ 1
        reverse_angle = edges[twin].angle
        best = None
        best_key = None

        for candidate in outgoing[edges[incoming].dest]:
            if candidate == twin:
                continue
            offset = (reverse_angle - edges[candidate].angle) % TAU
            if offset <= _ZERO_TURN:
                offset += TAU
            key = (offset, edges[candidate].segment, candidate)
            if best_key is None or key < best_key:
                best, best_key = candidate, key

        return best

    def _build_face(
        self,
        walk: List[int],
        edges: List[_HalfEdge],
        segments: List[LineSegment],
        degree: List[int],
        origin: Coordinate
    ) -> Optional[DetectedPolygon]:
        precision = self.config.vertex_precision

        ring: List[Coordinate] = []
        for e in walk:
            ring.extend(edges[e].path[:-1])

        keys = [vertex_key(p, precision) for p in ring]
        if len(set(keys)) < 3:
            logger.debug("Discarding face with fewer than 3 distinct vertices")
            return None

        if any(degree[edges[e].origin] < 2 for e in walk):
            logger.debug("Discarding face with a dangling vertex")
            return None

        if signed_area_local(self.metric.to_local(ring, origin)) <= 0:
            return None

        face_area = self.metric.area(ring)
        if face_area < self.config.min_face_area_sqm:
            logger.debug(f"Discarding noise face of {face_area:.3f} m²")
            return None

        return DetectedPolygon(
            ring=ring,
            area_sqm=face_area,
            perimeter_m=self.metric.perimeter(ring),
            centroid=centroid(ring),
            segment_ids=[segments[edges[e].segment].id for e in walk],
            signature="|".join(sorted(keys))
        )


def extract_faces(
    segments: Iterable[Any],
    config: Optional[ExtractorConfig] = None,
    metric: Optional[Metric] = None
) -> List[DetectedPolygon]:
    """Convenience wrapper around PlanarFaceExtractor.extract"""
    return PlanarFaceExtractor(config=config, metric=metric).extract(segments)
