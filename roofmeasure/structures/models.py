"""
Roof structure data models

Data classes for drawn segments, detected faces, classified edges,
roof structures and ridge lines
"""

from typing import List, Dict, Any, Optional, Sequence, Tuple
from dataclasses import dataclass, field
from enum import Enum

from ..geometry.utils import Coordinate, m_to_ft, sqm_to_sqft, close_polygon
from .pitch import PitchRatio, plan_squares, surface_squares


class EdgeClass(Enum):
    """Linear-footage classes used for line-item quantities"""
    EAVE = "eave"
    RAKE = "rake"
    RIDGE = "ridge"
    HIP = "hip"
    VALLEY = "valley"
    WALL = "wall"
    STEP_FLASHING = "step_flashing"


class RoofType(Enum):
    """Coarse roof shape categories"""
    GABLE = "gable"
    HIP = "hip"
    COMPLEX = "complex"
    FLAT = "flat"


@dataclass(frozen=True)
class LineSegment:
    """One drawn stroke: a straight edge or polyline of [lon, lat] points"""
    id: str
    coordinates: Tuple[Coordinate, ...]

    @classmethod
    def from_coords(cls, segment_id: str, coords: Sequence[Sequence[float]]) -> "LineSegment":
        return cls(
            id=str(segment_id),
            coordinates=tuple((float(c[0]), float(c[1])) for c in coords)
        )

    @property
    def start(self) -> Coordinate:
        return self.coordinates[0]

    @property
    def end(self) -> Coordinate:
        return self.coordinates[-1]


@dataclass
class DetectedPolygon:
    """A closed face found by the face extractor"""
    ring: List[Coordinate]  # Open ring, closure implicit
    area_sqm: float
    perimeter_m: float
    centroid: Coordinate
    segment_ids: List[str] = field(default_factory=list)
    signature: str = ""

    @property
    def area_sqft(self) -> float:
        return sqm_to_sqft(self.area_sqm)

    def to_geojson(self) -> Dict[str, Any]:
        """Convert to GeoJSON format"""
        return {
            "type": "Feature",
            "geometry": {
                "type": "Polygon",
                "coordinates": [[list(c) for c in close_polygon(self.ring)]]
            },
            "properties": {
                "area_sqm": self.area_sqm,
                "perimeter_m": self.perimeter_m,
                "centroid": list(self.centroid),
                "segment_ids": list(self.segment_ids)
            }
        }


@dataclass
class ClassifiedEdge:
    """A boundary edge with its footage class"""
    index: int
    start: Coordinate
    end: Coordinate
    edge_class: EdgeClass
    length_m: float
    bearing: float
    direction: str = ""

    @property
    def length_ft(self) -> float:
        return m_to_ft(self.length_m)


@dataclass
class RoofStructure:
    """
    A labelled roof structure on a property (A, B, C, ...)

    Measurements are recomputed whenever geometry or pitch changes,
    so they always agree with the ring.
    """
    label: str
    ring: List[Coordinate]
    area_sqm: float
    perimeter_m: float
    pitch: PitchRatio
    surface_area_sqft: float
    confidence: float = 1.0
    included: bool = True
    edges: List[ClassifiedEdge] = field(default_factory=list)
    roof_type: RoofType = RoofType.GABLE
    roof_type_confidence: float = 0.0
    inferred_lines: List["RidgeLine"] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def plan_area_sqft(self) -> float:
        return sqm_to_sqft(self.area_sqm)

    @property
    def perimeter_ft(self) -> float:
        return m_to_ft(self.perimeter_m)

    @property
    def plan_squares(self) -> float:
        return plan_squares(self.plan_area_sqft)

    @property
    def surface_squares(self) -> float:
        return surface_squares(self.surface_area_sqft)

    def to_geojson(self) -> Dict[str, Any]:
        """Convert to GeoJSON format"""
        return {
            "type": "Feature",
            "geometry": {
                "type": "Polygon",
                "coordinates": [[list(c) for c in close_polygon(self.ring)]]
            },
            "properties": {
                "label": self.label,
                "area_sqm": self.area_sqm,
                "plan_area_sqft": self.plan_area_sqft,
                "surface_area_sqft": self.surface_area_sqft,
                "pitch": self.pitch.label,
                "confidence": self.confidence,
                "included": self.included,
                "roof_type": self.roof_type.value,
                **self.metadata
            }
        }


@dataclass
class RidgeLine:
    """
    An interior fold line (ridge, hip or valley) entered separately
    from face extraction
    """
    label: str
    coordinates: List[Coordinate]
    length_m: float
    line_class: EdgeClass = EdgeClass.RIDGE
    included: bool = True
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def length_ft(self) -> float:
        return m_to_ft(self.length_m)

    def to_geojson(self) -> Dict[str, Any]:
        """Convert to GeoJSON format"""
        return {
            "type": "Feature",
            "geometry": {
                "type": "LineString",
                "coordinates": [list(c) for c in self.coordinates]
            },
            "properties": {
                "label": self.label,
                "line_class": self.line_class.value,
                "length_m": self.length_m,
                "included": self.included,
                **self.metadata
            }
        }


def coerce_edge_class(value: Any, default: Optional[EdgeClass] = None) -> EdgeClass:
    """Accept an EdgeClass or its string value (case-insensitive)"""
    if isinstance(value, EdgeClass):
        return value
    if value is None and default is not None:
        return default
    return EdgeClass(str(value).strip().lower())
