"""
Pydantic models for measurement records and results

These are the plain data structures exchanged with the storage layer
and with quoting/pricing consumers.
"""

from datetime import datetime, timezone
from typing import List, Optional, Dict, Literal
from pydantic import BaseModel, Field


# ============================================================
# GeoJSON Types
# ============================================================

class GeoJSONPoint(BaseModel):
    type: Literal["Point"] = "Point"
    coordinates: List[float]  # [longitude, latitude]


class GeoJSONPolygon(BaseModel):
    type: Literal["Polygon"] = "Polygon"
    coordinates: List[List[List[float]]]  # [[[lon, lat], ...]]


class GeoJSONLineString(BaseModel):
    type: Literal["LineString"] = "LineString"
    coordinates: List[List[float]]  # [[lon, lat], ...]


# ============================================================
# Geometry Outputs
# ============================================================

class ClassifiedEdgeModel(BaseModel):
    index: int
    edge_class: str
    start: List[float]
    end: List[float]
    length_m: float
    length_ft: float
    bearing: float
    direction: str = ""


class DetectedPolygonModel(BaseModel):
    polygon: GeoJSONPolygon
    area_sqm: float
    area_sqft: float
    perimeter_m: float
    centroid: GeoJSONPoint
    segment_ids: List[str] = Field(default_factory=list)
    plausible: bool = True
    rejection_reason: Optional[str] = None


# ============================================================
# Persisted Records
# ============================================================

class RidgeLineRecord(BaseModel):
    property_id: Optional[str] = None
    label: str
    line: GeoJSONLineString
    length_m: float = 0.0
    length_ft: float = 0.0
    line_class: str = "ridge"
    included: bool = True
    updated_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class RoofStructureRecord(BaseModel):
    property_id: Optional[str] = None
    label: str
    polygon: GeoJSONPolygon
    area_sqm: float = 0.0
    perimeter_m: float = 0.0
    plan_area_sqft: float = 0.0
    surface_area_sqft: float = 0.0
    pitch: str = "4/12"
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    included: bool = True
    roof_type: str = "gable"
    edges: List[ClassifiedEdgeModel] = Field(default_factory=list)
    inferred_lines: List[RidgeLineRecord] = Field(default_factory=list)
    updated_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


# ============================================================
# Totals
# ============================================================

class PropertyMeasurementTotals(BaseModel):
    """Derived take-off for one property; recomputed on every read"""
    property_id: Optional[str] = None
    structure_count: int = 0
    included_structures: List[str] = Field(default_factory=list)
    pitch_override: Optional[str] = None

    plan_area_sqft: float = 0.0
    surface_area_sqft: float = 0.0
    plan_squares: float = 0.0
    surface_squares: float = 0.0
    perimeter_ft: float = 0.0

    linear_ft: Dict[str, float] = Field(default_factory=dict)
    eave_lf: float = 0.0
    rake_lf: float = 0.0
    ridge_lf: float = 0.0
    hip_lf: float = 0.0
    valley_lf: float = 0.0
    wall_lf: float = 0.0
    step_flashing_lf: float = 0.0
    ridge_line_lf: float = 0.0

    computed_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


class MeasurementResult(BaseModel):
    """Complete output of one measurement run"""
    property_id: str
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    metric: str = "spherical"
    segment_count: int = 0
    faces: List[DetectedPolygonModel] = Field(default_factory=list)
    structures: List[RoofStructureRecord] = Field(default_factory=list)
    ridge_lines: List[RidgeLineRecord] = Field(default_factory=list)
    totals: PropertyMeasurementTotals
