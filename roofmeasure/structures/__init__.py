"""
Roof structure module

Components:
- PlanarFaceExtractor: closed faces from drawn segments
- EdgeClassifier: eave / rake / wall labels for boundary edges
- detect_roof_type: gable / hip / complex / flat guess
- infer_roof_lines: ridge or hip lines estimated from an outline
- pitch: plan to surface area conversion
- StructureAggregator: labelled structures and property totals
"""

from .models import (
    EdgeClass, RoofType, LineSegment, DetectedPolygon, ClassifiedEdge, RoofStructure, RidgeLine
)
from .face_extractor import PlanarFaceExtractor, extract_faces
from .classifier import EdgeClassifier
from .roof_type import detect_roof_type
from .roof_lines import infer_roof_lines
from .pitch import (
    PitchRatio, PITCH_PRESETS, parse_pitch, pitch_factor, surface_area, plan_squares, surface_squares
)
from .aggregator import StructureAggregator

__all__ = [
    "EdgeClass",
    "RoofType",
    "LineSegment",
    "DetectedPolygon",
    "ClassifiedEdge",
    "RoofStructure",
    "RidgeLine",
    "PlanarFaceExtractor",
    "extract_faces",
    "EdgeClassifier",
    "detect_roof_type",
    "infer_roof_lines",
    "PitchRatio",
    "PITCH_PRESETS",
    "parse_pitch",
    "pitch_factor",
    "surface_area",
    "plan_squares",
    "surface_squares",
    "StructureAggregator",
]
