"""
Structure aggregator

Owns the labelled roof structures (A, B, C, ...) and ridge lines of one
property and derives the property-level quantity take-off from them.
"""

import math
import threading
from collections import OrderedDict
from dataclasses import replace
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from loguru import logger

from .classifier import EdgeClassifier
from .models import (
    ClassifiedEdge, DetectedPolygon, EdgeClass, RidgeLine, RoofStructure, coerce_edge_class
)
from .pitch import PitchRatio, parse_pitch, plan_squares, surface_area, surface_squares
from .roof_lines import infer_roof_lines
from .roof_type import detect_roof_type
from ..config import MeasurementConfig, get_config
from ..exceptions import InvalidGeometryError, InvalidMeasurementError, StructureNotFoundError
from ..geometry.utils import Coordinate, Metric, get_metric, open_ring, sqm_to_sqft, vertex_key
from ..models import (
    ClassifiedEdgeModel, GeoJSONLineString, GeoJSONPolygon, PropertyMeasurementTotals,
    RidgeLineRecord, RoofStructureRecord
)

PitchInput = Union[str, PitchRatio, float, int, None]


class StructureAggregator:
    """
    Multi-structure measurement state for one property

    Mutations and totals() share one lock: a single writer at a time,
    and totals never see a structure halfway through an upsert.

    Usage:
        agg = StructureAggregator(property_id="job-42")
        agg.add_or_replace_structure("A", polygon, "6/12")
        agg.set_inclusion("B", False)
        totals = agg.totals()
    """

    def __init__(
        self,
        property_id: Optional[str] = None,
        config: Optional[MeasurementConfig] = None,
        metric: Optional[Metric] = None,
        classifier: Optional[EdgeClassifier] = None
    ):
        self.property_id = property_id
        self.config = config or get_config()
        self.metric = metric or get_metric(self.config.metric)
        self.classifier = classifier or EdgeClassifier(self.config.classifier, self.metric)

        self._structures: "OrderedDict[str, RoofStructure]" = OrderedDict()
        self._ridge_lines: "OrderedDict[str, RidgeLine]" = OrderedDict()
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Structures
    # ------------------------------------------------------------------

    def add_or_replace_structure(
        self,
        label: str,
        polygon: Any,
        pitch: PitchInput = None,
        confidence: float = 1.0
    ) -> RoofStructure:
        """
        Insert or replace the structure with this label

        Area, perimeter, surface area and edge classes are computed
        immediately. A replaced structure keeps its inclusion flag.

        Args:
            label: Structure label ("A", "B", ...)
            polygon: DetectedPolygon, GeoJSON Polygon/Feature or coordinate ring
            pitch: "6/12", PitchRatio, or None for the configured default
            confidence: Score in [0, 1]
        """
        label = self._check_label(label)
        confidence = self._check_confidence(confidence)
        pitch_ratio = self._parse_pitch(pitch)
        ring = self._ring_from(polygon)

        structure = self._measure(label, ring, pitch_ratio, confidence)

        with self._lock:
            existing = self._structures.get(label)
            if existing is not None:
                structure.included = existing.included
                structure.metadata = dict(existing.metadata)
            self._structures[label] = structure

        logger.info(
            f"Structure {label}: {structure.plan_area_sqft:.0f} sq ft plan, "
            f"{structure.surface_area_sqft:.0f} sq ft at {pitch_ratio.label}"
            f"{' (replaced)' if existing is not None else ''}"
        )
        return structure

    def set_inclusion(self, label: str, included: bool) -> RoofStructure:
        """Include or exclude a structure from totals without deleting it"""
        with self._lock:
            structure = self._get(label)
            structure.included = bool(included)

        logger.debug(f"Structure {label} {'included' if included else 'excluded'}")
        return structure

    def set_pitch(self, label: str, pitch: PitchInput) -> RoofStructure:
        """Change a structure's pitch and recompute its surface area"""
        pitch_ratio = self._parse_pitch(pitch)

        with self._lock:
            structure = self._get(label)
            updated = replace(
                structure,
                pitch=pitch_ratio,
                surface_area_sqft=surface_area(structure.plan_area_sqft, pitch_ratio)
            )
            self._structures[label] = updated

        return updated

    def remove_structure(self, label: str) -> RoofStructure:
        """Hard-delete a structure"""
        with self._lock:
            structure = self._get(label)
            del self._structures[label]

        logger.info(f"Removed structure {label}")
        return structure

    def get_structure(self, label: str) -> RoofStructure:
        with self._lock:
            return self._get(label)

    @property
    def structures(self) -> List[RoofStructure]:
        with self._lock:
            return list(self._structures.values())

    def next_label(self) -> str:
        """First unused label in the sequence A..Z, AA, AB, ..."""
        with self._lock:
            used = set(self._structures)
        index = 0
        while True:
            label = _index_to_label(index)
            if label not in used:
                return label
            index += 1

    # ------------------------------------------------------------------
    # Ridge lines
    # ------------------------------------------------------------------

    def add_or_replace_ridge_line(
        self,
        label: str,
        coordinates: Sequence[Sequence[float]],
        line_class: Union[EdgeClass, str] = EdgeClass.RIDGE
    ) -> RidgeLine:
        """Insert or replace an independently drawn ridge/hip/valley line"""
        label = self._check_label(label)
        try:
            line_class = coerce_edge_class(line_class, EdgeClass.RIDGE)
        except ValueError as e:
            raise InvalidGeometryError(f"Unknown line class {line_class!r}") from e

        points = _coerce_points(coordinates, f"ridge line {label}")
        if len(points) < 2:
            raise InvalidGeometryError(f"Ridge line {label} needs at least 2 points, got {len(points)}")

        ridge = RidgeLine(
            label=label,
            coordinates=points,
            length_m=self.metric.line_length(points),
            line_class=line_class
        )

        with self._lock:
            existing = self._ridge_lines.get(label)
            if existing is not None:
                ridge.included = existing.included
            self._ridge_lines[label] = ridge

        logger.info(f"Ridge line {label}: {ridge.length_ft:.1f} ft {line_class.value}")
        return ridge

    def set_ridge_line_inclusion(self, label: str, included: bool) -> RidgeLine:
        with self._lock:
            ridge = self._get_ridge(label)
            ridge.included = bool(included)
        return ridge

    def remove_ridge_line(self, label: str) -> RidgeLine:
        with self._lock:
            ridge = self._get_ridge(label)
            del self._ridge_lines[label]
        return ridge

    @property
    def ridge_lines(self) -> List[RidgeLine]:
        with self._lock:
            return list(self._ridge_lines.values())

    # ------------------------------------------------------------------
    # Totals
    # ------------------------------------------------------------------

    def totals(self, pitch_override: PitchInput = None) -> PropertyMeasurementTotals:
        """
        Property-level take-off over included structures and ridge lines

        Args:
            pitch_override: Apply one pitch to every structure instead of
                each structure's own

        Returns:
            PropertyMeasurementTotals (all zeros when nothing is included)
        """
        override = self._parse_pitch(pitch_override) if pitch_override is not None else None

        linear = {c.value: 0.0 for c in EdgeClass}
        plan_total = 0.0
        surface_total = 0.0
        perimeter_ft = 0.0
        ridge_line_lf = 0.0

        with self._lock:
            structure_count = len(self._structures)
            included = [s for s in self._structures.values() if s.included]
            ridges = [r for r in self._ridge_lines.values() if r.included]

            for s in included:
                plan_total += s.plan_area_sqft
                surface_total += surface_area(s.plan_area_sqft, override or s.pitch)
                perimeter_ft += s.perimeter_ft
                for edge_class, feet in self.classifier.summarize(s.edges).items():
                    linear[edge_class.value] += feet
                for line in s.inferred_lines:
                    linear[line.line_class.value] += line.length_ft

            for r in ridges:
                linear[r.line_class.value] += r.length_ft
                ridge_line_lf += r.length_ft

            labels = [s.label for s in included]

        return PropertyMeasurementTotals(
            property_id=self.property_id,
            structure_count=structure_count,
            included_structures=labels,
            pitch_override=override.label if override else None,
            plan_area_sqft=plan_total,
            surface_area_sqft=surface_total,
            plan_squares=plan_squares(plan_total),
            surface_squares=surface_squares(surface_total),
            perimeter_ft=perimeter_ft,
            linear_ft=linear,
            eave_lf=linear[EdgeClass.EAVE.value],
            rake_lf=linear[EdgeClass.RAKE.value],
            ridge_lf=linear[EdgeClass.RIDGE.value],
            hip_lf=linear[EdgeClass.HIP.value],
            valley_lf=linear[EdgeClass.VALLEY.value],
            wall_lf=linear[EdgeClass.WALL.value],
            step_flashing_lf=linear[EdgeClass.STEP_FLASHING.value],
            ridge_line_lf=ridge_line_lf
        )

    # ------------------------------------------------------------------
    # Persistence records
    # ------------------------------------------------------------------

    def export_records(self) -> Tuple[List[RoofStructureRecord], List[RidgeLineRecord]]:
        """Snapshot all structures and ridge lines (included or not) as records"""
        with self._lock:
            structures = [structure_to_record(s, self.property_id) for s in self._structures.values()]
            ridges = [ridge_line_to_record(r, self.property_id) for r in self._ridge_lines.values()]
        return structures, ridges

    def load_records(
        self,
        structures: Iterable[Union[RoofStructureRecord, Mapping[str, Any]]] = (),
        ridge_lines: Iterable[Union[RidgeLineRecord, Mapping[str, Any]]] = ()
    ) -> None:
        """
        Restore state from stored records

        Geometry, pitch, confidence and inclusion come from the records;
        every derived measurement is recomputed.
        """
        for item in structures:
            record = item if isinstance(item, RoofStructureRecord) else RoofStructureRecord.model_validate(item)
            self.add_or_replace_structure(
                record.label, record.polygon.coordinates[0], record.pitch, record.confidence
            )
            self.set_inclusion(record.label, record.included)

        for item in ridge_lines:
            record = item if isinstance(item, RidgeLineRecord) else RidgeLineRecord.model_validate(item)
            self.add_or_replace_ridge_line(record.label, record.line.coordinates, record.line_class)
            self.set_ridge_line_inclusion(record.label, record.included)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _measure(
        self,
        label: str,
        ring: List[Coordinate],
        pitch: PitchRatio,
        confidence: float
    ) -> RoofStructure:
        area_sqm = self.metric.area(ring)
        roof_type, roof_type_confidence = detect_roof_type(ring, self.metric)

        inferred = []
        if self.config.classifier.infer_ridge_lines:
            inferred = infer_roof_lines(ring, roof_type, self.metric, label)

        return RoofStructure(
            label=label,
            ring=ring,
            area_sqm=area_sqm,
            perimeter_m=self.metric.perimeter(ring),
            pitch=pitch,
            surface_area_sqft=surface_area(sqm_to_sqft(area_sqm), pitch),
            confidence=confidence,
            edges=self.classifier.classify(ring, roof_type),
            roof_type=roof_type,
            roof_type_confidence=roof_type_confidence,
            inferred_lines=inferred
        )

    def _parse_pitch(self, pitch: PitchInput) -> PitchRatio:
        if pitch is None:
            pitch = self.config.pitch.default_pitch
        return parse_pitch(pitch, max_slope=self.config.pitch.max_slope)

    def _ring_from(self, polygon: Any) -> List[Coordinate]:
        if isinstance(polygon, DetectedPolygon):
            coords = polygon.ring
        elif isinstance(polygon, Mapping):
            geometry = polygon.get("geometry") or polygon
            if geometry.get("type") != "Polygon" or not geometry.get("coordinates"):
                raise InvalidGeometryError("Expected a GeoJSON Polygon")
            coords = geometry["coordinates"][0]
        elif isinstance(polygon, GeoJSONPolygon):
            coords = polygon.coordinates[0] if polygon.coordinates else []
        else:
            coords = polygon

        if coords is None:
            raise InvalidGeometryError("Structure polygon is required")

        ring = open_ring(_coerce_points(coords, "structure polygon"))
        distinct = {vertex_key(p, self.config.extractor.vertex_precision) for p in ring}
        if len(distinct) < 3:
            raise InvalidGeometryError(
                f"Structure polygon needs at least 3 distinct vertices, got {len(distinct)}"
            )
        return ring

    @staticmethod
    def _check_label(label: str) -> str:
        if not isinstance(label, str) or not label.strip():
            raise InvalidGeometryError(f"Structure label must be a non-empty string, got {label!r}")
        return label.strip()

    @staticmethod
    def _check_confidence(confidence: float) -> float:
        try:
            value = float(confidence)
        except (TypeError, ValueError) as e:
            raise InvalidMeasurementError(f"Confidence must be a number, got {confidence!r}") from e
        if not math.isfinite(value) or not 0.0 <= value <= 1.0:
            raise InvalidMeasurementError(f"Confidence must be within [0, 1], got {confidence!r}")
        return value

    def _get(self, label: str) -> RoofStructure:
        try:
            return self._structures[label]
        except KeyError:
            raise StructureNotFoundError(label) from None

    def _get_ridge(self, label: str) -> RidgeLine:
        try:
            return self._ridge_lines[label]
        except KeyError:
            raise StructureNotFoundError(label, kind="ridge line") from None


def _index_to_label(index: int) -> str:
    """0 -> A, 25 -> Z, 26 -> AA"""
    label = ""
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        label = chr(ord("A") + remainder) + label
    return label


def _coerce_points(coords: Sequence[Sequence[float]], what: str) -> List[Coordinate]:
    points = []
    for coord in coords:
        try:
            x, y = float(coord[0]), float(coord[1])
        except (TypeError, ValueError, IndexError) as e:
            raise InvalidGeometryError(f"Malformed coordinate {coord!r} in {what}") from e
        if not (math.isfinite(x) and math.isfinite(y)):
            raise InvalidGeometryError(f"Non-finite coordinate {coord!r} in {what}")
        points.append((x, y))
    return points


def edge_to_model(edge: ClassifiedEdge) -> ClassifiedEdgeModel:
    return ClassifiedEdgeModel(
        index=edge.index,
        edge_class=edge.edge_class.value,
        start=list(edge.start),
        end=list(edge.end),
        length_m=edge.length_m,
        length_ft=edge.length_ft,
        bearing=edge.bearing,
        direction=edge.direction
    )


def structure_to_record(structure: RoofStructure, property_id: Optional[str] = None) -> RoofStructureRecord:
    return RoofStructureRecord(
        property_id=property_id,
        label=structure.label,
        polygon=GeoJSONPolygon(**structure.to_geojson()["geometry"]),
        area_sqm=structure.area_sqm,
        perimeter_m=structure.perimeter_m,
        plan_area_sqft=structure.plan_area_sqft,
        surface_area_sqft=structure.surface_area_sqft,
        pitch=structure.pitch.label,
        confidence=structure.confidence,
        included=structure.included,
        roof_type=structure.roof_type.value,
        edges=[edge_to_model(e) for e in structure.edges],
        inferred_lines=[ridge_line_to_record(r, property_id) for r in structure.inferred_lines]
    )


def ridge_line_to_record(ridge: RidgeLine, property_id: Optional[str] = None) -> RidgeLineRecord:
    return RidgeLineRecord(
        property_id=property_id,
        label=ridge.label,
        line=GeoJSONLineString(**ridge.to_geojson()["geometry"]),
        length_m=ridge.length_m,
        length_ft=ridge.length_ft,
        line_class=ridge.line_class.value,
        included=ridge.included
    )
