"""
Roof measurement pipeline

  1. Input: drawn line segments (+ optional ridge/hip/valley lines)
  2. Clean segments and extract closed faces
  3. Validate faces as plausible roof outlines
  4. Accept plausible faces as structures A, B, C, ... (largest first)
  5. Classify edges, apply pitch
  6. Assemble totals into a MeasurementResult
"""

import json
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from loguru import logger

from .config import MeasurementConfig, get_config
from .exceptions import InvalidGeometryError
from .geometry.geometry_utils import GeometryUtils
from .geometry.utils import get_metric
from .models import DetectedPolygonModel, GeoJSONPoint, GeoJSONPolygon, MeasurementResult
from .structures.aggregator import PitchInput, StructureAggregator
from .structures.classifier import EdgeClassifier
from .structures.face_extractor import PlanarFaceExtractor
from .structures.models import DetectedPolygon, EdgeClass
from .structures.roof_type import detect_roof_type

# Feature properties that mark a LineString as a ridge line rather than a segment
_RIDGE_CLASSES = {EdgeClass.RIDGE.value, EdgeClass.HIP.value, EdgeClass.VALLEY.value}


class RoofMeasurementPipeline:
    """
    Main pipeline from drawn segments to a property take-off

    Usage:
        pipeline = RoofMeasurementPipeline()
        segments = pipeline.load_segments("segments.geojson")
        result = pipeline.run(segments, pitch="6/12")
        pipeline.save(result, "output/result.json")
    """

    def __init__(self, config: Optional[MeasurementConfig] = None):
        self.config = config or get_config()
        self.metric = get_metric(self.config.metric)

        self.extractor = PlanarFaceExtractor(self.config.extractor, self.metric)
        self.classifier = EdgeClassifier(self.config.classifier, self.metric)

    def run(
        self,
        segments: Iterable[Any],
        pitch: PitchInput = None,
        ridge_lines: Optional[Iterable[Any]] = None,
        property_id: Optional[str] = None,
        auto_accept: bool = True
    ) -> MeasurementResult:
        """
        Run the complete pipeline

        Args:
            segments: Drawn segments (LineSegment, {"id", "coordinates"} or coordinate lists)
            pitch: Pitch for every accepted structure (default from config)
            ridge_lines: Optional interior lines ({"label", "coordinates", "line_class"})
            property_id: Optional custom property ID
            auto_accept: Turn plausible faces into structures

        Returns:
            Complete MeasurementResult
        """
        segments = list(segments)

        if not property_id:
            property_id = f"ROOF-{datetime.now().strftime('%Y%m%d%H%M%S')}-{str(uuid.uuid4())[:4]}"

        logger.info(
            f"Starting roof measurement for {property_id}: "
            f"{len(segments)} segments, {self.metric.name} metric"
        )

        # ============================================================
        # STAGE 1: Extract faces
        # ============================================================
        logger.info("Stage 1: Extracting faces...")
        faces = self.extractor.extract(segments)

        # ============================================================
        # STAGE 2: Validate faces
        # ============================================================
        logger.info("Stage 2: Validating faces...")
        limits = self.config.validation
        face_models = []
        accepted: List[DetectedPolygon] = []

        for face in faces:
            valid, reason = GeometryUtils.validate_roof_polygon(
                face.ring,
                metric=self.metric,
                min_area_sqft=limits.min_area_sqft,
                max_area_sqft=limits.max_area_sqft,
                max_vertices=limits.max_vertices,
                max_aspect_ratio=limits.max_aspect_ratio
            )
            if valid:
                accepted.append(face)
            else:
                logger.debug(f"Face of {face.area_sqft:.0f} sq ft rejected: {reason}")
            face_models.append(self._face_to_model(face, valid, reason))

        logger.info(f"{len(accepted)} of {len(faces)} faces are plausible roof outlines")

        # ============================================================
        # STAGE 3: Structures
        # ============================================================
        aggregator = StructureAggregator(
            property_id=property_id,
            config=self.config,
            metric=self.metric,
            classifier=self.classifier
        )

        if auto_accept:
            logger.info("Stage 3: Accepting structures...")
            for face in accepted:
                _, confidence = detect_roof_type(face.ring, self.metric)
                aggregator.add_or_replace_structure(aggregator.next_label(), face, pitch, confidence)

        # ============================================================
        # STAGE 4: Ridge lines
        # ============================================================
        for index, item in enumerate(ridge_lines or []):
            label, coordinates, line_class = self._parse_ridge_line(item, index)
            aggregator.add_or_replace_ridge_line(label, coordinates, line_class)

        # ============================================================
        # STAGE 5: Assemble result
        # ============================================================
        totals = aggregator.totals()
        structure_records, ridge_records = aggregator.export_records()

        logger.info(
            f"Measured {len(structure_records)} structures: "
            f"{totals.plan_area_sqft:.0f} sq ft plan, {totals.surface_area_sqft:.0f} sq ft surface "
            f"({totals.surface_squares:.2f} squares)"
        )

        return MeasurementResult(
            property_id=property_id,
            metric=self.metric.name,
            segment_count=len(segments),
            faces=face_models,
            structures=structure_records,
            ridge_lines=ridge_records,
            totals=totals
        )

    def save(self, result: MeasurementResult, output_path: str) -> str:
        """Save measurement result to JSON file"""
        os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(result.model_dump(), f, indent=2, ensure_ascii=False)

        logger.info(f"Saved measurement result to {output_path}")
        return output_path

    # ============================================================
    # Input Loading
    # ============================================================

    @staticmethod
    def load_segments(path: Union[str, Path]) -> List[Dict[str, Any]]:
        """
        Read drawn segments from JSON

        Accepts a GeoJSON FeatureCollection of LineStrings (features whose
        line_class property is ridge/hip/valley are skipped; see
        load_ridge_lines) or {"segments": [{"id", "coordinates"}, ...]}.
        """
        data = _read_json(path)

        if isinstance(data, Mapping) and data.get("type") == "FeatureCollection":
            segments = []
            for index, feature in enumerate(data.get("features", [])):
                geometry = feature.get("geometry") or {}
                properties = feature.get("properties") or {}
                if geometry.get("type") != "LineString":
                    logger.debug(f"Skipping feature {index}: {geometry.get('type')} is not a LineString")
                    continue
                if str(properties.get("line_class", "")).lower() in _RIDGE_CLASSES:
                    continue
                segment_id = feature.get("id", properties.get("id", str(index)))
                segments.append({"id": str(segment_id), "coordinates": geometry.get("coordinates", [])})
            logger.info(f"Loaded {len(segments)} segments from {path}")
            return segments

        if isinstance(data, Mapping) and isinstance(data.get("segments"), list):
            segments = [
                {"id": str(s.get("id", i)), "coordinates": s.get("coordinates", [])}
                if isinstance(s, Mapping) else {"id": str(i), "coordinates": s}
                for i, s in enumerate(data["segments"])
            ]
            logger.info(f"Loaded {len(segments)} segments from {path}")
            return segments

        raise InvalidGeometryError(
            f"{path}: expected a GeoJSON FeatureCollection or an object with a 'segments' list"
        )

    @staticmethod
    def load_ridge_lines(path: Union[str, Path]) -> List[Dict[str, Any]]:
        """
        Read ridge/hip/valley lines from the same file formats as
        load_segments (LineString features with a line_class property, or
        a top-level "ridge_lines" list)
        """
        data = _read_json(path)
        ridge_lines = []

        if isinstance(data, Mapping) and data.get("type") == "FeatureCollection":
            for index, feature in enumerate(data.get("features", [])):
                geometry = feature.get("geometry") or {}
                properties = feature.get("properties") or {}
                line_class = str(properties.get("line_class", "")).lower()
                if geometry.get("type") == "LineString" and line_class in _RIDGE_CLASSES:
                    ridge_lines.append({
                        "label": properties.get("label", f"R{len(ridge_lines) + 1}"),
                        "coordinates": geometry.get("coordinates", []),
                        "line_class": line_class
                    })
        elif isinstance(data, Mapping):
            ridge_lines = list(data.get("ridge_lines") or [])

        if ridge_lines:
            logger.info(f"Loaded {len(ridge_lines)} ridge lines from {path}")
        return ridge_lines

    # ============================================================
    # Helper Methods
    # ============================================================

    @staticmethod
    def _parse_ridge_line(item: Any, index: int):
        label = f"R{index + 1}"
        if isinstance(item, Mapping):
            if "geometry" in item:
                properties = item.get("properties") or {}
                return (
                    properties.get("label", label),
                    (item.get("geometry") or {}).get("coordinates", []),
                    properties.get("line_class", EdgeClass.RIDGE)
                )
            return (
                item.get("label", label),
                item.get("coordinates", []),
                item.get("line_class", EdgeClass.RIDGE)
            )
        return label, item, EdgeClass.RIDGE

    @staticmethod
    def _face_to_model(face: DetectedPolygon, plausible: bool, reason: Optional[str]) -> DetectedPolygonModel:
        return DetectedPolygonModel(
            polygon=GeoJSONPolygon(**face.to_geojson()["geometry"]),
            area_sqm=face.area_sqm,
            area_sqft=face.area_sqft,
            perimeter_m=face.perimeter_m,
            centroid=GeoJSONPoint(coordinates=list(face.centroid)),
            segment_ids=list(face.segment_ids),
            plausible=plausible,
            rejection_reason=reason
        )


def _read_json(path: Union[str, Path]) -> Any:
    with open(path, "r", encoding="utf-8") as f:
        try:
            return json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidGeometryError(f"{path} is not valid JSON: {e}") from e
