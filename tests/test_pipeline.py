"""End-to-end tests for the measurement pipeline and CLI."""
import json
import sys

import pytest

import cli
from roofmeasure.config import MeasurementConfig
from roofmeasure.exceptions import InvalidGeometryError
from roofmeasure.pipeline import RoofMeasurementPipeline
from roofmeasure.structures.pitch import parse_pitch, surface_area


@pytest.fixture
def two_room_segments():
    """20 m x 10 m outline split into two 10 m squares."""
    return [
        {"id": "s1", "coordinates": [[0, 0], [10, 0]]},
        {"id": "s2", "coordinates": [[10, 0], [20, 0]]},
        {"id": "s3", "coordinates": [[20, 0], [20, 10]]},
        {"id": "s4", "coordinates": [[20, 10], [10, 10]]},
        {"id": "s5", "coordinates": [[10, 10], [0, 10]]},
        {"id": "s6", "coordinates": [[0, 10], [0, 0]]},
        {"id": "mid", "coordinates": [[10, 0], [10, 10]]},
    ]


@pytest.fixture
def geojson_file(tmp_path, square_segments):
    features = [
        {
            "type": "Feature",
            "id": s["id"],
            "geometry": {"type": "LineString", "coordinates": s["coordinates"]},
            "properties": {}
        }
        for s in square_segments
    ]
    features.append({
        "type": "Feature",
        "geometry": {"type": "LineString", "coordinates": [[0, 5], [10, 5]]},
        "properties": {"line_class": "ridge", "label": "R1"}
    })
    features.append({
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [5, 5]},
        "properties": {}
    })
    path = tmp_path / "segments.geojson"
    path.write_text(json.dumps({"type": "FeatureCollection", "features": features}))
    return path


class TestPipelineRun:
    """Test a full measurement run."""

    def test_two_structures(self, two_room_segments):
        """Each plausible face becomes a labelled structure."""
        pipeline = RoofMeasurementPipeline(MeasurementConfig(metric="planar"))
        result = pipeline.run(two_room_segments, pitch="6/12", property_id="job-7")

        assert result.property_id == "job-7"
        assert result.metric == "planar"
        assert result.segment_count == 7
        assert len(result.faces) == 2
        assert sorted(s.label for s in result.structures) == ["A", "B"]

        plan = 200.0 * 10.7639
        assert result.totals.plan_area_sqft == pytest.approx(plan)
        assert result.totals.surface_area_sqft == pytest.approx(surface_area(plan, parse_pitch("6/12")))

    def test_implausible_faces_not_accepted(self):
        """Faces below the plausible roof size are reported but not measured."""
        segments = [[[0, 0], [3, 0]], [[3, 0], [3, 3]], [[3, 3], [0, 3]], [[0, 3], [0, 0]]]
        result = RoofMeasurementPipeline(MeasurementConfig(metric="planar")).run(segments)

        assert len(result.faces) == 1
        assert result.faces[0].plausible is False
        assert "too small" in result.faces[0].rejection_reason
        assert result.structures == []
        assert result.totals.plan_area_sqft == 0.0

    def test_auto_accept_off(self, square_segments):
        """Without auto-accept only faces are returned."""
        result = RoofMeasurementPipeline(MeasurementConfig(metric="planar")).run(
            square_segments, auto_accept=False
        )

        assert len(result.faces) == 1
        assert result.structures == []

    def test_ridge_lines(self, square_segments):
        """Ridge lines flow into the totals."""
        result = RoofMeasurementPipeline(MeasurementConfig(metric="planar")).run(
            square_segments,
            ridge_lines=[{"label": "R1", "coordinates": [[0, 5], [10, 5]]}]
        )

        assert result.totals.ridge_line_lf == pytest.approx(10.0 * 3.28084)
        assert result.ridge_lines[0].label == "R1"

    def test_geographic_run(self, geo_rectangle_segments):
        """Lon/lat input with the default spherical metric."""
        result = RoofMeasurementPipeline(MeasurementConfig()).run(geo_rectangle_segments)

        assert len(result.structures) == 1
        assert result.totals.plan_area_sqft == pytest.approx(200.0 * 10.7639, rel=5e-3)

    def test_generated_property_id(self, square_segments):
        """A property ID is generated when none is given."""
        result = RoofMeasurementPipeline(MeasurementConfig(metric="planar")).run(square_segments)
        assert result.property_id.startswith("ROOF-")

    def test_created_at_is_utc(self, square_segments):
        """The result timestamp carries an explicit UTC offset."""
        result = RoofMeasurementPipeline(MeasurementConfig(metric="planar")).run(square_segments)
        assert result.created_at.endswith("+00:00")

    def test_face_polygon_from_face_geojson(self, square_segments):
        """Face models carry the face's closed GeoJSON ring."""
        pipeline = RoofMeasurementPipeline(MeasurementConfig(metric="planar"))
        face = pipeline.extractor.extract(square_segments)[0]
        result = pipeline.run(square_segments)

        assert result.faces[0].polygon.model_dump() == face.to_geojson()["geometry"]

    def test_inferred_and_merged_run(self):
        """A gable drawn with a split side gets four corners and a ridge."""
        config = MeasurementConfig(metric="planar")
        config.extractor.merge_collinear_segments = True
        config.classifier.infer_ridge_lines = True
        segments = [
            [[0, 0], [12, 0]], [[12, 0], [20, 0]], [[20, 0], [20, 10]],
            [[20, 10], [0, 10]], [[0, 10], [0, 0]],
        ]

        result = RoofMeasurementPipeline(config).run(segments)

        assert result.structures[0].roof_type == "gable"
        assert result.totals.ridge_lf == pytest.approx(20.0 * 3.28084)
        assert result.totals.ridge_line_lf == 0.0


class TestPipelineIO:
    """Test loading and saving."""

    def test_load_feature_collection(self, geojson_file):
        """LineString features become segments, ridge features ridge lines."""
        segments = RoofMeasurementPipeline.load_segments(geojson_file)
        ridges = RoofMeasurementPipeline.load_ridge_lines(geojson_file)

        assert [s["id"] for s in segments] == ["s1", "s2", "s3", "s4"]
        assert len(ridges) == 1
        assert ridges[0]["line_class"] == "ridge"

    def test_load_segments_object(self, tmp_path, square_segments):
        """{"segments": [...]} files are accepted."""
        path = tmp_path / "segments.json"
        path.write_text(json.dumps({"segments": square_segments}))

        assert len(RoofMeasurementPipeline.load_segments(path)) == 4

    def test_load_unsupported(self, tmp_path):
        """Other JSON shapes are rejected."""
        path = tmp_path / "bad.json"
        path.write_text(json.dumps([1, 2, 3]))

        with pytest.raises(InvalidGeometryError):
            RoofMeasurementPipeline.load_segments(path)

    def test_save(self, tmp_path, square_segments):
        """Results are written as JSON."""
        pipeline = RoofMeasurementPipeline(MeasurementConfig(metric="planar"))
        result = pipeline.run(square_segments, property_id="job-9")
        output = tmp_path / "out" / "result.json"

        pipeline.save(result, str(output))

        data = json.loads(output.read_text())
        assert data["property_id"] == "job-9"
        assert data["totals"]["plan_area_sqft"] == pytest.approx(100.0 * 10.7639)


class TestCli:
    """Test the command line entry point."""

    def test_measure(self, geojson_file, tmp_path, monkeypatch, capsys):
        """measure writes a result file and prints a summary."""
        output = tmp_path / "result.json"
        monkeypatch.setattr(sys, "argv", [
            "cli.py", "measure", "--input", str(geojson_file), "--metric", "planar",
            "--output", str(output), "--summary"
        ])

        assert cli.main() == 0
        summary = json.loads(capsys.readouterr().out)
        assert summary["structures"] == ["A"]
        assert output.exists()

    def test_measure_with_inferred_lines(self, geojson_file, tmp_path, monkeypatch, capsys):
        """--infer-ridge-lines adds hip footage for a square outline."""
        monkeypatch.setattr(sys, "argv", [
            "cli.py", "measure", "--input", str(geojson_file), "--metric", "planar",
            "--output", str(tmp_path / "result.json"), "--summary", "--infer-ridge-lines"
        ])

        assert cli.main() == 0
        summary = json.loads(capsys.readouterr().out)
        assert summary["hip_lf"] == pytest.approx(4 * 7.0711 * 3.28084, abs=0.1)

    def test_measure_missing_input(self, tmp_path, monkeypatch):
        """A missing input file fails cleanly."""
        monkeypatch.setattr(sys, "argv", ["cli.py", "measure", "--input", str(tmp_path / "nope.json")])
        assert cli.main() == 1

    def test_pitch(self, monkeypatch, capsys):
        """pitch prints the surface area."""
        monkeypatch.setattr(sys, "argv", ["cli.py", "pitch", "--plan-area", "1000", "--pitch", "6/12"])

        assert cli.main() == 0
        data = json.loads(capsys.readouterr().out)
        assert data["surface_area_sqft"] == pytest.approx(1118.03)
        assert data["surface_squares"] == pytest.approx(11.18)

    def test_bad_pitch(self, monkeypatch):
        """Invalid pitch text exits with 1."""
        monkeypatch.setattr(sys, "argv", ["cli.py", "pitch", "--plan-area", "1000", "--pitch", "steep"])
        assert cli.main() == 1
