"""Tests for ridge and hip line inference."""
import math

import pytest

from roofmeasure.config import ClassifierConfig, MeasurementConfig
from roofmeasure.geometry.utils import PLANAR, SPHERICAL, m_to_ft
from roofmeasure.structures.aggregator import StructureAggregator
from roofmeasure.structures.models import EdgeClass, RoofType
from roofmeasure.structures.roof_lines import infer_roof_lines


class TestGableRidge:
    """Test the long-axis ridge of gable outlines."""

    def test_rectangle_ridge_runs_full_length(self, rectangle_ring):
        """The ridge joins the midpoints of the short sides."""
        lines = infer_roof_lines(rectangle_ring, RoofType.GABLE, PLANAR, label="A")

        assert len(lines) == 1
        ridge = lines[0]
        assert ridge.label == "A-ridge"
        assert ridge.line_class == EdgeClass.RIDGE
        assert ridge.length_m == pytest.approx(20.0)
        assert sorted(ridge.coordinates) == [pytest.approx((0.0, 5.0)), pytest.approx((20.0, 5.0))]
        assert ridge.metadata["inferred"] is True

    def test_rotated_rectangle(self):
        """The ridge follows the long axis whatever its bearing."""
        c, s = math.cos(math.radians(30)), math.sin(math.radians(30))
        ring = [(x * c - y * s, x * s + y * c) for x, y in [(0, 0), (20, 0), (20, 10), (0, 10)]]

        lines = infer_roof_lines(ring, RoofType.GABLE, PLANAR)
        assert lines[0].length_m == pytest.approx(20.0)

    def test_ridge_clipped_to_outline(self):
        """A ridge leaving a notched outline keeps its longest inside piece."""
        # 30 x 10 with a 4 m deep notch cut into the middle of the west end
        ring = [(0, 0), (30, 0), (30, 10), (0, 10), (0, 7), (4, 7), (4, 3), (0, 3)]

        lines = infer_roof_lines(ring, RoofType.GABLE, PLANAR)

        assert len(lines) == 1
        assert lines[0].length_m == pytest.approx(26.0)

    def test_geographic_rectangle(self, geo_rectangle):
        """Lon/lat outlines get a lon/lat ridge measured in metres."""
        lines = infer_roof_lines(geo_rectangle, RoofType.GABLE, SPHERICAL)

        assert lines[0].length_m == pytest.approx(20.0, rel=5e-3)
        lon, lat = lines[0].coordinates[0]
        assert -105.0 < lon < -104.9
        assert 39.7 < lat < 39.8


class TestHipLines:
    """Test centroid-to-corner hip lines."""

    def test_square_has_four_hips(self):
        """Each corner of a square gets a hip to the centre."""
        lines = infer_roof_lines([(0, 0), (10, 0), (10, 10), (0, 10)], RoofType.HIP, PLANAR, label="B")

        assert [line.label for line in lines] == ["B-hip1", "B-hip2", "B-hip3", "B-hip4"]
        assert all(line.line_class == EdgeClass.HIP for line in lines)
        assert sum(line.length_m for line in lines) == pytest.approx(4 * math.hypot(5, 5))

    def test_straight_vertices_are_not_corners(self):
        """A vertex in the middle of a side gets no hip."""
        ring = [(0, 0), (5, 0), (10, 0), (10, 10), (0, 10)]
        assert len(infer_roof_lines(ring, RoofType.HIP, PLANAR)) == 4


class TestNoInference:
    """Test outlines that get no lines."""

    @pytest.mark.parametrize("roof_type", [RoofType.FLAT, RoofType.COMPLEX])
    def test_other_roof_types(self, rectangle_ring, roof_type):
        """Only gable and hip outlines are inferred."""
        assert infer_roof_lines(rectangle_ring, roof_type, PLANAR) == []

    def test_degenerate_outline(self):
        """Collinear points bound nothing."""
        assert infer_roof_lines([(0, 0), (5, 0), (10, 0)], RoofType.GABLE, PLANAR) == []


class TestAggregatorInference:
    """Test inferred lines in structure totals."""

    @pytest.fixture
    def inferring_aggregator(self):
        config = MeasurementConfig(metric="planar", classifier=ClassifierConfig(infer_ridge_lines=True))
        return StructureAggregator(property_id="job-3", config=config, metric=PLANAR)

    def test_off_by_default(self, planar_config, rectangle_ring):
        """Without the option there is no ridge footage."""
        aggregator = StructureAggregator(config=planar_config, metric=PLANAR)
        structure = aggregator.add_or_replace_structure("A", rectangle_ring)

        assert structure.inferred_lines == []
        assert aggregator.totals().ridge_lf == 0.0

    def test_gable_ridge_in_totals(self, inferring_aggregator, rectangle_ring):
        """An inferred ridge counts as ridge footage but not as a drawn ridge line."""
        inferring_aggregator.add_or_replace_structure("A", rectangle_ring)

        totals = inferring_aggregator.totals()

        assert totals.ridge_lf == pytest.approx(m_to_ft(20.0))
        assert totals.ridge_line_lf == 0.0

    def test_hip_lines_in_totals(self, inferring_aggregator):
        """A square outline contributes four hips."""
        inferring_aggregator.add_or_replace_structure("A", [(0, 0), (10, 0), (10, 10), (0, 10)])

        assert inferring_aggregator.totals().hip_lf == pytest.approx(m_to_ft(4 * math.hypot(5, 5)))

    def test_excluded_structure_lines_not_counted(self, inferring_aggregator, rectangle_ring):
        """Excluding a structure drops its inferred lines too."""
        inferring_aggregator.add_or_replace_structure("A", rectangle_ring)
        inferring_aggregator.set_inclusion("A", False)

        assert inferring_aggregator.totals().ridge_lf == 0.0

    def test_lines_exported_with_structure(self, inferring_aggregator, rectangle_ring):
        """Structure records list their inferred lines."""
        inferring_aggregator.add_or_replace_structure("A", rectangle_ring)
        record = inferring_aggregator.export_records()[0][0]

        assert [line.label for line in record.inferred_lines] == ["A-ridge"]
        assert record.inferred_lines[0].line_class == "ridge"
        assert record.inferred_lines[0].line.type == "LineString"
