"""Tests for roof type detection."""
import pytest

from roofmeasure.geometry.utils import PLANAR
from roofmeasure.structures.models import RoofType
from roofmeasure.structures.roof_type import detect_roof_type


class TestDetectRoofType:
    """Test the corner-based roof type heuristic."""

    def test_elongated_rectangle_is_gable(self, rectangle_ring):
        """A 2:1 rectangle is a gable roof."""
        roof_type, confidence = detect_roof_type(rectangle_ring, PLANAR)
        assert roof_type == RoofType.GABLE
        assert confidence == pytest.approx(0.85)

    def test_square_is_hip(self):
        """A square footprint is a hip roof."""
        roof_type, confidence = detect_roof_type([(0, 0), (10, 0), (10, 10), (0, 10)], PLANAR)
        assert roof_type == RoofType.HIP
        assert confidence == pytest.approx(0.75)

    def test_l_shape_is_hip(self):
        """Five to eight corners is a hip roof."""
        ring = [(0, 0), (20, 0), (20, 10), (10, 10), (10, 20), (0, 20)]
        roof_type, confidence = detect_roof_type(ring, PLANAR)
        assert roof_type == RoofType.HIP
        assert confidence == pytest.approx(0.8)

    def test_many_corners_is_complex(self):
        """More than eight corners is complex."""
        ring = [
            (0, 0), (10, 0), (10, 5), (15, 5), (15, 0), (25, 0),
            (25, 10), (15, 10), (15, 15), (0, 15),
        ]
        roof_type, _ = detect_roof_type(ring, PLANAR)
        assert roof_type == RoofType.COMPLEX

    def test_triangle_is_complex(self):
        """A triangle has too few right angles."""
        roof_type, _ = detect_roof_type([(0, 0), (10, 0), (5, 8)], PLANAR)
        assert roof_type == RoofType.COMPLEX

    def test_degenerate_is_flat(self):
        """Fewer than 3 points gives flat with no confidence."""
        assert detect_roof_type([(0, 0), (1, 1)], PLANAR) == (RoofType.FLAT, 0.0)

    def test_geographic_rectangle(self, geo_rectangle):
        """Works on lon/lat rings with the default metric."""
        roof_type, _ = detect_roof_type(geo_rectangle)
        assert roof_type == RoofType.GABLE
