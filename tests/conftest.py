"""
Pytest configuration and fixtures for roof measurement tests.

Provides reusable fixtures for:
- Planar (metre) segment drawings
- A geographic rectangle in lon/lat
- Fresh configuration objects
"""

import math
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from roofmeasure.config import MeasurementConfig
from roofmeasure.geometry.geometry_utils import GeometryUtils
from roofmeasure.geometry.utils import SQFT_PER_SQM


# =============================================================================
# CONFIG FIXTURES
# =============================================================================

@pytest.fixture
def planar_config() -> MeasurementConfig:
    """Fresh config using the local metre frame."""
    return MeasurementConfig(metric="planar")


@pytest.fixture
def spherical_config() -> MeasurementConfig:
    """Fresh default config."""
    return MeasurementConfig()


# =============================================================================
# PLANAR GEOMETRY FIXTURES
# =============================================================================

@pytest.fixture
def square_segments():
    """10 m x 10 m square drawn as four strokes."""
    return [
        {"id": "s1", "coordinates": [[0, 0], [10, 0]]},
        {"id": "s2", "coordinates": [[10, 0], [10, 10]]},
        {"id": "s3", "coordinates": [[10, 10], [0, 10]]},
        {"id": "s4", "coordinates": [[0, 10], [0, 0]]},
    ]


@pytest.fixture
def square_with_diagonal(square_segments):
    """The square split into two triangles by a diagonal."""
    return square_segments + [{"id": "d1", "coordinates": [[0, 0], [10, 10]]}]


@pytest.fixture
def rectangle_ring():
    """20 m x 10 m rectangle, long axis east-west."""
    return [(0, 0), (20, 0), (20, 10), (0, 10)]


def square_ring_for_area(plan_area_sqft: float, x0: float = 0.0):
    """Planar square whose area is plan_area_sqft."""
    side = math.sqrt(plan_area_sqft / SQFT_PER_SQM)
    return [(x0, 0.0), (x0 + side, 0.0), (x0 + side, side), (x0, side)]


# =============================================================================
# GEOGRAPHIC FIXTURES
# =============================================================================

@pytest.fixture
def geo_rectangle():
    """20 m x 10 m rectangle near Denver as [lon, lat]."""
    local = [(0, 0), (20, 0), (20, 10), (0, 10)]
    return GeometryUtils.local_to_degrees(local, ref_lon=-104.99, ref_lat=39.74)


@pytest.fixture
def geo_rectangle_segments(geo_rectangle):
    """The geographic rectangle drawn as four strokes."""
    n = len(geo_rectangle)
    return [
        {"id": f"g{i}", "coordinates": [list(geo_rectangle[i]), list(geo_rectangle[(i + 1) % n])]}
        for i in range(n)
    ]


@pytest.fixture
def square_of_area():
    """Factory: planar square with a given plan area in sq ft."""
    return square_ring_for_area
