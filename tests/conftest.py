"""
Shared fixtures for Tidewatch tests
"""
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from src.tidewatch.models.measurement import Measurement, MeasurementKind
from src.tidewatch.models.region import RegionalSegment
from src.tidewatch.reference.tables import load_reference_tables


@pytest.fixture(scope="session")
def tables():
    return load_reference_tables()


@pytest.fixture
def segments():
    return [
        RegionalSegment(id="east-1", name="East Coast", category="east",
                        centroid=(-20.19, 57.78), multiplier=1.05,
                        polygon=[(-20.15, 57.76), (-20.15, 57.80), (-20.23, 57.80), (-20.23, 57.76)]),
        RegionalSegment(id="north-1", name="North Coast", category="north",
                        centroid=(-20.01, 57.58), multiplier=0.95),
    ]


@pytest.fixture
def measure():
    """Factory for canonical-unit measurements."""
    def _make(kind, value, **kwargs):
        return Measurement.canonical(MeasurementKind(kind), value, **kwargs)
    return _make


@pytest.fixture(autouse=True)
def no_redis():
    """Keep tests off a real Redis server."""
    with patch("src.tidewatch.api.cache.get_redis_client", return_value=None):
        yield
