"""
Data Models

Measurement, sub-score, composite index, alert and regional models.
"""
from src.tidewatch.models.measurement import CANONICAL_UNITS, Measurement, MeasurementKind
from src.tidewatch.models.risk import (
    Alert,
    AlertLevel,
    CompositeIndex,
    Domain,
    RiskTier,
    SubScore,
)
from src.tidewatch.models.region import RegionalSegment, SegmentScore

__all__ = [
    "CANONICAL_UNITS",
    "Measurement",
    "MeasurementKind",
    "Alert",
    "AlertLevel",
    "CompositeIndex",
    "Domain",
    "RiskTier",
    "SubScore",
    "RegionalSegment",
    "SegmentScore",
]
