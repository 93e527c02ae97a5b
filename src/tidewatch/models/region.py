"""
Regional Data Models

Static coastline segments and the per-segment scores derived from them.
"""
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.tidewatch.models.risk import Domain, RiskTier


class RegionalSegment(BaseModel):
    """
    Named geographic zone with a baseline multiplier.

    Attributes:
        id: Segment identifier (e.g. ``lagoon-blue-bay``)
        name: Display name
        category: Region category used to resolve the multiplier
        centroid: (lat, lng) of the segment center
        polygon: Outline as (lat, lng) vertices, may be empty
        multiplier: Factor applied to a composite index
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    category: str = "default"
    centroid: Tuple[float, float]
    polygon: List[Tuple[float, float]] = Field(default_factory=list)
    multiplier: float = Field(1.0, gt=0)

    @field_validator("category")
    @classmethod
    def normalize_category(cls, v: str) -> str:
        """Categories are matched case-insensitively."""
        return v.strip().lower()

    @field_validator("centroid")
    @classmethod
    def validate_centroid(cls, v: Tuple[float, float]) -> Tuple[float, float]:
        lat, lng = v
        if not -90 <= lat <= 90 or not -180 <= lng <= 180:
            raise ValueError(f"centroid out of range: {v}")
        return v


class SegmentScore(BaseModel):
    """
    Segment-level score for map rendering.

    This is an approximation: one composite index scaled by the segment's
    multiplier, not a measurement taken inside the segment.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    segment_id: str
    name: str
    domain: Domain
    score: float = Field(..., ge=0, le=100)
    base_overall: float
    multiplier: float
    risk_tier: Optional[RiskTier] = None
    confidence: float = Field(..., ge=0, le=1)
    centroid: Tuple[float, float]
    approximation: bool = True
