"""
Risk Data Models

Pydantic models for sub-scores, composite indices and alerts.
Field names serialize in camelCase so every domain shares one JSON shape.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Domain(str, Enum):
    """Risk or health category computed by the engine."""

    OCEAN_HEALTH = "oceanHealth"
    FLOOD_RISK = "floodRisk"
    STORM_SURGE = "stormSurge"
    CYCLONE_RISK = "cycloneRisk"
    REEF_BLEACHING = "reefBleaching"


class RiskTier(str, Enum):
    """
    Ordered risk classification.

    ``critical`` is the cyclone domain's name for the top tier and ranks
    equal to ``severe``.
    """

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    SEVERE = "severe"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _TIER_RANKS[self]

    def __lt__(self, other):
        if not isinstance(other, RiskTier):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other):
        if not isinstance(other, RiskTier):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other):
        if not isinstance(other, RiskTier):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other):
        if not isinstance(other, RiskTier):
            return NotImplemented
        return self.rank >= other.rank


_TIER_RANKS = {
    RiskTier.LOW: 0,
    RiskTier.MODERATE: 1,
    RiskTier.HIGH: 2,
    RiskTier.SEVERE: 3,
    RiskTier.CRITICAL: 3,
}


class AlertLevel(str, Enum):
    """Advisory level carried by an Alert."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    SEVERE = "severe"

    @property
    def rank(self) -> int:
        return list(AlertLevel).index(self)

    @classmethod
    def from_tier(cls, tier: RiskTier) -> "AlertLevel":
        """Map a risk tier to the alert level of the same rank."""
        return list(cls)[tier.rank]


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class SubScore(_CamelModel):
    """
    Normalized 0-100 contribution of one component to one domain index.

    Attributes:
        kind: Component key (a measurement kind or a derived index name)
        score: Normalized score
        is_substituted: True when built from a default instead of a live reading
        domain: Domain the sub-score belongs to
    """

    kind: str
    score: float = Field(..., ge=0, le=100)
    is_substituted: bool = False
    domain: Domain


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CompositeIndex(_CamelModel):
    """
    Aggregated result for one domain at one location and time.

    ``overall`` is the weighted combination of ``sub_scores``, renormalized
    over the weights of the sub-scores that were present.
    """

    domain: Domain
    overall: float = Field(..., ge=0, le=100)
    sub_scores: List[SubScore] = Field(default_factory=list)
    confidence: float = Field(..., ge=0, le=1)
    risk_tier: RiskTier
    location: Tuple[float, float]
    computed_at: datetime = Field(default_factory=_utcnow)
    drivers: Dict[str, float] = Field(default_factory=dict)

    @property
    def substituted_kinds(self) -> List[str]:
        return [s.kind for s in self.sub_scores if s.is_substituted]

    @property
    def is_degraded(self) -> bool:
        """True when any sub-score came from a default value."""
        return any(s.is_substituted for s in self.sub_scores)

    def sub_score(self, kind: str):
        for s in self.sub_scores:
            if s.kind == kind:
                return s
        return None


class Alert(_CamelModel):
    """Advisory derived from a computation. Ephemeral, never persisted."""

    level: AlertLevel
    message: str
    area: str
    domain: Domain
