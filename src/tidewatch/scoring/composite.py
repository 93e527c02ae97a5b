"""
Composite Index Calculator

Combines weighted sub-scores into a domain index with a confidence value
and a risk tier.
"""
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from config.settings import settings
from src.tidewatch.alerts.classifier import RiskClassifier
from src.tidewatch.models.risk import CompositeIndex, Domain, SubScore
from src.tidewatch.reference.tables import ReferenceTables, get_reference_tables
from src.tidewatch.scoring.confidence import ConfidenceTracker
from src.tidewatch.utils.logger import get_logger

logger = get_logger(__name__)


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def weighted_overall(sub_scores: Sequence[SubScore], weights: Mapping[str, float]) -> float:
    """
    Weighted mean renormalized over the weights of the sub-scores present.

    Returns 0.0 when no weighted sub-score is present.
    """
    numerator = 0.0
    denominator = 0.0
    for sub in sub_scores:
        weight = weights.get(sub.kind)
        if not weight:
            continue
        numerator += weight * sub.score
        denominator += weight
    if denominator <= 0:
        return 0.0
    return round(_clamp(numerator / denominator), 2)


class CompositeIndexCalculator:
    """
    Pure, deterministic aggregation of sub-scores.

    Example:
        calculator = CompositeIndexCalculator()
        index = calculator.compute(Domain.FLOOD_RISK, sub_scores)
        print(index.overall, index.risk_tier, index.confidence)
    """

    def __init__(
        self,
        tables: Optional[ReferenceTables] = None,
        confidence_tracker: Optional[ConfidenceTracker] = None,
        classifier: Optional[RiskClassifier] = None,
    ):
        self.tables = tables or get_reference_tables()
        self.confidence_tracker = confidence_tracker or ConfidenceTracker(self.tables)
        self.classifier = classifier or RiskClassifier(self.tables)

    def compute(
        self,
        domain: Domain,
        sub_scores: Sequence[SubScore],
        weights: Optional[Mapping[str, float]] = None,
        location: Optional[Tuple[float, float]] = None,
        drivers: Optional[Mapping[str, float]] = None,
        computed_at: Optional[datetime] = None,
        insufficient_data: bool = False,
    ) -> CompositeIndex:
        """
        Compute a composite index.

        Args:
            domain: Domain being scored
            sub_scores: Sub-scores for the domain
            weights: Weight per component key (defaults to the domain table)
            location: (lat, lng), defaults to the configured location
            drivers: Raw driving values (e.g. ``alertLevel`` for reef bleaching)
            computed_at: Timestamp to stamp on the index
            insufficient_data: No live input reached the domain; confidence
                is pinned to the floor

        Returns:
            CompositeIndex with only the weighted sub-scores retained

        Raises:
            ConfigurationError: if the domain has no weight or tier table
        """
        self.tables.require(domain)
        if weights is None:
            weights = self.tables.weights_for(domain)

        used = self._weighted_sub_scores(domain, sub_scores, weights)
        overall = weighted_overall(used, weights)
        drivers = dict(drivers or {})
        tier = self.classifier.tier_for(domain, overall, drivers)
        if insufficient_data:
            confidence = self.confidence_tracker.floor(domain)
        else:
            confidence = self.confidence_tracker.track(domain, used)

        fields = {}
        if computed_at is not None:
            fields["computed_at"] = computed_at

        index = CompositeIndex(
            domain=domain,
            overall=overall,
            sub_scores=used,
            confidence=confidence,
            risk_tier=tier,
            location=location or (settings.default_latitude, settings.default_longitude),
            drivers=drivers,
            **fields,
        )

        logger.debug(
            "composite_index_computed",
            domain=domain.value,
            overall=overall,
            risk_tier=tier.value,
            confidence=confidence,
            sub_scores=len(used),
        )
        return index

    def _weighted_sub_scores(
        self,
        domain: Domain,
        sub_scores: Sequence[SubScore],
        weights: Mapping[str, float],
    ) -> List[SubScore]:
        seen: Dict[str, SubScore] = {}
        for sub in sub_scores:
            if sub.domain != domain:
                logger.warning("sub_score_domain_mismatch", kind=sub.kind, expected=domain.value, got=sub.domain.value)
                continue
            if sub.kind not in weights:
                logger.info("sub_score_unweighted", kind=sub.kind, domain=domain.value)
                continue
            if sub.kind in seen:
                logger.warning("sub_score_duplicate", kind=sub.kind, domain=domain.value)
                continue
            seen[sub.kind] = sub
        return list(seen.values())
