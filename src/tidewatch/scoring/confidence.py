"""
Confidence Tracker

Confidence attached to every composite index so consumers can tell a
strong live signal from a mostly-defaulted one.
"""
from typing import Dict, List, Optional, Sequence

from src.tidewatch.models.risk import Domain, SubScore
from src.tidewatch.reference.tables import ReferenceTables, get_reference_tables
from src.tidewatch.utils.logger import get_logger

logger = get_logger(__name__)


class ConfidenceTracker:
    """
    Per-domain confidence: ``max(floor, base - penalty * substituted)``.

    With no sub-scores at all, or when every input was defaulted,
    confidence is the floor.
    """

    def __init__(self, tables: Optional[ReferenceTables] = None):
        self.tables = tables or get_reference_tables()

    def floor(self, domain: Domain) -> float:
        return round(self.tables.confidence_profile(domain).floor, 4)

    def track(self, domain: Domain, sub_scores: Sequence[SubScore]) -> float:
        profile = self.tables.confidence_profile(domain)
        if not sub_scores:
            logger.debug("confidence_no_sub_scores", domain=domain.value, floor=profile.floor)
            return round(profile.floor, 4)

        substituted = sum(1 for s in sub_scores if s.is_substituted)
        if substituted == len(sub_scores):
            return round(profile.floor, 4)
        confidence = max(profile.floor, profile.base - profile.penalty * substituted)
        return round(min(1.0, confidence), 4)

    @staticmethod
    def breakdown(sub_scores: Sequence[SubScore]) -> Dict[str, List[str]]:
        """Which sub-scores came from live readings and which from defaults."""
        return {
            "live": [s.kind for s in sub_scores if not s.is_substituted],
            "substituted": [s.kind for s in sub_scores if s.is_substituted],
        }
