"""
Scoring Module

Normalization, confidence and composite aggregation for risk indices.
"""
from src.tidewatch.scoring.normalizer import ScoreNormalizer
from src.tidewatch.scoring.confidence import ConfidenceTracker
from src.tidewatch.scoring.composite import CompositeIndexCalculator, weighted_overall

__all__ = [
    "ScoreNormalizer",
    "ConfidenceTracker",
    "CompositeIndexCalculator",
    "weighted_overall",
]
