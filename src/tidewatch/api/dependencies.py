"""
FastAPI Dependencies

Provides dependency injection for the engine and settings.
"""
from functools import lru_cache

from config.settings import settings
from src.tidewatch.engine import RiskAggregationEngine


@lru_cache()
def get_engine() -> RiskAggregationEngine:
    """
    Engine dependency.

    Returns:
        Process-wide RiskAggregationEngine
    """
    return RiskAggregationEngine()


def get_settings():
    """
    Settings dependency.

    Returns:
        Application settings
    """
    return settings
