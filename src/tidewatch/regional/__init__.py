"""
Regional Module

Coastline segments and segment-level score approximation.
"""
from src.tidewatch.regional.segments import load_segments, get_segments
from src.tidewatch.regional.variation import RegionalVariationEngine

__all__ = ["load_segments", "get_segments", "RegionalVariationEngine"]
