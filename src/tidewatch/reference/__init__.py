"""
Reference Module

Externally overridable weights, thresholds, defaults and multipliers.
"""
from src.tidewatch.reference.tables import (
    ReferenceTables,
    StepTable,
    TierTable,
    ConfidenceProfile,
    load_reference_tables,
    get_reference_tables,
)

__all__ = [
    "ReferenceTables",
    "StepTable",
    "TierTable",
    "ConfidenceProfile",
    "load_reference_tables",
    "get_reference_tables",
]
