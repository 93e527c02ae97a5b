"""
Tidewatch - Core Package

This package contains the coastal and marine risk aggregation engine,
including provider adapters, scoring, regional variation and alerting.
"""

__version__ = "0.2.0"
