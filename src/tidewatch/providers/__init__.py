"""
Providers Module

Adapters for upstream measurement sources.
"""
from src.tidewatch.providers.base import (
    ProviderAdapter,
    ProviderFailure,
    StaticProvider,
    collect_measurements,
)
from src.tidewatch.providers.open_meteo import OpenMeteoForecastProvider, OpenMeteoMarineProvider
from src.tidewatch.providers.storm_track import StormFix, StormTrackProvider

__all__ = [
    "ProviderAdapter",
    "ProviderFailure",
    "StaticProvider",
    "collect_measurements",
    "OpenMeteoForecastProvider",
    "OpenMeteoMarineProvider",
    "StormFix",
    "StormTrackProvider",
]
