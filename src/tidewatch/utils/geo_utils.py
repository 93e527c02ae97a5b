"""
Geographic Utility Functions

Helper functions for geographic calculations including distance measurements.
"""
from math import radians, cos, sin, asin, sqrt

EARTH_RADIUS_KM = 6371.0


def haversine_km(
    lat1: float,
    lon1: float,
    lat2: float,
    lon2: float
) -> float:
    """
    Calculate great-circle distance between two points using Haversine formula.

    Args:
        lat1: Latitude of first point (decimal degrees)
        lon1: Longitude of first point (decimal degrees)
        lat2: Latitude of second point (decimal degrees)
        lon2: Longitude of second point (decimal degrees)

    Returns:
        Distance in kilometers

    Formula:
        a = sin²(Δlat/2) + cos(lat1) × cos(lat2) × sin²(Δlon/2)
        c = 2 × asin(√a)
        distance = R × c  (R = Earth radius = 6,371 km)
    """
    lon1, lat1, lon2, lat2 = map(radians, [lon1, lat1, lon2, lat2])

    dlon = lon2 - lon1
    dlat = lat2 - lat1
    a = sin(dlat/2)**2 + cos(lat1) * cos(lat2) * sin(dlon/2)**2
    c = 2 * asin(sqrt(min(1.0, a)))

    return c * EARTH_RADIUS_KM


def miles_to_km(miles: float) -> float:
    """Convert statute miles to kilometers."""
    return miles * 1.609344


def nautical_miles_to_km(nmi: float) -> float:
    """Convert nautical miles to kilometers."""
    return nmi * 1.852
