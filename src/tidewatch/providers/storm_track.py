"""
Storm Track Adapter

Turns active tropical-system fixes into distance, wind and pressure
readings relative to the requested location.
"""
from datetime import datetime, timezone
from typing import Iterable, List, Optional

import requests
from pydantic import BaseModel, Field, ValidationError

from config.settings import settings
from src.tidewatch.errors import ProviderUnavailable
from src.tidewatch.models.measurement import Measurement, MeasurementKind
from src.tidewatch.providers.base import ProviderAdapter
from src.tidewatch.utils.geo_utils import haversine_km
from src.tidewatch.utils.logger import get_logger

logger = get_logger(__name__)

# Readings reported when the feed is healthy but no system is active
NO_STORM_DISTANCE_KM = 1000.0
NO_STORM_WIND_KT = 0.0
NO_STORM_PRESSURE_HPA = 1013.0


class StormFix(BaseModel):
    """Latest position and intensity of one tropical system."""

    name: str
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    max_wind_kt: Optional[float] = Field(None, ge=0)
    central_pressure_hpa: Optional[float] = None
    observed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class StormTrackProvider(ProviderAdapter):
    """
    Reads storm fixes from a JSON feed (a list of StormFix objects) or from
    fixes supplied directly, and reports on the nearest system.

    With no active system the adapter reports live "nothing nearby" readings:
    the no-storm distance, calm wind and ambient pressure.
    """

    provider_id = "storm-track"

    def __init__(
        self,
        feed_url: Optional[str] = None,
        fixes: Optional[Iterable[StormFix]] = None,
        timeout: Optional[float] = None,
    ):
        self.feed_url = feed_url or settings.storm_track_url
        self.fixes = list(fixes) if fixes is not None else None
        self.timeout = timeout or settings.provider_timeout_seconds
        self.session = requests.Session()
        self.session.headers.update({"User-Agent": settings.provider_user_agent})

    def fetch(self, latitude: float, longitude: float) -> List[Measurement]:
        fixes = self.fixes if self.fixes is not None else self._fetch_fixes()
        if not fixes:
            logger.info("no_active_storms")
            return self._no_storm_readings()

        nearest = min(fixes, key=lambda f: haversine_km(latitude, longitude, f.latitude, f.longitude))
        distance = haversine_km(latitude, longitude, nearest.latitude, nearest.longitude)
        logger.info("nearest_storm", name=nearest.name, distance_km=round(distance, 1))

        measurements = [Measurement(
            kind=MeasurementKind.STORM_DISTANCE,
            value=round(distance, 2),
            unit="km",
            source_id=self.provider_id,
            observed_at=nearest.observed_at,
        )]
        if nearest.max_wind_kt is not None:
            measurements.append(Measurement(
                kind=MeasurementKind.WIND_SPEED,
                value=nearest.max_wind_kt,
                unit="kn",
                source_id=self.provider_id,
                observed_at=nearest.observed_at,
            ))
        if nearest.central_pressure_hpa is not None:
            measurements.append(Measurement(
                kind=MeasurementKind.PRESSURE,
                value=nearest.central_pressure_hpa,
                unit="hPa",
                source_id=self.provider_id,
                observed_at=nearest.observed_at,
            ))
        return measurements

    def _fetch_fixes(self) -> List[StormFix]:
        if not self.feed_url:
            raise ProviderUnavailable(self.provider_id, "no storm track feed configured")

        try:
            response = self.session.get(self.feed_url, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            logger.error("api_request_failed", provider_id=self.provider_id, error=str(e))
            raise ProviderUnavailable(self.provider_id, str(e)) from e
        except ValueError as e:
            raise ProviderUnavailable(self.provider_id, "response is not JSON") from e

        records = payload.get("storms", []) if isinstance(payload, dict) else payload
        if not isinstance(records, list):
            raise ProviderUnavailable(self.provider_id, "unexpected payload shape")

        fixes = []
        for idx, record in enumerate(records):
            try:
                fixes.append(StormFix.model_validate(record))
            except ValidationError as e:
                logger.warning("storm_fix_validation_failed", index=idx, error=str(e))

        if records and not fixes:
            raise ProviderUnavailable(self.provider_id, "no valid storm fixes in feed")
        return fixes

    def _no_storm_readings(self) -> List[Measurement]:
        observed_at = datetime.now(timezone.utc)
        readings = [
            (MeasurementKind.STORM_DISTANCE, NO_STORM_DISTANCE_KM, "km"),
            (MeasurementKind.WIND_SPEED, NO_STORM_WIND_KT, "kn"),
            (MeasurementKind.PRESSURE, NO_STORM_PRESSURE_HPA, "hPa"),
        ]
        return [
            Measurement(kind=kind, value=value, unit=unit, source_id=self.provider_id, observed_at=observed_at)
            for kind, value, unit in readings
        ]
