"""
Open-Meteo Adapters

Marine (sea-surface temperature, waves, swell, degree heating weeks) and
forecast (precipitation, soil moisture, wind, pressure) readings from the
Open-Meteo APIs. No API key is required.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

import requests

from config.settings import settings
from src.tidewatch.errors import ProviderUnavailable
from src.tidewatch.models.measurement import Measurement, MeasurementKind
from src.tidewatch.providers.base import ProviderAdapter
from src.tidewatch.utils.logger import get_logger

logger = get_logger(__name__)

# Degree heating weeks from trailing daily SST
DHW_WINDOW_DAYS = 84
DHW_THRESHOLD_C = 30.0
DHW_CAP = 20.0


def _valid(values: Optional[Sequence[Any]]) -> List[float]:
    return [float(v) for v in (values or []) if v is not None]


def degree_heating_weeks(daily_sst: Sequence[Optional[float]]) -> float:
    """
    Accumulated heat stress over the trailing window.

    Each day above the threshold contributes (sst - threshold) / 7
    degree-weeks; the total is capped.
    """
    dhw = sum((t - DHW_THRESHOLD_C) / 7 for t in _valid(daily_sst) if t > DHW_THRESHOLD_C)
    return round(min(dhw, DHW_CAP), 2)


class _OpenMeteoProvider(ProviderAdapter):

    def __init__(self, base_url: str, timeout: Optional[float] = None):
        self.base_url = base_url
        self.timeout = timeout or settings.provider_timeout_seconds
        self.session = requests.Session()
        self.session.headers.update({
            "Accept": "application/json",
            "User-Agent": settings.provider_user_agent,
        })
        logger.info("provider_initialized", provider_id=self.provider_id, base_url=self.base_url)

    def _get(self, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.session.get(self.base_url, params=params, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            logger.error(
                "api_request_failed",
                provider_id=self.provider_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise ProviderUnavailable(self.provider_id, str(e)) from e
        except ValueError as e:
            raise ProviderUnavailable(self.provider_id, "response is not JSON") from e

        if not isinstance(payload, dict):
            raise ProviderUnavailable(self.provider_id, "unexpected payload shape")
        if payload.get("error"):
            raise ProviderUnavailable(self.provider_id, payload.get("reason", "API error"))

        logger.info("api_request_successful", provider_id=self.provider_id, status_code=response.status_code)
        return payload

    def _measurement(self, kind: MeasurementKind, value: Optional[float], unit: str,
                     observed_at: datetime) -> Optional[Measurement]:
        if value is None:
            return None
        return Measurement(
            kind=kind,
            value=float(value),
            unit=unit,
            source_id=self.provider_id,
            observed_at=observed_at,
        )


class OpenMeteoMarineProvider(_OpenMeteoProvider):
    """
    Sea-surface temperature, wave height, swell and degree heating weeks.

    Daily series cover the trailing DHW window plus today; today's values
    are the last entry of each series.
    """

    provider_id = "open-meteo-marine"

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        super().__init__(base_url or settings.open_meteo_marine_url, timeout)

    def fetch(self, latitude: float, longitude: float) -> List[Measurement]:
        payload = self._get({
            "latitude": latitude,
            "longitude": longitude,
            "daily": ["sea_surface_temperature_mean", "wave_height_max", "swell_wave_height_max"],
            "past_days": DHW_WINDOW_DAYS,
            "forecast_days": 1,
            "timezone": "auto",
        })

        daily = payload.get("daily")
        if not isinstance(daily, dict):
            raise ProviderUnavailable(self.provider_id, "no daily data in response")

        observed_at = datetime.now(timezone.utc)
        sst_series = daily.get("sea_surface_temperature_mean") or []
        sst = _valid(sst_series)
        waves = _valid(daily.get("wave_height_max"))
        swell = _valid(daily.get("swell_wave_height_max"))

        readings = [
            self._measurement(MeasurementKind.TEMPERATURE, sst[-1] if sst else None, "°C", observed_at),
            self._measurement(MeasurementKind.WAVE_HEIGHT, waves[-1] if waves else None, "m", observed_at),
            self._measurement(MeasurementKind.SWELL_HEIGHT, swell[-1] if swell else None, "m", observed_at),
        ]
        if sst:
            readings.append(self._measurement(
                MeasurementKind.DEGREE_HEATING_WEEKS, degree_heating_weeks(sst_series), "°C-weeks", observed_at,
            ))

        measurements = [m for m in readings if m is not None]
        logger.info("marine_readings_parsed", count=len(measurements), sst_days=len(sst))
        return measurements


class OpenMeteoForecastProvider(_OpenMeteoProvider):
    """Precipitation (now and 24h), soil moisture, 10 m wind and surface pressure."""

    provider_id = "open-meteo-forecast"

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None):
        super().__init__(base_url or settings.open_meteo_forecast_url, timeout)

    def fetch(self, latitude: float, longitude: float) -> List[Measurement]:
        payload = self._get({
            "latitude": latitude,
            "longitude": longitude,
            "hourly": ["precipitation", "soil_moisture_0_to_10cm", "wind_speed_10m", "surface_pressure"],
            "wind_speed_unit": "ms",
            "forecast_days": 3,
            "timezone": "auto",
        })

        hourly = payload.get("hourly")
        if not isinstance(hourly, dict):
            raise ProviderUnavailable(self.provider_id, "no hourly data in response")

        observed_at = datetime.now(timezone.utc)
        precip_series = hourly.get("precipitation") or []
        precip_today = _valid(precip_series[:24])
        soil = _valid(hourly.get("soil_moisture_0_to_10cm"))
        wind_today = _valid((hourly.get("wind_speed_10m") or [])[:24])
        pressure = _valid(hourly.get("surface_pressure"))

        current_precip = precip_series[0] if precip_series else None
        readings = [
            self._measurement(MeasurementKind.RAINFALL, current_precip, "mm", observed_at),
            self._measurement(
                MeasurementKind.RAINFALL_24H, sum(precip_today) if precip_today else None, "mm", observed_at,
            ),
            self._measurement(MeasurementKind.SOIL_MOISTURE, soil[0] if soil else None, "m³/m³", observed_at),
            self._measurement(MeasurementKind.WIND_SPEED, max(wind_today) if wind_today else None, "m/s", observed_at),
            self._measurement(MeasurementKind.PRESSURE, pressure[0] if pressure else None, "hPa", observed_at),
        ]

        measurements = [m for m in readings if m is not None]
        logger.info("forecast_readings_parsed", count=len(measurements))
        return measurements
