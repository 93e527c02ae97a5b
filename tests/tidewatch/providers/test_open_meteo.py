"""
Unit tests for the Open-Meteo adapters
"""
from unittest.mock import Mock, patch

import pytest
import requests

from src.tidewatch.errors import ProviderUnavailable
from src.tidewatch.models.measurement import MeasurementKind
from src.tidewatch.providers.open_meteo import (
    OpenMeteoForecastProvider,
    OpenMeteoMarineProvider,
    degree_heating_weeks,
)


def _response(payload, status_code=200):
    response = Mock(status_code=status_code)
    response.json.return_value = payload
    return response


def _by_kind(measurements):
    return {m.kind: m for m in measurements}


class TestDegreeHeatingWeeks:
    """Tests for the degree heating weeks estimate"""

    def test_only_days_above_threshold_count(self):
        """Test that only days above the bleaching threshold count"""
        assert degree_heating_weeks([31.0, 31.0, 29.0, None]) == 0.29

    def test_no_heat_stress(self):
        """Test that cool water gives zero DHW"""
        assert degree_heating_weeks([28.0, 29.5]) == 0.0
        assert degree_heating_weeks([]) == 0.0

    def test_capped(self):
        """Test that DHW is capped"""
        assert degree_heating_weeks([32.0] * 84) == 20.0


@patch('src.tidewatch.providers.open_meteo.requests.Session')
class TestMarineProvider:
    """Tests for OpenMeteoMarineProvider"""

    def test_parses_latest_daily_values(self, mock_session):
        """Test parsing the latest daily marine values"""
        mock_session.return_value.get.return_value = _response({
            "daily": {
                "time": ["2026-10-16", "2026-10-17", "2026-10-18"],
                "sea_surface_temperature_mean": [28.0, None, 29.2],
                "wave_height_max": [1.2, 2.4],
                "swell_wave_height_max": [0.5, 0.8],
            }
        })

        readings = _by_kind(OpenMeteoMarineProvider().fetch(-20.2, 57.5))

        assert readings[MeasurementKind.TEMPERATURE].value == 29.2
        assert readings[MeasurementKind.TEMPERATURE].unit == "°C"
        assert readings[MeasurementKind.WAVE_HEIGHT].value == 2.4
        assert readings[MeasurementKind.SWELL_HEIGHT].value == 0.8
        assert readings[MeasurementKind.DEGREE_HEATING_WEEKS].value == 0.0
        assert all(m.source_id == "open-meteo-marine" for m in readings.values())

        params = mock_session.return_value.get.call_args.kwargs["params"]
        assert params["latitude"] == -20.2
        assert params["past_days"] == 84

    def test_missing_series_are_skipped(self, mock_session):
        """Test that missing series are skipped"""
        mock_session.return_value.get.return_value = _response({
            "daily": {"wave_height_max": [1.1]}
        })

        readings = OpenMeteoMarineProvider().fetch(-20.2, 57.5)

        assert [m.kind for m in readings] == [MeasurementKind.WAVE_HEIGHT]

    def test_http_error_raises_provider_unavailable(self, mock_session):
        """Test that HTTP errors raise ProviderUnavailable"""
        mock_session.return_value.get.side_effect = requests.ConnectionError("timed out")

        with pytest.raises(ProviderUnavailable) as exc:
            OpenMeteoMarineProvider().fetch(-20.2, 57.5)
        assert exc.value.provider_id == "open-meteo-marine"

    def test_api_error_payload(self, mock_session):
        """Test that an API error payload raises ProviderUnavailable"""
        mock_session.return_value.get.return_value = _response({"error": True, "reason": "bad latitude"})

        with pytest.raises(ProviderUnavailable, match="bad latitude"):
            OpenMeteoMarineProvider().fetch(-95, 57.5)

    def test_missing_daily_block(self, mock_session):
        """Test that a payload without daily data fails"""
        mock_session.return_value.get.return_value = _response({"latitude": -20.2})

        with pytest.raises(ProviderUnavailable, match="no daily data"):
            OpenMeteoMarineProvider().fetch(-20.2, 57.5)

    def test_non_json_response(self, mock_session):
        """Test that a non-JSON response fails"""
        response = Mock(status_code=200)
        response.json.side_effect = ValueError("Expecting value")
        mock_session.return_value.get.return_value = response

        with pytest.raises(ProviderUnavailable, match="not JSON"):
            OpenMeteoMarineProvider().fetch(-20.2, 57.5)


@patch('src.tidewatch.providers.open_meteo.requests.Session')
class TestForecastProvider:
    """Tests for OpenMeteoForecastProvider"""

    def test_parses_hourly_values(self, mock_session):
        """Test parsing hourly forecast values"""
        mock_session.return_value.get.return_value = _response({
            "hourly": {
                "precipitation": [2.0] * 24 + [5.0] * 6,
                "soil_moisture_0_to_10cm": [0.31, 0.32],
                "wind_speed_10m": [5.0, 10.0, 7.0],
                "surface_pressure": [1008.0],
            }
        })

        readings = _by_kind(OpenMeteoForecastProvider().fetch(-20.2, 57.5))

        assert readings[MeasurementKind.RAINFALL].value == 2.0
        assert readings[MeasurementKind.RAINFALL_24H].value == 48.0
        assert readings[MeasurementKind.SOIL_MOISTURE].value == 0.31
        assert readings[MeasurementKind.WIND_SPEED].value == 10.0
        assert readings[MeasurementKind.WIND_SPEED].unit == "m/s"
        assert readings[MeasurementKind.PRESSURE].value == 1008.0

    def test_http_status_error(self, mock_session):
        """Test that an HTTP status error fails"""
        response = _response({}, status_code=503)
        response.raise_for_status.side_effect = requests.HTTPError("503 Server Error")
        mock_session.return_value.get.return_value = response

        with pytest.raises(ProviderUnavailable, match="503"):
            OpenMeteoForecastProvider().fetch(-20.2, 57.5)

    def test_missing_hourly_block(self, mock_session):
        """Test that a payload without hourly data fails"""
        mock_session.return_value.get.return_value = _response({"daily": {}})

        with pytest.raises(ProviderUnavailable, match="no hourly data"):
            OpenMeteoForecastProvider().fetch(-20.2, 57.5)
