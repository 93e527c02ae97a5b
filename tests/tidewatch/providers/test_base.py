"""
Unit tests for provider collection
"""
from src.tidewatch.errors import ProviderUnavailable
from src.tidewatch.models.measurement import MeasurementKind
from src.tidewatch.providers.base import ProviderAdapter, StaticProvider, collect_measurements


class FailingProvider(ProviderAdapter):
    provider_id = "flaky"

    def fetch(self, latitude, longitude):
        raise ProviderUnavailable(self.provider_id, "connection refused")


class BrokenProvider(ProviderAdapter):
    provider_id = "broken"

    def fetch(self, latitude, longitude):
        raise KeyError("hourly")


def test_collects_from_all_providers(measure):
    """Test that readings from every provider are collected"""
    providers = [
        StaticProvider([measure("rainfall", 12)], provider_id="a"),
        StaticProvider([measure("soilMoisture", 0.4), measure("rainfall24h", 30)], provider_id="b"),
    ]

    measurements, failures = collect_measurements(providers, -20.2, 57.5)

    assert [m.kind for m in measurements] == [
        MeasurementKind.RAINFALL, MeasurementKind.SOIL_MOISTURE, MeasurementKind.RAINFALL_24H,
    ]
    assert failures == []


def test_failures_are_recorded_not_raised(measure):
    """Test that provider failures are recorded instead of raised"""
    providers = [FailingProvider(), BrokenProvider(), StaticProvider([measure("rainfall", 3)])]

    measurements, failures = collect_measurements(providers, -20.2, 57.5)

    assert len(measurements) == 1
    assert [f.provider_id for f in failures] == ["flaky", "broken"]
    assert failures[0].reason == "connection refused"
    assert failures[1].reason.startswith("KeyError")


def test_static_provider_returns_copy(measure):
    """Test that the static provider returns a copy"""
    provider = StaticProvider([measure("rainfall", 3)])
    provider.fetch(0, 0).clear()
    assert len(provider.fetch(0, 0)) == 1
