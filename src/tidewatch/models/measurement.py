"""
Measurement Data Models

Pydantic models for raw physical readings produced by provider adapters.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class MeasurementKind(str, Enum):
    """Physical quantities the engine knows how to normalize."""

    TEMPERATURE = "temperature"
    TURBIDITY = "turbidity"
    WAVE_HEIGHT = "waveHeight"
    WIND_SPEED = "windSpeed"
    RAINFALL = "rainfall"
    RAINFALL_24H = "rainfall24h"
    SOIL_MOISTURE = "soilMoisture"
    DEGREE_HEATING_WEEKS = "degreeHeatingWeeks"
    PRESSURE = "pressure"
    CHLOROPHYLL = "chlorophyll"
    WATER_CLARITY = "waterClarity"
    PH = "pH"
    SALINITY = "salinity"
    DISSOLVED_OXYGEN = "dissolvedOxygen"
    SWELL_HEIGHT = "swellHeight"
    STORM_DISTANCE = "stormDistance"


# Units in which values are scored and reported.
CANONICAL_UNITS = {
    MeasurementKind.TEMPERATURE: "°C",
    MeasurementKind.TURBIDITY: "index",
    MeasurementKind.WAVE_HEIGHT: "m",
    MeasurementKind.WIND_SPEED: "km/h",
    MeasurementKind.RAINFALL: "mm",
    MeasurementKind.RAINFALL_24H: "mm",
    MeasurementKind.SOIL_MOISTURE: "fraction",
    MeasurementKind.DEGREE_HEATING_WEEKS: "°C-weeks",
    MeasurementKind.PRESSURE: "hPa",
    MeasurementKind.CHLOROPHYLL: "mg/m³",
    MeasurementKind.WATER_CLARITY: "%",
    MeasurementKind.PH: "pH",
    MeasurementKind.SALINITY: "ppt",
    MeasurementKind.DISSOLVED_OXYGEN: "mg/L",
    MeasurementKind.SWELL_HEIGHT: "m",
    MeasurementKind.STORM_DISTANCE: "km",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Measurement(BaseModel):
    """
    A single physical reading from one provider.

    Attributes:
        kind: Physical quantity measured
        value: Reading in ``unit`` (may be NaN; the normalizer rejects it)
        unit: Unit the provider reported the value in
        source_id: Identifier of the provider adapter
        observed_at: Observation timestamp (UTC)
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )

    kind: MeasurementKind
    value: float
    unit: Optional[str] = Field(None, description="Reported unit")
    source_id: str = Field("unknown", description="Provider identifier")
    observed_at: datetime = Field(default_factory=_utcnow)

    @field_validator("observed_at")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Naive timestamps are taken as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @classmethod
    def canonical(
        cls,
        kind: MeasurementKind,
        value: float,
        source_id: str = "unknown",
        observed_at: Optional[datetime] = None,
    ) -> "Measurement":
        """Build a measurement already expressed in the kind's canonical unit."""
        return cls(
            kind=kind,
            value=value,
            unit=CANONICAL_UNITS[kind],
            source_id=source_id,
            observed_at=observed_at or _utcnow(),
        )
