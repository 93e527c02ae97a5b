"""
API Schemas

Request and response models for the HTTP surface.
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.tidewatch.models.measurement import Measurement
from src.tidewatch.models.risk import Alert


class _ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class HealthCheck(_ApiModel):
    status: str
    version: str
    cache: str
    domains: List[str]
    timestamp: datetime


class ComputeRequest(_ApiModel):
    """Caller-supplied readings for one computation."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    measurements: List[Measurement] = Field(default_factory=list)
    include_segments: bool = False


class AlertsResponse(_ApiModel):
    location: List[float]
    alerts: List[Alert]
    confidence: Dict[str, float]
    failed_providers: List[str] = Field(default_factory=list)


class ErrorResponse(_ApiModel):
    error: str
    detail: Optional[str] = None
