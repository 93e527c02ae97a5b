"""
Risk Router

Endpoints for composite indices, segment scores and alerts.
"""
import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Query

from config.settings import settings
from src.tidewatch.api.cache import cache_result
from src.tidewatch.api.dependencies import get_engine
from src.tidewatch.api.schemas import AlertsResponse, ComputeRequest
from src.tidewatch.engine import RiskAggregationEngine
from src.tidewatch.models.risk import Domain
from src.tidewatch.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/v1/risk", tags=["risk"])

LAT = Query(None, ge=-90, le=90, description="Latitude (defaults to configured location)")
LNG = Query(None, ge=-180, le=180, description="Longitude (defaults to configured location)")


def _location(lat: Optional[float], lng: Optional[float]):
    return (
        settings.default_latitude if lat is None else lat,
        settings.default_longitude if lng is None else lng,
    )


@router.get("/alerts", response_model=AlertsResponse)
@cache_result("alerts", key_params=("lat", "lng"))
async def get_alerts(
    lat: Optional[float] = LAT,
    lng: Optional[float] = LNG,
    engine: RiskAggregationEngine = Depends(get_engine),
):
    """
    Active alerts across every domain for a location, most severe first.

    Args:
        lat: Latitude
        lng: Longitude
        engine: Risk aggregation engine

    Returns:
        Alerts with the confidence of each domain index
    """
    lat, lng = _location(lat, lng)
    requests = [(domain, lat, lng) for domain in Domain]
    assessments = await asyncio.to_thread(engine.assess_many, requests)

    alerts = sorted(
        (alert for a in assessments for alert in a.alerts),
        key=lambda a: a.level.rank,
        reverse=True,
    )
    failed = sorted({p for a in assessments for p in a.failed_providers})
    response = AlertsResponse(
        location=[lat, lng],
        alerts=alerts,
        confidence={a.index.domain.value: a.index.confidence for a in assessments},
        failed_providers=failed,
    )
    return response.model_dump(mode="json", by_alias=True)


@router.get("/{domain}")
@cache_result("risk", key_params=("domain", "lat", "lng"))
async def get_risk(
    domain: Domain,
    lat: Optional[float] = LAT,
    lng: Optional[float] = LNG,
    engine: RiskAggregationEngine = Depends(get_engine),
):
    """
    Composite index and alerts for one domain.

    Args:
        domain: Domain to compute
        lat: Latitude
        lng: Longitude
        engine: Risk aggregation engine

    Returns:
        Assessment (index, alerts, failed providers and, for reefs, the bleaching outlook)
    """
    lat, lng = _location(lat, lng)
    assessment = await asyncio.to_thread(engine.assess_from_providers, domain, lat, lng)
    return assessment.model_dump(mode="json", by_alias=True)


@router.get("/{domain}/segments")
@cache_result("segments", key_params=("domain", "lat", "lng", "output"))
async def get_segments(
    domain: Domain,
    lat: Optional[float] = LAT,
    lng: Optional[float] = LNG,
    output: str = Query("json", alias="format", pattern="^(json|geojson)$"),
    engine: RiskAggregationEngine = Depends(get_engine),
):
    """
    Segment-level scores for map rendering.

    Segment scores are the location's composite index scaled by each
    segment's multiplier; they are an approximation, not per-segment
    measurements.

    Args:
        domain: Domain to compute
        lat: Latitude
        lng: Longitude
        output: ``json`` for a list, ``geojson`` for a FeatureCollection
        engine: Risk aggregation engine

    Returns:
        Segment scores
    """
    lat, lng = _location(lat, lng)
    assessment = await asyncio.to_thread(
        engine.assess_from_providers, domain, lat, lng, True
    )
    if output == "geojson":
        return engine.regional.to_feature_collection(assessment.segments)
    return [s.model_dump(mode="json", by_alias=True) for s in assessment.segments]


@router.post("/{domain}/compute")
def compute_risk(
    domain: Domain,
    request: ComputeRequest,
    engine: RiskAggregationEngine = Depends(get_engine),
):
    """
    Compute an index from caller-supplied measurements.

    Kinds not supplied are substituted from defaults exactly as when a
    provider fails.

    Args:
        domain: Domain to compute
        request: Location and measurements
        engine: Risk aggregation engine

    Returns:
        Assessment (index, alerts and optional segments)
    """
    logger.info(
        "compute_requested",
        domain=domain.value,
        measurements=len(request.measurements),
    )
    assessment = engine.evaluate(
        domain,
        request.measurements,
        location=(request.latitude, request.longitude),
        include_segments=request.include_segments,
    )
    return assessment.model_dump(mode="json", by_alias=True)
