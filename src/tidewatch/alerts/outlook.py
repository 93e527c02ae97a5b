"""
Bleaching Outlook

Forward-looking reef guidance: bleaching probability, expected days until
bleaching onset and recommended management actions, derived from SST,
degree heating weeks and the NOAA-style alert level.
"""
import math
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.tidewatch.models.risk import RiskTier
from src.tidewatch.reference.tables import BleachingOutlookPolicy, OutlookBand, get_reference_tables
from src.tidewatch.utils.logger import get_logger

logger = get_logger(__name__)

DAYS_PER_WEEK = 7


class BleachingOutlook(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    risk_level: RiskTier
    probability: float = Field(..., ge=0, le=1)
    days_to_bleaching: Optional[int] = None
    recommended_actions: List[str] = Field(default_factory=list)
    hotspot: float = Field(0.0, ge=0)
    alert_level: int = Field(0, ge=0, le=5)
    sst: float
    dhw: float
    sst_anomaly: float


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _matches(band: OutlookBand, sst: float, dhw: float, alert_level: int) -> bool:
    return alert_level >= band.alert_level or sst >= band.sst or dhw >= band.dhw


def days_to_bleaching(band: OutlookBand, dhw: float) -> int:
    """Days until onset: fixed once the band's DHW is reached, else weeks left to accumulate."""
    if dhw >= band.dhw:
        return band.onset_days
    return max(band.min_days, _round_half_up((band.dhw - dhw) * DAYS_PER_WEEK))


def bleaching_outlook(
    sst: float,
    dhw: float,
    alert_level: int,
    sst_baseline: Optional[float] = None,
    policy: Optional[BleachingOutlookPolicy] = None,
) -> BleachingOutlook:
    """
    Classify the bleaching outlook for one reef location.

    Bands are checked from most severe; the first whose alert level, SST or
    DHW trigger is met decides the outcome. Below every band the outlook is
    low with no onset estimate.

    Args:
        sst: Sea surface temperature in °C
        dhw: Degree heating weeks
        alert_level: Bleaching alert level (0-5)
        sst_baseline: Climatological SST; defaults to the reef table baseline
        policy: Outlook bands and actions; defaults to the reference tables

    Returns:
        BleachingOutlook
    """
    tables = None
    if policy is None or sst_baseline is None:
        tables = get_reference_tables()
    policy = policy or tables.reef.outlook
    baseline = sst_baseline if sst_baseline is not None else tables.reef.sst_baseline

    anomaly = round(sst - baseline, 2)
    band = next((b for b in policy.bands if _matches(b, sst, dhw, alert_level)), None)
    if band is None:
        tier, probability, days = RiskTier.LOW, policy.low_probability, None
    else:
        tier, probability, days = band.tier, band.probability, days_to_bleaching(band, dhw)

    logger.debug("bleaching_outlook", risk_level=tier.value, alert_level=alert_level, days=days)
    return BleachingOutlook(
        risk_level=tier,
        probability=probability,
        days_to_bleaching=days,
        recommended_actions=list(policy.actions.get(tier, [])),
        hotspot=max(0.0, anomaly),
        alert_level=alert_level,
        sst=sst,
        dhw=dhw,
        sst_anomaly=anomaly,
    )
