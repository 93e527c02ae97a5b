"""
Alert Generator

Threshold-triggered advisories. Tier and alert emission are related but
separate gates: a moderate flood tier only alerts when 24h rainfall is
also above its threshold, and driver thresholds (saturated soil, strong
wind) add alerts regardless of tier.
"""
from typing import Callable, Dict, List, Mapping, Optional

from src.tidewatch.models.risk import Alert, AlertLevel, CompositeIndex, Domain, RiskTier
from src.tidewatch.reference.tables import AlertRules, ReferenceTables, get_reference_tables
from src.tidewatch.utils.logger import get_logger

logger = get_logger(__name__)

# NOAA Coral Reef Watch stage names by alert level
BLEACHING_STAGES = {
    0: "No Stress",
    1: "Bleaching Watch",
    2: "Bleaching Warning",
    3: "Alert Level 1",
    4: "Alert Level 2",
    5: "Alert Level 3",
}

AlertRule = Callable[[RiskTier, Mapping[str, float], AlertRules], List[Alert]]


def _top(tier: RiskTier) -> bool:
    return tier.rank == RiskTier.SEVERE.rank


def _flood_alerts(tier: RiskTier, drivers: Mapping[str, float], rules: AlertRules) -> List[Alert]:
    alerts = []
    precip_24h = drivers.get("rainfall24h", 0.0)
    soil_moisture = drivers.get("soilMoisture", 0.0)
    domain = Domain.FLOOD_RISK

    if _top(tier):
        alerts.append(Alert(
            level=AlertLevel.SEVERE,
            message=f"Extreme flood risk: {precip_24h:.1f}mm rainfall in 24h with saturated soil",
            area="All regions",
            domain=domain,
        ))
    elif tier == RiskTier.HIGH:
        alerts.append(Alert(
            level=AlertLevel.HIGH,
            message=f"High flood risk: {precip_24h:.1f}mm rainfall in 24h",
            area="Low-lying areas",
            domain=domain,
        ))
    elif tier == RiskTier.MODERATE and precip_24h > rules.flood_moderate_precip24h:
        alerts.append(Alert(
            level=AlertLevel.MODERATE,
            message=f"Moderate flood risk: {precip_24h:.1f}mm rainfall in 24h",
            area="Drainage systems",
            domain=domain,
        ))

    if soil_moisture > rules.flood_saturated_soil:
        alerts.append(Alert(
            level=AlertLevel.SEVERE if _top(tier) else AlertLevel.HIGH,
            message="Soil saturation levels critical - reduced water absorption capacity",
            area="Agricultural and low-lying zones",
            domain=domain,
        ))
    return alerts


def _surge_alerts(tier: RiskTier, drivers: Mapping[str, float], rules: AlertRules) -> List[Alert]:
    alerts = []
    wave_height = drivers.get("waveHeight", 0.0)
    wind_speed = drivers.get("windSpeed", 0.0)
    domain = Domain.STORM_SURGE

    if _top(tier):
        alerts.append(Alert(
            level=AlertLevel.SEVERE,
            message=f"Extreme storm surge risk: {wave_height:.1f}m waves and {wind_speed:.0f}km/h winds",
            area="All coastal areas",
            domain=domain,
        ))
    elif tier == RiskTier.HIGH:
        alerts.append(Alert(
            level=AlertLevel.HIGH,
            message=f"High storm surge risk: {wave_height:.1f}m waves expected",
            area="Low-lying coastal zones",
            domain=domain,
        ))
    elif tier == RiskTier.MODERATE and wave_height > rules.surge_moderate_wave_height:
        alerts.append(Alert(
            level=AlertLevel.MODERATE,
            message=f"Moderate storm surge risk: {wave_height:.1f}m waves",
            area="Beach and harbor areas",
            domain=domain,
        ))

    if wind_speed > rules.surge_strong_wind:
        alerts.append(Alert(
            level=AlertLevel.SEVERE if _top(tier) else AlertLevel.HIGH,
            message=f"Strong winds ({wind_speed:.0f}km/h) - coastal flooding possible",
            area="Exposed coastal regions",
            domain=domain,
        ))
    return alerts


def _cyclone_alerts(tier: RiskTier, drivers: Mapping[str, float], rules: AlertRules) -> List[Alert]:
    alerts = []
    distance = drivers.get("stormDistance")
    wind_speed = drivers.get("windSpeed", 0.0)
    domain = Domain.CYCLONE_RISK
    where = f"{distance:.0f}km away" if distance is not None else "distance unknown"

    if tier > RiskTier.LOW:
        label = {RiskTier.MODERATE: "Moderate", RiskTier.HIGH: "High"}.get(tier, "Critical")
        alerts.append(Alert(
            level=AlertLevel.from_tier(tier),
            message=f"{label} cyclone risk: system {where} with {wind_speed:.0f}km/h winds",
            area="All coastal areas" if _top(tier) else "Exposed coastal regions",
            domain=domain,
        ))

    if (
        wind_speed > rules.cyclone_hurricane_wind
        and distance is not None
        and distance <= rules.cyclone_wind_radius_km
    ):
        alerts.append(Alert(
            level=AlertLevel.SEVERE,
            message=f"Hurricane-force winds ({wind_speed:.0f}km/h) within {distance:.0f}km",
            area="All regions",
            domain=domain,
        ))
    return alerts


def _reef_alerts(tier: RiskTier, drivers: Mapping[str, float], rules: AlertRules) -> List[Alert]:
    level = int(drivers.get("alertLevel", 0))
    if level < rules.reef_min_alert_level:
        return []

    sst = drivers.get("temperature")
    dhw = drivers.get("degreeHeatingWeeks")
    detail = []
    if sst is not None:
        detail.append(f"SST {sst:.1f}°C")
    if dhw is not None:
        detail.append(f"{dhw:.1f} DHW")
    stage = BLEACHING_STAGES.get(level, f"Alert Level {level}")
    suffix = f" ({', '.join(detail)})" if detail else ""

    return [Alert(
        level=AlertLevel.from_tier(tier),
        message=f"Coral bleaching {stage}{suffix}",
        area="Coral reefs and lagoons",
        domain=Domain.REEF_BLEACHING,
    )]


def _ocean_alerts(tier: RiskTier, drivers: Mapping[str, float], rules: AlertRules) -> List[Alert]:
    alerts = []
    domain = Domain.OCEAN_HEALTH

    if tier >= RiskTier.HIGH:
        alerts.append(Alert(
            level=AlertLevel.from_tier(tier),
            message="Ocean health degraded - water quality and ecosystem indicators below normal",
            area="Coastal waters",
            domain=domain,
        ))

    pollution = drivers.get("pollutionIndex")
    if pollution is not None and pollution < rules.ocean_pollution_floor:
        alerts.append(Alert(
            level=AlertLevel.HIGH,
            message=f"Elevated pollution indicators (pollution index {pollution:.0f})",
            area="Lagoons and river mouths",
            domain=domain,
        ))
    return alerts


class AlertGenerator:
    """
    Emits structured alerts for a domain from its tier and driving values.

    Returned alerts are sorted most severe first.
    """

    RULES: Dict[Domain, AlertRule] = {
        Domain.FLOOD_RISK: _flood_alerts,
        Domain.STORM_SURGE: _surge_alerts,
        Domain.CYCLONE_RISK: _cyclone_alerts,
        Domain.REEF_BLEACHING: _reef_alerts,
        Domain.OCEAN_HEALTH: _ocean_alerts,
    }

    def __init__(self, tables: Optional[ReferenceTables] = None):
        self.tables = tables or get_reference_tables()

    def generate_alerts(
        self,
        domain: Domain,
        tier: RiskTier,
        driving_values: Optional[Mapping[str, float]] = None,
    ) -> List[Alert]:
        rule = self.RULES.get(domain)
        if rule is None:
            logger.warning("alert_rules_missing", domain=domain.value)
            return []
        alerts = rule(tier, driving_values or {}, self.tables.alert_rules)
        return sorted(alerts, key=lambda a: a.level.rank, reverse=True)

    def alerts_for(self, index: CompositeIndex) -> List[Alert]:
        """Alerts for a computed index, using its drivers and sub-scores."""
        drivers = dict(index.drivers)
        pollution = index.sub_score("pollution")
        if pollution is not None:
            drivers.setdefault("pollutionIndex", pollution.score)
        alerts = self.generate_alerts(index.domain, index.risk_tier, drivers)
        if alerts:
            logger.info(
                "alerts_generated",
                domain=index.domain.value,
                risk_tier=index.risk_tier.value,
                count=len(alerts),
                top_level=alerts[0].level.value,
            )
        return alerts
