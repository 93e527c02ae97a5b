"""
Score Normalizer

Converts raw physical measurements into 0-100 sub-scores using the
piecewise policies in the reference tables.

Stepped terms (flood, storm surge, cyclone) are exposed as
``points / max_points * 100`` so that, weighted by their maximum points,
the composite reproduces the summed score. Ocean-health components combine
several readings and are built by ``normalize_set``.
"""
import math
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Set

from src.tidewatch.errors import InvalidMeasurement
from src.tidewatch.models.measurement import CANONICAL_UNITS, Measurement, MeasurementKind
from src.tidewatch.models.risk import Domain, SubScore
from src.tidewatch.reference.tables import (
    AlertLevelRule,
    BiodiversityPolicy,
    PollutionPolicy,
    ReefPolicy,
    ReferenceTables,
    WaterQualityPolicy,
    get_reference_tables,
)
from src.tidewatch.utils.geo_utils import miles_to_km, nautical_miles_to_km
from src.tidewatch.utils.logger import get_logger

logger = get_logger(__name__)

K = MeasurementKind


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


# Reported unit -> converter into the canonical unit, keyed by canonical unit.
_IDENTITY = lambda v: v  # noqa: E731

UNIT_CONVERTERS: Dict[str, Dict[str, Callable[[float], float]]] = {
    "°C": {
        "°c": _IDENTITY, "c": _IDENTITY, "degc": _IDENTITY, "celsius": _IDENTITY,
        "k": lambda v: v - 273.15,
        "°f": lambda v: (v - 32) * 5 / 9, "f": lambda v: (v - 32) * 5 / 9,
    },
    "km/h": {
        "km/h": _IDENTITY, "kmh": _IDENTITY, "kph": _IDENTITY,
        "m/s": lambda v: v * 3.6, "ms": lambda v: v * 3.6,
        "kn": lambda v: v * 1.852, "kt": lambda v: v * 1.852, "knots": lambda v: v * 1.852,
        "mph": lambda v: v * 1.609344,
    },
    "m": {
        "m": _IDENTITY, "cm": lambda v: v / 100, "ft": lambda v: v * 0.3048,
    },
    "mm": {
        "mm": _IDENTITY, "cm": lambda v: v * 10, "in": lambda v: v * 25.4,
    },
    "fraction": {
        "fraction": _IDENTITY, "m³/m³": _IDENTITY, "m3/m3": _IDENTITY,
        "%": lambda v: v / 100,
    },
    "hPa": {
        "hpa": _IDENTITY, "mbar": _IDENTITY, "mb": _IDENTITY,
        "pa": lambda v: v / 100, "kpa": lambda v: v * 10,
    },
    "km": {
        "km": _IDENTITY, "m": lambda v: v / 1000,
        "mi": miles_to_km, "nmi": nautical_miles_to_km,
    },
    "°C-weeks": {"°c-weeks": _IDENTITY, "c-weeks": _IDENTITY, "dhw": _IDENTITY},
    "index": {"index": _IDENTITY, "ntu": _IDENTITY},
    "mg/m³": {"mg/m³": _IDENTITY, "mg/m3": _IDENTITY, "µg/l": _IDENTITY, "ug/l": _IDENTITY},
    "%": {"%": _IDENTITY, "fraction": lambda v: v * 100},
    "pH": {"ph": _IDENTITY},
    "ppt": {"ppt": _IDENTITY, "psu": _IDENTITY, "‰": _IDENTITY},
    "mg/L": {"mg/l": _IDENTITY},
}


def convert_unit(kind: MeasurementKind, value: float, unit: Optional[str]) -> float:
    """
    Convert a reading into the canonical unit of its kind.

    Raises:
        InvalidMeasurement: if the unit is missing or unknown for the kind
    """
    if not unit or not unit.strip():
        raise InvalidMeasurement(kind.value, "missing unit", value)
    canonical = CANONICAL_UNITS[kind]
    converters = UNIT_CONVERTERS.get(canonical, {})
    converter = converters.get(unit.strip().lower())
    if converter is None:
        raise InvalidMeasurement(kind.value, f"unit '{unit}' not convertible to {canonical}", value)
    return converter(value)


# ---------------------------------------------------------------------------
# Piecewise policies
# ---------------------------------------------------------------------------

def water_quality_score(
    temperature: float,
    ph: float,
    salinity: float,
    dissolved_oxygen: float,
    turbidity: float,
    policy: Optional[WaterQualityPolicy] = None,
) -> float:
    """
    Water quality from penalties subtracted off a 100 baseline.

    Each band is a step, not a sliding scale.
    """
    policy = policy or get_reference_tables().water_quality
    readings = {
        K.TEMPERATURE: temperature,
        K.PH: ph,
        K.SALINITY: salinity,
        K.DISSOLVED_OXYGEN: dissolved_oxygen,
        K.TURBIDITY: turbidity,
    }
    score = policy.baseline - sum(
        water_quality_penalty(kind, value, policy) for kind, value in readings.items()
    )
    return round(_clamp(score), 2)


def water_quality_penalty(
    kind: MeasurementKind,
    value: float,
    policy: Optional[WaterQualityPolicy] = None,
) -> float:
    """Points one reading takes off the water-quality baseline (0 for other kinds)."""
    policy = policy or get_reference_tables().water_quality

    if kind == K.TEMPERATURE:
        low, high = policy.temperature.optimal
        return policy.temperature.penalty if value < low or value > high else 0.0

    if kind == K.PH:
        opt_low, opt_high = policy.ph.optimal
        acc_low, acc_high = policy.ph.acceptable
        if opt_low <= value <= opt_high:
            return 0.0
        if acc_low <= value < acc_high:
            return policy.ph.acceptable_penalty
        return policy.ph.penalty

    if kind == K.SALINITY:
        low, high = policy.salinity.optimal
        return policy.salinity.penalty if value < low or value > high else 0.0

    if kind == K.DISSOLVED_OXYGEN:
        for threshold, penalty in policy.dissolved_oxygen.below:
            if value < threshold:
                return penalty
        return 0.0

    if kind == K.TURBIDITY:
        return policy.turbidity.penalty if value > policy.turbidity.max else 0.0

    return 0.0


def pollution_index(
    turbidity: float,
    chlorophyll: float,
    policy: Optional[PollutionPolicy] = None,
) -> float:
    """Pollution proxy: 100 - 50*turbidity - 20*chlorophyll, clamped."""
    policy = policy or get_reference_tables().ocean.pollution
    score = policy.baseline - policy.turbidity * turbidity - policy.chlorophyll * chlorophyll
    return round(_clamp(score), 2)


def biodiversity_index(
    chlorophyll: float,
    water_clarity: float,
    reef_health: float,
    policy: Optional[BiodiversityPolicy] = None,
) -> float:
    """
    Biodiversity proxy: 20*chlorophyll + 0.3*clarity + 0.5*reefHealth, clamped.

    Biodiversity is not measured upstream; folding reef health in is a
    known approximation.
    """
    policy = policy or get_reference_tables().ocean.biodiversity
    score = (
        policy.chlorophyll * chlorophyll
        + policy.water_clarity * water_clarity
        + policy.reef_health * reef_health
    )
    return round(_clamp(score), 2)


def bleaching_alert_level(
    sst: float,
    dhw: float,
    rules: Optional[Iterable[AlertLevelRule]] = None,
) -> int:
    """
    Bleaching alert level 0-5 from sea-surface temperature and DHW.

    Rules are checked from the highest level down; a rule matches when
    either its SST or its DHW threshold is reached.
    """
    if rules is None:
        rules = get_reference_tables().reef.alert_levels
    for rule in rules:
        if rule.sst is not None and sst >= rule.sst:
            return rule.level
        if rule.dhw is not None and dhw >= rule.dhw:
            return rule.level
    return 0


def bleaching_stress_score(
    kind: MeasurementKind,
    value: float,
    rules: Optional[Iterable[AlertLevelRule]] = None,
) -> float:
    """
    Alert-level contribution of a lone SST or DHW reading, 100 with no stress.

    Only the rules for the given kind are considered; each level takes an
    equal share off 100.
    """
    if rules is None:
        rules = get_reference_tables().reef.alert_levels
    rules = list(rules)
    if kind == K.TEMPERATURE:
        level = bleaching_alert_level(value, -math.inf, rules)
    elif kind == K.DEGREE_HEATING_WEEKS:
        level = bleaching_alert_level(-math.inf, value, rules)
    else:
        raise ValueError(f"{kind.value} is not a bleaching stress input")
    top = max((rule.level for rule in rules), default=0) or 1
    return round(_clamp(100 - level * 100 / top), 2)


def reef_health_index(sst: float, dhw: float, policy: Optional[ReefPolicy] = None) -> float:
    policy = policy or get_reference_tables().reef
    anomaly = sst - policy.sst_baseline
    level = bleaching_alert_level(sst, dhw, policy.alert_levels)
    score = (
        policy.health_baseline
        - min(policy.anomaly_cap, abs(anomaly) * policy.anomaly_factor)
        - min(policy.dhw_cap, dhw * policy.dhw_factor)
        - level * policy.alert_level_factor
    )
    return round(_clamp(score), 2)


def acidification_score(ph: float, threshold: Optional[float] = None) -> float:
    """100 at or above the threshold pH, otherwise proportional to it."""
    if threshold is None:
        threshold = get_reference_tables().ocean.acidification.threshold
    if ph >= threshold:
        return 100.0
    return round(_clamp(ph / threshold * 100), 2)


def _stepped_sum(domain: Domain, values: Mapping[MeasurementKind, float], tables: ReferenceTables) -> float:
    total = 0.0
    for kind, value in values.items():
        table = tables.step_table(domain, kind)
        if table is not None:
            total += table.points(value)
    return _clamp(total)


def flood_score(
    rainfall: float,
    rainfall_24h: float,
    soil_moisture: float,
    tables: Optional[ReferenceTables] = None,
) -> float:
    """Current precipitation (0-50) + 24h accumulation (0-30) + soil saturation (0-20)."""
    tables = tables or get_reference_tables()
    return _stepped_sum(
        Domain.FLOOD_RISK,
        {K.RAINFALL: rainfall, K.RAINFALL_24H: rainfall_24h, K.SOIL_MOISTURE: soil_moisture},
        tables,
    )


def storm_surge_score(
    wave_height: float,
    wind_speed: float,
    swell_height: float,
    tables: Optional[ReferenceTables] = None,
) -> float:
    """Wave height (0-40) + wind speed (0-40) + swell (0-20)."""
    tables = tables or get_reference_tables()
    return _stepped_sum(
        Domain.STORM_SURGE,
        {K.WAVE_HEIGHT: wave_height, K.WIND_SPEED: wind_speed, K.SWELL_HEIGHT: swell_height},
        tables,
    )


# ---------------------------------------------------------------------------
# Normalizer
# ---------------------------------------------------------------------------

class ScoreNormalizer:
    """
    Turns measurements into sub-scores for one domain.

    Invalid readings are logged and dropped; nothing raises past
    ``canonical_value``, ``normalize`` or ``normalize_set``.
    """

    def __init__(self, tables: Optional[ReferenceTables] = None):
        self.tables = tables or get_reference_tables()
        self._components: Dict[str, Callable[[Mapping[MeasurementKind, float]], float]] = {
            "waterQuality": self._water_quality,
            "pollution": self._pollution,
            "biodiversity": self._biodiversity,
            "reefHealth": self._reef_health,
            "acidification": self._acidification,
            "fishing": self._fishing,
        }

    def validate(self, measurement: Measurement) -> float:
        """
        Sanity-check a measurement and return its canonical value.

        Raises:
            InvalidMeasurement: NaN/inf value, missing or unknown unit,
                or value outside the configured physical bounds
        """
        kind = measurement.kind
        if not math.isfinite(measurement.value):
            raise InvalidMeasurement(kind.value, "value is not finite", measurement.value)

        value = convert_unit(kind, measurement.value, measurement.unit)

        bounds = self.tables.bounds.get(kind)
        if bounds is not None:
            low, high = bounds
            if value < low or value > high:
                raise InvalidMeasurement(
                    kind.value, f"outside physical range [{low}, {high}]", value
                )
        return value

    def canonical_value(self, measurement: Measurement) -> Optional[float]:
        """Validated canonical value, or None (logged) when the reading is rejected."""
        try:
            return self.validate(measurement)
        except InvalidMeasurement as e:
            logger.warning(
                "measurement_rejected",
                kind=measurement.kind.value,
                source_id=measurement.source_id,
                value=measurement.value,
                unit=measurement.unit,
                reason=e.reason,
            )
            return None

    def normalize(self, measurement: Measurement, domain: Domain) -> Optional[SubScore]:
        """
        Normalize one measurement for one domain.

        Returns, in order of preference:

        - a stepped sub-score when the domain scores the kind on its own;
        - the component score when a component depends on this kind alone
          (e.g. acidification from pH);
        - the kind's own contribution to its multi-input components
          (water-quality band, pollution term, clarity, bleaching stress).

        Returns None when the reading is rejected, or when the domain does
        not take the kind as an input at all.
        """
        value = self.canonical_value(measurement)
        if value is None:
            return None

        kind = measurement.kind
        table = self.tables.step_table(domain, kind)
        if table is not None:
            return SubScore(
                kind=kind.value,
                score=_clamp(table.points(value) / table.max_points * 100),
                domain=domain,
            )

        for component, inputs in self.tables.components_for(domain).items():
            if inputs == [kind] and component in self._components:
                return SubScore(
                    kind=component,
                    score=self._components[component]({kind: value}),
                    domain=domain,
                )

        if kind in self.tables.inputs_for(domain):
            score = self.kind_score(domain, kind, value)
            if score is not None:
                return SubScore(kind=kind.value, score=score, domain=domain)

        logger.debug("no_single_reading_policy", kind=kind.value, domain=domain.value)
        return None

    def kind_score(self, domain: Domain, kind: MeasurementKind, value: float) -> Optional[float]:
        """
        Score of a single canonical reading that normally feeds a multi-input
        component. Higher is healthier, as for the components themselves.
        """
        if kind == K.DEGREE_HEATING_WEEKS or (domain == Domain.REEF_BLEACHING and kind == K.TEMPERATURE):
            return bleaching_stress_score(kind, value, self.tables.reef.alert_levels)

        if kind in (K.TEMPERATURE, K.PH, K.SALINITY, K.DISSOLVED_OXYGEN, K.TURBIDITY):
            policy = self.tables.water_quality
            return round(_clamp(policy.baseline - water_quality_penalty(kind, value, policy)), 2)

        if kind == K.CHLOROPHYLL:
            pollution = self.tables.ocean.pollution
            return round(_clamp(pollution.baseline - pollution.chlorophyll * value), 2)

        if kind == K.WATER_CLARITY:
            return round(_clamp(value), 2)

        return None

    def normalize_set(
        self,
        domain: Domain,
        values: Mapping[MeasurementKind, float],
        substituted: Optional[Set[MeasurementKind]] = None,
    ) -> List[SubScore]:
        """
        Build every sub-score of a domain from canonical values.

        Args:
            domain: Domain to score
            values: Canonical value per measurement kind (live or default)
            substituted: Kinds whose value came from the default table

        Returns:
            Sub-scores in weight-table order; a component is substituted
            when any of its inputs was
        """
        substituted = substituted or set()
        sub_scores: List[SubScore] = []
        components = self.tables.components_for(domain)

        for key in self.tables.weights.get(domain, {}):
            if key in components:
                inputs = components[key]
                missing = [k.value for k in inputs if k not in values]
                if missing:
                    logger.warning("component_inputs_missing", component=key, missing=missing)
                    continue
                builder = self._components.get(key)
                if builder is None:
                    logger.warning("component_policy_unknown", component=key, domain=domain.value)
                    continue
                sub_scores.append(SubScore(
                    kind=key,
                    score=builder(values),
                    is_substituted=any(k in substituted for k in inputs),
                    domain=domain,
                ))
                continue

            try:
                kind = MeasurementKind(key)
            except ValueError:
                logger.warning("weight_key_unknown", key=key, domain=domain.value)
                continue
            table = self.tables.step_table(domain, kind)
            if table is None or kind not in values:
                continue
            sub_scores.append(SubScore(
                kind=key,
                score=_clamp(table.points(values[kind]) / table.max_points * 100),
                is_substituted=kind in substituted,
                domain=domain,
            ))

        return sub_scores

    def driving_values(self, domain: Domain, values: Mapping[MeasurementKind, float]) -> Dict[str, float]:
        """Raw drivers recorded on the composite index and used by alert gates."""
        drivers = {
            kind.value: values[kind]
            for kind in self.tables.inputs_for(domain)
            if kind in values
        }
        if K.TEMPERATURE in values and K.DEGREE_HEATING_WEEKS in values:
            sst = values[K.TEMPERATURE]
            dhw = values[K.DEGREE_HEATING_WEEKS]
            if domain in (Domain.REEF_BLEACHING, Domain.OCEAN_HEALTH):
                drivers["alertLevel"] = float(bleaching_alert_level(sst, dhw, self.tables.reef.alert_levels))
                drivers["sstAnomaly"] = round(sst - self.tables.reef.sst_baseline, 2)
        return drivers

    # -- component builders --

    def _water_quality(self, v: Mapping[MeasurementKind, float]) -> float:
        return water_quality_score(
            v[K.TEMPERATURE], v[K.PH], v[K.SALINITY], v[K.DISSOLVED_OXYGEN], v[K.TURBIDITY],
            self.tables.water_quality,
        )

    def _pollution(self, v: Mapping[MeasurementKind, float]) -> float:
        return pollution_index(v[K.TURBIDITY], v[K.CHLOROPHYLL], self.tables.ocean.pollution)

    def _reef_health(self, v: Mapping[MeasurementKind, float]) -> float:
        return reef_health_index(v[K.TEMPERATURE], v[K.DEGREE_HEATING_WEEKS], self.tables.reef)

    def _biodiversity(self, v: Mapping[MeasurementKind, float]) -> float:
        return biodiversity_index(
            v[K.CHLOROPHYLL], v[K.WATER_CLARITY], self._reef_health(v), self.tables.ocean.biodiversity,
        )

    def _acidification(self, v: Mapping[MeasurementKind, float]) -> float:
        return acidification_score(v[K.PH], self.tables.ocean.acidification.threshold)

    def _fishing(self, v: Mapping[MeasurementKind, float]) -> float:
        return round(_clamp(self.tables.ocean.fishing_baseline), 2)
