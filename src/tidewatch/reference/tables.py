"""
Reference Tables

Weights, step thresholds, tier bands, confidence profiles, default values,
physical bounds and regional multipliers. Everything the engine scores with
is read from here so it can be recalibrated without code changes.

The bundled ``config/reference_tables.json`` is the baseline. A JSON file at
``settings.reference_tables_path`` and explicit override dictionaries are
deep-merged on top of it.
"""
import copy
import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from config.settings import settings
from src.tidewatch.errors import ConfigurationError
from src.tidewatch.models.measurement import MeasurementKind
from src.tidewatch.models.risk import Domain, RiskTier
from src.tidewatch.utils.logger import get_logger

logger = get_logger(__name__)

BUNDLED_TABLES_PATH = Path(__file__).resolve().parents[3] / "config" / "reference_tables.json"


class _TableModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class StepTable(_TableModel):
    """
    Stepped points table.

    ``steps`` are (threshold, points) pairs checked in order; the first
    threshold the value passes under ``op`` gives the points, otherwise 0.
    """

    op: Literal["gt", "gte", "lt", "lte"]
    steps: List[Tuple[float, float]]

    @field_validator("steps")
    @classmethod
    def validate_steps(cls, v: List[Tuple[float, float]], info) -> List[Tuple[float, float]]:
        if not v:
            raise ValueError("step table must declare at least one step")
        thresholds = [threshold for threshold, _ in v]
        op = info.data.get("op")
        if op in ("gt", "gte") and thresholds != sorted(thresholds, reverse=True):
            raise ValueError("thresholds for gt/gte tables must be descending")
        if op in ("lt", "lte") and thresholds != sorted(thresholds):
            raise ValueError("thresholds for lt/lte tables must be ascending")
        return v

    @property
    def max_points(self) -> float:
        return max(points for _, points in self.steps)

    def points(self, value: float) -> float:
        for threshold, points in self.steps:
            if _passes(value, self.op, threshold):
                return points
        return 0.0


def _passes(value: float, op: str, threshold: float) -> bool:
    if op == "gt":
        return value > threshold
    if op == "gte":
        return value >= threshold
    if op == "lt":
        return value < threshold
    return value <= threshold


class TierTable(_TableModel):
    """
    Ordered tier bands.

    Bands are (tier, minimum) pairs with strictly decreasing minimums. The
    first band whose minimum the value reaches wins. ``source`` selects the
    value classified: the composite score or the bleaching alert level.
    """

    source: Literal["composite", "alertLevel"] = "composite"
    bands: List[Tuple[RiskTier, float]]

    @field_validator("bands")
    @classmethod
    def validate_bands(cls, v: List[Tuple[RiskTier, float]]) -> List[Tuple[RiskTier, float]]:
        if not v:
            raise ValueError("tier table must declare at least one band")
        minimums = [minimum for _, minimum in v]
        if any(a <= b for a, b in zip(minimums, minimums[1:])):
            raise ValueError("tier band minimums must be strictly decreasing")
        if minimums[-1] > 0:
            raise ValueError("lowest tier band must start at or below 0")
        ranks = [tier.rank for tier, _ in v]
        ascending = all(a < b for a, b in zip(ranks, ranks[1:]))
        descending = all(a > b for a, b in zip(ranks, ranks[1:]))
        if len(ranks) > 1 and not (ascending or descending):
            raise ValueError("tier bands must be monotonic in tier order")
        return v

    def tier_for(self, value: float) -> RiskTier:
        for tier, minimum in self.bands:
            if value >= minimum:
                return tier
        return self.bands[-1][0]


class ConfidenceProfile(_TableModel):
    base: float = Field(..., ge=0, le=1)
    penalty: float = Field(..., ge=0, le=1)
    floor: float = Field(..., ge=0, le=1)

    @field_validator("floor")
    @classmethod
    def floor_below_base(cls, v: float, info) -> float:
        base = info.data.get("base")
        if base is not None and v > base:
            raise ValueError("confidence floor must not exceed base")
        return v


class BandPenalty(_TableModel):
    optimal: Tuple[float, float]
    penalty: float


class PhPolicy(_TableModel):
    optimal: Tuple[float, float]
    acceptable: Tuple[float, float]
    acceptable_penalty: float
    penalty: float


class OxygenPolicy(_TableModel):
    below: List[Tuple[float, float]]


class TurbidityPolicy(_TableModel):
    max: float
    penalty: float


class WaterQualityPolicy(_TableModel):
    baseline: float = 100
    temperature: BandPenalty
    ph: PhPolicy = Field(..., alias="pH")
    salinity: BandPenalty
    dissolved_oxygen: OxygenPolicy
    turbidity: TurbidityPolicy


class PollutionPolicy(_TableModel):
    baseline: float
    turbidity: float
    chlorophyll: float


class BiodiversityPolicy(_TableModel):
    chlorophyll: float
    water_clarity: float
    reef_health: float


class AcidificationPolicy(_TableModel):
    threshold: float


class OceanPolicy(_TableModel):
    pollution: PollutionPolicy
    biodiversity: BiodiversityPolicy
    acidification: AcidificationPolicy
    fishing_baseline: float


class AlertLevelRule(_TableModel):
    level: int = Field(..., ge=0, le=5)
    sst: Optional[float] = None
    dhw: Optional[float] = None


class OutlookBand(_TableModel):
    """
    One bleaching outlook band. A band applies when any of its triggers is
    met. Onset is ``onset_days`` once DHW reaches the band's ``dhw``, otherwise
    the days of heat still needed to get there, never less than ``min_days``.
    """

    tier: RiskTier
    alert_level: int = Field(..., ge=0, le=5)
    sst: float
    dhw: float
    probability: float = Field(..., ge=0, le=1)
    onset_days: int = Field(..., ge=0)
    min_days: int = Field(..., ge=0)


class BleachingOutlookPolicy(_TableModel):
    bands: List[OutlookBand]
    low_probability: float = Field(..., ge=0, le=1)
    actions: Dict[RiskTier, List[str]]

    @field_validator("bands")
    @classmethod
    def bands_descending(cls, v: List[OutlookBand]) -> List[OutlookBand]:
        levels = [band.alert_level for band in v]
        if levels != sorted(levels, reverse=True):
            raise ValueError("outlook bands must be ordered from most severe")
        return v


class ReefPolicy(_TableModel):
    sst_baseline: float
    health_baseline: float
    anomaly_factor: float
    anomaly_cap: float
    dhw_factor: float
    dhw_cap: float
    alert_level_factor: float
    alert_levels: List[AlertLevelRule]
    outlook: BleachingOutlookPolicy

    @field_validator("alert_levels")
    @classmethod
    def levels_descending(cls, v: List[AlertLevelRule]) -> List[AlertLevelRule]:
        levels = [rule.level for rule in v]
        if levels != sorted(levels, reverse=True):
            raise ValueError("alert level rules must be ordered from highest level")
        return v


class AlertRules(_TableModel):
    flood_moderate_precip24h: float = Field(25, alias="floodModeratePrecip24h")
    flood_saturated_soil: float = 0.8
    surge_moderate_wave_height: float = 2
    surge_strong_wind: float = 75
    cyclone_hurricane_wind: float = 118
    cyclone_wind_radius_km: float = 300
    reef_min_alert_level: int = 2
    ocean_pollution_floor: float = 50


DEFAULT_CONFIDENCE = ConfidenceProfile(base=0.9, penalty=0.05, floor=0.6)


class ReferenceTables(_TableModel):
    """Validated, immutable view of the reference configuration."""

    inputs: Dict[Domain, List[MeasurementKind]]
    weights: Dict[Domain, Dict[str, float]]
    components: Dict[Domain, Dict[str, List[MeasurementKind]]] = Field(default_factory=dict)
    step_tables: Dict[Domain, Dict[MeasurementKind, StepTable]] = Field(default_factory=dict)
    tiers: Dict[Domain, TierTable]
    confidence: Dict[Domain, ConfidenceProfile] = Field(default_factory=dict)
    defaults: Dict[MeasurementKind, float]
    bounds: Dict[MeasurementKind, Tuple[float, float]] = Field(default_factory=dict)
    water_quality: WaterQualityPolicy
    ocean: OceanPolicy
    reef: ReefPolicy
    alert_rules: AlertRules = Field(default_factory=AlertRules)
    regions: Dict[str, float] = Field(default_factory=lambda: {"default": 1.0})

    @field_validator("weights")
    @classmethod
    def weights_positive(cls, v: Dict[Domain, Dict[str, float]]) -> Dict[Domain, Dict[str, float]]:
        for domain, table in v.items():
            if any(weight < 0 for weight in table.values()):
                raise ValueError(f"negative weight in {domain.value} table")
        return v

    @field_validator("regions")
    @classmethod
    def multipliers_positive(cls, v: Dict[str, float]) -> Dict[str, float]:
        if any(m <= 0 for m in v.values()):
            raise ValueError("regional multipliers must be positive")
        return {k.lower(): m for k, m in v.items()}

    def require(self, domain: Domain) -> None:
        """
        Ensure a domain is fully configured.

        Raises:
            ConfigurationError: if the domain has no weight or tier table
        """
        weights = self.weights.get(domain)
        if not weights or sum(weights.values()) <= 0:
            raise ConfigurationError(f"No weight table configured for domain '{domain.value}'")
        if domain not in self.tiers:
            raise ConfigurationError(f"No tier thresholds configured for domain '{domain.value}'")

    def weights_for(self, domain: Domain) -> Dict[str, float]:
        self.require(domain)
        return dict(self.weights[domain])

    def tier_table(self, domain: Domain) -> TierTable:
        self.require(domain)
        return self.tiers[domain]

    def confidence_profile(self, domain: Domain) -> ConfidenceProfile:
        profile = self.confidence.get(domain)
        if profile is None:
            logger.warning("confidence_profile_missing", domain=domain.value)
            return DEFAULT_CONFIDENCE
        return profile

    def inputs_for(self, domain: Domain) -> List[MeasurementKind]:
        return list(self.inputs.get(domain, []))

    def components_for(self, domain: Domain) -> Dict[str, List[MeasurementKind]]:
        return dict(self.components.get(domain, {}))

    def step_table(self, domain: Domain, kind: MeasurementKind) -> Optional[StepTable]:
        return self.step_tables.get(domain, {}).get(kind)

    def default_for(self, kind: MeasurementKind) -> Optional[float]:
        return self.defaults.get(kind)

    def region_multiplier(self, category: Optional[str]) -> float:
        default = self.regions.get("default", 1.0)
        if not category:
            return default
        return self.regions.get(category.lower(), default)


def _deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


def _read_json(path: Path) -> Dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as handle:
            return json.load(handle)
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Reference table file not found: {path}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Reference table file is not valid JSON: {path}: {exc}") from exc


def load_reference_tables(
    path: Optional[str] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> ReferenceTables:
    """
    Load and validate reference tables.

    Args:
        path: Optional JSON file merged over the bundled tables
        overrides: Optional dictionary merged last (camelCase keys)

    Returns:
        Validated ReferenceTables

    Raises:
        ConfigurationError: if a file is missing/invalid or validation fails
    """
    raw = _read_json(BUNDLED_TABLES_PATH)
    if path:
        raw = _deep_merge(raw, _read_json(Path(path)))
    if overrides:
        raw = _deep_merge(raw, overrides)

    try:
        tables = ReferenceTables.model_validate(raw)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid reference tables: {exc}") from exc

    logger.info(
        "reference_tables_loaded",
        override_path=path,
        domains=sorted(d.value for d in tables.weights),
        has_overrides=bool(overrides),
    )
    return tables


@lru_cache()
def get_reference_tables() -> ReferenceTables:
    """Process-wide tables from the bundled file and settings.reference_tables_path."""
    return load_reference_tables(settings.reference_tables_path)
