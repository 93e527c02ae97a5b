"""
Risk Aggregation Engine

Orchestrates one domain computation: resolve measurements, substitute
defaults for anything missing or rejected, normalize, aggregate, classify
and generate alerts. Provider failures, invalid readings and total data
loss are recovered here; only ConfigurationError escapes.
"""
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from config.settings import settings
from src.tidewatch.alerts.generator import AlertGenerator
from src.tidewatch.alerts.outlook import BleachingOutlook, bleaching_outlook
from src.tidewatch.errors import InsufficientData
from src.tidewatch.models.measurement import Measurement, MeasurementKind
from src.tidewatch.models.region import RegionalSegment, SegmentScore
from src.tidewatch.models.risk import Alert, CompositeIndex, Domain
from src.tidewatch.providers.base import ProviderAdapter, ProviderFailure, collect_measurements
from src.tidewatch.providers.open_meteo import OpenMeteoForecastProvider, OpenMeteoMarineProvider
from src.tidewatch.providers.storm_track import StormTrackProvider
from src.tidewatch.reference.tables import ReferenceTables, get_reference_tables
from src.tidewatch.regional.variation import RegionalVariationEngine
from src.tidewatch.scoring.composite import CompositeIndexCalculator
from src.tidewatch.scoring.normalizer import ScoreNormalizer
from src.tidewatch.utils.logger import (
    bind_assessment_context,
    clear_assessment_context,
    get_logger,
)

logger = get_logger(__name__)


class Assessment(BaseModel):
    """Composite index with the alerts and segment scores derived from it."""

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    index: CompositeIndex
    alerts: List[Alert] = Field(default_factory=list)
    segments: List[SegmentScore] = Field(default_factory=list)
    failed_providers: List[str] = Field(default_factory=list)
    outlook: Optional[BleachingOutlook] = None


def default_providers() -> Dict[Domain, List[ProviderAdapter]]:
    """Upstream sources per domain."""
    marine = OpenMeteoMarineProvider()
    forecast = OpenMeteoForecastProvider()
    storms = StormTrackProvider()
    return {
        Domain.OCEAN_HEALTH: [marine],
        Domain.FLOOD_RISK: [forecast],
        Domain.STORM_SURGE: [marine, forecast],
        Domain.CYCLONE_RISK: [storms, marine],
        Domain.REEF_BLEACHING: [marine],
    }


class RiskAggregationEngine:
    """
    Entry point for risk computations.

    Computations share only immutable reference tables, so independent
    domains and locations can run in parallel.

    Example:
        engine = RiskAggregationEngine()
        index = engine.assess(Domain.FLOOD_RISK, measurements, location=(-20.2, 57.5))
    """

    def __init__(
        self,
        tables: Optional[ReferenceTables] = None,
        providers: Optional[Mapping[Domain, Sequence[ProviderAdapter]]] = None,
        segments: Optional[Sequence[RegionalSegment]] = None,
        max_workers: Optional[int] = None,
    ):
        self.tables = tables or get_reference_tables()
        self.providers = providers if providers is not None else default_providers()
        self.normalizer = ScoreNormalizer(self.tables)
        self.calculator = CompositeIndexCalculator(self.tables)
        self.alert_generator = AlertGenerator(self.tables)
        self.regional = RegionalVariationEngine(segments, self.tables)
        self.max_workers = max_workers or settings.engine_max_workers

    def assess(
        self,
        domain: Domain,
        measurements: Sequence[Measurement],
        location: Optional[Tuple[float, float]] = None,
        failed_providers: Optional[Sequence[str]] = None,
        computed_at: Optional[datetime] = None,
    ) -> CompositeIndex:
        """
        Compute a domain index from whatever measurements are available.

        Missing or rejected kinds are substituted from the default table,
        each lowering confidence. With no live input at all the index is
        built entirely from defaults and confidence sits at the floor.

        Raises:
            ConfigurationError: if the domain has no weight or tier table
        """
        self.tables.require(domain)

        live = self._resolve(domain, measurements)
        values, substituted = self._substitute(domain, live)

        if not live:
            failed = list(failed_providers or [])
            logger.warning("insufficient_data", error=str(InsufficientData(domain.value, failed)))

        sub_scores = self.normalizer.normalize_set(domain, values, substituted)
        drivers = self.normalizer.driving_values(domain, values)

        return self.calculator.compute(
            domain,
            sub_scores,
            location=location,
            drivers=drivers,
            computed_at=computed_at,
            insufficient_data=not live,
        )

    def evaluate(
        self,
        domain: Domain,
        measurements: Sequence[Measurement],
        location: Optional[Tuple[float, float]] = None,
        failed_providers: Optional[Sequence[str]] = None,
        include_segments: bool = False,
    ) -> Assessment:
        """Index with its alerts; reef indices also carry a bleaching outlook."""
        index = self.assess(domain, measurements, location, failed_providers)
        return Assessment(
            index=index,
            alerts=self.alert_generator.alerts_for(index),
            segments=self.segment_scores(index) if include_segments else [],
            failed_providers=list(failed_providers or []),
            outlook=self.outlook_for(index),
        )

    def outlook_for(self, index: CompositeIndex) -> Optional[BleachingOutlook]:
        """Bleaching outlook for reef indices; None for every other domain."""
        drivers = index.drivers
        if index.domain != Domain.REEF_BLEACHING or "temperature" not in drivers:
            return None
        return bleaching_outlook(
            drivers["temperature"],
            drivers.get("degreeHeatingWeeks", 0.0),
            int(drivers.get("alertLevel", 0)),
            sst_baseline=self.tables.reef.sst_baseline,
            policy=self.tables.reef.outlook,
        )

    def assess_from_providers(
        self,
        domain: Domain,
        latitude: float,
        longitude: float,
        include_segments: bool = False,
    ) -> Assessment:
        """Fetch from the domain's providers, then evaluate."""
        self.tables.require(domain)
        bind_assessment_context(domain.value, latitude, longitude)
        try:
            measurements, failures = collect_measurements(self._providers_for(domain), latitude, longitude)
        finally:
            clear_assessment_context()
        return self._assess_collected(domain, latitude, longitude, measurements, failures, include_segments)

    def assess_many(
        self,
        requests: Sequence[Tuple[Domain, float, float]],
        include_segments: bool = False,
    ) -> List[Assessment]:
        """
        Evaluate independent (domain, lat, lng) requests in a thread pool.

        Each (provider, lat, lng) pair is fetched once per batch, however
        many domains share the provider. Results come back in request order.
        """
        if not requests:
            return []
        for domain, _, _ in requests:
            self.tables.require(domain)

        fetches = list(dict.fromkeys(
            (provider, lat, lng)
            for domain, lat, lng in requests
            for provider in self._providers_for(domain)
        ))

        workers = min(self.max_workers, max(len(fetches), len(requests)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            pending = {
                key: pool.submit(collect_measurements, [key[0]], key[1], key[2])
                for key in fetches
            }
            fetched = {key: future.result() for key, future in pending.items()}
            logger.info("batch_fetch_complete", requests=len(requests), fetches=len(fetched))

            futures = []
            for domain, lat, lng in requests:
                measurements: List[Measurement] = []
                failures: List[ProviderFailure] = []
                for provider in self._providers_for(domain):
                    provider_measurements, provider_failures = fetched[(provider, lat, lng)]
                    measurements.extend(provider_measurements)
                    failures.extend(provider_failures)
                futures.append(pool.submit(
                    self._assess_collected, domain, lat, lng, measurements, failures, include_segments,
                ))
            return [f.result() for f in futures]

    def _assess_collected(
        self,
        domain: Domain,
        latitude: float,
        longitude: float,
        measurements: Sequence[Measurement],
        failures: Sequence[ProviderFailure],
        include_segments: bool,
    ) -> Assessment:
        bind_assessment_context(domain.value, latitude, longitude)
        try:
            failed = [f.provider_id for f in failures]
            assessment = self.evaluate(
                domain,
                measurements,
                location=(latitude, longitude),
                failed_providers=failed,
                include_segments=include_segments,
            )
            logger.info(
                "assessment_complete",
                overall=assessment.index.overall,
                risk_tier=assessment.index.risk_tier.value,
                confidence=assessment.index.confidence,
                alerts=len(assessment.alerts),
                failed_providers=failed,
            )
            return assessment
        finally:
            clear_assessment_context()

    def segment_scores(self, index: CompositeIndex) -> List[SegmentScore]:
        return self.regional.apply_all(index)

    def _providers_for(self, domain: Domain) -> List[ProviderAdapter]:
        return list(self.providers.get(domain, []))

    def _resolve(self, domain: Domain, measurements: Sequence[Measurement]) -> Dict[MeasurementKind, float]:
        """
        Canonical live value per input kind.

        When a kind is reported more than once, the latest valid reading wins.
        """
        inputs = set(self.tables.inputs_for(domain))
        candidates = sorted(
            (m for m in measurements if m.kind in inputs),
            key=lambda m: m.observed_at,
            reverse=True,
        )
        live: Dict[MeasurementKind, float] = {}
        for measurement in candidates:
            if measurement.kind in live:
                continue
            value = self.normalizer.canonical_value(measurement)
            if value is not None:
                live[measurement.kind] = value
        return live

    def _substitute(
        self,
        domain: Domain,
        live: Mapping[MeasurementKind, float],
    ) -> Tuple[Dict[MeasurementKind, float], Set[MeasurementKind]]:
        """
        Fill every missing input kind from the single default table.

        Returns:
            (values, substituted kinds)
        """
        values = dict(live)
        substituted: Set[MeasurementKind] = set()
        for kind in self.tables.inputs_for(domain):
            if kind in values:
                continue
            default = self.tables.default_for(kind)
            if default is None:
                logger.warning("default_value_missing", kind=kind.value, domain=domain.value)
                continue
            values[kind] = default
            substituted.add(kind)

        if substituted:
            logger.info(
                "defaults_substituted",
                domain=domain.value,
                kinds=sorted(k.value for k in substituted),
            )
        return values, substituted
