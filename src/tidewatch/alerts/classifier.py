"""
Risk Classifier

Maps a composite index (or, for reef bleaching, the alert-level driver)
onto the domain's ordered tier bands. Each classification is independent;
there is no hysteresis.
"""
from typing import Mapping, Optional

from src.tidewatch.models.risk import CompositeIndex, Domain, RiskTier
from src.tidewatch.reference.tables import ReferenceTables, get_reference_tables
from src.tidewatch.utils.logger import get_logger

logger = get_logger(__name__)


class RiskClassifier:

    def __init__(self, tables: Optional[ReferenceTables] = None):
        self.tables = tables or get_reference_tables()

    def tier_for(
        self,
        domain: Domain,
        overall: float,
        drivers: Optional[Mapping[str, float]] = None,
    ) -> RiskTier:
        """
        Classify a score for a domain.

        Raises:
            ConfigurationError: if the domain has no tier table
        """
        table = self.tables.tier_table(domain)
        if table.source == "alertLevel":
            level = (drivers or {}).get("alertLevel")
            if level is None:
                logger.warning("alert_level_driver_missing", domain=domain.value)
                level = 0
            return table.tier_for(level)
        return table.tier_for(overall)

    def classify(self, index: CompositeIndex) -> RiskTier:
        return self.tier_for(index.domain, index.overall, index.drivers)
