"""
Unit tests for reference table loading and validation
"""
import json

import pytest

from src.tidewatch.errors import ConfigurationError
from src.tidewatch.models.measurement import MeasurementKind
from src.tidewatch.models.risk import Domain, RiskTier
from src.tidewatch.reference.tables import StepTable, TierTable, load_reference_tables


class TestBundledTables:
    """Tests for the bundled reference tables"""

    def test_every_domain_is_configured(self, tables):
        """Test that every domain has weights and tiers"""
        for domain in Domain:
            tables.require(domain)
            assert tables.weights_for(domain)
            assert tables.tier_table(domain)

    def test_defaults_cover_every_input(self, tables):
        """Test that every input kind has a default value"""
        for domain in Domain:
            for kind in tables.inputs_for(domain):
                assert tables.default_for(kind) is not None

    def test_documented_defaults(self, tables):
        """Test the documented default values"""
        assert tables.default_for(MeasurementKind.TEMPERATURE) == 28.5
        assert tables.default_for(MeasurementKind.PH) == 8.1
        assert tables.default_for(MeasurementKind.TURBIDITY) == 0.3
        assert tables.default_for(MeasurementKind.WAVE_HEIGHT) == 1.0

    def test_flood_confidence_profile(self, tables):
        """Test the flood confidence profile"""
        profile = tables.confidence_profile(Domain.FLOOD_RISK)
        assert (profile.base, profile.penalty, profile.floor) == (0.89, 0.05, 0.65)

    def test_region_multiplier_lookup(self, tables):
        """Test regional multiplier lookup"""
        assert tables.region_multiplier("east") == 1.05
        assert tables.region_multiplier("LAGOON") == 1.02
        assert tables.region_multiplier("unknown") == 1.0
        assert tables.region_multiplier(None) == 1.0


class TestStepTable:
    """Tests for StepTable"""

    def test_points_first_threshold_wins(self):
        """Test that the first passing threshold gives the points"""
        table = StepTable(op="gt", steps=[(50, 50), (25, 35), (10, 20), (5, 10)])
        assert table.points(60) == 50
        assert table.points(50) == 35
        assert table.points(6) == 10
        assert table.points(5) == 0
        assert table.max_points == 50

    def test_lt_table(self):
        """Test a less-than step table"""
        table = StepTable(op="lt", steps=[(50, 40), (100, 30)])
        assert table.points(10) == 40
        assert table.points(75) == 30
        assert table.points(100) == 0

    def test_unordered_thresholds_rejected(self):
        """Test that unordered thresholds are rejected"""
        with pytest.raises(ValueError):
            StepTable(op="gt", steps=[(5, 10), (50, 50)])


class TestTierTable:
    """Tests for TierTable"""

    def test_tier_for(self):
        """Test tier lookup from a value"""
        table = TierTable(bands=[("severe", 70), ("high", 50), ("moderate", 25), ("low", 0)])
        assert table.tier_for(70) == RiskTier.SEVERE
        assert table.tier_for(69.99) == RiskTier.HIGH
        assert table.tier_for(0) == RiskTier.LOW

    def test_non_monotonic_bands_rejected(self):
        """Test that out of order tiers are rejected"""
        with pytest.raises(ValueError):
            TierTable(bands=[("severe", 70), ("low", 50), ("high", 25), ("moderate", 0)])

    def test_non_decreasing_minimums_rejected(self):
        """Test that band minimums must decrease"""
        with pytest.raises(ValueError):
            TierTable(bands=[("severe", 50), ("high", 70), ("low", 0)])


class TestLoading:
    """Tests for load_reference_tables"""

    def test_overrides_are_deep_merged(self):
        """Test that overrides merge into the bundled tables"""
        tables = load_reference_tables(overrides={"regions": {"east": 1.10}})
        assert tables.region_multiplier("east") == 1.10
        assert tables.region_multiplier("lagoon") == 1.02

    def test_override_file(self, tmp_path):
        """Test loading an override file"""
        path = tmp_path / "tables.json"
        path.write_text(json.dumps({"defaults": {"temperature": 27.0}}))
        tables = load_reference_tables(str(path))
        assert tables.default_for(MeasurementKind.TEMPERATURE) == 27.0
        assert tables.default_for(MeasurementKind.PH) == 8.1

    def test_missing_file_is_configuration_error(self, tmp_path):
        """Test that a missing override file is a configuration error"""
        with pytest.raises(ConfigurationError):
            load_reference_tables(str(tmp_path / "missing.json"))

    def test_invalid_json_is_configuration_error(self, tmp_path):
        """Test that invalid JSON is a configuration error"""
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError):
            load_reference_tables(str(path))

    def test_invalid_tier_bands_is_configuration_error(self):
        """Test that invalid tier bands are a configuration error"""
        overrides = {"tiers": {"floodRisk": {"bands": [["low", 70], ["severe", 80]]}}}
        with pytest.raises(ConfigurationError):
            load_reference_tables(overrides=overrides)

    def test_negative_multiplier_is_configuration_error(self):
        """Test that a negative multiplier is a configuration error"""
        with pytest.raises(ConfigurationError):
            load_reference_tables(overrides={"regions": {"east": -1}})

    def test_outlook_thresholds_are_configurable(self):
        """Test that bleaching outlook settings can be overridden"""
        tables = load_reference_tables(overrides={"reef": {"outlook": {"lowProbability": 0.05}}})
        assert tables.reef.outlook.low_probability == 0.05
        assert [b.tier for b in tables.reef.outlook.bands] == [RiskTier.SEVERE, RiskTier.HIGH, RiskTier.MODERATE]

    def test_unordered_outlook_bands_is_configuration_error(self, tables):
        """Test that outlook bands out of order are a configuration error"""
        bands = [b.model_dump(by_alias=True, mode="json") for b in reversed(tables.reef.outlook.bands)]
        with pytest.raises(ConfigurationError):
            load_reference_tables(overrides={"reef": {"outlook": {"bands": bands}}})

    def test_domain_without_weights_raises(self, tables):
        """Test that a domain without weights raises"""
        weights = {d: w for d, w in tables.weights.items() if d != Domain.CYCLONE_RISK}
        broken = tables.model_copy(update={"weights": weights})
        with pytest.raises(ConfigurationError):
            broken.require(Domain.CYCLONE_RISK)
        with pytest.raises(ConfigurationError):
            broken.weights_for(Domain.CYCLONE_RISK)

    def test_domain_without_tiers_raises(self, tables):
        """Test that a domain without tiers raises"""
        tiers = {d: t for d, t in tables.tiers.items() if d != Domain.FLOOD_RISK}
        broken = tables.model_copy(update={"tiers": tiers})
        with pytest.raises(ConfigurationError):
            broken.tier_table(Domain.FLOOD_RISK)
