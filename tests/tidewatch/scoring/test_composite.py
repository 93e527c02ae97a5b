"""
Unit tests for composite aggregation and confidence tracking
"""
import itertools

import pytest

from src.tidewatch.errors import ConfigurationError
from src.tidewatch.models.risk import Domain, RiskTier, SubScore
from src.tidewatch.scoring.composite import CompositeIndexCalculator, weighted_overall
from src.tidewatch.scoring.confidence import ConfidenceTracker


def _sub(kind, score, domain=Domain.FLOOD_RISK, substituted=False):
    return SubScore(kind=kind, score=score, domain=domain, is_substituted=substituted)


@pytest.fixture
def calculator(tables):
    return CompositeIndexCalculator(tables)


class TestWeightedOverall:
    """Tests for weighted_overall"""

    def test_summed_flood_terms(self):
        """Test that flood terms sum to the overall score"""
        # 35/50, 15/30, 6/20 points as 0-100 sub-scores, weighted by max points
        subs = [_sub("rainfall", 70), _sub("rainfall24h", 50), _sub("soilMoisture", 30)]
        weights = {"rainfall": 50, "rainfall24h": 30, "soilMoisture": 20}
        assert weighted_overall(subs, weights) == 56

    def test_renormalizes_over_present_weights(self):
        """Test that weights renormalize over present sub-scores"""
        weights = {"a": 2, "b": 1, "c": 1}
        full = [_sub("a", 60), _sub("b", 60), _sub("c", 60)]
        partial = [_sub("a", 60), _sub("c", 60)]
        assert weighted_overall(full, weights) == weighted_overall(partial, weights) == 60

    def test_missing_sub_score_does_not_penalize(self):
        """Test that a missing sub-score does not lower the score"""
        weights = {"a": 1, "b": 1}
        assert weighted_overall([_sub("a", 80)], weights) == 80

    def test_no_weighted_sub_scores(self):
        """Test that no weighted sub-scores gives zero"""
        assert weighted_overall([], {"a": 1}) == 0.0
        assert weighted_overall([_sub("z", 50)], {"a": 1}) == 0.0


class TestCompute:
    """Tests for CompositeIndexCalculator.compute"""

    @pytest.mark.parametrize("scores", list(itertools.product([0, 33.3, 100], repeat=3)))
    def test_overall_in_range(self, calculator, scores):
        """Test that the overall score stays between 0 and 100"""
        subs = [_sub(k, s) for k, s in zip(["rainfall", "rainfall24h", "soilMoisture"], scores)]
        index = calculator.compute(Domain.FLOOD_RISK, subs)
        assert 0 <= index.overall <= 100
        assert 0 <= index.confidence <= 1

    def test_idempotent(self, calculator):
        """Test that the same inputs give the same index"""
        subs = [_sub("rainfall", 70), _sub("rainfall24h", 50, substituted=True), _sub("soilMoisture", 30)]
        first = calculator.compute(Domain.FLOOD_RISK, subs, location=(-20.2, 57.5))
        second = calculator.compute(Domain.FLOOD_RISK, subs, location=(-20.2, 57.5))
        assert (first.overall, first.risk_tier, first.confidence) == \
            (second.overall, second.risk_tier, second.confidence)

    def test_tier_from_composite(self, calculator):
        """Test the tier taken from the composite score"""
        subs = [_sub("rainfall", 100), _sub("rainfall24h", 100), _sub("soilMoisture", 100)]
        index = calculator.compute(Domain.FLOOD_RISK, subs)
        assert index.overall == 100
        assert index.risk_tier == RiskTier.SEVERE

    def test_reef_tier_from_alert_level(self, calculator):
        """Test the reef tier taken from the alert level"""
        subs = [_sub("reefHealth", 8, domain=Domain.REEF_BLEACHING)]
        index = calculator.compute(Domain.REEF_BLEACHING, subs, drivers={"alertLevel": 5})
        assert index.overall == 8
        assert index.risk_tier == RiskTier.SEVERE

    def test_ocean_health_tiers_are_inverted(self, calculator):
        """Test that ocean health tiers run from high score to low risk"""
        subs = [_sub("waterQuality", 90, domain=Domain.OCEAN_HEALTH)]
        assert calculator.compute(Domain.OCEAN_HEALTH, subs).risk_tier == RiskTier.LOW
        subs = [_sub("waterQuality", 30, domain=Domain.OCEAN_HEALTH)]
        assert calculator.compute(Domain.OCEAN_HEALTH, subs).risk_tier == RiskTier.SEVERE

    def test_unweighted_and_foreign_sub_scores_are_dropped(self, calculator):
        """Test that unweighted and foreign sub-scores are dropped"""
        subs = [
            _sub("rainfall", 100),
            _sub("turbidity", 0),
            _sub("waveHeight", 0, domain=Domain.STORM_SURGE),
        ]
        index = calculator.compute(Domain.FLOOD_RISK, subs)
        assert [s.kind for s in index.sub_scores] == ["rainfall"]
        assert index.overall == 100

    def test_empty_sub_scores(self, calculator):
        """Test computing an index with no sub-scores"""
        index = calculator.compute(Domain.FLOOD_RISK, [])
        assert index.overall == 0.0
        assert index.risk_tier == RiskTier.LOW
        assert index.confidence == 0.65

    def test_explicit_weights(self, calculator):
        """Test passing explicit weights"""
        subs = [_sub("rainfall", 100), _sub("soilMoisture", 0)]
        index = calculator.compute(Domain.FLOOD_RISK, subs, weights={"rainfall": 1, "soilMoisture": 3})
        assert index.overall == 25

    def test_unconfigured_domain_raises(self, tables):
        """Test that an unconfigured domain raises"""
        weights = {d: w for d, w in tables.weights.items() if d != Domain.STORM_SURGE}
        calculator = CompositeIndexCalculator(tables.model_copy(update={"weights": weights}))
        with pytest.raises(ConfigurationError):
            calculator.compute(Domain.STORM_SURGE, [])

    def test_serializes_camel_case(self, calculator):
        """Test that the index serializes with camelCase keys"""
        index = calculator.compute(Domain.FLOOD_RISK, [_sub("rainfall", 40)], location=(-20.2, 57.5))
        payload = index.model_dump(mode="json", by_alias=True)
        assert payload["riskTier"] == "moderate"
        assert payload["subScores"][0]["isSubstituted"] is False
        assert payload["location"] == [-20.2, 57.5]
        assert "computedAt" in payload


class TestConfidence:
    """Tests for confidence tracking"""

    def test_one_of_three_live(self, tables):
        """Test confidence with one live input out of three"""
        tracker = ConfidenceTracker(tables)
        subs = [
            _sub("rainfall", 10),
            _sub("rainfall24h", 0, substituted=True),
            _sub("soilMoisture", 30, substituted=True),
        ]
        assert tracker.track(Domain.FLOOD_RISK, subs) == pytest.approx(0.79)

    def test_all_live_is_base(self, tables):
        """Test that all live inputs give the base confidence"""
        tracker = ConfidenceTracker(tables)
        subs = [_sub("rainfall", 10), _sub("rainfall24h", 0), _sub("soilMoisture", 30)]
        assert tracker.track(Domain.FLOOD_RISK, subs) == 0.89

    def test_floored_at_domain_minimum(self, tables):
        """Test that confidence never drops below the floor"""
        tracker = ConfidenceTracker(tables)
        subs = [_sub(f"k{i}", 50, domain=Domain.OCEAN_HEALTH, substituted=i > 0) for i in range(8)]
        # 0.85 - 7 * 0.05 = 0.50 -> floor 0.60
        assert tracker.track(Domain.OCEAN_HEALTH, subs) == 0.60

    def test_all_substituted_is_floor(self, tables):
        """Test that all substituted inputs give the floor"""
        tracker = ConfidenceTracker(tables)
        subs = [_sub("rainfall", 0, substituted=True), _sub("soilMoisture", 30, substituted=True)]
        assert tracker.track(Domain.FLOOD_RISK, subs) == 0.65

    def test_breakdown(self):
        """Test the live and substituted breakdown"""
        subs = [_sub("rainfall", 10), _sub("soilMoisture", 30, substituted=True)]
        assert ConfidenceTracker.breakdown(subs) == {"live": ["rainfall"], "substituted": ["soilMoisture"]}

    def test_insufficient_data_pins_floor(self, calculator):
        """Test that insufficient data pins confidence to the floor"""
        subs = [_sub("rainfall", 0, substituted=True)]
        index = calculator.compute(Domain.FLOOD_RISK, subs, insufficient_data=True)
        assert index.confidence == 0.65
