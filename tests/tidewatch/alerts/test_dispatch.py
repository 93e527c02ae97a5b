"""
Unit tests for alert dispatch
"""
from unittest.mock import Mock, patch

import requests

from src.tidewatch.alerts.dispatch import dispatch_alerts, filter_alerts, format_alerts_message
from src.tidewatch.models.risk import Alert, AlertLevel, CompositeIndex, Domain, RiskTier, SubScore


def _index():
    return CompositeIndex(
        domain=Domain.FLOOD_RISK,
        overall=100,
        sub_scores=[SubScore(kind="soilMoisture", score=100, domain=Domain.FLOOD_RISK, is_substituted=True)],
        confidence=0.84,
        risk_tier=RiskTier.SEVERE,
        location=(-20.2, 57.5),
    )


def _alerts():
    return [
        Alert(level=AlertLevel.SEVERE, message="Extreme flood risk", area="All regions", domain=Domain.FLOOD_RISK),
        Alert(level=AlertLevel.MODERATE, message="Minor", area="Drainage systems", domain=Domain.FLOOD_RISK),
    ]


def test_filter_alerts_by_min_level():
    """Test that alerts below the minimum level are not dispatched"""
    assert [a.level for a in filter_alerts(_alerts(), "high")] == [AlertLevel.SEVERE]
    assert len(filter_alerts(_alerts(), "low")) == 2


def test_format_message_flags_defaults():
    """Test that the message lists substituted inputs"""
    message = format_alerts_message(_index(), _alerts())
    assert "floodRisk SEVERE" in message
    assert "soilMoisture" in message
    assert "Extreme flood risk - All regions" in message


@patch("src.tidewatch.alerts.dispatch.settings")
@patch("src.tidewatch.alerts.dispatch.requests.post")
def test_dispatch_posts_to_webhook(mock_post, mock_settings):
    """Test that alerts are posted to the Slack webhook"""
    mock_settings.alert_enable_slack = True
    mock_settings.alert_slack_webhook = "https://hooks.example.com/x"
    mock_settings.alert_min_level = "high"
    mock_post.return_value = Mock(status_code=200)

    assert dispatch_alerts(_index(), _alerts()) is True
    payload = mock_post.call_args.kwargs["json"]
    assert "Extreme flood risk" in payload["text"]
    assert "Minor" not in payload["text"]


@patch("src.tidewatch.alerts.dispatch.settings")
@patch("src.tidewatch.alerts.dispatch.requests.post")
def test_dispatch_disabled(mock_post, mock_settings):
    """Test that nothing is sent when Slack is disabled"""
    mock_settings.alert_enable_slack = False
    mock_settings.alert_min_level = "low"

    assert dispatch_alerts(_index(), _alerts()) is False
    mock_post.assert_not_called()


@patch("src.tidewatch.alerts.dispatch.settings")
@patch("src.tidewatch.alerts.dispatch.requests.post")
def test_dispatch_network_error(mock_post, mock_settings):
    """Test that webhook errors are logged and not raised"""
    mock_settings.alert_enable_slack = True
    mock_settings.alert_slack_webhook = "https://hooks.example.com/x"
    mock_settings.alert_min_level = "high"
    mock_post.side_effect = requests.ConnectionError("down")

    assert dispatch_alerts(_index(), _alerts()) is False
