"""
Alert Dispatch

Sends generated alerts to a Slack-compatible webhook.
"""
from typing import List, Optional, Sequence

import requests

from config.settings import settings
from src.tidewatch.models.risk import Alert, AlertLevel, CompositeIndex
from src.tidewatch.utils.logger import get_logger

logger = get_logger(__name__)

LEVEL_EMOJI = {
    AlertLevel.LOW: ":large_blue_circle:",
    AlertLevel.MODERATE: ":large_yellow_circle:",
    AlertLevel.HIGH: ":large_orange_circle:",
    AlertLevel.SEVERE: ":red_circle:",
}


def send_slack_notification(message: str, webhook_url: Optional[str] = None) -> bool:
    """
    Send notification to Slack via webhook.

    Args:
        message: Message to send
        webhook_url: Slack webhook URL (defaults to settings.alert_slack_webhook)

    Returns:
        True if successful, False otherwise
    """
    if not settings.alert_enable_slack:
        logger.info("slack_notifications_disabled")
        return False

    webhook_url = webhook_url or settings.alert_slack_webhook
    if not webhook_url:
        logger.warning("slack_webhook_url_not_configured")
        return False

    try:
        response = requests.post(webhook_url, json={"text": message}, timeout=10)
    except requests.RequestException as e:
        logger.error("slack_notification_error", error=str(e))
        return False

    if response.status_code == 200:
        logger.info("slack_notification_sent")
        return True

    logger.error("slack_notification_failed",
                 status_code=response.status_code,
                 response=response.text)
    return False


def filter_alerts(alerts: Sequence[Alert], min_level: Optional[str] = None) -> List[Alert]:
    """Keep alerts at or above ``min_level`` (defaults to settings.alert_min_level)."""
    threshold = AlertLevel(min_level or settings.alert_min_level)
    return [a for a in alerts if a.level.rank >= threshold.rank]


def format_alerts_message(index: CompositeIndex, alerts: Sequence[Alert]) -> str:
    """
    Format alerts for one composite index into a notification message.

    Args:
        index: Index the alerts were generated from
        alerts: Alerts to include

    Returns:
        Formatted message string
    """
    lat, lng = index.location
    lines = [
        f"*{index.domain.value} {index.risk_tier.value.upper()}* "
        f"at {lat:.3f}, {lng:.3f} (score {index.overall:.1f}, confidence {index.confidence:.0%})",
    ]
    if index.is_degraded:
        lines.append(f"_Defaults used for: {', '.join(index.substituted_kinds)}_")
    lines.append("")
    for alert in alerts:
        lines.append(f"{LEVEL_EMOJI[alert.level]} {alert.message} - {alert.area}")
    return "\n".join(lines)


def dispatch_alerts(
    index: CompositeIndex,
    alerts: Sequence[Alert],
    webhook_url: Optional[str] = None,
) -> bool:
    """Send the alerts that pass the configured minimum level. Returns True if sent."""
    selected = filter_alerts(alerts)
    if not selected:
        logger.debug("no_alerts_to_dispatch", domain=index.domain.value)
        return False
    return send_slack_notification(format_alerts_message(index, selected), webhook_url)
