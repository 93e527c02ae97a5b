"""
Alerts Module

Risk tier classification, alert generation, bleaching outlook and dispatch.
"""
from src.tidewatch.alerts.classifier import RiskClassifier
from src.tidewatch.alerts.generator import AlertGenerator, BLEACHING_STAGES
from src.tidewatch.alerts.outlook import BleachingOutlook, bleaching_outlook
from src.tidewatch.alerts.dispatch import dispatch_alerts, send_slack_notification

__all__ = [
    "RiskClassifier",
    "AlertGenerator",
    "BLEACHING_STAGES",
    "BleachingOutlook",
    "bleaching_outlook",
    "dispatch_alerts",
    "send_slack_notification",
]
