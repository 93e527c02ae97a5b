"""
Run a Risk Assessment for a Location

Fetches live readings, computes the requested domain indices and prints
them as JSON. Optionally dispatches alerts to Slack.
"""
import argparse
import json
import sys
from pathlib import Path

# Add parent directory to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

from config.settings import settings
from src.tidewatch.alerts.dispatch import dispatch_alerts
from src.tidewatch.engine import RiskAggregationEngine
from src.tidewatch.errors import ConfigurationError
from src.tidewatch.models.risk import Domain
from src.tidewatch.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Compute composite risk indices for a location"
    )
    parser.add_argument("--lat", type=float, default=settings.default_latitude, help="Latitude")
    parser.add_argument("--lng", type=float, default=settings.default_longitude, help="Longitude")
    parser.add_argument(
        "--domain",
        action="append",
        choices=[d.value for d in Domain],
        help="Domain to compute (repeatable, default: all)",
    )
    parser.add_argument("--segments", action="store_true", help="Include segment scores")
    parser.add_argument("--notify", action="store_true", help="Dispatch alerts to Slack")
    args = parser.parse_args()

    setup_logging()
    domains = [Domain(d) for d in args.domain] if args.domain else list(Domain)
    logger.info("risk_assessment_started", domains=[d.value for d in domains], lat=args.lat, lng=args.lng)

    try:
        engine = RiskAggregationEngine()
        assessments = engine.assess_many(
            [(domain, args.lat, args.lng) for domain in domains],
            include_segments=args.segments,
        )
    except ConfigurationError as e:
        logger.error("risk_assessment_configuration_error", error=str(e))
        return 2

    for assessment in assessments:
        print(json.dumps(assessment.model_dump(mode="json", by_alias=True), indent=2))
        if args.notify:
            dispatch_alerts(assessment.index, assessment.alerts)

    logger.info("risk_assessment_complete", count=len(assessments))
    return 0


if __name__ == "__main__":
    sys.exit(main())
