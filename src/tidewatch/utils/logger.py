"""
Logging Configuration

structlog setup shared by the API, the engine and scripts. Events are
snake_case names with keyword context; assessment context (domain and
location) is carried in contextvars so parallel assessments stay apart.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, Processor

from config.settings import settings

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("urllib3", "httpx", "uvicorn.access")

_configured = False


def add_service_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Stamp every event with the service name and deployment environment."""
    event_dict.setdefault("service", "tidewatch")
    event_dict["environment"] = settings.environment
    return event_dict


def _renderers(log_format: str) -> list[Processor]:
    if log_format == "json":
        return [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    return [structlog.processors.ExceptionRenderer(), structlog.dev.ConsoleRenderer()]


def setup_logging(force: bool = False) -> structlog.BoundLogger:
    """
    Configure structlog and the stdlib root logger.

    Safe to call more than once; later calls are no-ops unless ``force``.

    Returns:
        Root structlog logger
    """
    global _configured
    if _configured and not force:
        return structlog.get_logger()

    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level, force=force)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        add_service_context,
        *_renderers(settings.log_format),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    _configured = True
    return structlog.get_logger()


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """Module logger, typically ``get_logger(__name__)``."""
    return structlog.get_logger(name) if name else structlog.get_logger()


def bind_assessment_context(domain: str, latitude: float, longitude: float) -> None:
    """
    Bind the domain and location of the running assessment to the log context.

    Context is stored in contextvars so threads evaluating other domains
    keep their own values.
    """
    structlog.contextvars.bind_contextvars(
        domain=domain,
        latitude=round(latitude, 4),
        longitude=round(longitude, 4),
    )


def clear_assessment_context() -> None:
    """Remove assessment context bound by bind_assessment_context."""
    structlog.contextvars.unbind_contextvars("domain", "latitude", "longitude")
