"""
Provider Adapter Boundary

Adapters fetch one reading set from one upstream source. They either
return measurements or raise ProviderUnavailable; the engine treats a
failure exactly like absence of the readings.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from src.tidewatch.errors import ProviderUnavailable
from src.tidewatch.models.measurement import Measurement
from src.tidewatch.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProviderFailure:
    provider_id: str
    reason: str


class ProviderAdapter(ABC):
    """Interface every upstream source implements."""

    provider_id: str = "provider"

    @abstractmethod
    def fetch(self, latitude: float, longitude: float) -> List[Measurement]:
        """
        Fetch readings for a location.

        Raises:
            ProviderUnavailable: on failure, timeout or malformed payload
        """


class StaticProvider(ProviderAdapter):
    """Serves a fixed set of measurements, e.g. readings posted by a caller."""

    def __init__(self, measurements: Iterable[Measurement], provider_id: str = "static"):
        self.provider_id = provider_id
        self.measurements = list(measurements)

    def fetch(self, latitude: float, longitude: float) -> List[Measurement]:
        return list(self.measurements)


def collect_measurements(
    providers: Sequence[ProviderAdapter],
    latitude: float,
    longitude: float,
) -> Tuple[List[Measurement], List[ProviderFailure]]:
    """
    Fetch from every provider, turning failures into ProviderFailure records.

    Returns:
        (measurements, failures)
    """
    measurements: List[Measurement] = []
    failures: List[ProviderFailure] = []

    for provider in providers:
        try:
            readings = provider.fetch(latitude, longitude)
        except ProviderUnavailable as e:
            logger.warning("provider_unavailable", provider_id=e.provider_id, reason=e.reason)
            failures.append(ProviderFailure(e.provider_id, e.reason))
            continue
        except Exception as e:
            logger.exception("provider_unexpected_error", provider_id=provider.provider_id)
            failures.append(ProviderFailure(provider.provider_id, f"{type(e).__name__}: {e}"))
            continue

        logger.debug("provider_fetched", provider_id=provider.provider_id, count=len(readings))
        measurements.extend(readings)

    return measurements, failures
