"""
Error Taxonomy

Provider and measurement errors are recovered inside the engine by
default-value substitution. Only ConfigurationError crosses the engine
boundary.
"""
from typing import Optional


class TidewatchError(Exception):
    """Base class for all engine errors."""


class ProviderUnavailable(TidewatchError):
    """
    An upstream provider failed, timed out, or returned a malformed payload.

    Attributes:
        provider_id: Identifier of the failing adapter
        reason: Short human-readable cause
    """

    def __init__(self, provider_id: str, reason: str):
        self.provider_id = provider_id
        self.reason = reason
        super().__init__(f"Provider '{provider_id}' unavailable: {reason}")


class InvalidMeasurement(TidewatchError):
    """A reading failed sanity checks (NaN, unknown unit, out of physical range)."""

    def __init__(self, kind: str, reason: str, value: Optional[float] = None):
        self.kind = kind
        self.reason = reason
        self.value = value
        super().__init__(f"Invalid {kind} measurement ({value!r}): {reason}")


class InsufficientData(TidewatchError):
    """Every provider for a domain failed; the index is built entirely from defaults."""

    def __init__(self, domain: str, failed_providers: Optional[list] = None):
        self.domain = domain
        self.failed_providers = failed_providers or []
        super().__init__(
            f"No live measurements for {domain}; "
            f"failed providers: {', '.join(self.failed_providers) or 'none supplied'}"
        )


class ConfigurationError(TidewatchError):
    """A domain is missing its weight or threshold table, or a table is malformed."""
