from __future__ import annotations

from enum import Enum


class HealthspotError(Exception):
    """Base class for recoverable failures in the provider map."""


class LocationReason(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    UNSUPPORTED = "unsupported"
    TIMEOUT = "timeout"
    UNAVAILABLE = "unavailable"


class LocationUnavailable(HealthspotError):
    """Geolocation could not produce a position. Callers fall back to an unlocated fetch."""

    def __init__(self, reason: LocationReason, detail: str = ""):
        self.reason = reason
        self.detail = detail
        super().__init__(detail or reason.value)


class ProviderFetchError(HealthspotError):
    """Base class for failures of a provider fetch."""


class NetworkError(ProviderFetchError):
    """The provider API call failed or returned malformed data."""

    def __init__(self, message: str, *, status_code: int | None = None):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class EmptyQuery(ProviderFetchError):
    """A free-text search was attempted with blank text; no request was sent."""

    def __init__(self, message: str = "Enter a search term to find providers"):
        self.message = message
        super().__init__(message)
