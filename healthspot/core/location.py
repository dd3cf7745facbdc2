from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol, Tuple

from ..providers.base import Coordinate
from ..providers.normalize import coerce_coordinate
from .errors import LocationReason, LocationUnavailable

logger = logging.getLogger(__name__)

# W3C GeolocationPositionError codes
PERMISSION_DENIED = 1
POSITION_UNAVAILABLE = 2
TIMEOUT = 3

_REASON_BY_CODE = {
    PERMISSION_DENIED: LocationReason.PERMISSION_DENIED,
    POSITION_UNAVAILABLE: LocationReason.UNAVAILABLE,
    TIMEOUT: LocationReason.TIMEOUT,
}


class PositionError(Exception):
    def __init__(self, code: int, message: str = ""):
        self.code = code
        self.message = message
        super().__init__(message or f"geolocation error {code}")


class Geolocation(Protocol):
    async def get_current_position(self) -> Tuple[float, float]:
        """One-shot position request: (latitude, longitude) or PositionError."""
        ...


class StaticGeolocation:
    """A geolocation that reports a fixed position, or fails with a fixed error code."""

    def __init__(self, position: Optional[Tuple[float, float]] = None, error_code: Optional[int] = None):
        if position is None and error_code is None:
            raise ValueError("StaticGeolocation needs a position or an error code")
        self.position = position
        self.error_code = error_code

    async def get_current_position(self) -> Tuple[float, float]:
        if self.error_code is not None:
            raise PositionError(self.error_code)
        return self.position


class LocationResolver:
    """
    Wraps a one-shot geolocation request. It only reports: falling back to an
    unlocated fetch is the caller's job.
    """

    def __init__(self, geolocation: Optional[Geolocation], timeout_s: float = 10.0):
        self.geolocation = geolocation
        self.timeout_s = timeout_s

    async def resolve(self) -> Coordinate:
        if self.geolocation is None:
            raise LocationUnavailable(LocationReason.UNSUPPORTED, "Geolocation is not supported")

        try:
            lat, lng = await asyncio.wait_for(self.geolocation.get_current_position(), self.timeout_s)
        except asyncio.TimeoutError as e:
            raise LocationUnavailable(LocationReason.TIMEOUT, "Timed out waiting for a position") from e
        except PositionError as e:
            reason = _REASON_BY_CODE.get(e.code, LocationReason.UNAVAILABLE)
            raise LocationUnavailable(reason, e.message) from e
        except Exception as e:
            logger.warning("Geolocation failed: %s", e, extra={"error_type": type(e).__name__})
            raise LocationUnavailable(LocationReason.UNAVAILABLE, str(e)) from e

        coord = coerce_coordinate(lat, lng)
        if coord is None:
            raise LocationUnavailable(LocationReason.UNAVAILABLE, f"Unusable position {lat!r}, {lng!r}")
        logger.info("Resolved user location", extra={"lat": coord.lat, "lng": coord.lng})
        return coord
