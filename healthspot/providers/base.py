# Provider interfaces and dataclasses.
# healthspot/providers/base.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol, Tuple
from urllib.parse import quote_plus


@dataclass(frozen=True)
class Coordinate:
    """A latitude/longitude pair, always held as floats."""
    lat: float
    lng: float

    def as_lng_lat(self) -> Tuple[float, float]:
        # Map widgets take [lng, lat].
        return self.lng, self.lat


@dataclass(frozen=True)
class ProviderRecord:
    """
    A normalized provider returned by the provider search API.
    Instances are built by `normalize_provider` and never mutated; a newer fetch
    produces new instances. `payload` keeps the raw record for debugging.
    """
    id: str
    name: str
    address: str
    coordinate: Optional[Coordinate]
    type: str = ""
    rating: Optional[float] = None
    reviews: int = 0
    price: str = ""
    hours: str = ""
    phone: str = ""
    insurance: Tuple[str, ...] = ()
    distance: str = ""
    payload: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_mappable(self) -> bool:
        return self.coordinate is not None

    @property
    def directions_url(self) -> str:
        return f"https://www.google.com/maps/dir/?api=1&destination={quote_plus(self.address)}"


@dataclass(frozen=True)
class FetchResult:
    """A successful provider fetch: records in source order plus an optional recommended center."""
    providers: Tuple[ProviderRecord, ...]
    center: Optional[Coordinate] = None


class ProviderSource(Protocol):
    """
    The three query modes of the provider search API.
    Implementations raise `NetworkError` on transport/response failures and
    `EmptyQuery` for a blank free-text query.
    """

    async def fetch_near(self, coord: Coordinate, radius_m: Optional[int] = None) -> FetchResult:
        ...

    async def fetch_by_query(self, text: str, bias: Optional[Coordinate] = None) -> FetchResult:
        ...

    async def fetch_default(self) -> FetchResult:
        ...
