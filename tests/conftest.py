"""Shared fakes for the provider map tests."""

import asyncio
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest

from healthspot.core.errors import EmptyQuery
from healthspot.core.location import LocationResolver
from healthspot.core.map_sync import Bounds, MarkerPlacement
from healthspot.core.selection import SelectionController
from healthspot.core.session import MapSession
from healthspot.providers.base import Coordinate, FetchResult, ProviderRecord
from healthspot.providers.normalize import normalize_providers

DEFAULT_CENTER = Coordinate(lat=37.7749, lng=-122.4194)


def make_result(*raw: Dict[str, Any], center: Optional[Dict[str, Any]] = None) -> FetchResult:
    providers = normalize_providers(raw)
    return FetchResult(
        providers=providers,
        center=Coordinate(lat=center["lat"], lng=center["lng"]) if center else None,
    )


def raw_provider(provider_id, lat=40.0, lng=-73.9, **extra) -> Dict[str, Any]:
    data = {"id": provider_id, "name": f"Clinic {provider_id}", "address": f"{provider_id} Main St", "lat": lat, "lng": lng}
    data.update(extra)
    return data


class FakeMarker:
    def __init__(self, widget: "FakeWidget", placement: MarkerPlacement, on_click: Callable[[], None]):
        self.widget = widget
        self.placement = placement
        self.on_click = on_click

    def remove(self) -> None:
        self.widget.calls.append(("remove_marker", self.placement.provider_id))
        self.widget.live.remove(self)


class FakeWidget:
    """Records every call; `auto_load=False` holds the load callback until `load()`."""

    def __init__(self, auto_load: bool = True):
        self.auto_load = auto_load
        self.calls: List[Tuple] = []
        self.live: List[FakeMarker] = []
        self.removed = False
        self._load_callback: Optional[Callable[[], None]] = None

    def on_load(self, callback: Callable[[], None]) -> None:
        if self.auto_load:
            callback()
        else:
            self._load_callback = callback

    def load(self) -> None:
        self._load_callback()

    def add_marker(self, placement: MarkerPlacement, on_click: Callable[[], None]) -> FakeMarker:
        self.calls.append(("add_marker", placement.provider_id))
        marker = FakeMarker(self, placement, on_click)
        self.live.append(marker)
        return marker

    def fly_to(self, center: Coordinate, zoom: float, duration_ms: int) -> None:
        self.calls.append(("fly_to", center, zoom))

    def fit_bounds(self, bounds: Bounds, padding: int, max_zoom: float) -> None:
        self.calls.append(("fit_bounds", bounds, max_zoom))

    def resize(self) -> None:
        self.calls.append(("resize",))

    def remove(self) -> None:
        self.calls.append(("remove",))
        self.removed = True

    def camera_calls(self) -> List[Tuple]:
        return [c for c in self.calls if c[0] in ("fly_to", "fit_bounds")]

    def selected_ids(self) -> List[str]:
        return [m.placement.provider_id for m in self.live if m.placement.selected]

    def marker_ids(self) -> List[str]:
        return [m.placement.provider_id for m in self.live]

    def click(self, provider_id: str) -> None:
        for marker in self.live:
            if marker.placement.provider_id == provider_id:
                marker.on_click()
                return
        raise AssertionError(f"no marker for {provider_id}")


class FakeFetcher:
    """
    Records calls. Responses are consumed in order; a response can be a FetchResult,
    an exception, or an asyncio.Future that the test resolves later.
    """

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls: List[Tuple] = []

    async def _respond(self):
        response = self.responses.pop(0)
        if isinstance(response, asyncio.Future):
            response = await response
        if isinstance(response, BaseException):
            raise response
        return response

    async def fetch_near(self, coord: Coordinate, radius_m: Optional[int] = None) -> FetchResult:
        self.calls.append(("near", coord, radius_m))
        return await self._respond()

    async def fetch_by_query(self, text: str, bias: Optional[Coordinate] = None) -> FetchResult:
        if not text.strip():
            raise EmptyQuery()
        self.calls.append(("query", text, bias))
        return await self._respond()

    async def fetch_default(self) -> FetchResult:
        self.calls.append(("default",))
        return await self._respond()


class GatedGeolocation:
    """Geolocation whose answer the test releases explicitly."""

    def __init__(self):
        self.future: asyncio.Future = asyncio.get_running_loop().create_future()

    async def get_current_position(self):
        return await self.future


@pytest.fixture
def controller() -> SelectionController:
    return SelectionController(DEFAULT_CENTER)


@pytest.fixture
def notices() -> list:
    return []


def build_session(fetcher, geolocation=None, notices=None, adapter=None) -> MapSession:
    return MapSession(
        fetcher,
        LocationResolver(geolocation, timeout_s=1.0),
        SelectionController(DEFAULT_CENTER),
        adapter=adapter,
        notifier=notices.append if notices is not None else None,
        search_radius_m=5000,
    )


def record(provider_id: str, lat: Optional[float] = 40.0, lng: Optional[float] = -73.9) -> ProviderRecord:
    return make_result(raw_provider(provider_id, lat=lat, lng=lng)).providers[0]
