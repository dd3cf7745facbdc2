from __future__ import annotations

import logging
from typing import Optional

import httpx

from ..providers.base import Coordinate, ProviderSource
from ..providers.healthspot_api import HealthspotApiConfig, HealthspotApiProvider
from .config import Settings, settings
from .headless_map import HeadlessMapWidget
from .location import Geolocation, LocationResolver
from .map_sync import MapSyncAdapter, MapWidget
from .selection import SelectionController
from .session import MapSession, Notifier

logger = logging.getLogger(__name__)

# One page session per process; the HTTP surface drives it.
# A multi-user deployment would key sessions by a cookie instead.
_SESSION: Optional[MapSession] = None
_FETCHER: Optional[HealthspotApiProvider] = None


def api_config(cfg: Settings = settings) -> HealthspotApiConfig:
    return HealthspotApiConfig(
        base_url=cfg.providers_api_url,
        default_query=cfg.default_query,
        default_radius_m=cfg.search_radius_m,
        timeout_s=cfg.http_timeout_s,
        max_retries=cfg.http_max_retries,
    )


def build_session(
    fetcher: ProviderSource,
    *,
    geolocation: Optional[Geolocation] = None,
    widget: Optional[MapWidget] = None,
    notifier: Optional[Notifier] = None,
    cfg: Settings = settings,
) -> MapSession:
    """Wire resolver, controller and map adapter around a provider source."""
    default_center = Coordinate(lat=cfg.default_lat, lng=cfg.default_lng)
    session = MapSession(
        fetcher,
        LocationResolver(geolocation, timeout_s=cfg.geolocation_timeout_s),
        SelectionController(default_center),
        notifier=notifier,
        search_radius_m=cfg.search_radius_m,
    )
    if widget is not None:
        session.attach_map(MapSyncAdapter(widget, on_marker_click=session.select_provider))
    return session


def get_session() -> MapSession:
    global _SESSION, _FETCHER
    if _SESSION is None:
        _FETCHER = HealthspotApiProvider(
            api_config(), client=httpx.AsyncClient(timeout=settings.http_timeout_s)
        )
        center = Coordinate(lat=settings.default_lat, lng=settings.default_lng)
        _SESSION = build_session(_FETCHER, widget=HeadlessMapWidget(center))
        logger.info("Created map session", extra={"providers_api_url": settings.providers_api_url})
    return _SESSION


async def close_session() -> None:
    global _SESSION, _FETCHER
    if _SESSION is not None:
        await _SESSION.aclose()
    if _FETCHER is not None:
        await _FETCHER.aclose()
    _SESSION = None
    _FETCHER = None
