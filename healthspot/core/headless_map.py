from __future__ import annotations

import itertools
from typing import Any, Callable, Dict, List, Optional

from ..providers.base import Coordinate
from .map_sync import Bounds, MarkerPlacement


class HeadlessMarker:
    def __init__(self, widget: "HeadlessMapWidget", marker_id: int, placement: MarkerPlacement, on_click):
        self._widget = widget
        self.marker_id = marker_id
        self.placement = placement
        self.on_click = on_click

    def remove(self) -> None:
        self._widget._markers.pop(self.marker_id, None)


class HeadlessMapWidget:
    """
    A map widget that keeps its markers and camera as plain data.
    A browser-side renderer draws from `markers` and `camera`; clicks come back through `click()`.
    """

    def __init__(self, center: Coordinate, zoom: float = 12.0):
        self.camera: Dict[str, Any] = {"center": center, "zoom": zoom, "bounds": None, "max_zoom": None}
        self.resize_count = 0
        self.removed = False
        self._markers: Dict[int, HeadlessMarker] = {}
        self._ids = itertools.count(1)

    def on_load(self, callback: Callable[[], None]) -> None:
        callback()

    def add_marker(self, placement: MarkerPlacement, on_click: Callable[[], None]) -> HeadlessMarker:
        if self.removed:
            raise RuntimeError("map widget has been removed")
        marker = HeadlessMarker(self, next(self._ids), placement, on_click)
        self._markers[marker.marker_id] = marker
        return marker

    def fly_to(self, center: Coordinate, zoom: float, duration_ms: int) -> None:
        self.camera = {"center": center, "zoom": zoom, "bounds": None, "max_zoom": None}

    def fit_bounds(self, bounds: Bounds, padding: int, max_zoom: float) -> None:
        mid = Coordinate(
            lat=(bounds.south_west.lat + bounds.north_east.lat) / 2,
            lng=(bounds.south_west.lng + bounds.north_east.lng) / 2,
        )
        self.camera = {"center": mid, "zoom": None, "bounds": bounds, "max_zoom": max_zoom}

    def resize(self) -> None:
        self.resize_count += 1

    def remove(self) -> None:
        self._markers.clear()
        self.removed = True

    @property
    def markers(self) -> List[MarkerPlacement]:
        return [m.placement for m in self._markers.values()]

    def find_marker(self, provider_id: str) -> Optional[HeadlessMarker]:
        for marker in self._markers.values():
            if marker.placement.provider_id == provider_id:
                return marker
        return None

    def click(self, provider_id: str) -> bool:
        marker = self.find_marker(provider_id)
        if marker is None:
            return False
        marker.on_click()
        return True
