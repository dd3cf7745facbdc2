"""
Keeps a map widget's markers and camera consistent with the selection state.

The widget is anything satisfying `MapWidget`; markers are never mutated in place,
a marker whose position, label or selected look changes is removed and recreated.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional, Protocol, Tuple

from ..providers.base import Coordinate, ProviderRecord
from .selection import SelectionState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarkerPlacement:
    provider_id: str
    coordinate: Coordinate
    # 1-based position in the provider list
    label: str
    selected: bool = False


@dataclass(frozen=True)
class Bounds:
    south_west: Coordinate
    north_east: Coordinate

    @classmethod
    def around(cls, coords: Iterable[Coordinate]) -> "Bounds":
        coords = list(coords)
        if not coords:
            raise ValueError("Bounds.around needs at least one coordinate")
        return cls(
            south_west=Coordinate(lat=min(c.lat for c in coords), lng=min(c.lng for c in coords)),
            north_east=Coordinate(lat=max(c.lat for c in coords), lng=max(c.lng for c in coords)),
        )


class MarkerHandle(Protocol):
    def remove(self) -> None:
        ...


class MapWidget(Protocol):
    def on_load(self, callback: Callable[[], None]) -> None:
        """Call `callback` once the widget can take markers (immediately if it already can)."""
        ...

    def add_marker(self, placement: MarkerPlacement, on_click: Callable[[], None]) -> MarkerHandle:
        ...

    def fly_to(self, center: Coordinate, zoom: float, duration_ms: int) -> None:
        ...

    def fit_bounds(self, bounds: Bounds, padding: int, max_zoom: float) -> None:
        ...

    def resize(self) -> None:
        ...

    def remove(self) -> None:
        ...


@dataclass(frozen=True)
class MapSyncOptions:
    fly_zoom: float = 12.0
    fly_duration_ms: int = 1000
    fit_padding: int = 50
    # Keeps a tight cluster of providers from zooming in too far
    fit_max_zoom: float = 14.0


def surface_height(viewport_width: int) -> int:
    """Pixel height of the map surface for a viewport width."""
    if viewport_width < 768:
        return 350
    if viewport_width < 1024:
        return 400
    return 500


@dataclass
class _Marker:
    placement: MarkerPlacement
    handle: MarkerHandle


def _focus_target(state: SelectionState) -> Optional[Coordinate]:
    return state.selected.coordinate if state.selected is not None else None


class MapSyncAdapter:
    def __init__(
        self,
        widget: MapWidget,
        on_marker_click: Callable[[ProviderRecord], None],
        options: Optional[MapSyncOptions] = None,
    ):
        self.widget = widget
        self.options = options or MapSyncOptions()
        self._on_marker_click = on_marker_click

        self._markers: Dict[str, _Marker] = {}
        self._providers: Tuple[ProviderRecord, ...] = ()
        self._list_version: Optional[int] = None
        self._center: Optional[Coordinate] = None
        self._selected_id: Optional[str] = None
        self._focus_version = 0
        self._size: Optional[Tuple[int, int]] = None

        self._pending: Optional[Tuple[SelectionState, Coordinate]] = None
        self._loaded = False
        self._closed = False
        widget.on_load(self._handle_load)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def placements(self) -> Dict[str, MarkerPlacement]:
        return {pid: m.placement for pid, m in self._markers.items()}

    def _handle_load(self) -> None:
        if self._closed:
            return
        self._loaded = True
        pending, self._pending = self._pending, None
        if pending is not None:
            self.sync(*pending)

    def sync(self, state: SelectionState, center: Coordinate) -> None:
        """One reconciliation pass: markers first, then the camera."""
        if self._closed:
            raise RuntimeError("MapSyncAdapter is closed")
        if not self._loaded:
            self._pending = (state, center)
            return

        self._reconcile_markers(state)
        self._move_camera(state, center)

        self._providers = state.providers
        self._list_version = state.list_version
        self._center = center
        self._selected_id = state.active_marker_id
        self._focus_version = state.focus_version

    def _desired_placements(self, state: SelectionState) -> Dict[str, MarkerPlacement]:
        desired: Dict[str, MarkerPlacement] = {}
        for index, record in enumerate(state.providers):
            if record.coordinate is None:
                continue
            desired[record.id] = MarkerPlacement(
                provider_id=record.id,
                coordinate=record.coordinate,
                label=str(index + 1),
                selected=record.id == state.active_marker_id,
            )
        return desired

    def _reconcile_markers(self, state: SelectionState) -> None:
        # Providers must be visible to click handlers before any marker exists
        self._providers = state.providers
        desired = self._desired_placements(state)

        # Removals happen before additions so two markers are never selected at once
        for provider_id in list(self._markers):
            placement = desired.get(provider_id)
            if placement is None or placement != self._markers[provider_id].placement:
                self._markers.pop(provider_id).handle.remove()

        for provider_id, placement in desired.items():
            if provider_id in self._markers:
                continue
            handle = self.widget.add_marker(placement, self._click_handler(provider_id))
            self._markers[provider_id] = _Marker(placement=placement, handle=handle)

        logger.debug("Reconciled markers", extra={"markers": len(self._markers)})

    def _move_camera(self, state: SelectionState, center: Coordinate) -> None:
        opts = self.options
        mapped = [r.coordinate for r in state.providers if r.coordinate is not None]
        focus = _focus_target(state)

        if state.list_version != self._list_version and len(mapped) > 1:
            self.widget.fit_bounds(Bounds.around(mapped), opts.fit_padding, opts.fit_max_zoom)
        elif state.focus_version != self._focus_version and focus is not None:
            # Every direct selection brings its provider into view, repeats included
            self.widget.fly_to(focus, opts.fly_zoom, opts.fly_duration_ms)
        elif center != self._center:
            self.widget.fly_to(center, opts.fly_zoom, opts.fly_duration_ms)
        elif state.active_marker_id != self._selected_id and focus is not None:
            self.widget.fly_to(focus, opts.fly_zoom, opts.fly_duration_ms)

    def _click_handler(self, provider_id: str) -> Callable[[], None]:
        def _on_click() -> None:
            self._handle_click(provider_id)

        return _on_click

    def _handle_click(self, provider_id: str) -> None:
        if self._closed:
            return
        record = next((r for r in self._providers if r.id == provider_id), None)
        if record is None:
            logger.warning("Ignoring click on marker for unknown provider %s", provider_id)
            return
        self._on_marker_click(record)

    def resize(self, width: int, height: int) -> bool:
        """Track the container size; returns True when the widget was asked to resize."""
        size = (int(width), int(height))
        if size == self._size or self._closed:
            return False
        self._size = size
        if not self._loaded:
            return False
        self.widget.resize()
        return True

    def close(self) -> None:
        if self._closed:
            return
        for marker in self._markers.values():
            marker.handle.remove()
        self._markers.clear()
        self._pending = None
        self._closed = True
        self.widget.remove()
