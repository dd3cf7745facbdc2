from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Literal

from ..core.headless_map import HeadlessMapWidget
from ..core.session import MapSession
from ..providers.base import Coordinate, ProviderRecord

LocationErrorCode = Literal["permission_denied", "position_unavailable", "timeout", "unsupported"]

class LatLng(BaseModel):
    lat: float
    lng: float

    @classmethod
    def from_coordinate(cls, coord: Optional[Coordinate]) -> Optional["LatLng"]:
        if coord is None:
            return None
        return cls(lat=coord.lat, lng=coord.lng)

class ProviderOut(BaseModel):
    id: str
    name: str
    address: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    type: str = ""
    rating: Optional[float] = None
    reviews: int = 0
    price: str = ""
    hours: str = ""
    phone: str = ""
    insurance: List[str] = []
    distance: str = ""
    directions_url: str = ""
    saved: bool = False

    @classmethod
    def from_record(cls, record: ProviderRecord, saved: bool = False) -> "ProviderOut":
        coord = record.coordinate
        return cls(
            id=record.id,
            name=record.name,
            address=record.address,
            lat=coord.lat if coord else None,
            lng=coord.lng if coord else None,
            type=record.type,
            rating=record.rating,
            reviews=record.reviews,
            price=record.price,
            hours=record.hours,
            phone=record.phone,
            insurance=list(record.insurance),
            distance=record.distance,
            directions_url=record.directions_url,
            saved=saved,
        )

class NoticeOut(BaseModel):
    kind: str
    title: str
    description: str
    retryable: bool = False

class MarkerOut(BaseModel):
    provider_id: str
    lat: float
    lng: float
    label: str
    selected: bool

class CameraOut(BaseModel):
    center: LatLng
    zoom: Optional[float] = None
    max_zoom: Optional[float] = None
    bounds: Optional[List[LatLng]] = None

class MapView(BaseModel):
    markers: List[MarkerOut] = []
    camera: Optional[CameraOut] = None
    resize_count: int = 0

    @classmethod
    def from_widget(cls, widget: HeadlessMapWidget) -> "MapView":
        markers = [
            MarkerOut(
                provider_id=p.provider_id,
                lat=p.coordinate.lat,
                lng=p.coordinate.lng,
                label=p.label,
                selected=p.selected,
            )
            for p in widget.markers
        ]
        bounds = widget.camera.get("bounds")
        camera = CameraOut(
            center=LatLng.from_coordinate(widget.camera["center"]),
            zoom=widget.camera.get("zoom"),
            max_zoom=widget.camera.get("max_zoom"),
            bounds=[LatLng.from_coordinate(bounds.south_west), LatLng.from_coordinate(bounds.north_east)]
            if bounds is not None
            else None,
        )
        return cls(markers=markers, camera=camera, resize_count=widget.resize_count)

class SessionView(BaseModel):
    providers: List[ProviderOut] = []
    selected_id: Optional[str] = None
    active_marker_id: Optional[str] = None
    center: LatLng
    user_location: Optional[LatLng] = None
    is_loading: bool = False
    error: Optional[str] = None
    can_retry: bool = False
    notices: List[NoticeOut] = []
    saved_ids: List[str] = []
    map: Optional[MapView] = None

    @classmethod
    def from_session(cls, session: MapSession) -> "SessionView":
        state = session.state
        saved = session.controller.saved
        widget = session.adapter.widget if session.adapter is not None else None
        return cls(
            providers=[ProviderOut.from_record(r, saved=saved.has(r.id)) for r in state.providers],
            selected_id=state.selected.id if state.selected is not None else None,
            active_marker_id=state.active_marker_id,
            center=LatLng.from_coordinate(session.center),
            user_location=LatLng.from_coordinate(session.user_location),
            is_loading=session.is_loading,
            error=session.error,
            can_retry=session.can_retry,
            notices=[
                NoticeOut(kind=n.kind.value, title=n.title, description=n.description, retryable=n.retryable)
                for n in session.notices
            ],
            saved_ids=[r.id for r in saved],
            map=MapView.from_widget(widget) if isinstance(widget, HeadlessMapWidget) else None,
        )

class LocateRequest(BaseModel):
    """What the browser's geolocation call produced: a position, or an error code."""
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    error: Optional[LocationErrorCode] = None

    @model_validator(mode="after")
    def _position_or_error(self):
        has_position = self.latitude is not None and self.longitude is not None
        if not has_position and self.error is None:
            raise ValueError("either latitude and longitude, or error, is required")
        return self

class SearchRequest(BaseModel):
    # Blank text is allowed through so the session can answer with a validation notice
    query: str = ""

class ViewportRequest(BaseModel):
    width: int = Field(ge=0)
    height: Optional[int] = Field(default=None, ge=0)
