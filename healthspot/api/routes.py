from typing import List

from fastapi import APIRouter, Depends, HTTPException

from .schemas import LocateRequest, ProviderOut, SearchRequest, SessionView, ViewportRequest
from ..core.auth import require_api_key
from ..core.config import settings
from ..core.headless_map import HeadlessMapWidget
from ..core.location import (
    PERMISSION_DENIED,
    POSITION_UNAVAILABLE,
    TIMEOUT,
    LocationResolver,
    StaticGeolocation,
)
from ..core.map_sync import surface_height
from ..core.orchestrator import get_session
from ..core.session import MapSession

router = APIRouter(prefix="/session", dependencies=[Depends(require_api_key)])

_ERROR_CODES = {
    "permission_denied": PERMISSION_DENIED,
    "position_unavailable": POSITION_UNAVAILABLE,
    "timeout": TIMEOUT,
}

def _reported_resolver(req: LocateRequest) -> LocationResolver:
    if req.error == "unsupported":
        return LocationResolver(None)
    if req.error is not None:
        geolocation = StaticGeolocation(error_code=_ERROR_CODES[req.error])
    else:
        geolocation = StaticGeolocation(position=(req.latitude, req.longitude))
    return LocationResolver(geolocation, timeout_s=settings.geolocation_timeout_s)

@router.get("", response_model=SessionView)
async def read_session(session: MapSession = Depends(get_session)):
    return SessionView.from_session(session)

@router.post("/locate", response_model=SessionView)
async def locate(req: LocateRequest, session: MapSession = Depends(get_session)):
    await session.use_my_location(_reported_resolver(req))
    return SessionView.from_session(session)

@router.post("/refresh", response_model=SessionView)
async def refresh_nearby(session: MapSession = Depends(get_session)):
    await session.refresh_nearby()
    return SessionView.from_session(session)

@router.post("/search", response_model=SessionView)
async def search(req: SearchRequest, session: MapSession = Depends(get_session)):
    await session.search(req.query)
    return SessionView.from_session(session)

@router.post("/recommended", response_model=SessionView)
async def show_recommended(session: MapSession = Depends(get_session)):
    await session.show_recommended()
    return SessionView.from_session(session)

@router.post("/retry", response_model=SessionView)
async def retry(session: MapSession = Depends(get_session)):
    if not session.can_retry:
        raise HTTPException(status_code=409, detail="nothing to retry")
    await session.retry()
    return SessionView.from_session(session)

@router.post("/providers/{provider_id}/select", response_model=SessionView)
async def select_provider(provider_id: str, session: MapSession = Depends(get_session)):
    try:
        session.select_by_id(provider_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="provider not found")
    return SessionView.from_session(session)

@router.post("/markers/{provider_id}/click", response_model=SessionView)
async def click_marker(provider_id: str, session: MapSession = Depends(get_session)):
    widget = session.adapter.widget if session.adapter is not None else None
    if not isinstance(widget, HeadlessMapWidget) or not widget.click(provider_id):
        raise HTTPException(status_code=404, detail="marker not found")
    return SessionView.from_session(session)

@router.post("/saved/{provider_id}", response_model=SessionView)
async def toggle_saved(provider_id: str, session: MapSession = Depends(get_session)):
    record = session.state.find(provider_id)
    if record is None:
        record = next((r for r in session.saved_providers() if r.id == provider_id), None)
    if record is None:
        raise HTTPException(status_code=404, detail="provider not found")
    session.toggle_saved(record)
    return SessionView.from_session(session)

@router.get("/saved", response_model=List[ProviderOut])
async def list_saved(session: MapSession = Depends(get_session)):
    return [ProviderOut.from_record(r, saved=True) for r in session.saved_providers()]

@router.post("/viewport", response_model=SessionView)
async def report_viewport(req: ViewportRequest, session: MapSession = Depends(get_session)):
    height = req.height if req.height is not None else surface_height(req.width)
    session.resize(req.width, height)
    return SessionView.from_session(session)
