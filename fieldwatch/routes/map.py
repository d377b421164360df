"""Map routes - the merged report + SOS marker set, one-shot or live."""

from typing import List

from fastapi import APIRouter, Depends, WebSocket

from fieldwatch.dependencies import get_live_map
from fieldwatch.models.marker import MapMarker, map_markers_adapter
from fieldwatch.routes.live import run_live_socket
from fieldwatch.services.live_map import LiveMapMultiplexer

router = APIRouter(prefix="/map", tags=["Map"])


def _serialize_markers(markers: List[MapMarker]) -> dict:
    return {"type": "markers", "markers": map_markers_adapter.dump_python(markers, mode="json")}


@router.get("/markers", response_model=List[MapMarker])
async def map_markers(live_map: LiveMapMultiplexer = Depends(get_live_map)):
    """Current markers for every report and SOS alert, newest first."""
    return await live_map.snapshot()


@router.websocket("/live")
async def live_markers(websocket: WebSocket, live_map: LiveMapMultiplexer = Depends(get_live_map)):
    """Pushes the full merged marker set whenever either collection changes."""
    await websocket.accept()
    await run_live_socket(websocket, live_map.subscribe, _serialize_markers)
