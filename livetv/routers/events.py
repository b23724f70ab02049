"""
Server-Sent Events stream of core notifications.
"""
from contextlib import aclosing

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from livetv.services.controller import get_controller

router = APIRouter(prefix="/api", tags=["events"])


@router.get("/events")
async def stream_events(request: Request):
    """
    Subscribe to catalog, view, logo, session, volume, status and
    connectivity events.
    """
    events = get_controller().events
    
    async def event_source():
        async with aclosing(events.stream()) as stream:
            async for event in stream:
                if await request.is_disconnected():
                    break
                yield f"event: {event.type.value}\ndata: {event.model_dump_json()}\n\n"
    
    return StreamingResponse(
        event_source(),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
