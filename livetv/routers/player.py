"""
Playback control API endpoints.
"""
from typing import Literal

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from livetv.models.session import SessionSnapshot
from livetv.services.controller import get_controller

router = APIRouter(prefix="/api/player", tags=["player"])


class SelectRequest(BaseModel):
    index: int = Field(..., ge=0, description="Position in the filtered view")


class ZapRequest(BaseModel):
    direction: Literal[-1, 1]


class VolumeRequest(BaseModel):
    delta: int = Field(..., ge=-150, le=150)


@router.get("", response_model=SessionSnapshot)
async def get_player():
    """Current session state, channel and audio settings."""
    return get_controller().session.snapshot()


@router.post("/select", response_model=SessionSnapshot)
async def select_channel(request: SelectRequest):
    """
    Pick a channel from the filtered view.
    Rapid picks are coalesced; only the last one is loaded.
    """
    controller = get_controller()
    try:
        controller.select(request.index)
    except IndexError:
        raise HTTPException(status_code=404, detail="No channel at that index")
    return controller.session.snapshot()


@router.post("/zap", response_model=SessionSnapshot)
async def zap_channel(request: ZapRequest):
    """Move to the next (1) or previous (-1) channel, wrapping around."""
    controller = get_controller()
    if controller.zap(request.direction) is None:
        raise HTTPException(status_code=409, detail="No channels in the current view")
    return controller.session.snapshot()


@router.post("/retry", response_model=SessionSnapshot)
async def retry_channel():
    """Try the current channel again."""
    controller = get_controller()
    if not controller.retry():
        raise HTTPException(status_code=409, detail="Nothing to retry")
    return controller.session.snapshot()


@router.post("/volume")
async def change_volume(request: VolumeRequest):
    """Adjust volume by delta (result clamped to 0-150)."""
    volume = get_controller().change_volume(request.delta)
    return {"volume": volume}


@router.post("/mute")
async def toggle_mute():
    muted = get_controller().toggle_mute()
    return {"muted": muted}


@router.post("/pause")
async def toggle_pause():
    paused = get_controller().toggle_pause()
    return {"paused": paused}
