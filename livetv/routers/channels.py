"""
Channel catalog API endpoints.
"""
from typing import Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel

from livetv.models.channel import ChannelListResponse, ChannelView
from livetv.services.controller import get_controller

router = APIRouter(prefix="/api", tags=["channels"])


class FilterRequest(BaseModel):
    category: Optional[str] = None
    search: Optional[str] = None


class ReloadRequest(BaseModel):
    url: Optional[str] = None


def _channel_list() -> ChannelListResponse:
    controller = get_controller()
    cache = controller.logo_cache
    channels = [
        ChannelView(
            index=i,
            name=ch.name,
            category=ch.category,
            logo_url=ch.logo_url,
            stream_url=ch.stream_url,
            has_logo=bool(ch.logo_url) and ch.logo_url in cache,
        )
        for i, ch in enumerate(controller.visible_channels())
    ]
    return ChannelListResponse(
        channels=channels,
        total=len(channels),
        category=controller.filter.category,
        search=controller.filter.search_term,
    )


@router.get("/channels", response_model=ChannelListResponse)
async def list_channels():
    """
    List the channels visible under the current category and search filter,
    in playlist order. `index` is the position used by /api/player/select.
    """
    return _channel_list()


@router.put("/filter", response_model=ChannelListResponse)
async def update_filter(request: FilterRequest):
    """
    Change the category and/or search term and return the new view.
    
    - **category**: One of /api/categories ("All" matches everything)
    - **search**: Case-insensitive substring of the channel name
    """
    controller = get_controller()
    if request.category is not None:
        try:
            controller.set_category(request.category)
        except KeyError:
            raise HTTPException(status_code=404, detail="Category not found")
    if request.search is not None:
        controller.set_search(request.search)
    return _channel_list()


@router.get("/categories")
async def list_categories():
    """
    List categories with "All" first.
    """
    controller = get_controller()
    return {
        "categories": list(controller.catalog.categories),
        "current": controller.filter.category,
    }


@router.get("/logos")
async def get_logo(url: str = Query(..., description="Logo URL as given in the playlist")):
    """
    Serve a cached logo thumbnail as PNG.
    """
    image = get_controller().logo_cache.get(url)
    if image is None:
        raise HTTPException(status_code=404, detail="Logo not available")
    return Response(
        content=image,
        media_type="image/png",
        headers={"Cache-Control": "public, max-age=86400"},
    )


@router.post("/playlist/reload")
async def reload_playlist(request: Optional[ReloadRequest] = None):
    """
    Download and install the playlist again.
    The current catalog is kept if loading fails.
    """
    controller = get_controller()
    loaded = await controller.load_playlist(request.url if request else None)
    return {
        "loaded": loaded,
        "channels": len(controller.catalog),
        "categories": max(len(controller.catalog.categories) - 1, 0),
    }


@router.get("/logos/stats")
async def logo_stats():
    """Logo downloader counters."""
    return get_controller().logos.get_stats()
