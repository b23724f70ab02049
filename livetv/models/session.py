"""
Playback session and render-boundary event models.
"""
import time
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class PlaybackState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    PLAYING = "playing"
    ERROR = "error"


class Connectivity(str, Enum):
    CONNECTING = "connecting"
    ONLINE = "online"
    OFFLINE = "offline"


class Selection(BaseModel):
    """A pending user pick, waiting for the debounce timer."""
    url: str
    name: str
    category: str = ""
    index: int = 0
    total: int = 0


class SessionSnapshot(BaseModel):
    """Read-only view of the playback session."""
    state: PlaybackState
    requested: Optional[Selection] = None
    current_url: str = ""
    current_name: str = ""
    current_category: str = ""
    current_index: int = 0
    current_total: int = 0
    retry_count: int = 0
    volume: int
    muted: bool
    paused: bool = False


class EventType(str, Enum):
    CATALOG_REPLACED = "catalog_replaced"
    VIEW_CHANGED = "view_changed"
    LOGO_ADDED = "logo_added"
    SESSION_CHANGED = "session_changed"
    VOLUME_CHANGED = "volume_changed"
    STATUS = "status"
    CONNECTIVITY = "connectivity"


class Event(BaseModel):
    """Outbound notification for the render layer."""
    type: EventType
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: float = Field(default_factory=time.time)
