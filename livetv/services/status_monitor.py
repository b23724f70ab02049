"""
Background online-status probe.

Periodically sends a HEAD request to the playlist URL and publishes the
result as a connectivity event.
"""
import asyncio
import logging
from typing import Optional

from livetv.models.session import Connectivity, EventType
from livetv.services.events import EventBus
from livetv.services.playlist_loader import PlaylistLoader

logger = logging.getLogger(__name__)


class StatusMonitor:
    """Background worker that checks whether the playlist host is reachable."""
    
    def __init__(self, loader: PlaylistLoader, events: EventBus, interval: float = 30.0):
        self.loader = loader
        self.events = events
        self.interval = interval
        self.online: Optional[bool] = None
        self._running = False
        self._task: Optional[asyncio.Task] = None
    
    async def start(self):
        """Start the background probe."""
        if self._running:
            logger.warning("Status monitor already running")
            return
        if self.interval <= 0:
            logger.info("Status monitor disabled")
            return
        self._running = True
        self._task = asyncio.create_task(self._loop())
        logger.info("Status monitor started")
    
    async def stop(self):
        """Stop the background probe."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
    
    async def check(self) -> bool:
        """Probe once and publish the result."""
        online = await self.loader.probe()
        if online != self.online:
            logger.info(f"Playlist host is {'online' if online else 'offline'}")
        self.online = online
        self.events.publish(
            EventType.CONNECTIVITY,
            status=(Connectivity.ONLINE if online else Connectivity.OFFLINE).value,
        )
        return online
    
    async def _loop(self):
        while self._running:
            await asyncio.sleep(self.interval)
            try:
                await self.check()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Status monitor error: {e}")
