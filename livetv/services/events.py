"""
Outbound event bus for the render layer.

Producers call publish() from the coordination loop; every subscriber gets
its own bounded asyncio.Queue so a slow consumer never blocks the core.
"""
import asyncio
import logging
from typing import Any, AsyncIterator, Optional

from livetv.models.session import Event, EventType

logger = logging.getLogger(__name__)


class EventBus:
    """Fan-out of core notifications to any number of subscribers."""
    
    QUEUE_SIZE = 256
    
    def __init__(self, queue_size: Optional[int] = None):
        self._queue_size = queue_size or self.QUEUE_SIZE
        self._subscribers: set[asyncio.Queue] = set()
    
    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
    
    def publish(self, event_type: EventType, **data: Any) -> Event:
        """Deliver an event to all current subscribers."""
        event = Event(type=event_type, data=data)
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                # Drop the oldest so the newest state always gets through
                queue.get_nowait()
                queue.put_nowait(event)
                logger.debug("Event subscriber lagging, dropped oldest event")
        return event
    
    def status(self, message: str) -> Event:
        """Publish a human-readable status message."""
        logger.info(message)
        return self.publish(EventType.STATUS, message=message)
    
    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.add(queue)
        return queue
    
    def unsubscribe(self, queue: asyncio.Queue):
        self._subscribers.discard(queue)
    
    async def stream(self) -> AsyncIterator[Event]:
        """Iterate over events until the consumer stops."""
        queue = self.subscribe()
        try:
            while True:
                yield await queue.get()
        finally:
            self.unsubscribe(queue)
