"""
Channel logo fetching.

LogoScheduler downloads logos with a fixed ceiling on in-flight requests,
refilling from its queue as each download finishes. Finished thumbnails go
into a LogoCache keyed by URL. Nothing here raises to the caller: a logo
that cannot be fetched or decoded is simply never cached.
"""
import asyncio
import io
import logging
from collections import deque
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

import httpx
from PIL import Image, ImageOps, UnidentifiedImageError

from livetv.models.channel import LOGO_SCHEMES, Channel
from livetv.models.session import EventType
from livetv.services.downloads import SizeExceededError, build_client, fetch_limited
from livetv.services.events import EventBus
from livetv.services.m3u_parser import is_valid_url

logger = logging.getLogger(__name__)


class LogoCache:
    """
    Insert-only map of logo URL -> PNG thumbnail bytes.
    
    Only the scheduler writes; readers use get() or snapshot() and never
    need a lock since entries are never replaced or removed.
    """
    
    def __init__(self):
        self._items: dict[str, bytes] = {}
    
    def __contains__(self, url: str) -> bool:
        return url in self._items
    
    def __len__(self) -> int:
        return len(self._items)
    
    def get(self, url: str) -> Optional[bytes]:
        return self._items.get(url)
    
    def add(self, url: str, image: bytes) -> bool:
        """Insert a thumbnail. Returns False if the URL was already cached."""
        if url in self._items:
            return False
        self._items[url] = image
        return True
    
    def snapshot(self) -> Mapping[str, bytes]:
        """Read-only copy of the current entries."""
        return MappingProxyType(dict(self._items))


def make_thumbnail(data: bytes, size: tuple[int, int]) -> bytes:
    """Decode an image and fit it into size, keeping aspect ratio, as PNG."""
    with Image.open(io.BytesIO(data)) as img:
        img.load()
        if img.mode not in ("RGB", "RGBA"):
            img = img.convert("RGBA")
        thumb = ImageOps.contain(img, size, method=Image.Resampling.LANCZOS)
    out = io.BytesIO()
    thumb.save(out, format="PNG")
    return out.getvalue()


class LogoScheduler:
    """Bounded-concurrency logo downloader."""
    
    # Configuration
    MAX_CONCURRENCY = 8
    TIMEOUT = 6.0  # Per-logo timeout
    MAX_BYTES = 2 * 1024 * 1024
    MAX_REDIRECTS = 3
    THUMBNAIL_SIZE = (52, 42)
    USER_AGENT = "LiveTVPlayer/2.0"
    
    def __init__(
        self,
        cache: Optional[LogoCache] = None,
        events: Optional[EventBus] = None,
        max_concurrency: Optional[int] = None,
        timeout: Optional[float] = None,
        max_bytes: Optional[int] = None,
        thumbnail_size: Optional[tuple[int, int]] = None,
        user_agent: Optional[str] = None,
        max_redirects: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cache = cache if cache is not None else LogoCache()
        self.events = events
        self.max_concurrency = max(1, max_concurrency or self.MAX_CONCURRENCY)
        self.timeout = timeout or self.TIMEOUT
        self.max_bytes = max_bytes or self.MAX_BYTES
        self.thumbnail_size = thumbnail_size or self.THUMBNAIL_SIZE
        self._user_agent = user_agent or self.USER_AGENT
        self._max_redirects = max_redirects if max_redirects is not None else self.MAX_REDIRECTS
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        
        self._pending: deque[str] = deque()
        self._in_flight: set[str] = set()
        self._tasks: set[asyncio.Task] = set()
        self._pass = 0
        self._stats = {
            "scheduled": 0,
            "succeeded": 0,
            "failed": 0,
            "peak_active": 0,
        }
    
    @property
    def active_count(self) -> int:
        return len(self._in_flight)
    
    @property
    def pending_count(self) -> int:
        return len(self._pending)
    
    def get_stats(self) -> dict:
        return {
            **self._stats,
            "active": self.active_count,
            "pending": self.pending_count,
            "cached": len(self.cache),
            "pass": self._pass,
        }
    
    def schedule(self, channels: Iterable[Channel]) -> int:
        """
        Queue every uncached logo for the given channels.
        
        Replaces whatever was still pending from an earlier pass. Downloads
        already in flight keep running and still fill the cache; the
        concurrency ceiling is shared across passes.
        
        Returns:
            Number of URLs queued by this pass
        """
        queued: set[str] = set()
        pending: deque[str] = deque()
        for channel in channels:
            url = channel.logo_url
            if not url or url in queued or url in self.cache or url in self._in_flight:
                continue
            if not is_valid_url(url, LOGO_SCHEMES):
                continue
            queued.add(url)
            pending.append(url)
        
        self._pending = pending
        self._pass += 1
        self._stats["scheduled"] += len(pending)
        logger.info(f"Logo pass {self._pass}: {len(pending)} logos queued")
        
        self._fill()
        return len(pending)
    
    def _fill(self):
        """Start downloads until the ceiling is reached or the queue is empty."""
        while len(self._in_flight) < self.max_concurrency and self._pending:
            url = self._pending.popleft()
            self._in_flight.add(url)
            self._stats["peak_active"] = max(self._stats["peak_active"], len(self._in_flight))
            task = asyncio.get_running_loop().create_task(self._fetch(url))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
    
    async def _fetch(self, url: str):
        added = False
        try:
            image = await asyncio.wait_for(self._download(url), timeout=self.timeout)
            if image is not None:
                added = self.cache.add(url, image)
        except asyncio.TimeoutError:
            logger.debug(f"Logo timed out: {url}")
        except httpx.HTTPError as e:
            logger.debug(f"Logo download failed for {url}: {e}")
        except SizeExceededError as e:
            logger.debug(str(e))
        except httpx.InvalidURL as e:
            logger.debug(f"Logo URL rejected by client {url}: {e}")
        except Exception as e:
            logger.warning(f"Unexpected error fetching logo {url}: {e}")
        finally:
            self._in_flight.discard(url)
            self._stats["succeeded" if added else "failed"] += 1
            # Cancellation during shutdown must not start new work
            if not asyncio.current_task().cancelling():
                self._fill()
                if self.events is not None:
                    self.events.publish(EventType.LOGO_ADDED, url=url, available=added)
    
    async def _download(self, url: str) -> Optional[bytes]:
        body = await fetch_limited(self._get_client(), url, self.max_bytes)
        if not body or len(body) >= self.max_bytes:
            logger.debug(f"Logo rejected (size {len(body)}): {url}")
            return None
        try:
            return await asyncio.to_thread(make_thumbnail, body, self.thumbnail_size)
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
            logger.debug(f"Logo decode failed for {url}: {e}")
            return None
    
    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = build_client(
                self._user_agent,
                self.timeout,
                self._max_redirects,
                transport=self._transport,
            )
        return self._client
    
    async def wait_idle(self):
        """Wait until nothing is pending or in flight."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
    
    async def aclose(self):
        """Drop pending work, cancel downloads and close the HTTP client."""
        self._pending.clear()
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        if self._client is not None:
            await self._client.aclose()
            self._client = None
