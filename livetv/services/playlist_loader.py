"""
Playlist download.
Fetches the M3U playlist over HTTP(S) with a size cap and overall timeout.
"""
import asyncio
import logging
from typing import Optional

import httpx

from livetv.config import get_settings
from livetv.services.downloads import SizeExceededError, build_client, fetch_limited

logger = logging.getLogger(__name__)


class PlaylistError(Exception):
    """Base class for playlist loading failures."""
    
    message = "Failed to load playlist"


class PlaylistFetchError(PlaylistError):
    """Network, HTTP status or timeout failure."""
    
    def __init__(self, reason: str):
        super().__init__(reason)
        self.message = f"Failed to load playlist: {reason}"


class PlaylistTooLargeError(PlaylistError):
    message = "Playlist too large."


class EmptyPlaylistError(PlaylistError):
    message = "Empty response from server."


class PlaylistLoader:
    """Downloads playlists from a single source URL."""
    
    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_bytes: Optional[int] = None,
        max_redirects: Optional[int] = None,
        user_agent: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.url = url or settings.playlist_url
        self.timeout = timeout or settings.playlist_timeout
        self.max_bytes = max_bytes or settings.playlist_max_bytes
        self.max_redirects = max_redirects if max_redirects is not None else settings.playlist_max_redirects
        self.user_agent = user_agent or settings.user_agent
        self._transport = transport
    
    async def fetch(self, url: Optional[str] = None) -> bytes:
        """
        Download the playlist.
        
        Raises:
            PlaylistFetchError: network error, bad status or timeout
            PlaylistTooLargeError: body exceeds the size cap
            EmptyPlaylistError: server returned nothing
        """
        url = url or self.url
        logger.info(f"Fetching playlist from {url}")
        
        try:
            async with build_client(
                self.user_agent, self.timeout, self.max_redirects, transport=self._transport
            ) as client:
                data = await asyncio.wait_for(
                    fetch_limited(client, url, self.max_bytes),
                    timeout=self.timeout,
                )
        except asyncio.TimeoutError:
            raise PlaylistFetchError("Operation timed out")
        except SizeExceededError:
            raise PlaylistTooLargeError()
        except httpx.HTTPStatusError as e:
            raise PlaylistFetchError(f"HTTP {e.response.status_code}")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise PlaylistFetchError(str(e) or e.__class__.__name__)
        
        if not data:
            raise EmptyPlaylistError()
        
        logger.info(f"Fetched {len(data)} bytes of playlist")
        return data
    
    async def probe(self, url: Optional[str] = None) -> bool:
        """HEAD the playlist URL. True when the server answers without error."""
        url = url or self.url
        try:
            async with build_client(
                self.user_agent, self.timeout, self.max_redirects, transport=self._transport
            ) as client:
                response = await client.head(url)
                return response.status_code < 400
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug(f"Status probe failed: {e}")
            return False
