"""
Coordination context.

Wires the catalog, logo scheduler, playback session, navigation and resume
state together. Every mutation happens on the event loop, one at a time,
so none of these components need locks.
"""
import asyncio
import logging
from typing import Optional

import httpx

from livetv.config import Settings, get_settings
from livetv.models.channel import ALL_CATEGORY, Channel, FilterState
from livetv.models.session import Connectivity, EventType, Selection
from livetv.services.catalog import Catalog
from livetv.services.engine import MediaEngine, create_engine
from livetv.services.events import EventBus
from livetv.services.logo_fetcher import LogoCache, LogoScheduler
from livetv.services.m3u_parser import M3UParser
from livetv.services.navigation import zap
from livetv.services.playlist_loader import PlaylistError, PlaylistLoader
from livetv.services.session import PlaybackSession, clamp_volume
from livetv.services.state_store import ResumeState, StateStore
from livetv.services.status_monitor import StatusMonitor

logger = logging.getLogger(__name__)


class PlayerController:
    """The player core as seen by any front end."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        engine: Optional[MediaEngine] = None,
        loader: Optional[PlaylistLoader] = None,
        store: Optional[StateStore] = None,
        logo_transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        s = self.settings

        self.events = EventBus()
        self.catalog = Catalog()
        self.parser = M3UParser()
        self.filter = FilterState()
        self.selected_index: Optional[int] = None

        self.engine = engine or create_engine(s.engine)
        self.loader = loader or PlaylistLoader(
            url=s.playlist_url,
            timeout=s.playlist_timeout,
            max_bytes=s.playlist_max_bytes,
            max_redirects=s.playlist_max_redirects,
            user_agent=s.user_agent,
        )
        self.store = store or StateStore(s.database_path)
        self.logo_cache = LogoCache()
        self.logos = LogoScheduler(
            cache=self.logo_cache,
            events=self.events,
            max_concurrency=s.logo_max_concurrency,
            timeout=s.logo_timeout,
            max_bytes=s.logo_max_bytes,
            thumbnail_size=(s.logo_width, s.logo_height),
            user_agent=s.user_agent,
            max_redirects=s.logo_max_redirects,
            transport=logo_transport,
        )
        self.session = PlaybackSession(
            self.engine,
            events=self.events,
            debounce=s.debounce_seconds,
            retry_delay=s.retry_delay_seconds,
            max_retries=s.max_retries,
            volume=s.default_volume,
        )
        self.monitor = StatusMonitor(self.loader, self.events, s.status_check_interval)

        self._resume = ResumeState(volume=s.default_volume)
        self._load_task: Optional[asyncio.Task] = None

    # ==================== LIFECYCLE ====================

    async def start(self, load: bool = True):
        """Restore resume state, hook up the engine and start loading."""
        await self.store.initialize()
        self._resume = await self.store.load(default_volume=self.settings.default_volume)

        self.filter.category = self._resume.last_category or ALL_CATEGORY
        self.session.volume = clamp_volume(self._resume.volume)
        self.session.muted = self._resume.muted

        self.engine.attach(asyncio.get_running_loop(), self.session.handle_engine_event)
        self.session.apply_audio()

        await self.monitor.start()
        if load:
            self._load_task = asyncio.create_task(self.load_playlist())

    async def stop(self):
        """Save resume state and release everything."""
        if self._load_task and not self._load_task.done():
            self._load_task.cancel()
            try:
                await self._load_task
            except asyncio.CancelledError:
                pass

        try:
            await self.store.save(self.resume_state())
        finally:
            await self.monitor.stop()
            await self.logos.aclose()
            self.session.close()
            self.engine.close()

    def resume_state(self) -> ResumeState:
        return ResumeState(
            last_category=self.filter.category,
            volume=self.session.volume,
            muted=self.session.muted,
            last_stream_url=self.session.current_url or self._resume.last_stream_url,
        )

    # ==================== PLAYLIST ====================

    async def load_playlist(self, url: Optional[str] = None) -> bool:
        """
        Fetch, parse and install a playlist.

        On any failure the current catalog stays as it was and a status
        message explains why.
        """
        self._connectivity(Connectivity.CONNECTING)
        self.events.status("Loading playlist...")

        try:
            data = await self.loader.fetch(url)
        except PlaylistError as e:
            logger.warning(e.message)
            self.events.status(e.message)
            self._connectivity(Connectivity.OFFLINE)
            return False

        result = self.parser.parse(data)
        if not result.channels:
            self.events.status("No valid channels found in playlist.")
            self._connectivity(Connectivity.OFFLINE)
            return False

        self.catalog.load(result)
        self.events.publish(
            EventType.CATALOG_REPLACED,
            count=len(result.channels),
            categories=list(result.categories),
        )

        if not self.catalog.has_category(self.filter.category):
            self.filter.category = ALL_CATEGORY
        self.selected_index = self._anchor_index()
        self._publish_view()

        self.events.status(
            f"Loaded {len(result.channels)} channels in {len(result.categories) - 1} categories"
        )
        if self.session.current is None:
            self._connectivity(Connectivity.ONLINE)

        self.logos.schedule(self.catalog.channels)
        return True

    # ==================== FILTERING ====================

    def set_category(self, category: str):
        if not self.catalog.has_category(category):
            raise KeyError(category)
        self.filter.category = category
        self.selected_index = self._anchor_index()
        self._publish_view()

    def set_search(self, term: str):
        self.filter.search_term = term.strip()
        self.selected_index = self._anchor_index()
        self._publish_view()

    def visible_channels(self) -> list[Channel]:
        return self.catalog.visible_channels(self.filter)

    def _anchor_index(self) -> Optional[int]:
        """Row of the picked (or last saved) stream in the current view."""
        requested = self.session.requested
        return self._find_visible(requested.url if requested else self._resume.last_stream_url)

    def _find_visible(self, url: str) -> Optional[int]:
        if not url:
            return None
        for i, channel in enumerate(self.visible_channels()):
            if channel.stream_url == url:
                return i
        return None

    def _publish_view(self):
        indices = self.catalog.visible_indices(self.filter)
        self.events.publish(
            EventType.VIEW_CHANGED,
            category=self.filter.category,
            search=self.filter.search_term,
            count=len(indices),
            indices=indices,
        )

    # ==================== PLAYBACK ====================

    def select(self, index: int) -> Channel:
        """Pick a channel by its position in the filtered view."""
        visible = self.visible_channels()
        if not 0 <= index < len(visible):
            raise IndexError(index)
        channel = visible[index]
        self.selected_index = index
        self.session.select(
            Selection(
                url=channel.stream_url,
                name=channel.name,
                category=channel.category,
                index=index,
                total=len(visible),
            )
        )
        return channel

    def zap(self, direction: int) -> Optional[Channel]:
        """Move to the next/previous channel in the filtered view."""
        count = self.catalog.count(self.filter)
        if count == 0:
            return None
        return self.select(zap(direction, count, self.selected_index))

    def retry(self) -> bool:
        return self.session.retry()

    def change_volume(self, delta: int) -> int:
        self.session.set_volume(delta)
        return self.session.volume

    def toggle_mute(self) -> bool:
        self.session.toggle_mute()
        return self.session.muted

    def toggle_pause(self) -> bool:
        return self.session.toggle_pause()

    def _connectivity(self, status: Connectivity):
        self.events.publish(EventType.CONNECTIVITY, status=status.value)


# Singleton instance
_controller: Optional[PlayerController] = None


def get_controller() -> PlayerController:
    """Get or create the controller singleton."""
    global _controller
    if _controller is None:
        _controller = PlayerController()
    return _controller


def set_controller(controller: Optional[PlayerController]):
    """Install a specific controller, or None to reset."""
    global _controller
    _controller = controller
