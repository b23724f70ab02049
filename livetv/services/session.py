"""
Playback session state machine.

Idle -> Connecting -> Playing, with a fixed-delay bounded retry on playback
errors before the channel is declared unavailable (Error).

Every debounce and retry callback carries the generation it was scheduled
under and does nothing if the session has moved on since.
"""
import asyncio
import logging
from typing import Optional

from livetv.models.session import EventType, PlaybackState, Selection, SessionSnapshot
from livetv.services.engine import (
    END_FILE,
    FILE_LOADED,
    REASON_ERROR,
    SHUTDOWN,
    EngineError,
    MediaEngine,
)
from livetv.services.events import EventBus

logger = logging.getLogger(__name__)

MIN_VOLUME = 0
MAX_VOLUME = 150


class PlaybackSession:
    """Owns what is requested and what is actually playing."""

    # Configuration
    DEBOUNCE = 0.15  # Seconds a selection must stay put before loading
    RETRY_DELAY = 3.0  # Fixed delay between automatic retries
    MAX_RETRIES = 2

    def __init__(
        self,
        engine: MediaEngine,
        events: Optional[EventBus] = None,
        debounce: Optional[float] = None,
        retry_delay: Optional[float] = None,
        max_retries: Optional[int] = None,
        volume: int = 100,
        muted: bool = False,
    ):
        self.engine = engine
        self.events = events
        self.debounce = self.DEBOUNCE if debounce is None else debounce
        self.retry_delay = self.RETRY_DELAY if retry_delay is None else retry_delay
        self.max_retries = self.MAX_RETRIES if max_retries is None else max_retries

        self.state = PlaybackState.IDLE
        self.requested: Optional[Selection] = None
        self.current: Optional[Selection] = None
        self.retry_count = 0
        self.volume = clamp_volume(volume)
        self.muted = muted
        self.paused = False

        # Bumped on every user pick and explicit retry
        self._generation = 0
        self._debounce_handle: Optional[asyncio.TimerHandle] = None
        self._retry_handle: Optional[asyncio.TimerHandle] = None

    @property
    def current_url(self) -> str:
        return self.current.url if self.current else ""

    @property
    def current_name(self) -> str:
        return self.current.name if self.current else ""

    @property
    def retry_pending(self) -> bool:
        return self._retry_handle is not None

    def snapshot(self) -> SessionSnapshot:
        current = self.current
        return SessionSnapshot(
            state=self.state,
            requested=self.requested,
            current_url=current.url if current else "",
            current_name=current.name if current else "",
            current_category=current.category if current else "",
            current_index=current.index if current else 0,
            current_total=current.total if current else 0,
            retry_count=self.retry_count,
            volume=self.volume,
            muted=self.muted,
            paused=self.paused,
        )

    # ==================== SELECTION ====================

    def select(self, selection: Selection):
        """
        Record a user pick and (re)start the debounce timer.

        Only the pick that is still current when the timer fires gets loaded.
        """
        self.requested = selection
        self._generation += 1
        self._cancel_retry()
        self._cancel_debounce()

        generation = self._generation
        loop = asyncio.get_running_loop()
        self._debounce_handle = loop.call_later(self.debounce, self._on_debounce, generation)

    def _on_debounce(self, generation: int):
        if generation != self._generation:
            logger.debug("Ignoring stale selection timer")
            return
        self._debounce_handle = None
        self._cancel_retry()
        self._connect(fresh=True)

    def retry(self) -> bool:
        """User-requested retry of the current channel."""
        if self.current is None:
            return False
        self._generation += 1
        self._cancel_retry()
        self._cancel_debounce()
        self.requested = self.current
        self._connect(fresh=True)
        return True

    def _connect(self, fresh: bool):
        """Enter Connecting and ask the engine to load the requested stream."""
        if self.requested is None:
            return
        if fresh:
            self._cancel_retry()
            self.retry_count = 0
        self.current = self.requested
        self.paused = False
        self._set_state(PlaybackState.CONNECTING)
        self._load(self.current.url)

    def _load(self, url: str):
        if not self.engine.available:
            self._status("Playback unavailable.")
            self._set_state(PlaybackState.ERROR)
            return
        try:
            self.engine.load(url)
        except EngineError as e:
            logger.warning(f"Engine rejected {url}: {e}")
            self._status(str(e))
            self._on_playback_error()

    # ==================== ENGINE EVENTS ====================

    def handle_engine_event(self, event: str, reason: Optional[str] = None):
        """Entry point for engine callbacks, called on the coordination loop."""
        if event == FILE_LOADED:
            self._on_file_loaded()
        elif event == END_FILE and reason == REASON_ERROR:
            self._on_playback_error()
        elif event == SHUTDOWN:
            logger.info("Media engine shut down")

    def _on_file_loaded(self):
        if self.state != PlaybackState.CONNECTING:
            return
        self.retry_count = 0
        self._set_state(PlaybackState.PLAYING)
        self._status(f"Playing: {self.current_name}")

    def _on_playback_error(self):
        if self.state not in (PlaybackState.CONNECTING, PlaybackState.PLAYING):
            return
        if self._debounce_handle is not None:
            # A newer pick is about to replace this channel
            logger.debug(f"Ignoring playback error for superseded {self.current_name}")
            return
        if self._retry_handle is not None:
            # Already waiting to retry this attempt
            return

        if self.retry_count < self.max_retries:
            self.retry_count += 1
            self._set_state(PlaybackState.CONNECTING)
            self._status(
                f"Playback error: {self.current_name} "
                f"(retry {self.retry_count}/{self.max_retries})"
            )
            loop = asyncio.get_running_loop()
            self._retry_handle = loop.call_later(
                self.retry_delay, self._on_retry_timer, self._generation, self.current_url
            )
        else:
            logger.warning(f"Channel unavailable after {self.retry_count} retries: {self.current_name}")
            self._set_state(PlaybackState.ERROR)
            self._status(f"Channel unavailable: {self.current_name}")

    def _on_retry_timer(self, generation: int, url: str):
        self._retry_handle = None
        if generation != self._generation or url != self.current_url:
            logger.debug(f"Ignoring stale retry for {url}")
            return
        if self.state != PlaybackState.CONNECTING:
            return
        logger.info(f"Retrying {self.current_name} ({self.retry_count}/{self.max_retries})")
        self._connect(fresh=False)

    # ==================== AUDIO ====================

    def set_volume(self, delta: int):
        """Change volume by delta, clamped to 0-150."""
        self.volume = clamp_volume(self.volume + delta)
        if self.engine.available:
            self.engine.set_volume(self.volume)
        self._publish(EventType.VOLUME_CHANGED, volume=self.volume, muted=self.muted)
        self._status(f"Volume: {self.volume}%")

    def toggle_mute(self):
        self.muted = not self.muted
        if self.engine.available:
            self.engine.set_mute(self.muted)
        self._publish(EventType.VOLUME_CHANGED, volume=self.volume, muted=self.muted)
        self._status("Muted" if self.muted else "Unmuted")

    def toggle_pause(self) -> bool:
        if not self.engine.available:
            return self.paused
        paused = self.engine.toggle_pause()
        if paused is None:
            return self.paused
        self.paused = paused
        self._publish_state()
        self._status("Paused" if paused else "Playing")
        return paused

    def apply_audio(self):
        """Push the stored volume and mute flag to the engine."""
        if not self.engine.available:
            return
        self.engine.set_volume(self.volume)
        if self.muted:
            self.engine.set_mute(True)

    # ==================== HOUSEKEEPING ====================

    def close(self):
        self._cancel_debounce()
        self._cancel_retry()

    def _cancel_debounce(self):
        if self._debounce_handle is not None:
            self._debounce_handle.cancel()
            self._debounce_handle = None

    def _cancel_retry(self):
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None

    def _set_state(self, state: PlaybackState):
        if state != self.state:
            logger.info(f"Session {self.state.value} -> {state.value} ({self.current_name})")
        self.state = state
        self._publish_state()

    def _publish_state(self):
        self._publish(EventType.SESSION_CHANGED, **self.snapshot().model_dump(mode="json"))

    def _publish(self, event_type: EventType, **data):
        if self.events is not None:
            self.events.publish(event_type, **data)

    def _status(self, message: str):
        if self.events is not None:
            self.events.status(message)
        else:
            logger.info(message)


def clamp_volume(volume: int) -> int:
    return max(MIN_VOLUME, min(MAX_VOLUME, volume))
