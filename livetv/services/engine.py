"""
Media engine boundary.

The session only talks to MediaEngine: "load this URL, replace current",
volume, mute and pause. Engines report back "file-loaded", "end-file"
(with a reason) and "shutdown" through the attached callback, always
delivered on the coordination loop.
"""
import asyncio
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

FILE_LOADED = "file-loaded"
END_FILE = "end-file"
SHUTDOWN = "shutdown"
REASON_ERROR = "error"

EngineCallback = Callable[[str, Optional[str]], None]


class EngineError(Exception):
    """The engine rejected a command."""


class MediaEngine:
    """Base class for playback engines."""
    
    name = "base"
    
    def __init__(self):
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._callback: Optional[EngineCallback] = None
    
    @property
    def available(self) -> bool:
        return True
    
    def attach(self, loop: asyncio.AbstractEventLoop, callback: EngineCallback):
        """Route engine events to callback on loop."""
        self._loop = loop
        self._callback = callback
    
    def emit(self, event: str, reason: Optional[str] = None):
        """Deliver an engine event; safe to call from any thread."""
        if self._loop is None or self._callback is None:
            return
        self._loop.call_soon_threadsafe(self._callback, event, reason)
    
    def load(self, url: str):
        raise NotImplementedError
    
    def set_volume(self, volume: int):
        raise NotImplementedError
    
    def set_mute(self, muted: bool):
        raise NotImplementedError
    
    def toggle_pause(self) -> Optional[bool]:
        """Flip pause; returns the new pause flag or None if unsupported."""
        return None
    
    def close(self):
        pass


class NullEngine(MediaEngine):
    """Headless engine: accepts nothing and reports itself unavailable."""
    
    name = "null"
    
    @property
    def available(self) -> bool:
        return False
    
    def load(self, url: str):
        logger.debug(f"Null engine ignoring load of {url}")
    
    def set_volume(self, volume: int):
        pass
    
    def set_mute(self, muted: bool):
        pass


class MpvEngine(MediaEngine):
    """libmpv-backed engine via python-mpv."""
    
    name = "mpv"
    
    MPV_OPTIONS = {
        "hwdec": "auto",
        "keep_open": "yes",
        "idle": "yes",
        "input_default_bindings": False,
        "osc": False,
        "osd_level": 0,
        "cache": "yes",
        "demuxer_max_bytes": "50MiB",
        "demuxer_max_back_bytes": "10MiB",
        "cache_secs": 10,
        "network_timeout": 15,
    }
    
    def __init__(self, wid: Optional[int] = None, **options):
        super().__init__()
        import mpv
        
        opts = {**self.MPV_OPTIONS, **options}
        if wid is not None:
            opts["wid"] = str(wid)
        self._mpv = mpv
        self._player = mpv.MPV(**opts)
        self._player.event_callback("file-loaded")(self._on_file_loaded)
        self._player.event_callback("end-file")(self._on_end_file)
        self._player.event_callback("shutdown")(self._on_shutdown)
        logger.info("mpv engine initialized")
    
    def _on_file_loaded(self, event):
        self.emit(FILE_LOADED)
    
    def _on_end_file(self, event):
        data = getattr(event, "data", None)
        reason = getattr(data, "reason", None)
        if reason == self._mpv.MpvEventEndFile.ERROR:
            self.emit(END_FILE, REASON_ERROR)
        else:
            self.emit(END_FILE, str(reason) if reason is not None else None)
    
    def _on_shutdown(self, event):
        self.emit(SHUTDOWN)
    
    def load(self, url: str):
        try:
            self._player.command("loadfile", url, "replace")
        except (SystemError, RuntimeError, ValueError) as e:
            raise EngineError(f"mpv error: {e}") from e
    
    def set_volume(self, volume: int):
        self._player.volume = volume
    
    def set_mute(self, muted: bool):
        self._player.mute = muted
    
    def toggle_pause(self) -> Optional[bool]:
        self._player.pause = not self._player.pause
        return bool(self._player.pause)
    
    def close(self):
        self._player.terminate()


def create_engine(kind: str) -> MediaEngine:
    """Build the configured engine."""
    if kind == "mpv":
        try:
            return MpvEngine()
        except (ImportError, OSError) as e:
            # python-mpv missing, or libmpv not loadable
            logger.warning(f"mpv unavailable ({e}), playback disabled")
        except Exception as e:
            logger.warning(f"mpv failed to initialize ({e}), playback disabled")
        return NullEngine()
    if kind == "null":
        return NullEngine()
    raise ValueError(f"Unknown media engine: {kind}")
