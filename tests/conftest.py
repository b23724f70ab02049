"""
Pytest configuration and fixtures for LiveTV tests.
"""
import io

import pytest
from PIL import Image

from livetv.config import Settings
from livetv.services.engine import MediaEngine


class FakeEngine(MediaEngine):
    """Records every command the session sends."""
    
    name = "fake"
    
    def __init__(self, available=True, paused=False):
        super().__init__()
        self._available = available
        self.loads = []
        self.volumes = []
        self.mutes = []
        self.paused = paused
        self.closed = False
    
    @property
    def available(self):
        return self._available
    
    def load(self, url):
        self.loads.append(url)
    
    def set_volume(self, volume):
        self.volumes.append(volume)
    
    def set_mute(self, muted):
        self.mutes.append(muted)
    
    def toggle_pause(self):
        self.paused = not self.paused
        return self.paused
    
    def close(self):
        self.closed = True


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def sample_m3u_content():
    """Sample M3U content for testing."""
    return """#EXTM3U
#EXTINF:-1 tvg-id="news1" tvg-logo="https://logos.example.com/news1.png" group-title="News",News One HD
https://streams.example.com/news1.m3u8
#EXTINF:-1 group-title="Sports" tvg-logo="https://logos.example.com/sport.png",Sport Arena
http://streams.example.com/sport.m3u8
#EXTINF:-1 tvg-logo="https://logos.example.com/news1.png" group-title="News",Late News
rtsp://streams.example.com/late
#EXTINF:-1,Plain Channel
rtmp://live.example.com/app/plain
"""


@pytest.fixture
def png_bytes():
    """A small real PNG image."""
    out = io.BytesIO()
    Image.new("RGB", (200, 100), "red").save(out, format="PNG")
    return out.getvalue()


@pytest.fixture
def test_settings(tmp_path):
    """Settings with tiny delays and a throwaway database."""
    return Settings(
        playlist_url="https://playlist.example.com/list.m3u",
        database_path=str(tmp_path / "livetv.db"),
        engine="null",
        status_check_interval=0,
        debounce_seconds=0.01,
        retry_delay_seconds=0.02,
        max_retries=2,
        logo_max_concurrency=3,
        logo_timeout=1.0,
    )
