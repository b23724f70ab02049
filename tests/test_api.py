"""
Integration tests for the HTTP remote.
"""
import time

import httpx
import pytest
from fastapi.testclient import TestClient

from livetv.main import app
from livetv.services.controller import PlayerController, set_controller
from livetv.services.playlist_loader import PlaylistLoader
from tests.conftest import FakeEngine


def wait_for(predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


@pytest.fixture
def engine():
    return FakeEngine()


@pytest.fixture
def client(test_settings, sample_m3u_content, png_bytes, engine):
    def playlist(request):
        if request.method == "HEAD":
            return httpx.Response(200)
        return httpx.Response(200, content=sample_m3u_content.encode())
    
    def logos(request):
        if request.url.path == "/news1.png":
            return httpx.Response(200, content=png_bytes)
        return httpx.Response(404)
    
    controller = PlayerController(
        settings=test_settings,
        engine=engine,
        loader=PlaylistLoader(
            url=test_settings.playlist_url,
            transport=httpx.MockTransport(playlist),
        ),
        logo_transport=httpx.MockTransport(logos),
    )
    set_controller(controller)
    with TestClient(app) as client:
        assert wait_for(lambda: client.get("/api/channels").json()["total"] == 4)
        yield client
    set_controller(None)


class TestChannelEndpoints:
    
    def test_list_channels(self, client):
        data = client.get("/api/channels").json()
        assert data["category"] == "All"
        assert [ch["index"] for ch in data["channels"]] == [0, 1, 2, 3]
        assert data["channels"][0]["name"] == "News One HD"
    
    def test_categories(self, client):
        data = client.get("/api/categories").json()
        assert data["categories"] == ["All", "News", "Others", "Sports"]
        assert data["current"] == "All"
    
    def test_filter(self, client):
        response = client.put("/api/filter", json={"category": "News", "search": "LATE"})
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["channels"][0]["name"] == "Late News"
        assert data["channels"][0]["index"] == 0
    
    def test_unknown_category(self, client):
        response = client.put("/api/filter", json={"category": "Music"})
        assert response.status_code == 404
    
    def test_logo_served_from_cache(self, client):
        url = "https://logos.example.com/news1.png"
        assert wait_for(lambda: client.get("/api/logos", params={"url": url}).status_code == 200)
        
        response = client.get("/api/logos", params={"url": url})
        assert response.headers["content-type"] == "image/png"
        assert client.get("/api/channels").json()["channels"][0]["has_logo"] is True
        
        missing = client.get("/api/logos", params={"url": "https://logos.example.com/sport.png"})
        assert missing.status_code == 404
    
    def test_reload(self, client):
        data = client.post("/api/playlist/reload").json()
        assert data == {"loaded": True, "channels": 4, "categories": 3}


class TestPlayerEndpoints:
    
    def test_select_and_playing(self, client, engine):
        response = client.post("/api/player/select", json={"index": 1})
        assert response.status_code == 200
        assert response.json()["requested"]["name"] == "Sport Arena"
        
        assert wait_for(lambda: engine.loads == ["http://streams.example.com/sport.m3u8"])
        engine.emit("file-loaded")
        assert wait_for(lambda: client.get("/api/player").json()["state"] == "playing")
    
    def test_select_out_of_range(self, client):
        assert client.post("/api/player/select", json={"index": 99}).status_code == 404
        assert client.post("/api/player/select", json={"index": -1}).status_code == 422
    
    def test_zap(self, client, engine):
        client.post("/api/player/zap", json={"direction": -1})
        assert wait_for(lambda: engine.loads == ["rtmp://live.example.com/app/plain"])
        assert client.post("/api/player/zap", json={"direction": 2}).status_code == 422
    
    def test_zap_empty_view(self, client):
        client.put("/api/filter", json={"search": "zzz"})
        assert client.post("/api/player/zap", json={"direction": 1}).status_code == 409
    
    def test_retry_without_channel(self, client):
        assert client.post("/api/player/retry").status_code == 409
    
    def test_volume_mute_pause(self, client, engine):
        assert client.post("/api/player/volume", json={"delta": 80}).json() == {"volume": 150}
        assert client.post("/api/player/mute").json() == {"muted": True}
        assert client.post("/api/player/pause").json() == {"paused": True}
        assert engine.volumes[-1] == 150
        assert engine.mutes[-1] is True
    
    def test_health(self, client):
        data = client.get("/api/health").json()
        assert data["status"] == "healthy"
        assert data["channels"] == 4
