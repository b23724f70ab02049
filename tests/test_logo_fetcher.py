"""
Tests for the bounded-concurrency logo scheduler.
"""
import asyncio
import io

import httpx
import pytest
from PIL import Image

from livetv.models.channel import Channel
from livetv.models.session import EventType
from livetv.services.events import EventBus
from livetv.services.logo_fetcher import LogoCache, LogoScheduler, make_thumbnail


def channels_with_logos(urls):
    return [
        Channel(name=f"ch{i}", logo_url=url, stream_url=f"http://s.example.com/{i}")
        for i, url in enumerate(urls)
    ]


class TestLogoScheduler:
    
    @pytest.mark.asyncio
    async def test_never_exceeds_concurrency(self, png_bytes):
        """Instrument a slow fake transport and track concurrent requests."""
        active = 0
        peak = 0
        
        async def handler(request):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.02)
            active -= 1
            return httpx.Response(200, content=png_bytes)
        
        scheduler = LogoScheduler(max_concurrency=3, transport=httpx.MockTransport(handler))
        urls = [f"https://logos.example.com/{i}.png" for i in range(20)]
        
        queued = scheduler.schedule(channels_with_logos(urls))
        assert queued == 20
        assert scheduler.active_count == 3
        
        await scheduler.wait_idle()
        await scheduler.aclose()
        
        assert peak == 3
        assert scheduler.get_stats()["peak_active"] == 3
        assert len(scheduler.cache) == 20
    
    @pytest.mark.asyncio
    async def test_deduplicates_and_skips_invalid(self, png_bytes):
        requested = []
        
        async def handler(request):
            requested.append(str(request.url))
            return httpx.Response(200, content=png_bytes)
        
        scheduler = LogoScheduler(transport=httpx.MockTransport(handler))
        urls = [
            "https://logos.example.com/a.png",
            "https://logos.example.com/a.png",
            "",
            "ftp://logos.example.com/b.png",
            "not a url",
            "http://logos.example.com/c.png",
        ]
        assert scheduler.schedule(channels_with_logos(urls)) == 2
        await scheduler.wait_idle()
        
        assert sorted(requested) == [
            "http://logos.example.com/c.png",
            "https://logos.example.com/a.png",
        ]
        
        # Second pass finds everything cached
        assert scheduler.schedule(channels_with_logos(urls)) == 0
        await scheduler.aclose()
    
    @pytest.mark.asyncio
    async def test_thumbnail_cached_by_url(self, png_bytes):
        async def handler(request):
            return httpx.Response(200, content=png_bytes)
        
        cache = LogoCache()
        scheduler = LogoScheduler(cache=cache, transport=httpx.MockTransport(handler))
        scheduler.schedule(channels_with_logos(["https://logos.example.com/x.png"]))
        await scheduler.wait_idle()
        await scheduler.aclose()
        
        thumb = cache.get("https://logos.example.com/x.png")
        assert thumb is not None
        with Image.open(io.BytesIO(thumb)) as img:
            assert img.size == (52, 26)
    
    @pytest.mark.asyncio
    async def test_failures_are_dropped(self, png_bytes):
        async def handler(request):
            path = request.url.path
            if path == "/404.png":
                return httpx.Response(404)
            if path == "/empty.png":
                return httpx.Response(200, content=b"")
            if path == "/big.png":
                return httpx.Response(200, content=b"x" * 5000)
            if path == "/garbage.png":
                return httpx.Response(200, content=b"definitely not an image")
            if path == "/down.png":
                raise httpx.ConnectError("connection refused")
            return httpx.Response(200, content=png_bytes)
        
        scheduler = LogoScheduler(max_bytes=4096, transport=httpx.MockTransport(handler))
        urls = [
            f"https://logos.example.com/{name}.png"
            for name in ("404", "empty", "big", "garbage", "down", "ok")
        ]
        scheduler.schedule(channels_with_logos(urls))
        await scheduler.wait_idle()
        await scheduler.aclose()
        
        assert len(scheduler.cache) == 1
        assert "https://logos.example.com/ok.png" in scheduler.cache
        stats = scheduler.get_stats()
        assert stats["failed"] == 5
        assert stats["succeeded"] == 1
        assert stats["active"] == 0
    
    @pytest.mark.asyncio
    async def test_timeout_frees_slot(self, png_bytes):
        async def handler(request):
            if request.url.path == "/slow.png":
                await asyncio.sleep(5)
            return httpx.Response(200, content=png_bytes)
        
        scheduler = LogoScheduler(
            max_concurrency=1, timeout=0.05, transport=httpx.MockTransport(handler)
        )
        scheduler.schedule(channels_with_logos([
            "https://logos.example.com/slow.png",
            "https://logos.example.com/fast.png",
        ]))
        await asyncio.wait_for(scheduler.wait_idle(), timeout=2)
        await scheduler.aclose()
        
        assert "https://logos.example.com/slow.png" not in scheduler.cache
        assert "https://logos.example.com/fast.png" in scheduler.cache
    
    @pytest.mark.asyncio
    async def test_new_pass_replaces_pending(self, png_bytes):
        release = asyncio.Event()
        requested = []
        
        async def handler(request):
            requested.append(request.url.path)
            await release.wait()
            return httpx.Response(200, content=png_bytes)
        
        scheduler = LogoScheduler(max_concurrency=1, transport=httpx.MockTransport(handler))
        scheduler.schedule(channels_with_logos([
            "https://logos.example.com/first.png",
            "https://logos.example.com/stale.png",
        ]))
        await asyncio.sleep(0.01)
        
        # first.png is in flight; stale.png is still pending
        scheduler.schedule(channels_with_logos([
            "https://logos.example.com/first.png",
            "https://logos.example.com/fresh.png",
        ]))
        assert scheduler.pending_count == 1
        
        release.set()
        await scheduler.wait_idle()
        await scheduler.aclose()
        
        assert requested == ["/first.png", "/fresh.png"]
        assert "https://logos.example.com/first.png" in scheduler.cache
        assert "https://logos.example.com/stale.png" not in scheduler.cache
    
    @pytest.mark.asyncio
    async def test_completion_publishes_event(self, png_bytes):
        async def handler(request):
            return httpx.Response(200, content=png_bytes)
        
        events = EventBus()
        queue = events.subscribe()
        scheduler = LogoScheduler(events=events, transport=httpx.MockTransport(handler))
        scheduler.schedule(channels_with_logos(["https://logos.example.com/e.png"]))
        await scheduler.wait_idle()
        await scheduler.aclose()
        
        event = queue.get_nowait()
        assert event.type == EventType.LOGO_ADDED
        assert event.data == {"url": "https://logos.example.com/e.png", "available": True}
    
    @pytest.mark.asyncio
    async def test_user_agent_sent(self, png_bytes):
        agents = []
        
        async def handler(request):
            agents.append(request.headers["user-agent"])
            return httpx.Response(200, content=png_bytes)
        
        scheduler = LogoScheduler(user_agent="TestAgent/1.0", transport=httpx.MockTransport(handler))
        scheduler.schedule(channels_with_logos(["https://logos.example.com/ua.png"]))
        await scheduler.wait_idle()
        await scheduler.aclose()
        
        assert agents == ["TestAgent/1.0"]


class TestLogoCache:
    
    def test_insert_only(self):
        cache = LogoCache()
        assert cache.add("u", b"one")
        assert not cache.add("u", b"two")
        assert cache.get("u") == b"one"
    
    def test_snapshot_is_detached(self):
        cache = LogoCache()
        cache.add("a", b"1")
        snap = cache.snapshot()
        cache.add("b", b"2")
        assert "b" not in snap
        assert len(cache) == 2


def test_make_thumbnail_scales_up_small_images():
    out = io.BytesIO()
    Image.new("L", (10, 10)).save(out, format="GIF")
    thumb = make_thumbnail(out.getvalue(), (52, 42))
    with Image.open(io.BytesIO(thumb)) as img:
        assert img.size == (42, 42)
        assert img.format == "PNG"
