from __future__ import annotations

import asyncio

import pytest

from playback_fallback.config import Settings
from playback_fallback.engine.stream import FetchResult

VIDEO_ID = "a1b2c3d4-1111-2222-3333-444455556666"
CDN = "cdn.example.net"
STORAGE = "storage.example.net"
LIBRARY = "12345"

MASTER_PLAYLIST = """#EXTM3U
#EXT-X-STREAM-INF:BANDWIDTH=1280000,RESOLUTION=1280x720
720p/video.m3u8
#EXT-X-STREAM-INF:BANDWIDTH=640000,RESOLUTION=640x360
360p/video.m3u8
"""

MEDIA_PLAYLIST = """#EXTM3U
#EXT-X-VERSION:3
#EXT-X-TARGETDURATION:10
#EXTINF:10.0,
seg0.ts
#EXTINF:10.0,
seg1.ts
#EXTINF:4.5,
seg2.ts
#EXT-X-ENDLIST
"""


def make_settings(**overrides) -> Settings:
    values = {
        "video_cdn_hostname": CDN,
        "storage_cdn_hostname": STORAGE,
        "video_library_id": LIBRARY,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def config() -> Settings:
    return make_settings()


class FakeFetcher:
    """
    Answers by the first route whose key is a substring of the URL.
    A route value may be a FetchResult, an exception to raise, or an
    asyncio.Event to block on until the test sets it.
    """

    def __init__(self, routes: dict | None = None):
        self.routes = dict(routes or {})
        self.calls: list[tuple[str, dict]] = []
        self.limits: list[int | None] = []
        self.closed = False

    async def get(self, url, *, headers=None, max_bytes=None, sniff=None):
        self.calls.append((url, dict(headers or {})))
        self.limits.append(max_bytes)
        for key, value in self.routes.items():
            if key in url:
                if isinstance(value, asyncio.Event):
                    await value.wait()
                    return FetchResult(status=200, content_type="video/mp4", text="")
                if isinstance(value, Exception):
                    raise value
                return value
        return FetchResult(status=404, content_type="text/plain", text="not found")

    async def close(self):
        self.closed = True

    @property
    def urls(self) -> list[str]:
        return [u for u, _ in self.calls]


def ok_playlist(text: str) -> FetchResult:
    return FetchResult(status=200, content_type="application/vnd.apple.mpegurl", text=text)


def status(code: int, content_type: str = "text/plain") -> FetchResult:
    return FetchResult(status=code, content_type=content_type, text="")
