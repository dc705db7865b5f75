"""
Adaptive-streaming client owner.

A ``StreamSession`` holds at most one attachment. ``attach()`` always releases
the previous one first, and ``release()`` cancels and awaits the in-flight
load, so two loaders never run against the same player.
"""
from __future__ import annotations

import asyncio
from contextlib import suppress
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

import aiohttp
import m3u8
import structlog

from playback_fallback.config import Settings
from playback_fallback.domain.models import Candidate, CandidateKind, MediaError
from playback_fallback.engine.errors import MEDIA_ERR_NETWORK, MEDIA_ERR_SRC_NOT_SUPPORTED

log = structlog.get_logger(__name__)

PLAYABLE_CONTENT_TYPES = ("video/", "audio/", "application/octet-stream")
PLAYLIST_MAGIC = b"#EXTM3U"
CHUNK_SIZE = 16 * 1024


@dataclass
class FetchResult:
    status: int
    content_type: str
    text: str
    truncated: bool = False


def _may_start_with(body: bytes, prefix: bytes) -> bool:
    head = body.lstrip()
    return head.startswith(prefix) or prefix.startswith(head)


class Fetcher:
    """One aiohttp session with the configured timeout."""

    def __init__(self, *, timeout: float = 10.0):
        self.timeout = aiohttp.ClientTimeout(total=timeout, connect=min(4.0, timeout))
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
        return self._session

    async def get(
        self,
        url: str,
        *,
        headers: dict | None = None,
        max_bytes: int | None = None,
        sniff: bytes | None = None,
    ) -> FetchResult:
        """
        GET ``url`` and decode the body as UTF-8, replacing undecodable bytes.

        At most ``max_bytes`` are read. With ``sniff``, reading stops as soon
        as the body can no longer start with that prefix.
        """
        session = await self._get_session()
        async with session.get(url, headers=headers or {}, allow_redirects=True) as resp:
            body = bytearray()
            truncated = False
            async for chunk in resp.content.iter_chunked(CHUNK_SIZE):
                body.extend(chunk)
                if max_bytes is not None and len(body) >= max_bytes:
                    truncated = len(body) > max_bytes or not resp.content.at_eof()
                    del body[max_bytes:]
                    break
                if sniff is not None and not _may_start_with(bytes(body), sniff):
                    break
            return FetchResult(
                status=resp.status,
                content_type=resp.headers.get("Content-Type", ""),
                text=bytes(body).decode("utf-8", errors="replace"),
                truncated=truncated,
            )

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()


class StreamError(Exception):
    def __init__(self, error: MediaError):
        super().__init__(error.message or error.details)
        self.error = error


@dataclass
class StreamEvent:
    kind: str                          # "loaded" | "error"
    candidate: Candidate
    duration: Optional[float] = None
    levels: int = 0
    error: Optional[MediaError] = None

    @property
    def ok(self) -> bool:
        return self.kind == "loaded"


def _carry_query(parent_url: str, child_url: str) -> str:
    # Variant URIs are relative; signed-access params live on the master URL.
    query = urlparse(parent_url).query
    if not query or urlparse(child_url).query:
        return child_url
    return f"{child_url}?{query}"


class StreamSession:
    def __init__(self, fetcher: Fetcher, config: Settings):
        self.fetcher = fetcher
        self.config = config
        self.attached: Optional[Candidate] = None
        self._task: Optional[asyncio.Task] = None
        self.attach_count = 0
        self.release_count = 0

    async def __aenter__(self) -> "StreamSession":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.release()

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    async def attach(self, candidate: Candidate) -> None:
        await self.release()
        self.attached = candidate
        self.attach_count += 1
        log.debug("stream_attach", url=candidate.url, kind=candidate.kind.value)
        self._task = asyncio.create_task(self._load(candidate))

    async def next_event(self) -> StreamEvent:
        if self._task is None:
            raise RuntimeError("no candidate attached")
        return await self._task

    async def release(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        if self.attached is not None:
            log.debug("stream_release", url=self.attached.url)
            self.attached = None
            self.release_count += 1

    # --- loaders ---
    async def _load(self, candidate: Candidate) -> StreamEvent:
        try:
            if candidate.kind is CandidateKind.HLS:
                return await self._load_hls(candidate)
            return await self._probe_direct(candidate)
        except StreamError as exc:
            return StreamEvent(kind="error", candidate=candidate, error=exc.error)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            return StreamEvent(kind="error", candidate=candidate, error=MediaError(
                source="network",
                code=MEDIA_ERR_NETWORK,
                details="manifestLoadError" if candidate.kind is CandidateKind.HLS else "",
                message=str(exc) or type(exc).__name__,
            ))

    async def _fetch_playlist(self, url: str, load_detail: str) -> m3u8.M3U8:
        res = await self.fetcher.get(
            url, max_bytes=self.config.manifest_max_bytes, sniff=PLAYLIST_MAGIC,
        )
        if res.status >= 400:
            raise StreamError(MediaError(
                source="hls", http_status=res.status, details=load_detail,
                message=f"HTTP {res.status} loading {url}",
            ))
        if not res.text.lstrip().startswith(PLAYLIST_MAGIC.decode()):
            raise StreamError(MediaError(
                source="hls", details="manifestParsingError",
                message="response is not an HLS playlist",
            ))
        if res.truncated:
            raise StreamError(MediaError(
                source="hls", details="manifestParsingError",
                message=f"playlist exceeds {self.config.manifest_max_bytes} bytes",
            ))
        try:
            return m3u8.loads(res.text, uri=url)
        except Exception as exc:
            raise StreamError(MediaError(
                source="hls", details="manifestParsingError", message=str(exc),
            )) from exc

    async def _load_hls(self, candidate: Candidate) -> StreamEvent:
        playlist = await self._fetch_playlist(candidate.url, "manifestLoadError")
        levels = 1

        if playlist.is_variant:
            levels = len(playlist.playlists)
            if not levels:
                raise StreamError(MediaError(source="hls", details="levelEmptyError",
                                             message="master playlist has no variants"))
            variant_url = _carry_query(candidate.url, playlist.playlists[0].absolute_uri)
            log.debug("manifest_parsed", url=candidate.url, levels=levels)
            playlist = await self._fetch_playlist(variant_url, "levelLoadError")

        if not playlist.segments:
            raise StreamError(MediaError(source="hls", details="levelEmptyError",
                                         message="media playlist has no segments"))

        duration = None
        if playlist.is_endlist:
            duration = float(sum(seg.duration or 0.0 for seg in playlist.segments))
        return StreamEvent(kind="loaded", candidate=candidate, duration=duration, levels=levels)

    async def _probe_direct(self, candidate: Candidate) -> StreamEvent:
        res = await self.fetcher.get(
            candidate.url,
            headers={"Range": f"bytes=0-{self.config.probe_bytes - 1}"},
            max_bytes=self.config.probe_bytes,
        )
        if res.status >= 400:
            raise StreamError(MediaError(
                source="media", code=MEDIA_ERR_NETWORK, http_status=res.status,
                message=f"HTTP {res.status} loading {candidate.url}",
            ))
        content_type = res.content_type.split(";")[0].strip().lower()
        if not content_type.startswith(PLAYABLE_CONTENT_TYPES):
            raise StreamError(MediaError(
                source="media", code=MEDIA_ERR_SRC_NOT_SUPPORTED,
                message=f"unsupported content type {content_type or 'unknown'}",
            ))
        return StreamEvent(kind="loaded", candidate=candidate)
