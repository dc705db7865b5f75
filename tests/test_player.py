import pytest
from aiohttp import test_utils, web

from playback_fallback.domain.models import CandidateKind, FailureKind, PlayerState
from playback_fallback.engine import player as player_mod
from playback_fallback.engine.player import Player
from playback_fallback.engine.stream import StreamSession

from conftest import (
    CDN,
    LIBRARY,
    MEDIA_PLAYLIST,
    STORAGE,
    VIDEO_ID,
    FakeFetcher,
    make_settings,
    ok_playlist,
    status,
)

HLS_URL = f"https://{CDN}/{VIDEO_ID}/playlist.m3u8"
PLAY_URL = f"https://{CDN}/{VIDEO_ID}/play"
IFRAME = f"https://iframe.mediadelivery.net/play/{LIBRARY}/{VIDEO_ID}"


async def _run(config, routes, reference=VIDEO_ID):
    fetcher = FakeFetcher(routes)
    session = StreamSession(fetcher, config)
    async with Player(config, session) as p:
        outcome = await p.run(reference)
    return outcome, fetcher, session


async def test_hls_plays(config):
    outcome, fetcher, _ = await _run(config, {"playlist.m3u8": ok_playlist(MEDIA_PLAYLIST)})

    assert outcome.state is PlayerState.PLAYING
    assert outcome.candidate.kind is CandidateKind.HLS
    assert outcome.duration == pytest.approx(24.5)
    assert fetcher.urls == [HLS_URL]


async def test_hls_fails_direct_play_works(config):
    outcome, fetcher, _ = await _run(config, {
        "playlist.m3u8": status(404),
        "/play": status(206, "video/mp4"),
    })

    assert outcome.state is PlayerState.PLAYING
    assert outcome.candidate.url == PLAY_URL
    assert fetcher.urls == [HLS_URL, PLAY_URL]
    assert [a["error_kind"] for a in outcome.attempts] == ["NetworkError", None]


async def test_all_candidates_fail_then_iframe(config):
    outcome, fetcher, session = await _run(config, {
        "playlist.m3u8": status(500),
        "/play": status(200, "text/html"),
    })

    assert outcome.state is PlayerState.IFRAME_FALLBACK
    assert outcome.failure is FailureKind.CANDIDATE_EXHAUSTED
    assert outcome.iframe_url == IFRAME
    assert outcome.candidate is None
    assert fetcher.urls == [HLS_URL, PLAY_URL]
    assert session.attached is None
    assert session.release_count == session.attach_count == 2


async def test_auth_failure_skips_direct_play(config):
    outcome, fetcher, _ = await _run(config, {"playlist.m3u8": status(403)})

    assert outcome.state is PlayerState.IFRAME_FALLBACK
    assert outcome.failure is FailureKind.AUTHENTICATION_FAILURE
    assert fetcher.urls == [HLS_URL]


async def test_storage_url_never_touches_the_network(config):
    outcome, fetcher, _ = await _run(config, {}, reference=f"https://{STORAGE}/videos/x.mp4")

    assert outcome.state is PlayerState.NO_SOURCE
    assert outcome.failure is FailureKind.STORAGE_URL_REJECTED
    assert outcome.iframe_url is None
    assert fetcher.calls == []


async def test_no_fallback_available():
    cfg = make_settings(video_library_id="")
    outcome, _, _ = await _run(cfg, {"playlist.m3u8": status(500), "/play": status(500)})

    assert outcome.state is PlayerState.NO_SOURCE
    assert outcome.failure is FailureKind.NO_FALLBACK_AVAILABLE
    assert VIDEO_ID in outcome.error_message


async def test_reference_change_releases_and_restarts(config):
    other = "ffffffff-1111-2222-3333-444455556666"
    fetcher = FakeFetcher({
        f"{VIDEO_ID}/playlist.m3u8": ok_playlist(MEDIA_PLAYLIST),
        f"{other}/playlist.m3u8": status(404),
        f"{other}/play": status(206, "video/mp4"),
    })
    session = StreamSession(fetcher, config)
    p = Player(config, session)

    first = await p.run(VIDEO_ID)
    assert first.state is PlayerState.PLAYING
    assert session.attached is not None

    second = await p.run(other)
    assert second.state is PlayerState.PLAYING
    assert p.machine.current_index == 1
    assert second.candidate.url == f"https://{CDN}/{other}/play"

    await p.close()
    assert session.attached is None
    assert session.release_count == session.attach_count == 3


async def test_outcome_serializes(config):
    outcome, _, _ = await _run(config, {"playlist.m3u8": status(403)})
    data = outcome.to_dict()

    assert data["state"] == "iframe_fallback"
    assert data["failure"] == "AuthenticationFailure"
    assert data["attempts"] == [{"url": HLS_URL, "kind": "HLS", "error_kind": "AuthError"}]


async def test_probe_closes_fetcher(config, monkeypatch):
    fetcher = FakeFetcher({"playlist.m3u8": ok_playlist(MEDIA_PLAYLIST)})
    monkeypatch.setattr(player_mod, "Fetcher", lambda timeout: fetcher)

    outcome = await player_mod.probe(VIDEO_ID, config)

    assert outcome.state is PlayerState.PLAYING
    assert fetcher.closed


async def test_same_reference_again_restarts_the_walk(config):
    fetcher = FakeFetcher({"playlist.m3u8": ok_playlist(MEDIA_PLAYLIST)})
    session = StreamSession(fetcher, config)
    p = Player(config, session)

    await p.run(VIDEO_ID)
    again = await p.run(VIDEO_ID)

    assert again.state is PlayerState.PLAYING
    assert again.attempts == [{"url": HLS_URL, "kind": "HLS", "error_kind": None}]
    assert session.attached is not None
    assert fetcher.urls == [HLS_URL, HLS_URL]
    await p.close()


async def test_undecodable_manifest_falls_back_to_iframe():
    async def garbage(request):
        return web.Response(body=b"\xff\xfe\x00\x81garbage",
                            headers={"Content-Type": "text/plain; charset=utf-8"})

    app = web.Application()
    app.router.add_get(f"/{VIDEO_ID}/playlist.m3u8", garbage)
    async with test_utils.TestServer(app) as server:
        cfg = make_settings(video_cdn_hostname=server.host)
        ref = str(server.make_url(f"/{VIDEO_ID}/playlist.m3u8"))
        outcome = await player_mod.probe(ref, cfg)

    assert outcome.state is PlayerState.IFRAME_FALLBACK
    assert outcome.failure is FailureKind.CANDIDATE_EXHAUSTED
    assert outcome.iframe_url == IFRAME
    assert outcome.attempts[0]["error_kind"] == "FormatError"
