from urllib.parse import parse_qs, urlparse

import hashlib
import pytest

from playback_fallback.domain.models import CandidateKind
from playback_fallback.resolve.candidates import build_candidates
from playback_fallback.resolve.tokens import (
    SignedTokenProvider,
    StaticTokenProvider,
    TokenError,
    append_params,
    token_provider_for,
)

from conftest import CDN, STORAGE, VIDEO_ID, make_settings


def test_identifier_yields_hls_then_direct_play(config):
    cands = build_candidates(VIDEO_ID, config)

    assert [c.url for c in cands] == [
        f"https://{CDN}/{VIDEO_ID}/playlist.m3u8",
        f"https://{CDN}/{VIDEO_ID}/play",
    ]
    assert [c.kind for c in cands] == [CandidateKind.HLS, CandidateKind.DIRECT_PLAY]


@pytest.mark.parametrize("ref", [
    "00000000-0000-0000-0000-000000000000",
    "FFFFFFFF-AAAA-BBBB-CCCC-DDDDDDDDDDDD",
    VIDEO_ID,
])
def test_identifier_is_a_path_segment_of_every_candidate(config, ref):
    cands = build_candidates(ref, config)
    assert len(cands) == 2
    for c in cands:
        assert ref in urlparse(c.url).path.split("/")


@pytest.mark.parametrize("ref", [
    f"https://{STORAGE}/videos/x.mp4",
    f"https://{STORAGE}/{VIDEO_ID}/playlist.m3u8",
    "not-a-video",
    "",
    None,
])
def test_storage_and_invalid_references_build_nothing(config, ref):
    assert build_candidates(ref, config) is None


def test_streaming_url_is_its_own_single_candidate(config):
    hls = f"https://{CDN}/{VIDEO_ID}/playlist.m3u8"
    play = f"https://{CDN}/{VIDEO_ID}/play"
    mp4 = f"https://{CDN}/{VIDEO_ID}/play_720p.mp4"

    assert [(c.url, c.kind) for c in build_candidates(hls, config)] == [(hls, CandidateKind.HLS)]
    assert [(c.url, c.kind) for c in build_candidates(play, config)] == [(play, CandidateKind.DIRECT_PLAY)]
    assert [(c.url, c.kind) for c in build_candidates(mp4, config)] == [(mp4, CandidateKind.DIRECT_PLAY)]


def test_missing_cdn_hostname_builds_nothing():
    cfg = make_settings(video_cdn_hostname="")
    assert build_candidates(VIDEO_ID, cfg) is None


def test_static_token_appended_to_both_urls(config):
    cands = build_candidates(VIDEO_ID, config, StaticTokenProvider("s3cr3t"))
    for c in cands:
        assert parse_qs(urlparse(c.url).query) == {"token": ["s3cr3t"]}


def test_signed_token_scheme(config):
    provider = SignedTokenProvider("key", ttl_s=60, clock=lambda: 1_000)
    cands = build_candidates(VIDEO_ID, config, provider)

    expected = hashlib.sha256(f"key{VIDEO_ID}1060".encode()).hexdigest()
    for c in cands:
        qs = parse_qs(urlparse(c.url).query)
        assert qs == {"token": [expected], "expires": ["1060"]}
    assert cands[0].url.split("?")[0].endswith("/playlist.m3u8")


class _BrokenProvider:
    def token_params(self, video_id):
        raise TokenError("token service unavailable")


def test_token_failure_is_not_fatal(config):
    cands = build_candidates(VIDEO_ID, config, _BrokenProvider())
    assert [c.url for c in cands] == [
        f"https://{CDN}/{VIDEO_ID}/playlist.m3u8",
        f"https://{CDN}/{VIDEO_ID}/play",
    ]


def test_empty_static_token_is_not_fatal(config):
    cands = build_candidates(VIDEO_ID, config, StaticTokenProvider(""))
    assert all("token=" not in c.url for c in cands)


def test_token_provider_selection():
    assert token_provider_for(make_settings()) is None
    assert isinstance(token_provider_for(make_settings(video_token="t")), StaticTokenProvider)
    assert isinstance(
        token_provider_for(make_settings(video_token="t", token_security_key="k")),
        SignedTokenProvider,
    )


def test_append_params_separator():
    assert append_params("https://h/a", {}) == "https://h/a"
    assert append_params("https://h/a", {"token": "x"}) == "https://h/a?token=x"
    assert append_params("https://h/a?b=1", {"token": "x y"}) == "https://h/a?b=1&token=x+y"
