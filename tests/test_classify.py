import pytest

from playback_fallback.domain.models import ReferenceKind
from playback_fallback.resolve.classify import classify, is_identifier

from conftest import CDN, STORAGE, VIDEO_ID


@pytest.mark.parametrize("ref", [
    VIDEO_ID,
    VIDEO_ID.upper(),
    "00000000-0000-0000-0000-000000000000",
    "ABCDEF01-abcd-EF01-abcd-0123456789ab",
    f"  {VIDEO_ID}\n",
])
def test_identifiers(config, ref):
    assert classify(ref, config) is ReferenceKind.IDENTIFIER
    assert is_identifier(ref)


@pytest.mark.parametrize("ref", [
    f"https://{CDN}/{VIDEO_ID}/playlist.m3u8",
    f"https://{CDN}/{VIDEO_ID}/play",
    f"http://{CDN.upper()}/{VIDEO_ID}/play_720p.mp4",
])
def test_streaming_urls(config, ref):
    assert classify(ref, config) is ReferenceKind.STREAMING_URL


@pytest.mark.parametrize("ref", [
    f"https://{STORAGE}/videos/x.mp4",
    f"https://{STORAGE}/{VIDEO_ID}/playlist.m3u8",
    f"http://{STORAGE}",
    f"{STORAGE}/images/a.jpg",
    f"https://{STORAGE.upper()}/a.mp4",
    # storage host anywhere in the string wins over the streaming host
    f"https://{CDN}/proxy/{STORAGE}/x.mp4",
])
def test_storage_urls_regardless_of_path(config, ref):
    assert classify(ref, config) is ReferenceKind.STORAGE_URL


@pytest.mark.parametrize("ref", [
    None,
    "",
    "   ",
    "a1b2c3d4-1111-2222-3333-44445555666",   # 35 chars
    "a1b2c3d4-1111-2222-3333-4444555566667",  # 37 chars
    "g1b2c3d4-1111-2222-3333-444455556666",   # not hex
    "a1b2c3d411112222333344445555666600",
    "https://youtube.com/watch?v=abc",
    f"ftp://{CDN}/{VIDEO_ID}/play",
    f"https://evil.com/{CDN}/{VIDEO_ID}/play",
    f"https://{CDN}.evil.com/{VIDEO_ID}/play",
    "some random text",
])
def test_invalid(config, ref):
    assert classify(ref, config) is ReferenceKind.INVALID


def test_unconfigured_hosts_never_match():
    from conftest import make_settings

    cfg = make_settings(video_cdn_hostname="", storage_cdn_hostname="")
    assert classify(f"https://{CDN}/{VIDEO_ID}/play", cfg) is ReferenceKind.INVALID
    assert classify(f"https://{STORAGE}/x.mp4", cfg) is ReferenceKind.INVALID
    assert classify(VIDEO_ID, cfg) is ReferenceKind.IDENTIFIER
