from __future__ import annotations

from typing import Optional
from urllib.parse import urlparse

import structlog

from playback_fallback.config import Settings
from playback_fallback.domain.models import Candidate, CandidateKind, ReferenceKind
from playback_fallback.resolve.classify import classify
from playback_fallback.resolve.tokens import TokenProvider, append_params

log = structlog.get_logger(__name__)

HLS_MANIFEST = "playlist.m3u8"
PLAY_ENDPOINT = "play"


def _kind_for_url(url: str) -> CandidateKind:
    path = urlparse(url).path.lower()
    if path.endswith(".m3u8"):
        return CandidateKind.HLS
    return CandidateKind.DIRECT_PLAY


def _token_params(video_id: str, tokens: Optional[TokenProvider]) -> dict[str, str]:
    if tokens is None:
        return {}
    try:
        return tokens.token_params(video_id)
    except Exception as exc:
        # Untokenized candidates still play on public libraries.
        log.warning("token_unavailable", video_id=video_id, error=str(exc))
        return {}


def build_candidates(
    reference: str | None,
    config: Settings,
    tokens: Optional[TokenProvider] = None,
) -> list[Candidate] | None:
    kind = classify(reference, config)

    if kind is ReferenceKind.STORAGE_URL:
        log.error("storage_url_rejected", reference=reference,
                  reason="storage CDN does not support cross-origin video streaming")
        return None
    if kind is ReferenceKind.INVALID:
        log.error("invalid_reference", reference=reference)
        return None

    value = reference.strip()

    if kind is ReferenceKind.STREAMING_URL:
        candidate = Candidate(url=value, kind=_kind_for_url(value))
        log.info("streaming_url_candidate", url=candidate.url, kind=candidate.kind.value)
        return [candidate]

    host = config.video_cdn_hostname.strip()
    if not host:
        log.error("video_cdn_hostname_missing", reference=value)
        return None

    params = _token_params(value, tokens)
    base = f"https://{host}/{value}"
    candidates = [
        Candidate(url=append_params(f"{base}/{HLS_MANIFEST}", params), kind=CandidateKind.HLS),
        Candidate(url=append_params(f"{base}/{PLAY_ENDPOINT}", params), kind=CandidateKind.DIRECT_PLAY),
    ]
    log.info("candidates_built", reference=value, signed=bool(params),
             urls=[c.url for c in candidates])
    return candidates
