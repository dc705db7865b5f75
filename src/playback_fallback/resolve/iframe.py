from __future__ import annotations

from urllib.parse import urlparse

import structlog

from playback_fallback.config import Settings
from playback_fallback.domain.models import ReferenceKind
from playback_fallback.resolve.classify import IDENTIFIER_IN_PATH_RE, classify

log = structlog.get_logger(__name__)


def extract_identifier(reference: str | None, config: Settings) -> str | None:
    kind = classify(reference, config)

    if kind is ReferenceKind.IDENTIFIER:
        return reference.strip()

    if kind is ReferenceKind.STREAMING_URL:
        match = IDENTIFIER_IN_PATH_RE.search(urlparse(reference.strip()).path)
        if match:
            return match.group(1)

    return None


def derive_iframe_url(reference: str | None, config: Settings) -> str | None:
    """
    Returns an embeddable player URL for the video, or None when there is
    nothing to embed.

    The hosted player page (``https://<iframe_host>/play/<library>/<id>``) is the
    only composition used. Two other shapes exist on the platform and are kept
    here for reference only: ``https://<video cdn>/<id>/iframe`` and
    ``https://iframe.<video cdn without "vz-">/<id>``.
    """
    video_id = extract_identifier(reference, config)
    if not video_id:
        log.warning("iframe_identifier_missing", reference=reference)
        return None

    library_id = config.video_library_id.strip()
    if not library_id:
        log.error("iframe_library_missing", video_id=video_id)
        return None

    return f"https://{config.iframe_host}/play/{library_id}/{video_id}"
