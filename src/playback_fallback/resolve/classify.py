from __future__ import annotations

import re
from urllib.parse import urlparse

from playback_fallback.config import Settings
from playback_fallback.domain.models import ReferenceKind

# Streaming platform video GUIDs: 8-4-4-4-12 hex, any case.
IDENTIFIER_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$", re.IGNORECASE
)
IDENTIFIER_IN_PATH_RE = re.compile(
    r"/([0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12})(?=/|$)", re.IGNORECASE
)


def is_identifier(value: str | None) -> bool:
    return bool(value) and IDENTIFIER_RE.match(value.strip()) is not None


def _host(url: str) -> str:
    return (urlparse(url).hostname or "").lower()


def is_storage_url(value: str, config: Settings) -> bool:
    host = config.storage_cdn_hostname.strip().lower()
    return bool(host) and host in value.lower()


def is_streaming_url(value: str, config: Settings) -> bool:
    host = config.video_cdn_hostname.strip().lower()
    if not host or not value.lower().startswith(("http://", "https://")):
        return False
    return _host(value) == host


def classify(reference: str | None, config: Settings) -> ReferenceKind:
    if not reference or not reference.strip():
        return ReferenceKind.INVALID
    value = reference.strip()

    if IDENTIFIER_RE.match(value):
        return ReferenceKind.IDENTIFIER
    # Storage first: a storage URL is never playable, whatever else it looks like.
    if is_storage_url(value, config):
        return ReferenceKind.STORAGE_URL
    if is_streaming_url(value, config):
        return ReferenceKind.STREAMING_URL
    return ReferenceKind.INVALID
