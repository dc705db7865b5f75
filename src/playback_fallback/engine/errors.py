"""
Playback error classification.

Structured fields (HTTP status, HTMLMediaElement error code, HLS client detail)
decide the kind whenever they are present. Message text is consulted only by
``guess_from_message``, and only when nothing structured applies.
"""
from __future__ import annotations

from playback_fallback.config import Settings
from playback_fallback.domain.models import ErrorKind, MediaError

# HTMLMediaElement MediaError codes
MEDIA_ERR_ABORTED = 1
MEDIA_ERR_NETWORK = 2
MEDIA_ERR_DECODE = 3
MEDIA_ERR_SRC_NOT_SUPPORTED = 4

AUTH_STATUSES = frozenset({401, 403})

# hls.js ErrorDetails
NETWORK_DETAILS = frozenset({
    "manifestLoadError",
    "manifestLoadTimeOut",
    "levelLoadError",
    "levelLoadTimeOut",
    "fragLoadError",
    "fragLoadTimeOut",
    "keyLoadError",
    "keyLoadTimeOut",
})
FORMAT_DETAILS = frozenset({
    "manifestParsingError",
    "manifestIncompatibleCodecsError",
    "levelEmptyError",
    "fragParsingError",
    "bufferAppendError",
})

AUTH_HINTS = ("403", "forbidden", "unauthorized", "401", "access denied")
FORMAT_HINTS = ("format error", "not supported", "unsupported", "decode")
NETWORK_HINTS = ("network", "timeout", "timed out", "connection")


def guess_from_message(message: str) -> ErrorKind:
    # Vendor error text is not a contract; this is the last resort only.
    text = (message or "").lower()
    if any(h in text for h in AUTH_HINTS):
        return ErrorKind.AUTH
    if any(h in text for h in FORMAT_HINTS):
        return ErrorKind.FORMAT
    if any(h in text for h in NETWORK_HINTS):
        return ErrorKind.NETWORK
    return ErrorKind.UNKNOWN


def classify_error(error: MediaError) -> ErrorKind:
    if error.http_status is not None:
        if error.http_status in AUTH_STATUSES:
            return ErrorKind.AUTH
        if error.http_status >= 400:
            return ErrorKind.NETWORK

    if error.details in NETWORK_DETAILS:
        return ErrorKind.NETWORK
    if error.details in FORMAT_DETAILS:
        return ErrorKind.FORMAT

    if error.code == MEDIA_ERR_NETWORK:
        return ErrorKind.NETWORK
    if error.code in (MEDIA_ERR_DECODE, MEDIA_ERR_SRC_NOT_SUPPORTED):
        return ErrorKind.FORMAT

    return guess_from_message(error.message)


def is_authentication_failure(kind: ErrorKind, config: Settings) -> bool:
    if kind is ErrorKind.AUTH:
        return True
    # FORMAT counts as AUTH only on token-protected libraries.
    return kind is ErrorKind.FORMAT and config.access_restricted and config.format_error_means_auth


def error_policy(config: Settings | None = None) -> dict:
    """The classification tables above, in the shape the page script reads."""
    return {
        "authStatuses": sorted(AUTH_STATUSES),
        "networkDetails": sorted(NETWORK_DETAILS),
        "formatDetails": sorted(FORMAT_DETAILS),
        "networkCodes": [MEDIA_ERR_NETWORK],
        "formatCodes": [MEDIA_ERR_DECODE, MEDIA_ERR_SRC_NOT_SUPPORTED],
        "authHints": list(AUTH_HINTS),
        "formatHints": list(FORMAT_HINTS),
        "networkHints": list(NETWORK_HINTS),
        "formatMeansAuth": config is not None and is_authentication_failure(ErrorKind.FORMAT, config),
    }
