from __future__ import annotations

from typing import Optional
from urllib.parse import urlencode

from playback_fallback.config import Settings
from playback_fallback.resolve.iframe import extract_identifier


def poster_url(reference: str | None, config: Settings) -> Optional[str]:
    # Thumbnails live next to the video on the streaming CDN.
    video_id = extract_identifier(reference, config)
    host = config.video_cdn_hostname.strip()
    if not video_id or not host:
        return None
    return f"https://{host}/{video_id}/thumbnail.jpg"


def image_url(
    path: str | None,
    config: Settings,
    width: Optional[int] = None,
    height: Optional[int] = None,
    quality: Optional[int] = None,
) -> Optional[str]:
    """Public storage-CDN URL for an image path, with optional resize params."""
    if not path:
        return None

    if path.startswith(("http://", "https://")):
        url = path
    else:
        base = config.storage_base_url
        if not base:
            return None
        url = f"{base}/{path.lstrip('/')}"

    params = {k: str(v) for k, v in (("width", width), ("height", height), ("quality", quality)) if v}
    if not params:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode(params)}"
