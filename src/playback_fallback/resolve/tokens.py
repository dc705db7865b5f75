from __future__ import annotations

import hashlib
import time
from typing import Callable, Optional, Protocol
from urllib.parse import urlencode

from playback_fallback.config import Settings


class TokenError(RuntimeError):
    """Token material could not be produced for a video."""


class TokenProvider(Protocol):
    def token_params(self, video_id: str) -> dict[str, str]:
        ...


class StaticTokenProvider:
    def __init__(self, token: str):
        self.token = token.strip()

    def token_params(self, video_id: str) -> dict[str, str]:
        if not self.token:
            raise TokenError("no static token configured")
        return {"token": self.token}


class SignedTokenProvider:
    """
    Expiring tokens in the streaming platform's embed scheme:
    ``sha256_hex(security_key + video_id + expires)``.
    """

    def __init__(self, security_key: str, ttl_s: int = 3600, clock: Callable[[], float] = time.time):
        self.security_key = security_key
        self.ttl_s = ttl_s
        self.clock = clock

    def token_params(self, video_id: str) -> dict[str, str]:
        if not self.security_key:
            raise TokenError("no token security key configured")
        if not video_id:
            raise TokenError("cannot sign a token without a video id")
        expires = int(self.clock()) + self.ttl_s
        digest = hashlib.sha256(f"{self.security_key}{video_id}{expires}".encode("utf-8")).hexdigest()
        return {"token": digest, "expires": str(expires)}


def token_provider_for(config: Settings) -> Optional[TokenProvider]:
    if config.token_security_key:
        return SignedTokenProvider(config.token_security_key, ttl_s=config.token_ttl_s)
    if config.video_token:
        return StaticTokenProvider(config.video_token)
    return None


def append_params(url: str, params: dict[str, str]) -> str:
    if not params:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}{urlencode(params)}"
