from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

_PLACEHOLDER_MARKERS = ("your-", "example", "localhost")


@dataclass
class ConfigReport:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict:
        return {"valid": self.is_valid, "errors": self.errors, "warnings": self.warnings}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PLAYBACK_", env_file=".env", extra="ignore")

    # Streaming CDN (video library) and storage CDN (images only)
    video_cdn_hostname: str = ""
    storage_cdn_hostname: str = ""
    storage_cdn_url: str = ""  # defaults to https://<storage_cdn_hostname>

    # Iframe embeds
    video_library_id: str = ""
    iframe_host: str = "iframe.mediadelivery.net"

    # Signed access
    access_mode: Literal["public", "token"] = "public"
    video_token: str = ""
    token_security_key: str = ""
    token_ttl_s: int = 3600

    # A format error on a token-protected library is usually a rejected token.
    format_error_means_auth: bool = True

    # Network probing
    fetch_timeout_s: float = 10.0
    probe_bytes: int = 2048
    manifest_max_bytes: int = 1_048_576

    # Playwright
    headless: bool = True
    navigation_timeout_ms: int = 25_000
    wait_for_state_ms: int = 15_000

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    @property
    def storage_base_url(self) -> str:
        if self.storage_cdn_url:
            return self.storage_cdn_url.rstrip("/")
        if self.storage_cdn_hostname:
            return f"https://{self.storage_cdn_hostname}"
        return ""

    @property
    def access_restricted(self) -> bool:
        return self.access_mode == "token" or bool(self.video_token or self.token_security_key)

    def validate_environment(self) -> ConfigReport:
        report = ConfigReport()

        if not self.video_cdn_hostname.strip():
            report.errors.append("video_cdn_hostname is not configured")
        elif not self.video_cdn_hostname.endswith(".b-cdn.net"):
            report.warnings.append("video_cdn_hostname should be a Bunny CDN hostname (*.b-cdn.net)")

        if not self.video_library_id.strip():
            report.warnings.append("video_library_id is not configured; iframe fallback is disabled")

        if not self.storage_cdn_hostname.strip():
            report.warnings.append("storage_cdn_hostname is not configured; storage URLs cannot be rejected")
        elif self.storage_cdn_hostname.lower() == self.video_cdn_hostname.lower():
            report.errors.append("storage_cdn_hostname must differ from video_cdn_hostname")
        elif self.storage_cdn_hostname.strip().lower() in self.video_cdn_hostname.lower():
            # Storage detection is a substring match; it would swallow every streaming URL.
            report.errors.append("storage_cdn_hostname must not be contained in video_cdn_hostname")

        for name in ("video_cdn_hostname", "storage_cdn_hostname", "storage_cdn_url"):
            value = getattr(self, name).lower()
            if any(marker in value for marker in _PLACEHOLDER_MARKERS):
                report.warnings.append(f"{name} appears to contain example/development values")

        if self.access_mode == "token" and not (self.video_token or self.token_security_key):
            report.errors.append("access_mode is 'token' but neither video_token nor token_security_key is set")

        if self.token_ttl_s <= 0:
            report.errors.append("token_ttl_s must be positive")

        if self.manifest_max_bytes <= 0:
            report.errors.append("manifest_max_bytes must be positive")

        return report


settings = Settings()
