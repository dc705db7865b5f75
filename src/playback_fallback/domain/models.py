from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class ReferenceKind(str, Enum):
    IDENTIFIER = "Identifier"
    STREAMING_URL = "StreamingUrl"
    STORAGE_URL = "StorageUrl"
    INVALID = "Invalid"


class CandidateKind(str, Enum):
    HLS = "HLS"
    DIRECT_PLAY = "DirectPlay"


class ErrorKind(str, Enum):
    NETWORK = "NetworkError"
    FORMAT = "FormatError"
    AUTH = "AuthError"
    UNKNOWN = "Unknown"


class PlayerState(str, Enum):
    LOADING = "loading"
    PLAYING = "playing"
    PAUSED = "paused"
    IFRAME_FALLBACK = "iframe_fallback"
    NO_SOURCE = "no_source"

    @property
    def terminal(self) -> bool:
        return self in (PlayerState.IFRAME_FALLBACK, PlayerState.NO_SOURCE)


class FailureKind(str, Enum):
    INVALID_REFERENCE = "InvalidReference"
    STORAGE_URL_REJECTED = "StorageUrlRejected"
    CANDIDATE_EXHAUSTED = "CandidateExhausted"
    AUTHENTICATION_FAILURE = "AuthenticationFailure"
    NO_FALLBACK_AVAILABLE = "NoFallbackAvailable"


@dataclass(frozen=True)
class Candidate:
    url: str
    kind: CandidateKind

    def to_dict(self) -> dict[str, str]:
        return {"url": self.url, "kind": self.kind.value}


@dataclass(frozen=True)
class MediaError:
    """A playback failure as reported by the media element or the HLS client."""

    source: str = "media"             # "media" | "hls" | "network"
    code: Optional[int] = None        # HTMLMediaElement MediaError.code (1-4)
    http_status: Optional[int] = None
    details: str = ""                 # hls.js style detail, e.g. "manifestLoadError"
    fatal: bool = True
    message: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "code": self.code,
            "http_status": self.http_status,
            "details": self.details,
            "fatal": self.fatal,
            "message": self.message,
        }


@dataclass
class Transition:
    index: int
    from_state: PlayerState
    to_state: PlayerState
    reason: str
    error_kind: Optional[ErrorKind] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "index": self.index,
            "from": self.from_state.value,
            "to": self.to_state.value,
            "reason": self.reason,
            "error_kind": self.error_kind.value if self.error_kind else None,
        }


@dataclass
class PlaybackOutcome:
    reference: str
    state: PlayerState
    candidate: Optional[Candidate] = None
    iframe_url: Optional[str] = None
    failure: Optional[FailureKind] = None
    error_message: Optional[str] = None
    duration: Optional[float] = None
    attempts: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "reference": self.reference,
            "state": self.state.value,
            "candidate": self.candidate.to_dict() if self.candidate else None,
            "iframe_url": self.iframe_url,
            "failure": self.failure.value if self.failure else None,
            "error_message": self.error_message,
            "duration": self.duration,
            "attempts": self.attempts,
        }
