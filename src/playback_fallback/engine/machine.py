"""
Candidate walk for one player.

    LOADING -> PLAYING <-> PAUSED
    LOADING | PLAYING | PAUSED --error--> LOADING (next candidate)
                                       -> IFRAME_FALLBACK (terminal)
                                       -> NO_SOURCE (terminal, nothing to embed)

The machine is synchronous and holds no resources; ``engine.player`` feeds it
events and owns the network side.
"""
from __future__ import annotations

from typing import Any, Optional

import structlog

from playback_fallback.config import Settings
from playback_fallback.domain.models import (
    Candidate,
    ErrorKind,
    FailureKind,
    MediaError,
    PlayerState,
    ReferenceKind,
    Transition,
)
from playback_fallback.engine.errors import classify_error, is_authentication_failure
from playback_fallback.resolve.candidates import build_candidates
from playback_fallback.resolve.classify import classify
from playback_fallback.resolve.iframe import derive_iframe_url
from playback_fallback.resolve.tokens import TokenProvider

log = structlog.get_logger(__name__)


class PlaybackMachine:
    def __init__(
        self,
        reference: str | None,
        config: Settings,
        tokens: Optional[TokenProvider] = None,
        autoplay: bool = False,
    ):
        self.config = config
        self.tokens = tokens
        self.autoplay = autoplay
        self.reference: str | None = None
        self._reset(reference)

    # --- lifecycle ---
    def set_reference(self, reference: str | None) -> bool:
        """Switch to another video. Returns False when the reference is unchanged."""
        if reference == self.reference:
            return False
        self._reset(reference)
        return True

    def reload(self) -> None:
        """Start the current reference over from its first candidate."""
        self._reset(self.reference)

    def _reset(self, reference: str | None) -> None:
        self.reference = reference
        self.current_index = 0
        self.is_playing = False
        self.current_time = 0.0
        self.duration = 0.0
        self.error_message: Optional[str] = None
        self.failure: Optional[FailureKind] = None
        self.iframe_url: Optional[str] = None
        self.history: list[Transition] = []

        self.candidates: list[Candidate] = build_candidates(reference, self.config, self.tokens) or []
        if self.candidates:
            self.state = PlayerState.LOADING
            self.is_loading = True
            return

        self.state = PlayerState.NO_SOURCE
        self.is_loading = False
        if classify(reference, self.config) is ReferenceKind.STORAGE_URL:
            self.failure = FailureKind.STORAGE_URL_REJECTED
        else:
            self.failure = FailureKind.INVALID_REFERENCE
        self.error_message = f"No playable source for video: {reference}"
        log.warning("no_playable_source", reference=reference, failure=self.failure.value)

    # --- queries ---
    @property
    def current_candidate(self) -> Optional[Candidate]:
        if self.state.terminal or not self.candidates:
            return None
        return self.candidates[self.current_index]

    @property
    def has_more_candidates(self) -> bool:
        return self.current_index < len(self.candidates) - 1

    # --- media events ---
    def on_loaded(self, duration: float | None = None) -> PlayerState:
        if self.state is not PlayerState.LOADING:
            return self.state
        self.is_loading = False
        self.duration = float(duration or 0.0)
        if self.autoplay:
            self.is_playing = True
        self._move(PlayerState.PLAYING if self.is_playing else PlayerState.PAUSED, "loaded")
        return self.state

    def on_play(self) -> PlayerState:
        if self.state.terminal:
            return self.state
        self.is_playing = True
        if self.state is PlayerState.PAUSED:
            self._move(PlayerState.PLAYING, "play")
        return self.state

    def on_pause(self) -> PlayerState:
        if self.state.terminal:
            return self.state
        self.is_playing = False
        if self.state is PlayerState.PLAYING:
            self._move(PlayerState.PAUSED, "pause")
        return self.state

    def on_ended(self) -> PlayerState:
        return self.on_pause()

    def on_time_update(self, current_time: float) -> None:
        if not self.state.terminal:
            self.current_time = float(current_time)

    def on_error(self, error: MediaError) -> PlayerState:
        if self.state.terminal:
            return self.state
        if not error.fatal:
            log.debug("non_fatal_error_ignored", details=error.details, message=error.message)
            return self.state

        kind = classify_error(error)
        candidate = self.current_candidate
        log.warning(
            "candidate_failed",
            index=self.current_index,
            url=candidate.url if candidate else None,
            error_kind=kind.value,
            http_status=error.http_status,
            details=error.details,
        )

        if is_authentication_failure(kind, self.config):
            self._fall_back(FailureKind.AUTHENTICATION_FAILURE, kind)
        elif self.has_more_candidates:
            self._advance(kind)
        else:
            self._fall_back(FailureKind.CANDIDATE_EXHAUSTED, kind)
        return self.state

    # --- transitions ---
    def _move(self, to_state: PlayerState, reason: str, error_kind: ErrorKind | None = None) -> None:
        self.history.append(Transition(
            index=self.current_index,
            from_state=self.state,
            to_state=to_state,
            reason=reason,
            error_kind=error_kind,
        ))
        self.state = to_state

    def _advance(self, kind: ErrorKind) -> None:
        self._move(PlayerState.LOADING, "try_next_candidate", kind)
        self.current_index += 1
        self.is_loading = True
        self.is_playing = False
        self.current_time = 0.0
        self.duration = 0.0
        log.info("trying_next_candidate", index=self.current_index, url=self.candidates[self.current_index].url)

    def _fall_back(self, failure: FailureKind, kind: ErrorKind) -> None:
        self.is_loading = False
        self.is_playing = False
        self.iframe_url = derive_iframe_url(self.reference, self.config)
        if self.iframe_url:
            self.failure = failure
            self.error_message = None
            self._move(PlayerState.IFRAME_FALLBACK, failure.value, kind)
            log.info("iframe_fallback", reference=self.reference, failure=failure.value, iframe_url=self.iframe_url)
            return

        self.failure = FailureKind.NO_FALLBACK_AVAILABLE
        self.error_message = f"Video cannot be played (id: {self.reference})"
        self._move(PlayerState.NO_SOURCE, failure.value, kind)
        log.error("no_fallback_available", reference=self.reference, after=failure.value)

    def snapshot(self) -> dict[str, Any]:
        return {
            "reference": self.reference,
            "state": self.state.value,
            "current_index": self.current_index,
            "candidates": [c.to_dict() for c in self.candidates],
            "is_loading": self.is_loading,
            "is_playing": self.is_playing,
            "current_time": self.current_time,
            "duration": self.duration,
            "error_message": self.error_message,
            "failure": self.failure.value if self.failure else None,
            "iframe_url": self.iframe_url,
            "history": [t.to_dict() for t in self.history],
        }
