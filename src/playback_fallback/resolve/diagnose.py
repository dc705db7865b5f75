from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from playback_fallback.config import Settings
from playback_fallback.domain.models import Candidate, CandidateKind, ReferenceKind
from playback_fallback.resolve.candidates import build_candidates
from playback_fallback.resolve.classify import classify
from playback_fallback.resolve.iframe import derive_iframe_url, extract_identifier
from playback_fallback.resolve.media import poster_url
from playback_fallback.resolve.tokens import TokenProvider


@dataclass
class Diagnosis:
    reference: str
    kind: ReferenceKind
    candidates: Optional[list[Candidate]]
    identifier: Optional[str]
    iframe_url: Optional[str]
    poster_url: Optional[str]
    recommendations: list[str] = field(default_factory=list)

    @property
    def playable(self) -> bool:
        return bool(self.candidates) or bool(self.iframe_url)

    def to_dict(self) -> dict[str, Any]:
        return {
            "reference": self.reference,
            "kind": self.kind.value,
            "playable": self.playable,
            "candidates": [c.to_dict() for c in self.candidates] if self.candidates else None,
            "identifier": self.identifier,
            "iframe_url": self.iframe_url,
            "poster_url": self.poster_url,
            "recommendations": self.recommendations,
        }


def diagnose(reference: str, config: Settings, tokens: Optional[TokenProvider] = None) -> Diagnosis:
    kind = classify(reference, config)
    candidates = build_candidates(reference, config, tokens)
    d = Diagnosis(
        reference=reference,
        kind=kind,
        candidates=candidates,
        identifier=extract_identifier(reference, config),
        iframe_url=derive_iframe_url(reference, config),
        poster_url=poster_url(reference, config),
    )

    notes = d.recommendations
    if kind is ReferenceKind.STORAGE_URL:
        notes.append("CRITICAL: storage CDN URLs cannot serve video playback (no cross-origin streaming)")
        notes.append("Upload the video to the video library and reference it by its identifier")
    elif kind is ReferenceKind.INVALID:
        notes.append("WARNING: reference is neither an identifier nor a streaming CDN URL")

    if candidates:
        kinds = [c.kind for c in candidates]
        if CandidateKind.HLS in kinds:
            notes.append("STRATEGY: HLS manifest is tried first")
        if CandidateKind.DIRECT_PLAY in kinds:
            notes.append("FALLBACK: direct play URL is available")
    elif kind is ReferenceKind.IDENTIFIER:
        notes.append("ERROR: video_cdn_hostname is not configured, no candidates could be built")

    if not d.iframe_url:
        notes.append("ERROR: no iframe fallback URL could be derived")

    return d
