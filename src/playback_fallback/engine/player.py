from __future__ import annotations

from typing import Optional

import structlog

from playback_fallback.config import Settings
from playback_fallback.domain.models import PlaybackOutcome, PlayerState
from playback_fallback.engine.errors import classify_error
from playback_fallback.engine.machine import PlaybackMachine
from playback_fallback.engine.stream import Fetcher, StreamSession
from playback_fallback.resolve.tokens import TokenProvider, token_provider_for

log = structlog.get_logger(__name__)


class Player:
    """
    Drives a ``PlaybackMachine`` against real candidate URLs.

    Candidates are attempted strictly one at a time: the next attach only
    happens after the machine has seen the previous candidate's outcome.
    """

    def __init__(self, config: Settings, session: StreamSession, tokens: Optional[TokenProvider] = None):
        self.config = config
        self.session = session
        self.tokens = tokens
        self.machine: Optional[PlaybackMachine] = None

    async def __aenter__(self) -> "Player":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.close()

    async def run(self, reference: str) -> PlaybackOutcome:
        # Tear down whatever the previous reference had in flight first.
        await self.session.release()
        if self.machine is None:
            self.machine = PlaybackMachine(reference, self.config, self.tokens, autoplay=True)
        elif not self.machine.set_reference(reference):
            # Same reference: the attachment it was playing is gone now.
            self.machine.reload()
        machine = self.machine

        attempts: list[dict] = []
        while machine.state is PlayerState.LOADING:
            candidate = machine.current_candidate
            await self.session.attach(candidate)
            event = await self.session.next_event()

            if event.ok:
                attempts.append({"url": candidate.url, "kind": candidate.kind.value, "error_kind": None})
                machine.on_loaded(event.duration)
                break

            kind = classify_error(event.error)
            attempts.append({"url": candidate.url, "kind": candidate.kind.value, "error_kind": kind.value})
            await self.session.release()
            machine.on_error(event.error)

        if machine.state.terminal:
            await self.session.release()

        outcome = PlaybackOutcome(
            reference=reference,
            state=machine.state,
            candidate=machine.current_candidate,
            iframe_url=machine.iframe_url,
            failure=machine.failure,
            error_message=machine.error_message,
            duration=machine.duration or None,
            attempts=attempts,
        )
        log.info("playback_resolved", reference=reference, state=outcome.state.value,
                 failure=outcome.failure.value if outcome.failure else None)
        return outcome

    async def close(self) -> None:
        await self.session.release()


async def probe(reference: str, config: Settings) -> PlaybackOutcome:
    fetcher = Fetcher(timeout=config.fetch_timeout_s)
    try:
        async with StreamSession(fetcher, config) as session:
            async with Player(config, session, token_provider_for(config)) as player:
                return await player.run(reference)
    finally:
        await fetcher.close()
