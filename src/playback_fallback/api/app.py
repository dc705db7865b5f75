from __future__ import annotations

from typing import Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import HTMLResponse

from playback_fallback.config import Settings, settings
from playback_fallback.engine.errors import error_policy
from playback_fallback.engine.machine import PlaybackMachine
from playback_fallback.engine.player import probe
from playback_fallback.logs import configure_logging
from playback_fallback.render.page import render_player
from playback_fallback.resolve.diagnose import diagnose
from playback_fallback.resolve.iframe import derive_iframe_url
from playback_fallback.resolve.media import poster_url
from playback_fallback.resolve.tokens import token_provider_for

configure_logging(settings)
app = FastAPI(title="playback-fallback")


def get_settings() -> Settings:
    return settings


def _require(ref: str) -> str:
    if not ref or not ref.strip():
        raise HTTPException(status_code=400, detail="ref required")
    return ref.strip()


@app.get("/resolve")
def resolve(ref: str = "", config: Settings = Depends(get_settings)):
    ref = _require(ref)
    return diagnose(ref, config, token_provider_for(config)).to_dict()


@app.get("/player", response_class=HTMLResponse)
def player(
    ref: str = "",
    title: Optional[str] = None,
    autoplay: bool = False,
    config: Settings = Depends(get_settings),
):
    ref = _require(ref)
    machine = PlaybackMachine(ref, config, token_provider_for(config), autoplay=autoplay)
    body = render_player(
        machine.snapshot(),
        iframe_url=derive_iframe_url(ref, config),
        poster=poster_url(ref, config),
        title=title,
        autoplay=autoplay,
        error_policy=error_policy(config),
    )
    return HTMLResponse(content=body)


@app.get("/probe")
async def probe_reference(ref: str = "", config: Settings = Depends(get_settings)):
    ref = _require(ref)
    outcome = await probe(ref, config)
    return outcome.to_dict()


@app.get("/config/check")
def config_check(config: Settings = Depends(get_settings)):
    return config.validate_environment().to_dict()
