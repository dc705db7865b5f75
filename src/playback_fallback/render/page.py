from __future__ import annotations

import html
import json
from typing import Any, Optional

from playback_fallback.engine import errors

HLS_JS_URL = "https://cdn.jsdelivr.net/npm/hls.js@1"

# Browser side of the candidate walk. Mirrors engine.machine: strictly one
# candidate at a time, auth failures skip straight to the iframe.
PLAYER_SCRIPT = """
(() => {
  const cfg = JSON.parse(document.getElementById("pf-config").textContent);
  const root = document.getElementById("pf-player");
  const video = root.querySelector("video");
  const spinner = root.querySelector(".pf-spinner");
  const bar = root.querySelector(".pf-progress");
  const fill = root.querySelector(".pf-progress-fill");
  const clock = root.querySelector(".pf-time");
  let index = 0;
  let hls = null;
  let done = false;

  const setState = (s) => { root.dataset.state = s; };
  const fmt = (t) => {
    t = isFinite(t) && t > 0 ? Math.floor(t) : 0;
    return Math.floor(t / 60) + ":" + String(t % 60).padStart(2, "0");
  };
  const release = () => {
    if (hls) { hls.destroy(); hls = null; }
    video.removeAttribute("src");
    video.load();
  };
  const policy = cfg.errorPolicy;
  const hinted = (msg, hints) => hints.some((h) => msg.includes(h));
  const classify = (err) => {
    if (err.status) {
      if (policy.authStatuses.includes(err.status)) return "AuthError";
      if (err.status >= 400) return "NetworkError";
    }
    if (policy.networkDetails.includes(err.details)) return "NetworkError";
    if (policy.formatDetails.includes(err.details)) return "FormatError";
    if (policy.networkCodes.includes(err.code)) return "NetworkError";
    if (policy.formatCodes.includes(err.code)) return "FormatError";
    const msg = (err.message || "").toLowerCase();
    if (hinted(msg, policy.authHints)) return "AuthError";
    if (hinted(msg, policy.formatHints)) return "FormatError";
    if (hinted(msg, policy.networkHints)) return "NetworkError";
    return "Unknown";
  };
  const isAuth = (err) => {
    const kind = classify(err);
    return kind === "AuthError" || (kind === "FormatError" && policy.formatMeansAuth);
  };
  const terminal = () => {
    done = true;
    release();
    if (cfg.iframeUrl) {
      root.innerHTML = '<iframe class="pf-iframe" allowfullscreen ' +
        'allow="accelerometer; gyroscope; autoplay; encrypted-media; picture-in-picture"></iframe>';
      root.querySelector("iframe").src = cfg.iframeUrl;
      setState("iframe_fallback");
    } else {
      root.innerHTML = '<div class="pf-error"><p>Video cannot be played</p><p class="pf-ref"></p></div>';
      root.querySelector(".pf-ref").textContent = cfg.reference;
      setState("no_source");
    }
  };
  const fail = (err) => {
    if (done) return;
    if (isAuth(err) || index >= cfg.candidates.length - 1) { terminal(); return; }
    index += 1;
    attach(cfg.candidates[index]);
  };
  const attach = (candidate) => {
    release();
    setState("loading");
    spinner.hidden = false;
    if (candidate.kind === "HLS" && window.Hls && Hls.isSupported()) {
      hls = new Hls();
      hls.on(Hls.Events.ERROR, (_, data) => {
        if (!data.fatal) return;
        fail({ status: data.response && data.response.code, details: data.details, message: String(data.reason || "") });
      });
      hls.loadSource(candidate.url);
      hls.attachMedia(video);
    } else {
      video.src = candidate.url;
    }
  };

  video.addEventListener("error", () => {
    if (hls) return;
    const e = video.error || {};
    fail({ code: e.code, message: e.message });
  });
  video.addEventListener("loadeddata", () => {
    spinner.hidden = true;
    setState(video.paused ? "paused" : "playing");
  });
  video.addEventListener("play", () => setState("playing"));
  video.addEventListener("pause", () => setState("paused"));
  video.addEventListener("timeupdate", () => {
    clock.textContent = fmt(video.currentTime) + " / " + fmt(video.duration);
    fill.style.width = (video.duration ? video.currentTime / video.duration * 100 : 0) + "%";
  });
  bar.addEventListener("click", (e) => {
    const rect = bar.getBoundingClientRect();
    if (rect.width > 0) video.currentTime = (e.clientX - rect.left) / rect.width * video.duration;
  });
  root.querySelector(".pf-play").addEventListener("click", () => video.paused ? video.play() : video.pause());
  root.querySelector(".pf-restart").addEventListener("click", () => { video.currentTime = 0; video.play(); });
  root.querySelector(".pf-mute").addEventListener("click", () => { video.muted = !video.muted; });
  root.querySelector(".pf-fullscreen").addEventListener("click", () => {
    document.fullscreenElement ? document.exitFullscreen() : video.requestFullscreen();
  });

  attach(cfg.candidates[0]);
})();
""".strip()

STYLE = """
.pf-player { position: relative; background: #000; aspect-ratio: 16 / 9; max-width: 960px; }
.pf-player video, .pf-iframe { width: 100%; height: 100%; border: 0; }
.pf-spinner { position: absolute; inset: 0; display: flex; align-items: center; justify-content: center;
  background: rgba(0, 0, 0, .5); color: #fff; }
.pf-spinner[hidden] { display: none; }
.pf-controls { position: absolute; left: 0; right: 0; bottom: 0; padding: 8px; color: #fff;
  background: linear-gradient(to top, rgba(0, 0, 0, .8), transparent); }
.pf-progress { height: 6px; background: #555; cursor: pointer; margin-bottom: 6px; }
.pf-progress-fill { height: 100%; width: 0; background: #c9a227; }
.pf-error { color: #fff; padding: 2rem; text-align: center; background: #111; }
""".strip()


def _json_for_script(data: Any) -> str:
    return json.dumps(data).replace("</", "<\\/")


def _document(title: Optional[str], body: str, state: str) -> str:
    t = html.escape(title or "Video")
    return (
        "<!doctype html>\n"
        f"<html><head><meta charset=\"utf-8\"><title>{t}</title><style>{STYLE}</style></head>\n"
        f"<body><div id=\"pf-player\" class=\"pf-player\" data-state=\"{state}\">{body}</div></body></html>"
    )


def _iframe(url: str) -> str:
    return (
        f"<iframe class=\"pf-iframe\" src=\"{html.escape(url)}\" allowfullscreen "
        "allow=\"accelerometer; gyroscope; autoplay; encrypted-media; picture-in-picture\"></iframe>"
    )


def _error(message: str, reference: Optional[str]) -> str:
    return (
        "<div class=\"pf-error\">"
        f"<p>{html.escape(message)}</p>"
        f"<p class=\"pf-ref\">{html.escape(reference or '')}</p>"
        "</div>"
    )


def render_player(
    snapshot: dict[str, Any],
    *,
    iframe_url: Optional[str] = None,
    poster: Optional[str] = None,
    title: Optional[str] = None,
    autoplay: bool = False,
    error_policy: Optional[dict[str, Any]] = None,
) -> str:
    """
    Render the presentation for a machine snapshot.

    ``iframe_url`` is the fallback the browser switches to once every native
    candidate has failed; it is only used when the snapshot is still live.
    ``error_policy`` comes from ``engine.errors.error_policy`` so the page
    classifies failures exactly as the server-side machine does.
    """
    state = snapshot["state"]
    reference = snapshot.get("reference")

    if state == "no_source":
        message = snapshot.get("error_message") or "Video cannot be played"
        return _document(title, _error(message, reference), state)

    if state == "iframe_fallback":
        return _document(title, _iframe(snapshot["iframe_url"]), state)

    config = {
        "reference": reference,
        "candidates": snapshot["candidates"][snapshot["current_index"]:],
        "iframeUrl": iframe_url,
        "errorPolicy": error_policy or errors.error_policy(),
    }
    poster_attr = f" poster=\"{html.escape(poster)}\"" if poster else ""
    autoplay_attr = " autoplay muted" if autoplay else ""
    caption = f"<span class=\"pf-title\">{html.escape(title)}</span>" if title else ""
    body = (
        f"<video playsinline preload=\"metadata\"{poster_attr}{autoplay_attr}></video>"
        "<div class=\"pf-spinner\">Loading…</div>"
        "<div class=\"pf-controls\">"
        "<div class=\"pf-progress\"><div class=\"pf-progress-fill\"></div></div>"
        "<button class=\"pf-play\">Play/Pause</button>"
        "<button class=\"pf-restart\">Restart</button>"
        "<button class=\"pf-mute\">Mute</button>"
        "<span class=\"pf-time\">0:00 / 0:00</span>"
        f"{caption}"
        "<button class=\"pf-fullscreen\">Fullscreen</button>"
        "</div>"
        f"<script id=\"pf-config\" type=\"application/json\">{_json_for_script(config)}</script>"
        f"<script src=\"{HLS_JS_URL}\"></script>"
        f"<script>{PLAYER_SCRIPT}</script>"
    )
    return _document(title, body, state)
