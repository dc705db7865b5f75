from __future__ import annotations

from contextlib import asynccontextmanager

import structlog
from playwright.async_api import Browser, Page, async_playwright
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from playback_fallback.config import Settings

log = structlog.get_logger(__name__)

SETTLED_STATES = ("playing", "paused", "iframe_fallback", "no_source")


@asynccontextmanager
async def launch_page(config: Settings):
    async with async_playwright() as p:
        browser: Browser = await p.chromium.launch(headless=config.headless)
        context = await browser.new_context()
        page: Page = await context.new_page()
        page.set_default_navigation_timeout(config.navigation_timeout_ms)
        try:
            yield page
        finally:
            await context.close()
            await browser.close()


async def check_player(url: str, config: Settings) -> dict:
    """Open a rendered player page and report the state it settles in."""
    selector = ",".join(f'#pf-player[data-state="{s}"]' for s in SETTLED_STATES)
    async with launch_page(config) as page:
        await page.goto(url, wait_until="domcontentloaded")
        try:
            await page.wait_for_selector(selector, timeout=config.wait_for_state_ms)
            timed_out = False
        except PlaywrightTimeoutError:
            timed_out = True
        state = await page.get_attribute("#pf-player", "data-state")
        iframe_src = None
        if state == "iframe_fallback":
            iframe_src = await page.get_attribute("#pf-player iframe", "src")

    log.info("browser_check", url=url, state=state, timed_out=timed_out)
    return {"url": url, "state": state, "timed_out": timed_out, "iframe_url": iframe_src}
