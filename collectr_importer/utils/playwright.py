import asyncio
import os
import subprocess
import sys
from contextlib import asynccontextmanager
from typing import AsyncIterator

from playwright.async_api import Page, Route, async_playwright

from collectr_importer.utils.config import ImporterConfig
from collectr_importer.utils.logger import browser_logger

logger = browser_logger

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
)
BROWSER_VIEWPORT = {"width": 1280, "height": 800}
BROWSER_ACCEPT_LANGUAGE = "en-US,en;q=0.9"

LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-blink-features=AutomationControlled",
    "--lang=en-US,en",
]

# hides the usual automation fingerprints before any page script runs
STEALTH_JS = """
Object.defineProperty(navigator, 'webdriver', { get: () => undefined });
Object.defineProperty(navigator, 'languages', { get: () => ['en-US', 'en'] });
Object.defineProperty(navigator, 'plugins', { get: () => [1, 2, 3, 4, 5] });
window.chrome = { runtime: {} };
"""

BLOCKED_RESOURCE_TYPES = {"image", "font", "media"}


def _is_production() -> bool:
    env = (os.environ.get("ENV") or os.environ.get("APP_ENV") or "development").lower()
    return env == "production"


async def is_playwright_installed() -> bool:
    # Chromium browser path detection (platform independent)
    try:
        async with async_playwright() as p:
            path = getattr(p.chromium, "executable_path", None)
            return bool(path and os.path.exists(path))
    except Exception:
        return False


async def ensure_playwright_browsers(config: ImporterConfig) -> None:
    if not config.use_browser:
        logger.info("Browser strategy disabled; skipping browser install")
        return
    if _is_production():
        logger.info("Playwright disabled in production; skipping browser install")
        return
    if not await is_playwright_installed():
        logger.info("🔧 Installing Playwright browsers (first run)...")
        await asyncio.to_thread(
            subprocess.run,
            [sys.executable, "-m", "playwright", "install", "chromium"],
            check=True,
        )
    else:
        logger.info("Playwright browsers already installed.")


async def _block_heavy_resources(route: Route) -> None:
    if route.request.resource_type in BLOCKED_RESOURCE_TYPES:
        await route.abort()
    else:
        await route.continue_()


@asynccontextmanager
async def browser_session(config: ImporterConfig) -> AsyncIterator[Page]:
    """
    One exclusive Chromium page for a showcase run.
    The browser is closed and Playwright stopped on every exit path.
    """
    playwright = await async_playwright().start()
    browser = None
    try:
        browser = await playwright.chromium.launch(
            headless=config.headless, args=LAUNCH_ARGS
        )
        context = await browser.new_context(
            user_agent=BROWSER_USER_AGENT,
            viewport=BROWSER_VIEWPORT,
            locale="en-US",
            extra_http_headers={"accept-language": BROWSER_ACCEPT_LANGUAGE},
        )
        await context.add_init_script(STEALTH_JS)
        await context.route("**/*", _block_heavy_resources)
        page = await context.new_page()
        logger.info(f"🧭 Browser session opened (headless={config.headless})")
        yield page
    finally:
        try:
            if browser:
                await browser.close()
        finally:
            await playwright.stop()
            logger.info("🧭 Browser session closed")
