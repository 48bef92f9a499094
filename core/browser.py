"""
Shared Chromium manager for GEO Analyzer
One lazily launched browser per process, handed out page by page
"""

import asyncio
import functools
import logging
import os
import shutil
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import Browser, Page, Playwright, async_playwright

from config import settings

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

LAUNCH_ARGS = [
    "--disable-blink-features=AutomationControlled",
    "--disable-dev-shm-usage",  # Prevents memory issues in Docker
    "--no-sandbox",  # Required in some containerized environments
    "--disable-setuid-sandbox",
    "--disable-gpu",
]

CHROMIUM_CANDIDATES = (
    "chromium",
    "chromium-browser",
    "google-chrome",
    "google-chrome-stable",
)


@functools.lru_cache(maxsize=1)
def resolve_executable_path(configured: Optional[str] = None) -> Optional[str]:
    """
    Find a Chromium binary to launch.

    Returns the configured path when it exists, otherwise the first system
    Chromium on PATH, otherwise None (Playwright's bundled build).
    """
    if configured:
        if os.path.exists(configured):
            return configured
        logger.warning(f"⚠️ BROWSER_EXECUTABLE_PATH not found: {configured}")

    for name in CHROMIUM_CANDIDATES:
        path = shutil.which(name)
        if path:
            return path
    return None


class BrowserManager:
    """
    Owns one Chromium instance shared by every scrape in the process.

    Concurrent callers that find no browser wait on the same launch task,
    so the browser is launched at most once at a time. A disconnected
    browser, or one launched on another event loop, is replaced on next use.
    """

    def __init__(self, executable_path: Optional[str] = None):
        self.executable_path = executable_path
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._launch_task: Optional[asyncio.Task] = None
        self.launch_count = 0

    def _is_usable(self) -> bool:
        return (
            self._browser is not None
            and self._browser.is_connected()
            and self._loop is asyncio.get_running_loop()
        )

    async def _launch(self) -> Browser:
        if self._playwright is None or self._loop is not asyncio.get_running_loop():
            self._playwright = await async_playwright().start()
            self._loop = asyncio.get_running_loop()

        executable = resolve_executable_path(self.executable_path)
        logger.info(f"🚀 Launching browser ({executable or 'bundled chromium'})")
        browser = await self._playwright.chromium.launch(
            headless=True,
            executable_path=executable,
            args=LAUNCH_ARGS,
            timeout=settings.BROWSER_LAUNCH_TIMEOUT * 1000,
        )
        self._browser = browser
        self.launch_count += 1
        logger.info("✅ Browser launched")
        return browser

    async def get_browser(self) -> Browser:
        """Return the shared browser, launching or relaunching it if needed"""
        if self._is_usable():
            return self._browser

        task = self._launch_task
        if task is None or task.done() or task.get_loop() is not asyncio.get_running_loop():
            if self._browser is not None:
                logger.warning("⚠️ Browser disconnected or stale, relaunching")
                self._browser = None
            task = asyncio.ensure_future(self._launch())
            self._launch_task = task

        try:
            return await asyncio.shield(task)
        finally:
            if task.done():
                self._launch_task = None

    @asynccontextmanager
    async def open_page(self) -> AsyncIterator[Page]:
        """
        Yield a fresh page in its own browser context.
        The page and context are always closed on exit.
        """
        browser = await self.get_browser()
        context = await browser.new_context(
            viewport={"width": settings.VIEWPORT_WIDTH, "height": settings.VIEWPORT_HEIGHT},
            user_agent=USER_AGENT,
            ignore_https_errors=True,
        )
        page = None
        try:
            page = await context.new_page()
            yield page
        finally:
            try:
                if page is not None:
                    await page.close()
                await context.close()
            except Exception as cleanup_error:
                logger.warning(f"⚠️ Browser cleanup warning: {cleanup_error}")

    async def close(self):
        """Close the browser and stop Playwright"""
        try:
            if self._browser is not None and self._browser.is_connected():
                await self._browser.close()
            if self._playwright is not None:
                await self._playwright.stop()
            logger.info("🛑 Browser closed")
        except Exception as e:
            logger.warning(f"⚠️ Error closing browser: {str(e)}")
        finally:
            self._browser = None
            self._playwright = None
            self._loop = None
            self._launch_task = None


# Global browser manager instance
_browser_manager: Optional[BrowserManager] = None


def get_browser_manager() -> BrowserManager:
    """Get or create the global browser manager"""
    global _browser_manager
    if _browser_manager is None:
        _browser_manager = BrowserManager(executable_path=settings.BROWSER_EXECUTABLE_PATH)
    return _browser_manager


async def close_browser_manager():
    """Close the global browser manager"""
    global _browser_manager
    if _browser_manager is not None:
        await _browser_manager.close()
        _browser_manager = None
