"""
Owned Playwright browser session for the ordering site.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright

logger = logging.getLogger(__name__)

NAVIGATION_TIMEOUT_MS = 30_000
# The ordering page never reaches network idle; give its scripts time to render the menu
SETTLE_DELAY_MS = 3000


class BrowserSession:
    """One Chromium page pointed at the ordering site.

    acquire() launches lazily and is idempotent; release() tears everything
    down. use() is the entry point for operations: it holds a lock for the
    duration so that two operations never drive the page at the same time.
    """

    def __init__(self, target_url: str, headless: bool = False, slow_mo: int = 150):
        self.target_url = target_url
        self.headless = headless
        self.slow_mo = slow_mo
        self._lock = asyncio.Lock()
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    @property
    def is_open(self) -> bool:
        return self._page is not None

    async def acquire(self) -> Page:
        if self._page is not None:
            return self._page

        logger.info("Launching browser (headless=%s, slow_mo=%s)", self.headless, self.slow_mo)
        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless, slow_mo=self.slow_mo
            )
            self._context = await self._browser.new_context()
            page = await self._context.new_page()

            logger.info("Loading %s", self.target_url)
            await page.goto(self.target_url, wait_until='domcontentloaded', timeout=NAVIGATION_TIMEOUT_MS)
            await page.wait_for_timeout(SETTLE_DELAY_MS)
        except Exception:
            await self.release()
            raise

        self._page = page
        logger.info("Page loaded")
        return page

    async def release(self):
        browser, playwright = self._browser, self._playwright
        self._playwright = None
        self._browser = None
        self._context = None
        self._page = None
        try:
            if browser is not None:
                await browser.close()
        finally:
            if playwright is not None:
                await playwright.stop()

    @asynccontextmanager
    async def use(self) -> AsyncIterator[Page]:
        async with self._lock:
            yield await self.acquire()
