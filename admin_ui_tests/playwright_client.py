"""
Direct Playwright client
========================

Owns the Playwright driver, the browser process and the scenario's default
context. Additional isolated contexts (used by the mailbox poller) are handed
out through :meth:`PlaywrightClient.isolated_page`, which closes them on every
exit path.

Usage:
    async with PlaywrightClient() as client:
        await client.page.goto("https://stage.rainydayparents.com/login")

        async with client.isolated_page() as inbox_page:
            await inbox_page.goto("https://yopmail.com/?someone")
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import async_playwright, Browser, BrowserContext, Page, Playwright

from admin_ui_tests.config import settings

logger = logging.getLogger(__name__)


class PlaywrightClient:
    """
    In-process Playwright client.

    Example:
        async with PlaywrightClient(headless=True) as client:
            page = client.page
            await page.goto("https://example.com")
    """

    def __init__(
        self,
        browser_type: Optional[str] = None,
        headless: Optional[bool] = None,
        timeout: Optional[float] = None,
    ):
        """
        Args:
            browser_type: chromium, firefox or webkit (default from settings)
            headless: Run headless (default from settings)
            timeout: Default action timeout in seconds (default from settings)
        """
        self.browser_type = browser_type or settings.browser_type
        self.headless = settings.playwright_headless if headless is None else headless
        self.timeout = settings.action_timeout if timeout is None else timeout

        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    async def __aenter__(self) -> "PlaywrightClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def connect(self) -> None:
        """Launch the browser and create the default context and page."""
        self._playwright = await async_playwright().start()

        if self.browser_type == "firefox":
            self._browser = await self._playwright.firefox.launch(headless=self.headless)
        elif self.browser_type == "webkit":
            self._browser = await self._playwright.webkit.launch(headless=self.headless)
        else:
            self._browser = await self._playwright.chromium.launch(headless=self.headless)
        logger.debug(f"Launched {self.browser_type} (headless={self.headless})")

        self._context = await self.new_context()
        self._page = await self._context.new_page()

    async def new_context(self, **kwargs) -> BrowserContext:
        """Create a new browser context with the client's default timeout."""
        if not self._browser:
            raise RuntimeError("Client not connected. Use 'async with' or call connect()")

        context = await self._browser.new_context(**kwargs)
        context.set_default_timeout(self.timeout * 1000)
        return context

    @asynccontextmanager
    async def isolated_page(self, **kwargs) -> AsyncIterator[Page]:
        """Yield a page in a fresh context that shares nothing with the scenario.

        The context is closed when the block exits, however it exits.
        """
        context = await self.new_context(**kwargs)
        try:
            page = await context.new_page()
            yield page
        finally:
            try:
                await context.close()
                logger.debug("Closed isolated context")
            except Exception as exc:
                logger.warning(f"Error closing isolated context: {exc}")

    async def close(self) -> None:
        """Close all connections and cleanup resources."""
        if self._page:
            await self._page.close()
            self._page = None

        if self._context:
            await self._context.close()
            self._context = None

        if self._browser:
            await self._browser.close()
            self._browser = None

        if self._playwright:
            await self._playwright.stop()
            self._playwright = None

    @property
    def browser(self) -> Browser:
        if not self._browser:
            raise RuntimeError("Client not connected")
        return self._browser

    @property
    def context(self) -> BrowserContext:
        if not self._context:
            raise RuntimeError("Client not connected")
        return self._context

    @property
    def page(self) -> Page:
        if not self._page:
            raise RuntimeError("Client not connected or page not created")
        return self._page
