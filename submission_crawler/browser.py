"""
Browser Session
===============
Owns the Playwright driver, the Chromium browser and the single
``BrowserContext`` every page of a run is opened from.

Usage::

    async with BrowserSession(config) as context:
        page = await context.new_page()
"""

from __future__ import annotations

import logging
from typing import Optional

from playwright.async_api import async_playwright, Browser, BrowserContext
from playwright.async_api import Error as PlaywrightError

from .run_config import CrawlerRunConfig

logger = logging.getLogger(__name__)

# Resource types to block for speed
_BLOCKED_RESOURCE_TYPES = frozenset([
    "image", "media", "font",
])


class BrowserSession:
    """Async context manager around a headless Chromium session."""

    def __init__(self, config: CrawlerRunConfig):
        self.config = config
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    async def __aenter__(self) -> BrowserContext:
        try:
            return await self.open()
        except BaseException:
            await self.close()
            raise

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def open(self) -> BrowserContext:
        """Start Playwright, launch Chromium and create the browser context."""
        logger.info("Launching browser...")
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(
            headless=self.config.headless,
            args=[
                '--disable-gpu',
                '--no-sandbox',
                '--disable-dev-shm-usage',
                '--disable-extensions',
                '--no-first-run',
            ]
        )
        self._context = await self._browser.new_context(
            user_agent=self.config.user_agent,
            viewport={'width': 1920, 'height': 1080},
            locale='en-US',
        )

        if self.config.block_resources:
            await self._context.route("**/*", self._route_handler)

        logger.info(
            f"Playwright browser initialized "
            f"(headless={self.config.headless}, "
            f"blocking={'images,fonts,media' if self.config.block_resources else 'none'})"
        )
        return self._context

    async def _route_handler(self, route) -> None:
        """Block unnecessary resources for speed."""
        if route.request.resource_type in _BLOCKED_RESOURCE_TYPES:
            await route.abort()
            return
        await route.continue_()

    async def close(self) -> None:
        """Close context, browser and Playwright. Safe to call more than once."""
        if self._context:
            try:
                await self._context.close()
            except PlaywrightError as e:
                logger.debug(f"Error closing context: {e}")
            self._context = None
        if self._browser:
            try:
                await self._browser.close()
            except PlaywrightError as e:
                logger.debug(f"Error closing browser: {e}")
            self._browser = None
        if self._playwright:
            await self._playwright.stop()
            self._playwright = None
            logger.info("Browser closed.")
