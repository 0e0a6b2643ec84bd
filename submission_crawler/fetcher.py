"""
Page Fetcher
============
Opens a page in the shared browser context, navigates, and waits for a
marker element.  The page is always closed when the ``async with`` block
exits, whatever the outcome.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import BrowserContext, Page
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeout

from .errors import NavigationFailure, PageTimeout

logger = logging.getLogger(__name__)


class PageFetcher:
    """Loads URLs into fresh pages of ``context``."""

    def __init__(self, context: BrowserContext, timeout_ms: int = 10000):
        self.context = context
        self.timeout_ms = timeout_ms

    @asynccontextmanager
    async def open(
        self,
        url: str,
        marker_selector: str,
        timeout_ms: Optional[int] = None,
    ) -> AsyncIterator[Page]:
        """
        Navigate to ``url`` and wait for ``marker_selector`` to be attached.

        Returns control once the DOM is parsed; the page may still be loading
        images or scripts.

        Raises:
            NavigationFailure: navigation errored or timed out.
            PageTimeout: the marker never appeared within ``timeout_ms``.
        """
        timeout = timeout_ms or self.timeout_ms
        page = await self.context.new_page()
        try:
            try:
                await page.goto(url, timeout=timeout, wait_until='domcontentloaded')
            except PlaywrightTimeout as e:
                raise NavigationFailure(f"Navigation timed out: {e}", url=url) from e
            except PlaywrightError as e:
                raise NavigationFailure(f"Navigation failed: {e}", url=url) from e

            try:
                await page.wait_for_selector(
                    marker_selector, state='attached', timeout=timeout
                )
            except PlaywrightTimeout as e:
                raise PageTimeout(url, marker_selector, timeout) from e

            yield page
        finally:
            try:
                await page.close()
            except PlaywrightError as e:
                logger.debug(f"Error closing page {url[:70]}: {e}")
