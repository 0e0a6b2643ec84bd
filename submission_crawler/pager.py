"""
Pagination Strategies
=====================
A ``Pager`` decides which listing URL comes next.  Exactly one strategy is
chosen per run (see ``build_pager``):

- ``ParametricPager``:    ``base&page=k`` for ``k = 1..N``; stops after N.
- ``LinkFollowingPager``: clicks the visible "next" control and reads the
                          resulting URL; stops when the control is missing.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import Optional

from playwright.async_api import Page
from playwright.async_api import Error as PlaywrightError

from .errors import NavigationFailure
from .models import CrawlState
from .run_config import CrawlerRunConfig

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r'\d+')


class Pager(ABC):
    """Capability shared by all pagination strategies."""

    @abstractmethod
    def first_url(self) -> str:
        """URL of the first listing page."""

    @abstractmethod
    async def advance(self, page: Page, state: CrawlState) -> Optional[str]:
        """
        Return the next listing URL, or None when pagination is exhausted.

        ``page`` is the listing page just processed (still open).
        """


class ParametricPager(Pager):
    """Builds listing URLs from an incrementing ``page`` query parameter."""

    def __init__(
        self,
        base_url: str,
        total_pages: Optional[int] = None,
        page_count_selector: Optional[str] = None,
    ):
        self.base_url = base_url
        self.total_pages = total_pages
        self.page_count_selector = page_count_selector

    def url_for(self, page_number: int) -> str:
        sep = '&' if '?' in self.base_url else '?'
        return f"{self.base_url}{sep}page={page_number}"

    def first_url(self) -> str:
        return self.url_for(1)

    async def advance(self, page: Page, state: CrawlState) -> Optional[str]:
        if self.total_pages is None:
            self.total_pages = await self.discover_total_pages(page)

        next_index = state.current_page_index + 1
        if next_index > self.total_pages:
            logger.info(f"[PAGER] Reached page {self.total_pages} of {self.total_pages}")
            return None
        return self.url_for(next_index)

    async def discover_total_pages(self, page: Page) -> int:
        """Largest page number among the pagination links, 1 if none."""
        numbers = []
        if self.page_count_selector:
            for el in await page.query_selector_all(self.page_count_selector):
                text = await el.text_content() or ""
                numbers.extend(int(n) for n in _DIGITS.findall(text))
        if not numbers:
            logger.warning(
                f"[PAGER] Could not discover page count via "
                f"'{self.page_count_selector}'; assuming a single page"
            )
            return 1
        total = max(numbers)
        logger.info(f"[PAGER] Discovered {total} listing pages")
        return total


class LinkFollowingPager(Pager):
    """Follows the site's own "next page" control."""

    def __init__(self, start_url: str, next_selector: str, timeout_ms: int = 10000):
        self.start_url = start_url
        self.next_selector = next_selector
        self.timeout_ms = timeout_ms

    def first_url(self) -> str:
        return self.start_url

    async def advance(self, page: Page, state: CrawlState) -> Optional[str]:
        next_button = await page.query_selector(self.next_selector)
        if next_button is None or not await next_button.is_visible():
            logger.info('[PAGER] No "Next" control found. Pagination complete.')
            return None

        logger.info("[PAGER] Navigating to next page...")
        try:
            await next_button.click(timeout=self.timeout_ms)
            await page.wait_for_load_state('domcontentloaded', timeout=self.timeout_ms)
        except PlaywrightError as e:
            raise NavigationFailure(
                f"Next-page navigation failed: {e}", url=state.current_listing_url
            ) from e
        return page.url


def build_pager(config: CrawlerRunConfig) -> Pager:
    """Select the pagination strategy configured for this run."""
    if config.pagination == "parametric":
        return ParametricPager(
            config.start_url,
            total_pages=config.total_pages,
            page_count_selector=config.page_count_selector,
        )
    return LinkFollowingPager(
        config.start_url,
        config.next_page_selector,
        timeout_ms=config.timeout_ms,
    )
