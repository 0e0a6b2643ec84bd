"""
Listing and detail extractors.

Both operate on an already-loaded Playwright ``Page`` and only use
``query_selector`` / ``query_selector_all`` and element text/attribute reads.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from playwright.async_api import ElementHandle, Page

from .errors import MissingContent
from .models import ExtractedDocument, ListingEntry
from .utils import absolute_http_url

logger = logging.getLogger(__name__)

NO_CONTENT_TEXT = "No content found."


async def _trimmed_text(element: Optional[ElementHandle]) -> Optional[str]:
    if element is None:
        return None
    text = await element.text_content()
    text = (text or "").strip()
    return text or None


async def extract_listing(
    page: Page,
    item_selector: str,
    link_selector: str,
    title_selector: Optional[str] = None,
) -> List[ListingEntry]:
    """
    Return the entries of a listing page in document order.

    For every element matching ``item_selector`` the nested ``link_selector``
    anchor supplies the detail URL (the item itself is used when it carries
    an ``href``), and the nested ``title_selector`` heading supplies the
    title.  Items without a crawlable href are skipped.
    """
    entries: List[ListingEntry] = []
    items = await page.query_selector_all(item_selector)
    for index, item in enumerate(items):
        anchor = await item.query_selector(link_selector)
        href = await (anchor or item).get_attribute('href')
        detail_url = absolute_http_url(href, page.url)
        if not detail_url:
            logger.debug(f"[LISTING] Item {index + 1} has no crawlable href, skipping")
            continue

        title = None
        if title_selector:
            title = await _trimmed_text(await item.query_selector(title_selector))

        entries.append(ListingEntry(detail_url=detail_url, title=title))
    return entries


async def extract_detail(
    page: Page,
    content_selector: str,
    title_selector: Optional[str] = None,
    known_title: Optional[str] = None,
) -> ExtractedDocument:
    """
    Extract the content region's text and the entry title.

    Raises:
        MissingContent: nothing matches ``content_selector``.
    """
    content = await page.query_selector(content_selector)
    if content is None:
        raise MissingContent(
            f"Content region '{content_selector}' not found", url=page.url
        )

    body_text = await content.text_content()
    if not body_text or not body_text.strip():
        body_text = NO_CONTENT_TEXT

    title = known_title or None
    if title is None and title_selector:
        title = await _trimmed_text(await content.query_selector(title_selector))

    return ExtractedDocument(title=title, body_text=body_text)
