"""
Crawl Errors
============
Exception taxonomy shared by the fetcher, extractors, pager and writer.

Per-item failures are recovered by the orchestrator (logged, item skipped);
listing-level ``NavigationFailure`` / ``PageTimeout`` abort the run.
"""

from __future__ import annotations

from typing import Optional


class CrawlError(RuntimeError):
    """Base class for all crawl failures. Carries the URL being processed."""

    kind = "error"

    def __init__(self, message: str, url: Optional[str] = None):
        super().__init__(message)
        self.url = url


class NavigationFailure(CrawlError):
    """Network / DNS / load error while navigating to a page."""

    kind = "navigation"


class PageTimeout(CrawlError):
    """A required marker element never appeared within the timeout."""

    kind = "timeout"

    def __init__(self, url: str, selector: str, timeout_ms: int):
        super().__init__(
            f"Marker '{selector}' not found within {timeout_ms}ms", url=url
        )
        self.selector = selector
        self.timeout_ms = timeout_ms


class MissingContent(CrawlError):
    """Detail page loaded but the content region is absent."""

    kind = "missing_content"


class WriteFailure(CrawlError):
    """Persisting an output record failed."""

    kind = "write"
