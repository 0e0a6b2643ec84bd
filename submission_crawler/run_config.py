"""
Unified Run Configuration
=========================
Single source of truth for all crawler defaults, selectors and limits.

The CLI populates it from flags (and ``.env`` / environment defaults); the
orchestrator, fetcher, pager and browser session all read from this one
immutable object.  Nothing in the package keeps module-level mutable
configuration.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Canonical defaults (the ONLY place these values live)
# ---------------------------------------------------------------------------
_DEFAULTS = {
    "start_url": (
        "https://googlechromeai2025.devpost.com/submissions/search?utf8=%E2%9C%93"
        "&filter%5Bwhich+category+are+you+submitting+to%3F%5D%5B%5D=chrome+extension"
    ),
    "output_dir": "projects",
    "pagination": "link",            # "link" (follow next control) | "parametric" (&page=k)
    "total_pages": None,             # parametric only; None = discover from first listing page
    "max_pages": None,               # hard cap on listing pages; None = unlimited
    "timeout_seconds": 10,           # per navigation / marker wait
    "max_workers": 4,                # concurrent detail fetches per listing page
    "max_retries": 0,                # per-item retries (0 = fail fast)
    "retry_base_delay": 1.0,
    "headless": True,
    "block_resources": True,         # skip images, fonts, media
    "user_agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    ),
    # Selectors
    "gallery_item_selector": "div.gallery-item",
    "item_link_selector": "a.link-to-software",
    "item_title_selector": "h5",
    "next_page_selector": 'a[rel="next"]',
    "page_count_selector": "ul.pagination li a",
    "detail_marker_selector": "body",   # detail pages: wait for the document only
    "detail_content_selector": "#app-details-left",
    "detail_title_selector": "h1",   # relative to the content region
    "report_json": None,
}

PAGINATION_MODES = ("link", "parametric")


@dataclass(frozen=True)
class CrawlerRunConfig:
    """
    Immutable configuration consumed by every crawler subsystem.

    Populate via:
      - ``CrawlerRunConfig()``                 → all defaults
      - ``CrawlerRunConfig(max_workers=8)``    → override one value
      - ``CrawlerRunConfig.from_cli_args(ns)`` → from argparse Namespace
    """

    # ---- Target ----
    start_url: str = _DEFAULTS["start_url"]
    output_dir: str = _DEFAULTS["output_dir"]

    # ---- Pagination ----
    pagination: str = _DEFAULTS["pagination"]
    total_pages: Optional[int] = _DEFAULTS["total_pages"]
    max_pages: Optional[int] = _DEFAULTS["max_pages"]

    # ---- Limits ----
    timeout_seconds: float = _DEFAULTS["timeout_seconds"]
    max_workers: int = _DEFAULTS["max_workers"]
    max_retries: int = _DEFAULTS["max_retries"]
    retry_base_delay: float = _DEFAULTS["retry_base_delay"]

    # ---- Browser ----
    headless: bool = _DEFAULTS["headless"]
    block_resources: bool = _DEFAULTS["block_resources"]
    user_agent: str = _DEFAULTS["user_agent"]

    # ---- Selectors ----
    gallery_item_selector: str = _DEFAULTS["gallery_item_selector"]
    item_link_selector: str = _DEFAULTS["item_link_selector"]
    item_title_selector: str = _DEFAULTS["item_title_selector"]
    next_page_selector: str = _DEFAULTS["next_page_selector"]
    page_count_selector: str = _DEFAULTS["page_count_selector"]
    detail_marker_selector: str = _DEFAULTS["detail_marker_selector"]
    detail_content_selector: str = _DEFAULTS["detail_content_selector"]
    detail_title_selector: Optional[str] = _DEFAULTS["detail_title_selector"]

    # ---- Reporting ----
    report_json: Optional[str] = _DEFAULTS["report_json"]

    def __post_init__(self):
        if self.pagination not in PAGINATION_MODES:
            raise ValueError(
                f"pagination must be one of {PAGINATION_MODES}, got {self.pagination!r}"
            )
        if not self.start_url:
            raise ValueError("start_url is required")
        if self.total_pages is not None and self.total_pages < 1:
            raise ValueError("total_pages must be >= 1")
        if self.max_pages is not None and self.max_pages < 1:
            raise ValueError("max_pages must be >= 1")
        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be > 0")

    @property
    def timeout_ms(self) -> int:
        return int(self.timeout_seconds * 1000)

    # -----------------------------------------------------------------------
    # Factory helpers
    # -----------------------------------------------------------------------
    @classmethod
    def from_cli_args(cls, args) -> "CrawlerRunConfig":
        """Build config from an argparse Namespace (``__main__.py``)."""
        return cls(
            start_url=getattr(args, "url", None) or _DEFAULTS["start_url"],
            output_dir=getattr(args, "output_dir", None) or _DEFAULTS["output_dir"],
            pagination=getattr(args, "pagination", _DEFAULTS["pagination"]),
            total_pages=getattr(args, "total_pages", None),
            max_pages=getattr(args, "max_pages", None),
            timeout_seconds=getattr(args, "timeout", _DEFAULTS["timeout_seconds"]),
            max_workers=getattr(args, "workers", _DEFAULTS["max_workers"]),
            max_retries=getattr(args, "max_retries", _DEFAULTS["max_retries"]),
            headless=not getattr(args, "headed", False),
            block_resources=not getattr(args, "no_block", False),
            report_json=getattr(args, "report_json", None),
        )

    # -----------------------------------------------------------------------
    # Logging helper
    # -----------------------------------------------------------------------
    def log_summary(self) -> None:
        """Emit a structured summary to the logger."""
        logger.info("=" * 60)
        logger.info("CRAWL RUN CONFIG")
        logger.info("=" * 60)
        logger.info(f"  URL:              {self.start_url}")
        logger.info(f"  Output Dir:       {self.output_dir}")
        logger.info(f"  Pagination:       {self.pagination}")
        if self.pagination == "parametric":
            logger.info(f"  Total Pages:      {self.total_pages or 'discover'}")
        logger.info(f"  Max Pages:        {self.max_pages or 'unlimited'}")
        logger.info(f"  Timeout:          {self.timeout_seconds}s per page")
        logger.info(f"  Workers:          {self.max_workers}")
        if self.max_retries:
            logger.info(f"  Retries:          {self.max_retries} per item")
        logger.info(f"  Headless:         {self.headless}")
        if self.report_json:
            logger.info(f"  Report:           {self.report_json}")
        logger.info("=" * 60)
