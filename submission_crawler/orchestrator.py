"""
Crawl Orchestrator
==================
Walks the paginated submission gallery and saves one text file per entry.

Loop (one listing page at a time):

    Listing    open listing page, wait for gallery items, extract entries
    ItemFetch  fetch every entry's detail page through a bounded worker
               pool (asyncio.Semaphore); each item fails on its own
    Advancing  ask the Pager for the next listing URL
    Done       close the browser session

Failure policy:
- Detail-page timeouts, navigation errors, missing content and write errors
  are logged, recorded in ``CrawlResult.errors`` and the item is skipped.
- Any other exception raised for one item is logged with a traceback and
  recorded the same way.
- A listing page that cannot be loaded aborts the run; files already written
  stay on disk.
- Every page is closed on every path, and the browser session is closed
  exactly once, after all item workers have finished or been cancelled.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import AsyncContextManager, Callable, Dict, List, Optional

from playwright.async_api import BrowserContext
from playwright.async_api import Error as PlaywrightError

from .browser import BrowserSession
from .errors import CrawlError, NavigationFailure, PageTimeout, WriteFailure
from .extractors import extract_detail, extract_listing
from .fetcher import PageFetcher
from .models import CrawlResult, CrawlState, ListingEntry, OutputRecord
from .monitor import CrawlMonitor
from .pager import Pager, build_pager
from .run_config import CrawlerRunConfig
from .sanitizer import sanitize_title
from .storage import OutputWriter
from .utils import RetryPolicy

logger = logging.getLogger(__name__)

SessionFactory = Callable[[CrawlerRunConfig], AsyncContextManager[BrowserContext]]


class SubmissionCrawler:
    """
    Paginated gallery crawler.

    Usage::

        config = CrawlerRunConfig(pagination="parametric", total_pages=5)
        crawler = SubmissionCrawler(config)
        result = await crawler.crawl()

        # Or from sync code:
        result = crawler.run()

    ``session_factory`` builds the async context manager that yields the
    browser context; it defaults to ``BrowserSession``.
    """

    def __init__(
        self,
        config: Optional[CrawlerRunConfig] = None,
        session_factory: Optional[SessionFactory] = None,
        pager: Optional[Pager] = None,
    ):
        self.config = config or CrawlerRunConfig()
        self._session_factory = session_factory or BrowserSession
        self.pager = pager or build_pager(self.config)
        self.writer = OutputWriter(self.config.output_dir)
        self.retry = RetryPolicy(
            max_retries=self.config.max_retries,
            base_delay=self.config.retry_base_delay,
        )

        # State (reset per crawl)
        self.monitor: Optional[CrawlMonitor] = None
        self._saved: List[str] = []
        self._errors: List[Dict] = []
        self._stop_requested = False

        self._progress_callback: Optional[Callable] = None

    def set_progress_callback(self, callback: Callable) -> None:
        """Set callback: callback(saved_count, saved_path, entry)"""
        self._progress_callback = callback

    def stop(self) -> None:
        """Request a graceful stop before the next listing page."""
        self._stop_requested = True
        logger.info("Stop requested")

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def run(self) -> CrawlResult:
        """Sync wrapper: run the async crawl from synchronous code."""
        return asyncio.run(self.crawl())

    async def crawl(self) -> CrawlResult:
        """Crawl every listing page the pager yields and save each entry."""
        self._saved.clear()
        self._errors.clear()
        self._stop_requested = False
        self.monitor = CrawlMonitor(max_workers=self.config.max_workers)

        state = CrawlState()
        stop_reason = "completed"
        aborted = False

        logger.info("=" * 65)
        logger.info("GALLERY CRAWL STARTED")
        logger.info(f"Start URL: {self.pager.first_url()}")
        logger.info(f"Pager: {type(self.pager).__name__}")
        logger.info(f"Workers: {self.config.max_workers}")
        logger.info(f"Output: {self.writer.output_dir}")
        logger.info("=" * 65)

        await self.monitor.start()
        try:
            self.writer.ensure_output_dir()
            async with self._session_factory(self.config) as context:
                fetcher = PageFetcher(context, timeout_ms=self.config.timeout_ms)
                stop_reason = await self._crawl_listings(fetcher, state)
        except WriteFailure as e:
            aborted = True
            stop_reason = f"Output directory unavailable: {e}"
            logger.error(f"[ABORT] Output directory {self.writer.output_dir}: {e}")
            self._record_error(e, page_index=None, index=None, url=None)
        except CrawlError as e:
            aborted = True
            stop_reason = f"Aborted on listing page {state.current_page_index}: {e}"
            logger.error(
                f"[ABORT] Listing page {state.current_page_index} "
                f"({e.url or state.current_listing_url}): {e}"
            )
            self._record_error(e, state.current_page_index, index=None,
                               url=e.url or state.current_listing_url)
        except Exception as e:
            aborted = True
            stop_reason = f"Error: {e}"
            logger.error(f"Crawl error: {e}", exc_info=True)
        finally:
            await self.monitor.stop(stop_reason)

        metrics = await self.monitor.snapshot()
        logger.info("\n" + self.monitor.format_summary(metrics))

        stats = metrics.to_stats()
        stats['output_dir'] = str(self.writer.output_dir)
        return CrawlResult(
            saved_files=list(self._saved),
            errors=list(self._errors),
            stats=stats,
            aborted=aborted,
        )

    # ------------------------------------------------------------------
    # Listing loop
    # ------------------------------------------------------------------

    async def _crawl_listings(self, fetcher: PageFetcher, state: CrawlState) -> str:
        """Run Listing → ItemFetch → Advancing until done; return the stop reason."""
        cfg = self.config
        url: Optional[str] = self.pager.first_url()

        while url:
            if self._stop_requested:
                return "User requested stop"

            state.visit(url)
            page_index = state.current_page_index
            logger.info(f"--- Scraping Page {page_index} ---")
            logger.info(f"URL: {url}")

            async with fetcher.open(url, cfg.gallery_item_selector) as page:
                entries = await extract_listing(
                    page,
                    cfg.gallery_item_selector,
                    cfg.item_link_selector,
                    cfg.item_title_selector,
                )
                await self.monitor.record_listing_page(len(entries))
                logger.info(f"[LISTING] Found {len(entries)} projects on page {page_index}")

                await self._process_entries(fetcher, entries, page_index)

                if cfg.max_pages and page_index >= cfg.max_pages:
                    logger.info(f"[LIMIT] Reached max_pages={cfg.max_pages}")
                    return f"MAX_PAGES limit reached ({cfg.max_pages})"

                next_url = await self.pager.advance(page, state)

            if next_url is None:
                return "Pagination exhausted"
            if state.has_visited(next_url):
                logger.warning(f"[PAGER] Next page {next_url} was already visited, stopping")
                return "Pagination returned an already visited page"

            state.current_page_index += 1
            url = next_url

        return "Pagination exhausted"

    # ------------------------------------------------------------------
    # Item workers
    # ------------------------------------------------------------------

    async def _process_entries(
        self,
        fetcher: PageFetcher,
        entries: List[ListingEntry],
        page_index: int,
    ) -> None:
        """Process one listing page's entries concurrently."""
        semaphore = asyncio.Semaphore(self.config.max_workers)
        tasks = [
            asyncio.create_task(
                self._process_entry(fetcher, semaphore, entry, page_index, i, len(entries))
            )
            for i, entry in enumerate(entries)
        ]
        try:
            await asyncio.gather(*tasks)
        finally:
            # Only reached with pending tasks if the page was interrupted
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _process_entry(
        self,
        fetcher: PageFetcher,
        semaphore: asyncio.Semaphore,
        entry: ListingEntry,
        page_index: int,
        index: int,
        total: int,
    ) -> Optional[Path]:
        """Fetch, extract and save a single entry. Failures are recorded, never raised."""
        async with semaphore:
            await self.monitor.worker_started()
            try:
                path = await self.retry.run(
                    lambda: self._fetch_and_save(fetcher, entry),
                    retry_on=(NavigationFailure, PageTimeout),
                    on_retry=self._on_retry,
                )
            except (CrawlError, PlaywrightError) as e:
                logger.error(
                    f"[ITEM] Error scraping project {index + 1}/{total} "
                    f"on page {page_index} at {entry.detail_url}: {e}"
                )
                self._record_error(e, page_index, index=index, url=entry.detail_url)
                await self.monitor.record_item(saved=False)
                return None
            except Exception as e:
                logger.error(
                    f"[ITEM] Unexpected error on project {index + 1}/{total} "
                    f"on page {page_index} at {entry.detail_url}: {e}",
                    exc_info=True,
                )
                self._record_error(e, page_index, index=index, url=entry.detail_url)
                await self.monitor.record_item(saved=False)
                return None
            finally:
                await self.monitor.worker_finished()

        self._saved.append(str(path))
        await self.monitor.record_item(saved=True)
        logger.info(f"[SAVED] ({index + 1}/{total}) {path.name}")

        if self._progress_callback:
            try:
                self._progress_callback(len(self._saved), str(path), entry)
            except Exception as e:
                logger.warning(f"Progress callback failed for {entry.detail_url}: {e}")
        return path

    async def _fetch_and_save(self, fetcher: PageFetcher, entry: ListingEntry) -> Path:
        cfg = self.config
        async with fetcher.open(entry.detail_url, cfg.detail_marker_selector) as page:
            document = await extract_detail(
                page,
                cfg.detail_content_selector,
                cfg.detail_title_selector,
                known_title=entry.title,
            )
        record = OutputRecord.from_document(sanitize_title(document.title), document)
        return self.writer.write(record)

    async def _on_retry(self, attempt: int, error: BaseException) -> None:
        await self.monitor.record_retry()

    def _record_error(
        self,
        error: BaseException,
        page_index: Optional[int],
        index: Optional[int],
        url: Optional[str],
    ) -> None:
        self._errors.append({
            'url': url,
            'error': str(error),
            'kind': getattr(error, 'kind', type(error).__name__),
            'page': page_index,
            'index': index,
        })
