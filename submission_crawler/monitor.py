"""
Crawl Monitor
=============
Progress tracking for the gallery crawl.

Tracks:
- Listing pages visited
- Items found / saved / failed / retried
- Items per second (overall)
- Active item workers

Async-safe: counters are guarded by an asyncio.Lock.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class CrawlMetrics:
    """Snapshot of all crawler metrics at a point in time."""
    listing_pages: int = 0
    items_found: int = 0
    items_saved: int = 0
    items_failed: int = 0
    items_retried: int = 0
    active_workers: int = 0
    max_workers: int = 0
    items_per_sec: float = 0.0
    elapsed_sec: float = 0.0
    stop_reason: str = ""

    def to_stats(self) -> dict:
        return {
            'listing_pages': self.listing_pages,
            'items_found': self.items_found,
            'items_saved': self.items_saved,
            'items_failed': self.items_failed,
            'items_retried': self.items_retried,
            'items_per_sec': self.items_per_sec,
            'elapsed_sec': self.elapsed_sec,
            'workers': self.max_workers,
            'stop_reason': self.stop_reason,
        }


class CrawlMonitor:
    """
    Usage::

        monitor = CrawlMonitor(max_workers=4)
        await monitor.start()
        await monitor.record_listing_page(found=24)
        await monitor.record_item(saved=True)
        metrics = await monitor.snapshot()
        await monitor.stop("completed")
    """

    def __init__(self, max_workers: int = 4, report_interval: float = 10.0):
        self._lock = asyncio.Lock()
        self._start_time: float = 0.0
        self._max_workers = max_workers
        self._report_interval = report_interval

        self._listing_pages = 0
        self._items_found = 0
        self._items_saved = 0
        self._items_failed = 0
        self._items_retried = 0
        self._active_workers = 0

        self._reporter_task: Optional[asyncio.Task] = None
        self._running = False
        self._stop_reason = ""

    async def start(self) -> None:
        """Start the monitor and periodic reporter."""
        self._start_time = time.monotonic()
        self._running = True
        self._reporter_task = asyncio.create_task(self._reporter_loop())

    async def stop(self, reason: str = "completed") -> None:
        """Stop the monitor."""
        self._running = False
        self._stop_reason = reason
        if self._reporter_task:
            self._reporter_task.cancel()
            try:
                await self._reporter_task
            except asyncio.CancelledError:
                pass
            self._reporter_task = None

    async def record_listing_page(self, found: int) -> None:
        async with self._lock:
            self._listing_pages += 1
            self._items_found += found

    async def record_item(self, saved: bool) -> None:
        async with self._lock:
            if saved:
                self._items_saved += 1
            else:
                self._items_failed += 1

    async def record_retry(self) -> None:
        async with self._lock:
            self._items_retried += 1

    async def worker_started(self) -> None:
        async with self._lock:
            self._active_workers += 1

    async def worker_finished(self) -> None:
        async with self._lock:
            self._active_workers = max(0, self._active_workers - 1)

    async def snapshot(self) -> CrawlMetrics:
        """Take a consistent snapshot of all metrics."""
        now = time.monotonic()
        async with self._lock:
            elapsed = now - self._start_time if self._start_time else 0.0
            ips = self._items_saved / elapsed if elapsed > 0 else 0.0
            return CrawlMetrics(
                listing_pages=self._listing_pages,
                items_found=self._items_found,
                items_saved=self._items_saved,
                items_failed=self._items_failed,
                items_retried=self._items_retried,
                active_workers=self._active_workers,
                max_workers=self._max_workers,
                items_per_sec=round(ips, 2),
                elapsed_sec=round(elapsed, 2),
                stop_reason=self._stop_reason,
            )

    async def _reporter_loop(self) -> None:
        """Periodically log metrics."""
        while self._running:
            await asyncio.sleep(self._report_interval)
            if not self._running:
                break
            m = await self.snapshot()
            logger.info(
                f"[MONITOR] "
                f"pages={m.listing_pages} "
                f"found={m.items_found} "
                f"saved={m.items_saved} "
                f"fail={m.items_failed} "
                f"workers={m.active_workers}/{m.max_workers} "
                f"speed={m.items_per_sec:.1f} items/s "
                f"elapsed={m.elapsed_sec:.0f}s"
            )

    def format_summary(self, metrics: CrawlMetrics) -> str:
        """Format a human-readable summary string."""
        lines = [
            "=" * 65,
            "  CRAWL SUMMARY",
            "=" * 65,
            f"  Listing pages:       {metrics.listing_pages}",
            f"  Items found:         {metrics.items_found}",
            f"  Items saved:         {metrics.items_saved}",
            f"  Items failed:        {metrics.items_failed}",
            f"  Items retried:       {metrics.items_retried}",
            "-" * 65,
            f"  Workers:             {metrics.max_workers}",
            f"  Speed:               {metrics.items_per_sec:.2f} items/sec",
            f"  Elapsed time:        {metrics.elapsed_sec:.1f} s",
            f"  Stop reason:         {metrics.stop_reason}",
            "=" * 65,
        ]
        return "\n".join(lines)
