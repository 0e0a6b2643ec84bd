"""
Utility Functions
Retry logic and URL helpers.
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Optional, Tuple, Type
from urllib.parse import urljoin, urlparse

logger = logging.getLogger(__name__)


class RetryPolicy:
    """
    Bounded retry with exponential backoff for async operations.
    """

    def __init__(
        self,
        max_retries: int = 0,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        exponential_base: float = 2.0,
        jitter: bool = True,
    ):
        """
        Args:
            max_retries: Retry attempts after the first try (0 = no retry)
            base_delay: Initial delay between retries in seconds
            max_delay: Maximum delay between retries
            exponential_base: Base for exponential backoff
            jitter: Add random jitter (±25%) to each delay
        """
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter

    def calculate_delay(self, attempt: int) -> float:
        """Delay in seconds before retry number ``attempt`` (0-indexed)."""
        delay = self.base_delay * (self.exponential_base ** attempt)
        delay = min(delay, self.max_delay)

        if self.jitter:
            jitter_range = delay * 0.25
            delay += random.uniform(-jitter_range, jitter_range)

        return max(0, delay)

    async def run(
        self,
        func: Callable[[], Awaitable[Any]],
        retry_on: Tuple[Type[BaseException], ...],
        on_retry: Optional[Callable[[int, BaseException], Awaitable[None]]] = None,
    ) -> Any:
        """
        Await ``func()`` and retry on the given exception types.

        Raises:
            The last exception once all attempts are exhausted, or any
            exception not listed in ``retry_on`` immediately.
        """
        attempt = 0
        while True:
            try:
                return await func()
            except retry_on as e:
                if attempt >= self.max_retries:
                    raise
                delay = self.calculate_delay(attempt)
                logger.info(
                    f"[RETRY] attempt {attempt + 1}/{self.max_retries} "
                    f"in {delay:.2f}s after: {e}"
                )
                if on_retry:
                    await on_retry(attempt, e)
                await asyncio.sleep(delay)
                attempt += 1


def absolute_http_url(href: Optional[str], base_url: str) -> Optional[str]:
    """Resolve ``href`` against ``base_url``; None unless the result is http(s)."""
    if not href:
        return None
    href = href.strip()
    if not href or href.lower().startswith(('javascript:', 'mailto:', 'tel:', 'data:', '#')):
        return None
    url = urljoin(base_url, href) if base_url else href
    parsed = urlparse(url)
    if parsed.scheme not in ('http', 'https') or not parsed.netloc:
        return None
    return url
