"""
Submission Gallery Crawler
Walks a paginated contest submission gallery with Playwright and saves the
text of every submission's detail page as ``<title>.txt``.

CLI Usage:
    python -m submission_crawler [url] [options]

    Options:
        --pagination    link (follow "next" control) | parametric (&page=k)
        --total-pages   Number of listing pages for parametric pagination
        --max-pages     Stop after this many listing pages
        --timeout       Per-page timeout in seconds (default: 10)
        --workers       Concurrent detail fetches (default: 4)
        --output-dir    Where the .txt files go (default: projects)
        --report-json   Write a JSON run report
"""

from .errors import CrawlError, NavigationFailure, PageTimeout, MissingContent, WriteFailure
from .models import CrawlResult, CrawlState, ExtractedDocument, ListingEntry, OutputRecord
from .sanitizer import sanitize_title
from .fetcher import PageFetcher
from .extractors import extract_listing, extract_detail
from .pager import Pager, ParametricPager, LinkFollowingPager, build_pager
from .run_config import CrawlerRunConfig
from .orchestrator import SubmissionCrawler

__all__ = [
    'SubmissionCrawler',
    'CrawlerRunConfig',
    'CrawlResult',
    'CrawlState',
    'ListingEntry',
    'ExtractedDocument',
    'OutputRecord',
    'PageFetcher',
    'extract_listing',
    'extract_detail',
    'sanitize_title',
    # Pagination
    'Pager',
    'ParametricPager',
    'LinkFollowingPager',
    'build_pager',
    # Errors
    'CrawlError',
    'NavigationFailure',
    'PageTimeout',
    'MissingContent',
    'WriteFailure',
]

__version__ = '1.0.0'
