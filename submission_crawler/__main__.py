#!/usr/bin/env python3
"""
Command-line entry point for the submission gallery crawler.

All configuration flows through ``CrawlerRunConfig``.  Defaults for the
start URL and output directory can come from a ``.env`` file or the
``CRAWLER_START_URL`` / ``CRAWLER_OUTPUT_DIR`` environment variables.

Run with: python -m submission_crawler
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from .orchestrator import SubmissionCrawler
from .run_config import CrawlerRunConfig, PAGINATION_MODES, _DEFAULTS
from .storage import export_json

logger = logging.getLogger(__name__)


def _load_env() -> None:
    env_path = Path.cwd() / '.env'
    if env_path.exists():
        load_dotenv(env_path)
    else:
        load_dotenv()


def _configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%H:%M:%S'
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='submission-crawler',
        description='Save every submission of a paginated contest gallery as a text file',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m submission_crawler                                   # default gallery, follow "next"
  python -m submission_crawler https://x.devpost.com/submissions --max-pages 2
  python -m submission_crawler https://x.devpost.com/submissions/search?utf8=%E2%9C%93 \\
      --pagination parametric --total-pages 12 --workers 6
        """
    )
    parser.add_argument(
        'url', nargs='?', default=os.getenv('CRAWLER_START_URL'),
        help='Listing URL to start from (default: $CRAWLER_START_URL or built-in gallery)',
    )
    parser.add_argument(
        '--output-dir', type=str, default=os.getenv('CRAWLER_OUTPUT_DIR'),
        help='Output directory (default: $CRAWLER_OUTPUT_DIR or ./projects)',
    )
    parser.add_argument(
        '--pagination', choices=PAGINATION_MODES, default=_DEFAULTS['pagination'],
        help='Pagination strategy (default: %(default)s)',
    )
    parser.add_argument(
        '--total-pages', type=int, default=None,
        help='Listing page count for parametric pagination (default: discover)',
    )
    parser.add_argument('--max-pages', type=int, default=None, help='Stop after N listing pages')
    parser.add_argument(
        '--timeout', type=float, default=_DEFAULTS['timeout_seconds'],
        help='Timeout per page in seconds (default: %(default)s)',
    )
    parser.add_argument(
        '--workers', type=int, default=_DEFAULTS['max_workers'],
        help='Concurrent detail fetches (default: %(default)s)',
    )
    parser.add_argument(
        '--max-retries', type=int, default=_DEFAULTS['max_retries'],
        help='Retries per failed item (default: %(default)s)',
    )
    parser.add_argument('--report-json', type=str, help='Write a JSON run report to this path')
    parser.add_argument('--headed', action='store_true', help='Show the browser window')
    parser.add_argument('--no-block', action='store_true', help='Do not block images/fonts/media')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')
    return parser


def print_summary(stats: dict, aborted: bool) -> None:
    """Print crawl summary."""
    print("\n" + "=" * 65)
    print("CRAWL ABORTED" if aborted else "CRAWL COMPLETE")
    print("=" * 65)
    print(f"  Listing pages:       {stats.get('listing_pages', 0)}")
    print(f"  Projects found:      {stats.get('items_found', 0)}")
    print(f"  Projects saved:      {stats.get('items_saved', 0)}")
    print(f"  Failed projects:     {stats.get('items_failed', 0)}")
    if stats.get('items_retried', 0) > 0:
        print(f"  Retries:             {stats.get('items_retried', 0)}")
    print(f"  Output directory:    {stats.get('output_dir', '')}")
    print(f"  Total time:          {stats.get('elapsed_sec', 0):.1f}s")
    print(f"  Stop reason:         {stats.get('stop_reason', 'completed')}")
    print("=" * 65)


def main(argv=None) -> int:
    _load_env()
    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)

    try:
        cfg = CrawlerRunConfig.from_cli_args(args)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2
    cfg.log_summary()

    crawler = SubmissionCrawler(cfg)
    result = crawler.run()

    if cfg.report_json:
        path = export_json(result, cfg.report_json)
        print(f"  Exported: {path}")

    print_summary(result.stats, result.aborted)
    return 1 if result.aborted else 0


if __name__ == '__main__':
    sys.exit(main())
