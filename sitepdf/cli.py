"""
Command-line interface: crawl a site and write it out as one PDF.
"""

import argparse
import logging
import sys

from sitepdf.config import CrawlConfig
from sitepdf.errors import SitePdfError
from sitepdf.logger import setup_logger
from sitepdf.session import CrawlSession


def build_parser():
    parser = argparse.ArgumentParser(
        prog="sitepdf",
        description="Crawl a website from a start URL and convert its pages into a single PDF.",
    )
    parser.add_argument("url", help="Start URL (e.g. https://example.com/docs/)")
    parser.add_argument("--output", dest="output_file", help="Output PDF file (default: website.pdf)")
    parser.add_argument("--depth", dest="max_depth", type=int, help="Maximum crawl depth (default: 5)")
    parser.add_argument("--concurrent", dest="max_concurrency", type=int, help="Max concurrent workers (default: 8)")
    parser.add_argument("--min-delay", type=float, help="Minimum delay between requests to a host, seconds (default: 0.1)")
    parser.add_argument("--max-delay", type=float, help="Maximum delay between requests to a host, seconds (default: 2.0)")
    parser.add_argument("--timeout", type=float, help="Request timeout in seconds (default: 30)")
    parser.add_argument("--retries", dest="retry_attempts", type=int, help="Retries per page on transient errors (default: 3)")
    parser.add_argument("--user-agent", help="User-Agent header")
    parser.add_argument("--include", dest="include_patterns", action="append",
                        help="Regex a URL must match to be crawled (repeatable; replaces the defaults)")
    parser.add_argument("--exclude", dest="exclude_patterns", action="append",
                        help="Regex that excludes a URL (repeatable; replaces the defaults)")
    parser.add_argument("--scope", choices=("host", "site"),
                        help="'host': exact seed host only; 'site': registrable domain plus www (default: host)")
    parser.add_argument("--no-robots", dest="respect_robots", action="store_false", default=None,
                        help="Ignore robots.txt")
    parser.add_argument("--run-timeout", type=float, help="Wall-clock limit for the crawl, seconds")
    parser.add_argument("--memory-threshold", dest="memory_threshold_mb", type=int,
                        help="Spill artifacts to disk above this many MB (default: 500)")
    parser.add_argument("--no-toc", dest="include_toc", action="store_false", default=None,
                        help="Do not prepend a table of contents")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", help="Also write logs to this file")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    logger = setup_logger(log_file=args.log_file, level=logging.DEBUG if args.verbose else logging.INFO)

    overrides = {
        name: getattr(args, name)
        for name in CrawlConfig.option_names()
        if hasattr(args, name)
    }
    try:
        config = CrawlConfig.from_env(**overrides)
        report = CrawlSession(config).run(args.url)
    except SitePdfError as e:
        logger.error(f"Error: {e}")
        return 1

    if report.output is not None:
        logger.info(f"PDF generation complete: {report.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
