"""
Crawl session: the end-to-end crawl-and-convert flow.
Validates the seed, loads robots.txt, runs the scheduler, assembles the
collected pages and reports statistics.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from sitepdf.assembler import PdfAssembler
from sitepdf.collector import PageCollector
from sitepdf.config import CrawlConfig
from sitepdf.errors import BaseURLUnreachable, FetchError, InvalidURL, ShutdownTimeout
from sitepdf.interfaces import Assembler, Fetcher, LinkExtractor, Renderer, RobotsSource, TitleExtractor
from sitepdf.metrics import CrawlStats
from sitepdf.models import PageResult
from sitepdf.normalizer import normalize_url, origin_of
from sitepdf.policy import ScopePolicy
from sitepdf.scheduler import CrawlScheduler

logger = logging.getLogger(__name__)


@dataclass
class SessionReport:
    seed_url: str
    output: Optional[Path]
    pages: List[PageResult]
    stats: dict


class CrawlSession:
    """
    Orchestrates one run. Collaborators default to the bundled implementations
    (requests, BeautifulSoup, Playwright, pypdf) and can be replaced for tests.
    """

    def __init__(
        self,
        config: Optional[CrawlConfig] = None,
        fetcher: Optional[Fetcher] = None,
        robots_source: Optional[RobotsSource] = None,
        link_extractor: Optional[LinkExtractor] = None,
        title_extractor: Optional[TitleExtractor] = None,
        renderer: Optional[Renderer] = None,
        assembler: Optional[Assembler] = None,
    ):
        self.config = config or CrawlConfig()
        self._owns_renderer = renderer is None

        if fetcher is None:
            from sitepdf.fetcher import PageFetcher
            fetcher = PageFetcher()
        if robots_source is None and self.config.respect_robots:
            from sitepdf.robots import RobotsFetcher
            robots_source = RobotsFetcher(self.config.user_agent, timeout=min(self.config.timeout, 10))
        if link_extractor is None:
            from sitepdf.parser import SoupExtractor
            link_extractor = SoupExtractor()
        if renderer is None:
            from sitepdf.renderer import PlaywrightRenderer
            renderer = PlaywrightRenderer(timeout=self.config.render_timeout, user_agent=self.config.user_agent)
        if assembler is None:
            toc_renderer = renderer if self.config.include_toc else None
            assembler = PdfAssembler(self.config.output_file, toc_renderer=toc_renderer)

        self.fetcher = fetcher
        self.robots_source = robots_source
        self.link_extractor = link_extractor
        self.title_extractor = title_extractor or link_extractor
        self.renderer = renderer
        self.assembler = assembler
        self.scheduler: Optional[CrawlScheduler] = None

    def validate_seed(self, raw_url: str) -> str:
        """Normalize and probe the seed; returns the final URL after redirects."""
        try:
            seed = normalize_url(raw_url, default_scheme=self.config.default_scheme)
        except InvalidURL as e:
            raise BaseURLUnreachable(f"Invalid URL: {raw_url} ({e.reason})") from e

        if not self.config.validate_seed:
            return seed
        try:
            final_url = self.fetcher.probe(seed, self.config.timeout, self.config.user_agent)
        except FetchError as e:
            raise BaseURLUnreachable(f"Failed to access {seed}: {e}") from e

        try:
            resolved = normalize_url(final_url, default_scheme=self.config.default_scheme)
        except InvalidURL:
            return seed
        if resolved != seed:
            logger.info(f"Seed {seed} redirected to {resolved}")
        return resolved

    def load_robots(self, seed: str):
        if not self.config.respect_robots or self.robots_source is None:
            return None
        return self.robots_source.fetch_robots(origin_of(seed))

    def _apply_crawl_delay(self, robots) -> CrawlConfig:
        """Raise the per-host spacing to the site's Crawl-delay when it asks for more."""
        delay = robots.crawl_delay(self.config.user_agent) if robots is not None else None
        if not delay or delay <= self.config.min_delay:
            return self.config
        delay = float(delay)
        logger.info(f"Honouring robots.txt Crawl-delay of {delay}s")
        return self.config.with_overrides(min_delay=delay, max_delay=max(self.config.max_delay, delay))

    def run(self, raw_url: str) -> SessionReport:
        logger.info(f"Starting crawl of {raw_url}")
        seed = self.validate_seed(raw_url)
        robots = self.load_robots(seed)
        config = self._apply_crawl_delay(robots)

        stats = CrawlStats()
        collector = PageCollector(memory_threshold_mb=self.config.memory_threshold_mb)
        self.scheduler = CrawlScheduler(
            config,
            fetcher=self.fetcher,
            link_extractor=self.link_extractor,
            title_extractor=self.title_extractor,
            renderer=self.renderer,
            policy=ScopePolicy(seed, config, robots=robots),
            collector=collector,
            stats=stats,
        )

        try:
            try:
                pages = self.scheduler.run(seed)
            except ShutdownTimeout as e:
                logger.error(f"{e}; assembling partial output")
                self._finish(seed, e.results, stats)
                raise
            return self._finish(seed, pages, stats)
        finally:
            collector.cleanup()
            if self._owns_renderer:
                self.renderer.close()

    def _finish(self, seed, pages, stats) -> SessionReport:
        output = None
        if not pages:
            logger.warning("No pages found to convert")
        else:
            logger.info(f"Generating PDF with {len(pages)} pages")
            output = self.assembler.assemble(pages)

        stats.log_summary(logger)
        if self.scheduler is not None:
            logger.debug(f"Policy decisions: {self.scheduler.policy.get_stats()}")
        return SessionReport(seed_url=seed, output=output, pages=pages, stats=stats.snapshot())
