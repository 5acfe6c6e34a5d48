"""
FILE DESCRIPTION: Crawl scheduler managing worker threads, retries, link discovery and the run lifecycle.
KEY FUNCTIONS/CLASSES: CrawlScheduler, CrawlerWorker

Run states: IDLE -> RUNNING -> DRAINING -> TERMINATED. A scheduler runs once.
"""

import logging
import threading
import time
from typing import List, Optional

from sitepdf.collector import PageCollector
from sitepdf.config import CrawlConfig
from sitepdf.errors import FetchError, InvalidURL, RenderError, ShutdownTimeout, UnsupportedContent
from sitepdf.frontier import Frontier
from sitepdf.interfaces import Fetcher, LinkExtractor, Renderer, TitleExtractor
from sitepdf.metrics import CrawlStats
from sitepdf.models import CrawlTask, PageResult, RunState
from sitepdf.normalizer import host_of, normalize_url
from sitepdf.policy import ScopePolicy
from sitepdf.throttle import PolitenessGovernor

logger = logging.getLogger(__name__)

_TRANSITIONS = {
    RunState.IDLE: RunState.RUNNING,
    RunState.RUNNING: RunState.DRAINING,
    RunState.DRAINING: RunState.TERMINATED,
}


# === CRAWLER WORKER ===

class CrawlerWorker(threading.Thread):
    """
    FLOW: take a task from the frontier (blocking) -> hand it to the scheduler ->
    always report task_done -> exit once the frontier is drained or closed.
    Per-task errors never escape the loop.
    """

    def __init__(self, scheduler, name):
        super().__init__(name=name, daemon=True)
        self.scheduler = scheduler
        self.frontier = scheduler.frontier
        self.tasks_handled = 0

    def log(self, level, msg, **kwargs):
        getattr(logger, level)(msg, extra={'context': self.name}, **kwargs)

    def run(self):
        self.log("debug", "started")
        while True:
            task = self.frontier.take()
            if task is None:
                break
            try:
                self.scheduler.process(task, self)
            except Exception as e:
                self.scheduler.stats.incr("pages_failed")
                self.log("error", f"Process error for {task.url}: {e}", exc_info=True)
            finally:
                self.tasks_handled += 1
                self.frontier.task_done(task)
        self.log("debug", f"stopped after {self.tasks_handled} task(s)")


# === SCHEDULER ===

class CrawlScheduler:
    """
    Bounded-concurrency crawl engine.
    Owns the shared run state (frontier, governor, collector, stats) and passes
    itself to every worker; collaborators are injected.
    """

    def __init__(
        self,
        config: CrawlConfig,
        fetcher: Fetcher,
        link_extractor: LinkExtractor,
        renderer: Renderer,
        policy: ScopePolicy,
        title_extractor: Optional[TitleExtractor] = None,
        frontier: Optional[Frontier] = None,
        governor: Optional[PolitenessGovernor] = None,
        collector: Optional[PageCollector] = None,
        stats: Optional[CrawlStats] = None,
    ):
        self.config = config
        self.fetcher = fetcher
        self.link_extractor = link_extractor
        self.title_extractor = title_extractor or link_extractor
        self.renderer = renderer
        self.policy = policy
        self.frontier = frontier or Frontier(max_depth=config.max_depth)
        self.governor = governor or PolitenessGovernor(
            min_delay=config.min_delay,
            max_delay=config.max_delay,
            backoff_factor=config.backoff_factor,
        )
        self.collector = collector or PageCollector(memory_threshold_mb=config.memory_threshold_mb)
        self.stats = stats or CrawlStats()
        self.workers: List[CrawlerWorker] = []
        self.seed_url = None

        self._cancel = threading.Event()
        self._state = RunState.IDLE
        self._state_lock = threading.Lock()

    # -------------------------------
    # LIFECYCLE
    # -------------------------------
    @property
    def state(self) -> RunState:
        with self._state_lock:
            return self._state

    def _advance(self, expected: RunState) -> None:
        with self._state_lock:
            if self._state is not expected:
                raise RuntimeError(f"scheduler is {self._state.value}, expected {expected.value}")
            self._state = _TRANSITIONS[expected]
        logger.debug(f"scheduler {expected.value} -> {_TRANSITIONS[expected].value}")

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def cancel(self) -> None:
        """Stop admitting work now; in-flight tasks finish within the shutdown grace."""
        if self._cancel.is_set():
            return
        self._cancel.set()
        discarded = self.frontier.close()
        logger.warning(f"Crawl cancelled ({discarded} pending task(s) dropped)")

    def run(self, seed_url: str) -> List[PageResult]:
        """
        Crawl from an already-normalized seed and return results ordered by (depth, url).
        Raises ShutdownTimeout (with partial results) if workers outlive the grace period.
        """
        self._advance(RunState.IDLE)
        self.seed_url = seed_url

        # The seed must be queued before workers start, or they'd see a drained frontier
        self.frontier.try_admit(seed_url, 0)
        self.workers = [CrawlerWorker(self, name=f"Worker-{i}") for i in range(self.config.max_concurrency)]
        for worker in self.workers:
            worker.start()
        logger.info(f"Crawling {seed_url} with {len(self.workers)} workers (max depth {self.config.max_depth})")

        try:
            drained = self.frontier.wait_drained(timeout=self.config.run_timeout)
            if not drained and not self.cancelled:
                logger.warning(f"Run timeout of {self.config.run_timeout}s reached")
                self.cancel()
        except KeyboardInterrupt:
            logger.warning("Interrupted by operator")
            self.cancel()

        return self._shutdown()

    def _shutdown(self) -> List[PageResult]:
        self._advance(RunState.RUNNING)
        self.frontier.close()

        deadline = time.monotonic() + self.config.shutdown_grace
        for worker in self.workers:
            worker.join(max(0.0, deadline - time.monotonic()))
        stragglers = [w.name for w in self.workers if w.is_alive()]

        self.collector.close()
        self._advance(RunState.DRAINING)
        self.stats.finish()

        results = self.collector.drain()
        stats = self.frontier.get_stats()
        logger.info(
            f"Crawl finished: {len(results)} page(s) collected, {stats['dispatched']} dispatched, "
            f"{stats['visited_count']} URL(s) seen"
        )
        if stragglers:
            raise ShutdownTimeout(stragglers, results)
        return results

    # -------------------------------
    # TASK PROCESSING
    # -------------------------------
    def process(self, task: CrawlTask, worker: CrawlerWorker) -> None:
        if task.depth > self.config.max_depth:
            worker.log("warning", f"Skipping {task.url}: depth {task.depth} exceeds {self.config.max_depth}")
            return

        is_seed = task.url == self.seed_url
        allowed, reason = self.policy.evaluate(task.url, is_seed=is_seed)
        if not allowed:
            worker.log("warning" if is_seed else "debug", f"Skipping {task.url}: {reason}")
            return

        try:
            response = self._fetch_with_retry(task.url, worker)
            if not response.is_html:
                raise UnsupportedContent(f"{task.url} is {response.content_type or 'no content type'}")
        except FetchError as e:
            self.stats.incr("fetch_errors")
            self.stats.incr("pages_failed")
            worker.log("error", f"Fetch failed for {task.url}: {e}")
            return
        except UnsupportedContent as e:
            self.stats.incr("unsupported_content")
            worker.log("debug", f"Ignoring non-HTML page: {e}")
            return

        page_url = self._resolve_final_url(task, response.final_url, worker)
        if page_url is None:
            return

        # Links are admitted before rendering so a render failure can't starve descendants
        self._discover(page_url, task.depth, response.body, worker)
        title = self.title_extractor.extract_title(response.body)

        try:
            artifact = self.renderer.render(response.body, page_url)
        except RenderError as e:
            self.stats.incr("render_errors")
            self.stats.incr("pages_failed")
            worker.log("error", f"Render failed for {page_url}: {e}")
            return

        result = PageResult(url=page_url, depth=task.depth, title=title, byte_size=len(artifact), artifact=artifact)
        if self.collector.add(result):
            self.stats.incr("pages_processed")
            self.stats.incr("total_bytes", result.byte_size)
            worker.log("info", f"Converted {page_url} (depth {task.depth}, {result.byte_size} bytes)")

    def _fetch_with_retry(self, url, worker):
        """
        One politeness turn per attempt; retryable failures back off exponentially.
        Retries stay local to this dispatch and never re-admit the URL.
        """
        host = host_of(url)
        attempts = self.config.retry_attempts + 1
        for attempt in range(attempts):
            self.governor.await_turn(host)
            try:
                response = self.fetcher.fetch(url, self.config.timeout, self.config.user_agent)
            except FetchError as e:
                self.governor.record_error(host)
                if not e.retryable or attempt + 1 >= attempts or self.cancelled:
                    raise
                delay = self.config.retry_delay * (2 ** attempt)
                self.stats.incr("retries")
                worker.log("warning", f"[RETRY {attempt + 1}/{self.config.retry_attempts}] {e}. Waiting {delay:.1f}s...")
                # Cancellation cuts the backoff short
                if self._cancel.wait(delay):
                    raise
                continue
            self.governor.record_success(host)
            return response

    def _resolve_final_url(self, task, final_url, worker):
        """
        Re-normalize a redirect target. Returns the URL the page is known by, or
        None when the redirect left the site or landed on an already-claimed page.
        """
        if not final_url or final_url == task.url:
            return task.url
        try:
            resolved = normalize_url(final_url, default_scheme=self.config.default_scheme)
        except InvalidURL:
            return task.url
        if resolved == task.url:
            return task.url

        if not self.policy.is_same_site(resolved):
            worker.log("info", f"{task.url} redirected off-site to {resolved}, skipping")
            return None
        if not self.frontier.mark_seen(resolved):
            self.stats.incr("redirect_duplicates")
            worker.log("info", f"{task.url} redirected to already crawled {resolved}, skipping")
            return None
        worker.log("debug", f"{task.url} redirected to {resolved}")
        return resolved

    def _discover(self, page_url, depth, body, worker) -> int:
        next_depth = depth + 1
        if next_depth > self.config.max_depth:
            return 0

        admitted = 0
        for href in self.link_extractor.extract_anchors(body):
            if self.cancelled:
                break
            try:
                url = normalize_url(href, base=page_url, default_scheme=self.config.default_scheme)
            except InvalidURL as e:
                self.stats.incr("invalid_links")
                worker.log("debug", f"Dropping link on {page_url}: {e}")
                continue
            # Cheap pre-check; try_admit is still the authority
            if self.frontier.is_visited(url):
                continue
            if not self.policy.admissible(url):
                continue
            if self.frontier.try_admit(url, next_depth):
                admitted += 1

        if admitted:
            worker.log("debug", f"{page_url}: admitted {admitted} new link(s) at depth {next_depth}")
        return admitted
