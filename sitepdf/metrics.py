"""
Run statistics for a crawl session.
Counters are bumped concurrently by workers, so every update takes the lock.
"""

import os
import time
from threading import Lock

import psutil

COUNTERS = (
    "pages_processed",
    "pages_failed",
    "fetch_errors",
    "render_errors",
    "unsupported_content",
    "retries",
    "invalid_links",
    "redirect_duplicates",
    "total_bytes",
)


class CrawlStats:
    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._lock = Lock()
        self._counters = {name: 0 for name in COUNTERS}
        self.start_time = clock()
        self.end_time = None

    def incr(self, name, amount=1):
        with self._lock:
            self._counters[name] += amount

    def get(self, name):
        with self._lock:
            return self._counters[name]

    def finish(self):
        with self._lock:
            if self.end_time is None:
                self.end_time = self._clock()

    @property
    def duration(self):
        end = self.end_time if self.end_time is not None else self._clock()
        return max(end - self.start_time, 0.0)

    def snapshot(self):
        with self._lock:
            data = dict(self._counters)
        duration = self.duration
        data["duration_s"] = round(duration, 2)
        data["pages_per_second"] = round(data["pages_processed"] / duration, 2) if duration > 0 else 0.0
        return data

    @staticmethod
    def process_memory_mb():
        return psutil.Process(os.getpid()).memory_info().rss / 1024 / 1024

    def log_summary(self, logger):
        data = self.snapshot()
        logger.info("Performance Statistics:")
        logger.info(f"  Pages processed: {data['pages_processed']}")
        logger.info(f"  Pages failed: {data['pages_failed']}")
        logger.info(f"  Fetch errors: {data['fetch_errors']} (retries: {data['retries']})")
        logger.info(f"  Render errors: {data['render_errors']}")
        logger.info(f"  Non-HTML skipped: {data['unsupported_content']}")
        logger.info(f"  Total duration: {data['duration_s']}s")
        logger.info(f"  Pages per second: {data['pages_per_second']}")
        logger.info(f"  Total PDF data: {data['total_bytes'] / 1024 / 1024:.2f} MB")
        logger.info(f"  Process memory: {self.process_memory_mb():.1f} MB")
