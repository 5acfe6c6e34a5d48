"""
Thread-safe frontier for the crawler.
Tracks every URL ever admitted (visited set), the FIFO of pending tasks and the
number of tasks in flight. try_admit() is the single
synchronization point that keeps any URL from being dispatched twice.
"""

import logging
import time
from collections import deque
from threading import Condition
from typing import Optional

from sitepdf.models import CrawlTask

logger = logging.getLogger(__name__)


class Frontier:
    """
    Visited set + pending queue + in-flight counter behind one Condition.
    Workers block in take() until there is work, the frontier is drained
    (queue empty and nothing in flight) or it has been closed.
    """

    def __init__(self, max_depth: Optional[int] = None):
        self.max_depth = max_depth
        self._cond = Condition()
        self._queue = deque()
        self._visited = set()
        self._in_flight = 0
        self._dispatched = 0
        self._closed = False

    def try_admit(self, url: str, depth: int = 0) -> bool:
        """
        Atomically insert `url` into the visited set and enqueue it.
        Returns False if it was already known, too deep, or the frontier is closed.
        """
        if self.max_depth is not None and depth > self.max_depth:
            return False
        with self._cond:
            if self._closed or url in self._visited:
                return False
            self._visited.add(url)
            self._queue.append(CrawlTask(url=url, depth=depth))
            self._cond.notify()
        logger.debug(f"admitted {url} (depth={depth})")
        return True

    def mark_seen(self, url: str) -> bool:
        """Claim a URL (e.g. a redirect target) without queueing it. True if it was new."""
        with self._cond:
            if url in self._visited:
                return False
            self._visited.add(url)
            return True

    def _pop_locked(self) -> CrawlTask:
        task = self._queue.popleft()
        self._in_flight += 1
        self._dispatched += 1
        return task

    def try_take(self) -> Optional[CrawlTask]:
        """Non-blocking pop. The returned task counts as in flight until task_done()."""
        with self._cond:
            if self._closed or not self._queue:
                return None
            return self._pop_locked()

    def take(self, timeout: Optional[float] = None) -> Optional[CrawlTask]:
        """
        Block until a task is available and return it.
        Returns None when the frontier is drained or closed (or on timeout).
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while True:
                if self._closed:
                    return None
                if self._queue:
                    return self._pop_locked()
                if self._in_flight == 0:
                    return None
                if deadline is None:
                    self._cond.wait()
                else:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        return None
                    self._cond.wait(remaining)

    def task_done(self, task: CrawlTask) -> None:
        with self._cond:
            if self._in_flight <= 0:
                logger.warning(f"task_done called with nothing in flight: {task.url}")
                return
            self._in_flight -= 1
            if self._in_flight == 0 and not self._queue:
                self._cond.notify_all()

    def is_drained(self) -> bool:
        with self._cond:
            return not self._queue and self._in_flight == 0

    def wait_drained(self, timeout: Optional[float] = None, poll: float = 0.5) -> bool:
        """
        Block the caller until drained or closed. Returns True only if drained.
        Waits in short slices so KeyboardInterrupt reaches the caller thread.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while not self._closed and (self._queue or self._in_flight):
                wait_for = poll
                if deadline is not None:
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        return False
                    wait_for = min(poll, remaining)
                self._cond.wait(wait_for)
            return not self._queue and self._in_flight == 0

    def close(self) -> int:
        """
        Stop admitting, discard pending tasks and wake every waiter.
        Returns the number of tasks discarded.
        """
        with self._cond:
            if self._closed:
                return 0
            self._closed = True
            discarded = len(self._queue)
            self._queue.clear()
            self._cond.notify_all()
        if discarded:
            logger.info(f"frontier closed, discarded {discarded} pending task(s)")
        return discarded

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def is_visited(self, url: str) -> bool:
        with self._cond:
            return url in self._visited

    def __len__(self):
        with self._cond:
            return len(self._queue)

    def get_stats(self):
        with self._cond:
            return {
                "queue_size": len(self._queue),
                "in_flight": self._in_flight,
                "visited_count": len(self._visited),
                "dispatched": self._dispatched,
            }
