import logging
import time
from threading import Lock

from sitepdf.models import OriginTimer

logger = logging.getLogger(__name__)


class PolitenessGovernor:
    """
    FLOW: Worker calls await_turn(host) right before a fetch -> the host's next slot
    is reserved under that host's lock -> the lock is released -> the worker sleeps
    until its slot. Errors widen the spacing (backoff_factor ** consecutive_errors,
    clamped to max_delay); a success resets it.
    """

    def __init__(self, min_delay=0.1, max_delay=2.0, backoff_factor=2.0, clock=time.monotonic, sleep=time.sleep):
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.backoff_factor = backoff_factor
        self._clock = clock
        self._sleep = sleep
        self._timers = {}
        self._timers_lock = Lock()

    def _timer(self, host) -> OriginTimer:
        with self._timers_lock:
            timer = self._timers.get(host)
            if timer is None:
                timer = self._timers[host] = OriginTimer()
            return timer

    def _delay_for(self, errors) -> float:
        delay = self.min_delay * (self.backoff_factor ** errors)
        return max(self.min_delay, min(delay, self.max_delay))

    def current_delay(self, host) -> float:
        timer = self._timer(host)
        with timer.lock:
            return self._delay_for(timer.consecutive_errors)

    def await_turn(self, host) -> float:
        """Block until `host` may be requested again; returns the granted slot time."""
        timer = self._timer(host)
        with timer.lock:
            now = self._clock()
            delay = self._delay_for(timer.consecutive_errors)
            slot = now if timer.last_request_at is None else max(now, timer.last_request_at + delay)
            timer.last_request_at = slot

        wait = slot - now
        if wait > 0:
            logger.debug(f"[THROTTLE] {host}: waiting {wait:.2f}s (delay {delay:.2f}s)")
            self._sleep(wait)
        return slot

    def record_error(self, host) -> int:
        timer = self._timer(host)
        with timer.lock:
            timer.consecutive_errors += 1
            errors = timer.consecutive_errors
            delay = self._delay_for(errors)
        logger.info(f"[THROTTLE] {host} failed {errors} time(s) in a row. Spacing requests {delay:.2f}s apart.")
        return errors

    def record_success(self, host) -> None:
        timer = self._timer(host)
        with timer.lock:
            cleared = timer.consecutive_errors > 0
            timer.consecutive_errors = 0
        if cleared:
            logger.info(f"[THROTTLE] {host} recovered. Spacing reset to {self.min_delay:.2f}s.")

    def get_stats(self):
        with self._timers_lock:
            hosts = list(self._timers.items())
        stats = {}
        for host, timer in hosts:
            with timer.lock:
                stats[host] = {"consecutive_errors": timer.consecutive_errors, "last_request_at": timer.last_request_at}
        return stats
