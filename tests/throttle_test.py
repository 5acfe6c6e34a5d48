import threading
import unittest

from sitepdf.throttle import PolitenessGovernor


class FakeClock:
    """Monotonic fake: sleeping advances time."""

    def __init__(self):
        self.now = 100.0
        self.sleeps = []
        self._lock = threading.Lock()

    def time(self):
        with self._lock:
            return self.now

    def sleep(self, seconds):
        with self._lock:
            self.sleeps.append(seconds)
            self.now += seconds

    def advance(self, seconds):
        with self._lock:
            self.now += seconds


class TestPolitenessGovernor(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.governor = PolitenessGovernor(min_delay=1.0, max_delay=8.0, backoff_factor=2.0,
                                           clock=self.clock.time, sleep=self.clock.sleep)

    def test_first_request_does_not_wait(self):
        self.assertEqual(self.governor.await_turn("x.test"), 100.0)
        self.assertEqual(self.clock.sleeps, [])

    def test_consecutive_requests_are_spaced(self):
        slots = [self.governor.await_turn("x.test") for _ in range(4)]
        for earlier, later in zip(slots, slots[1:]):
            self.assertGreaterEqual(later - earlier, 1.0)
        self.assertEqual(self.clock.sleeps, [1.0, 1.0, 1.0])

    def test_no_wait_when_enough_time_passed(self):
        self.governor.await_turn("x.test")
        self.clock.advance(5)
        self.governor.await_turn("x.test")
        self.assertEqual(self.clock.sleeps, [])

    def test_hosts_are_independent(self):
        self.governor.await_turn("a.test")
        self.governor.await_turn("b.test")
        self.assertEqual(self.clock.sleeps, [])

    def test_errors_widen_delay_and_success_resets(self):
        self.assertEqual(self.governor.current_delay("x.test"), 1.0)
        self.governor.record_error("x.test")
        self.assertEqual(self.governor.current_delay("x.test"), 2.0)
        self.governor.record_error("x.test")
        self.assertEqual(self.governor.current_delay("x.test"), 4.0)
        for _ in range(5):
            self.governor.record_error("x.test")
        self.assertEqual(self.governor.current_delay("x.test"), 8.0)

        first = self.governor.await_turn("x.test")
        second = self.governor.await_turn("x.test")
        self.assertGreaterEqual(second - first, 8.0)

        self.governor.record_success("x.test")
        self.assertEqual(self.governor.current_delay("x.test"), 1.0)

    def test_concurrent_callers_never_share_a_window(self):
        """Scenario: 16 threads hit one host at once; granted slots stay a full delay apart."""
        barrier = threading.Barrier(16)
        slots = []
        lock = threading.Lock()

        def turn():
            barrier.wait()
            slot = self.governor.await_turn("x.test")
            with lock:
                slots.append(slot)

        threads = [threading.Thread(target=turn) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        slots.sort()
        self.assertEqual(len(set(slots)), 16)
        for earlier, later in zip(slots, slots[1:]):
            self.assertGreaterEqual(later - earlier, 1.0)


if __name__ == "__main__":
    unittest.main()
