import os
import unittest

from sitepdf.collector import PageCollector
from sitepdf.models import PageResult


def result(url, depth=0, artifact=b"%PDF-1.4 data"):
    return PageResult(url=url, depth=depth, title=url, byte_size=len(artifact), artifact=artifact)


class TestPageCollector(unittest.TestCase):
    def test_drain_orders_by_depth_then_url(self):
        collector = PageCollector()
        collector.add(result("https://x.test/b", 1))
        collector.add(result("https://x.test/", 0))
        collector.add(result("https://x.test/a", 1))
        collector.add(result("https://x.test/a/z", 2))

        urls = [r.url for r in collector.drain()]
        self.assertEqual(urls, ["https://x.test/", "https://x.test/a", "https://x.test/b", "https://x.test/a/z"])

    def test_duplicates_rejected(self):
        collector = PageCollector()
        self.assertTrue(collector.add(result("https://x.test/")))
        self.assertFalse(collector.add(result("https://x.test/")))
        self.assertEqual(len(collector), 1)

    def test_closed_collector_drops_results(self):
        collector = PageCollector()
        collector.close()
        self.assertFalse(collector.add(result("https://x.test/")))
        self.assertEqual(collector.drain(), [])

    def test_spill_to_disk(self):
        collector = PageCollector(memory_threshold_mb=0)
        self.assertTrue(collector.add(result("https://x.test/", artifact=b"%PDF-spilled")))

        stored = collector.drain()[0]
        self.assertIsNone(stored.artifact)
        self.assertTrue(os.path.exists(stored.artifact_path))
        self.assertEqual(stored.read_artifact(), b"%PDF-spilled")
        self.assertEqual(collector.memory_bytes, 0)
        self.assertEqual(collector.total_bytes, len(b"%PDF-spilled"))

        collector.cleanup()
        self.assertFalse(os.path.exists(stored.artifact_path))

    def test_in_memory_below_threshold(self):
        collector = PageCollector(memory_threshold_mb=1)
        collector.add(result("https://x.test/"))
        stored = collector.drain()[0]
        self.assertIsNotNone(stored.artifact)
        self.assertIsNone(stored.artifact_path)
        collector.cleanup()


if __name__ == "__main__":
    unittest.main()
