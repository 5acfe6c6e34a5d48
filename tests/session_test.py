import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

from sitepdf.errors import BaseURLUnreachable
from sitepdf.interfaces import Assembler
from sitepdf.robots import RobotsPolicy
from sitepdf.session import CrawlSession

from fakes import SEED, FakeFetcher, FakeRenderer, FakeRobots, make_config, page


def url(path):
    return "https://x.test" + path


class TestCrawlSession(unittest.TestCase):
    def setUp(self):
        self.renderer = FakeRenderer()
        self.assembler = MagicMock(spec=Assembler)
        self.assembler.assemble.return_value = Path("website.pdf")

    def session(self, fetcher, config=None, robots=None):
        return CrawlSession(
            config or make_config(),
            fetcher=fetcher,
            robots_source=robots,
            renderer=self.renderer,
            assembler=self.assembler,
        )

    def test_happy_path(self):
        fetcher = FakeFetcher({SEED: page("/a", title="Home"), url("/a"): page(title="A")})
        report = self.session(fetcher).run("x.test")

        self.assertEqual(report.seed_url, SEED)
        self.assertEqual(report.output, Path("website.pdf"))
        self.assertEqual([p.url for p in report.pages], [SEED, url("/a")])
        self.assertEqual(report.stats["pages_processed"], 2)

        pages = self.assembler.assemble.call_args[0][0]
        self.assertEqual([p.title for p in pages], ["Home", "A"])
        # Renderer was injected, so the session must not close it
        self.assertFalse(self.renderer.closed)

    def test_seed_redirect_is_followed(self):
        fetcher = FakeFetcher(
            {url("/docs/"): page()},
            redirects={SEED: url("/docs/")},
        )
        report = self.session(fetcher, make_config(validate_seed=True)).run(SEED)

        self.assertEqual(fetcher.probes, [SEED])
        self.assertEqual(report.seed_url, url("/docs/"))
        self.assertEqual([p.url for p in report.pages], [url("/docs/")])

    def test_unreachable_seed(self):
        fetcher = FakeFetcher({})
        with self.assertRaises(BaseURLUnreachable):
            self.session(fetcher, make_config(validate_seed=True)).run(SEED)
        self.assertEqual(fetcher.calls, [])
        self.assertFalse(self.renderer.closed)

    def test_invalid_seed(self):
        with self.assertRaises(BaseURLUnreachable):
            self.session(FakeFetcher({})).run("ftp://x.test/")

    def test_zero_pages(self):
        fetcher = FakeFetcher({SEED: ("{}", "application/json")})
        report = self.session(fetcher).run(SEED)

        self.assertIsNone(report.output)
        self.assertEqual(report.pages, [])
        self.assertEqual(report.stats["unsupported_content"], 1)
        self.assertFalse(self.assembler.assemble.called)

    def test_robots_loaded_once_and_applied(self):
        robots = FakeRobots(RobotsPolicy.from_text("User-agent: *\nDisallow: /private/\n"))
        fetcher = FakeFetcher({SEED: page("/private/", "/open/"), url("/private/"): page(), url("/open/"): page()})
        report = self.session(fetcher, make_config(respect_robots=True), robots=robots).run(SEED)

        self.assertEqual(robots.origins, ["https://x.test"])
        self.assertEqual([p.url for p in report.pages], [SEED, url("/open/")])
        self.assertNotIn(url("/private/"), fetcher.calls)

    def test_crawl_delay_raises_host_spacing(self):
        robots = FakeRobots(RobotsPolicy.from_text("User-agent: *\nCrawl-delay: 3\n"))
        session = self.session(FakeFetcher({SEED: page()}), make_config(respect_robots=True), robots=robots)
        report = session.run(SEED)

        self.assertEqual([p.url for p in report.pages], [SEED])
        self.assertEqual(session.scheduler.config.min_delay, 3.0)
        self.assertEqual(session.scheduler.governor.current_delay("x.test"), 3.0)

    def test_smaller_crawl_delay_keeps_config(self):
        robots = FakeRobots(RobotsPolicy.from_text("User-agent: *\nCrawl-delay: 1\n"))
        config = make_config(respect_robots=True, min_delay=2.0, max_delay=4.0)
        session = self.session(FakeFetcher({SEED: page()}), config, robots=robots)
        session.run(SEED)

        self.assertIs(session.scheduler.config, config)

    def test_robots_ignored_when_disabled(self):
        robots = FakeRobots(RobotsPolicy.from_text("User-agent: *\nDisallow: /\n"))
        fetcher = FakeFetcher({SEED: page()})
        report = self.session(fetcher, robots=robots).run(SEED)

        self.assertEqual(robots.origins, [])
        self.assertEqual([p.url for p in report.pages], [SEED])

    @patch("sitepdf.renderer.PlaywrightRenderer")
    def test_owned_renderer_closed(self, renderer_cls):
        renderer = renderer_cls.return_value
        renderer.render.return_value = b"%PDF-fake"
        session = CrawlSession(
            make_config(),
            fetcher=FakeFetcher({SEED: page()}),
            assembler=self.assembler,
        )
        session.run(SEED)

        renderer.render.assert_called_once()
        renderer.close.assert_called_once()


if __name__ == "__main__":
    unittest.main()
