import unittest
from pathlib import Path
from unittest.mock import patch

from sitepdf.cli import build_parser, main
from sitepdf.errors import BaseURLUnreachable
from sitepdf.session import SessionReport


class TestParser(unittest.TestCase):
    def test_flags_map_to_config_fields(self):
        args = build_parser().parse_args([
            "https://x.test/", "--output", "out.pdf", "--depth", "2", "--concurrent", "3",
            "--exclude", "/blog/", "--exclude", "/tags/", "--no-robots", "--scope", "site",
        ])
        self.assertEqual(args.output_file, "out.pdf")
        self.assertEqual(args.max_depth, 2)
        self.assertEqual(args.max_concurrency, 3)
        self.assertEqual(args.exclude_patterns, ["/blog/", "/tags/"])
        self.assertFalse(args.respect_robots)
        self.assertEqual(args.scope, "site")

    def test_unset_flags_are_none(self):
        args = build_parser().parse_args(["https://x.test/"])
        self.assertIsNone(args.max_depth)
        self.assertIsNone(args.respect_robots)
        self.assertIsNone(args.include_toc)


@patch("sitepdf.cli.CrawlConfig.from_env")
@patch("sitepdf.cli.CrawlSession")
class TestMain(unittest.TestCase):
    def test_success(self, session_cls, from_env):
        session_cls.return_value.run.return_value = SessionReport(
            seed_url="https://x.test/", output=Path("out.pdf"), pages=[], stats={})

        self.assertEqual(main(["https://x.test/", "--depth", "1"]), 0)

        overrides = from_env.call_args[1]
        self.assertEqual(overrides["max_depth"], 1)
        self.assertIsNone(overrides["max_concurrency"])
        session_cls.assert_called_once_with(from_env.return_value)
        session_cls.return_value.run.assert_called_once_with("https://x.test/")

    def test_failure_exit_code(self, session_cls, from_env):
        session_cls.return_value.run.side_effect = BaseURLUnreachable("Failed to access https://x.test/")
        self.assertEqual(main(["https://x.test/"]), 1)


if __name__ == "__main__":
    unittest.main()
