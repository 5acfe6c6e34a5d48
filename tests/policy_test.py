import unittest

from sitepdf.policy import ScopePolicy, looks_like_content_path
from sitepdf.robots import RobotsPolicy

from fakes import SEED, make_config


class TestScopePolicy(unittest.TestCase):
    def setUp(self):
        robots = RobotsPolicy.from_text("User-agent: *\nDisallow: /private/\n", origin="https://x.test")
        self.policy = ScopePolicy(SEED, make_config(), robots=robots)

    def test_same_site_allowed(self):
        self.assertEqual(self.policy.evaluate("https://x.test/guide/"), (True, "allowed"))
        self.assertTrue(self.policy.admissible("https://x.test/page.html"))

    def test_rules_in_order(self):
        self.assertEqual(self.policy.evaluate("https://other.test/guide/"), (False, "off_site"))
        self.assertEqual(self.policy.evaluate("https://x.test/private/a.pdf"), (False, "robots"))
        self.assertEqual(self.policy.evaluate("https://x.test/files/report.pdf"), (False, "excluded"))
        self.assertEqual(self.policy.evaluate("https://x.test/feed.xml"), (False, "not_included"))

    def test_port_is_part_of_the_host(self):
        self.assertFalse(self.policy.admissible("https://x.test:8443/guide/"))

    def test_content_fallback(self):
        self.assertTrue(self.policy.admissible("https://x.test/guide/intro"))
        strict = ScopePolicy(SEED, make_config(content_fallback=False))
        self.assertFalse(strict.admissible("https://x.test/guide/intro"))
        self.assertTrue(strict.admissible("https://x.test/docs/intro"))

    def test_seed_exempt_from_include_rule(self):
        policy = ScopePolicy("https://x.test/feed.xml", make_config())
        self.assertTrue(policy.admissible("https://x.test/feed.xml", is_seed=True))
        self.assertFalse(policy.admissible("https://x.test/feed.xml"))

    def test_allowed_hosts(self):
        policy = ScopePolicy(SEED, make_config(allowed_hosts=["Docs.X.test"]))
        self.assertTrue(policy.admissible("https://docs.x.test/guide/"))

    def test_site_scope(self):
        policy = ScopePolicy("https://example.com/", make_config(scope="site"))
        self.assertTrue(policy.is_same_site("https://www.example.com/a/"))
        self.assertFalse(policy.is_same_site("https://blog.example.com/a/"))
        self.assertFalse(policy.is_same_site("https://example.org/a/"))

        host_only = ScopePolicy("https://example.com/", make_config())
        self.assertFalse(host_only.is_same_site("https://www.example.com/a/"))

    def test_stats(self):
        self.policy.evaluate("https://x.test/guide/")
        self.policy.evaluate("https://other.test/")
        self.policy.evaluate("https://other.test/b/")
        stats = self.policy.get_stats()
        self.assertEqual(stats["allowed"], 1)
        self.assertEqual(stats["off_site"], 2)
        self.assertEqual(stats["robots"], 0)


class TestContentPath(unittest.TestCase):
    def test_paths(self):
        self.assertTrue(looks_like_content_path("https://x.test/"))
        self.assertTrue(looks_like_content_path("https://x.test/guide/intro"))
        self.assertTrue(looks_like_content_path("https://x.test/v1.2/"))
        self.assertFalse(looks_like_content_path("https://x.test/logo.png"))


if __name__ == "__main__":
    unittest.main()
