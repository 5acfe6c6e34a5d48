"""
Centralized scope and policy filter.

All same-site, robots and include/exclude rules live here. Rules are applied in
order and the first failure wins:
    1. same site (exact host, or registrable domain + www in 'site' mode)
    2. robots.txt
    3. exclude patterns
    4. include patterns, or the content-path fallback
The filter only reads immutable state (config, seed, robots), so workers can
call it concurrently; the per-reason counters have their own lock.
"""

import logging
import posixpath
import re
from threading import Lock
from typing import Dict, Optional
from urllib.parse import urlsplit

import tldextract

from sitepdf.config import CrawlConfig
from sitepdf.normalizer import host_of
from sitepdf.robots import RobotsPolicy

logger = logging.getLogger(__name__)

REASONS = ("allowed", "off_site", "robots", "excluded", "not_included")

# Offline extractor: use the bundled public suffix snapshot, never the network
_TLD_EXTRACT = None
_TLD_LOCK = Lock()


def _registrable(host):
    global _TLD_EXTRACT
    with _TLD_LOCK:
        if _TLD_EXTRACT is None:
            _TLD_EXTRACT = tldextract.TLDExtract(suffix_list_urls=())
    ext = _TLD_EXTRACT(host)
    domain = f"{ext.domain}.{ext.suffix}" if ext.suffix else ext.domain
    return domain.lower(), ext.subdomain.lower()


def looks_like_content_path(url: str) -> bool:
    """
    Documentation sites often omit extensions: '/guide/' and '/guide/intro'
    are treated as pages, '/logo.png' is not.
    """
    path = urlsplit(url).path or "/"
    if path.endswith("/"):
        return True
    return "." not in posixpath.basename(path)


class ScopePolicy:
    """
    Decides whether a normalized URL may be admitted and fetched.

    Methods:
    - evaluate(url): (allowed, reason)
    - admissible(url): bool
    - get_stats(): per-reason counters
    """

    def __init__(self, seed_url: str, config: CrawlConfig, robots: Optional[RobotsPolicy] = None):
        self.seed_url = seed_url
        self.config = config
        self.robots = robots
        self.seed_host = host_of(seed_url)
        self._allowed_hosts = {self.seed_host, *config.allowed_hosts}
        self._include = [re.compile(p) for p in config.include_patterns]
        self._exclude = [re.compile(p) for p in config.exclude_patterns]
        self._seed_domain = None
        if config.scope == "site":
            self._seed_domain, _ = _registrable(self.seed_host.split(":")[0])

        self._lock = Lock()
        self._stats: Dict[str, int] = {reason: 0 for reason in REASONS}

    def is_same_site(self, url: str) -> bool:
        host = host_of(url)
        if host in self._allowed_hosts:
            return True
        if self._seed_domain is None:
            return False
        domain, subdomain = _registrable(host.split(":")[0])
        return domain == self._seed_domain and subdomain in ("", "www")

    def is_robots_allowed(self, url: str) -> bool:
        if self.robots is None:
            return True
        return self.robots.allows(url, self.config.user_agent)

    def is_excluded(self, url: str) -> bool:
        return any(p.search(url) for p in self._exclude)

    def is_included(self, url: str) -> bool:
        if any(p.search(url) for p in self._include):
            return True
        return self.config.content_fallback and looks_like_content_path(url)

    def evaluate(self, url: str, is_seed: bool = False):
        """
        Return (allowed, reason) where reason is one of REASONS.
        The seed is exempt from the include rule; it was named explicitly.
        """
        if not self.is_same_site(url):
            reason = "off_site"
        elif not self.is_robots_allowed(url):
            reason = "robots"
        elif self.is_excluded(url):
            reason = "excluded"
        elif not is_seed and not self.is_included(url):
            reason = "not_included"
        else:
            reason = "allowed"

        with self._lock:
            self._stats[reason] += 1
        if reason != "allowed":
            logger.debug(f"Rejected URL: {url}, reason: {reason}")
        return reason == "allowed", reason

    def admissible(self, url: str, is_seed: bool = False) -> bool:
        allowed, _ = self.evaluate(url, is_seed=is_seed)
        return allowed

    def get_stats(self) -> Dict[str, int]:
        with self._lock:
            return dict(self._stats)
