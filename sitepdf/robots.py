"""
robots.txt support.
The policy is fetched once per run, before scheduling, and is read-only afterwards.
"""

import logging
from urllib.robotparser import RobotFileParser

import requests

from sitepdf.interfaces import RobotsSource

logger = logging.getLogger(__name__)


class RobotsPolicy:
    """Parsed robots rules for one site."""

    def __init__(self, parser: RobotFileParser, origin=None):
        self._parser = parser
        self.origin = origin

    @classmethod
    def from_text(cls, text, origin=None):
        parser = RobotFileParser()
        parser.parse((text or "").splitlines())
        return cls(parser, origin=origin)

    def allows(self, url, user_agent="*") -> bool:
        return self._parser.can_fetch(user_agent, url)

    def crawl_delay(self, user_agent="*"):
        return self._parser.crawl_delay(user_agent)


class RobotsFetcher(RobotsSource):
    """
    Fetches <origin>/robots.txt over HTTP.
    Any failure or non-200 answer means no policy (permissive).
    """

    def __init__(self, user_agent, timeout=10):
        self.user_agent = user_agent
        self.timeout = timeout

    def fetch_robots(self, origin):
        robots_url = f"{origin.rstrip('/')}/robots.txt"
        try:
            r = requests.get(
                robots_url,
                timeout=self.timeout,
                headers={"User-Agent": self.user_agent},
                allow_redirects=True,
            )
        except requests.exceptions.RequestException as e:
            logger.warning(f"Failed to fetch robots.txt from {robots_url}: {e}")
            return None

        content_type = r.headers.get("Content-Type", "").lower()
        if r.status_code != 200 or (content_type and "text" not in content_type):
            logger.info(f"No robots.txt found at {robots_url} (status {r.status_code}), proceeding with crawl")
            return None

        logger.info(f"Robots.txt found and parsed: {robots_url}")
        return RobotsPolicy.from_text(r.text, origin=origin)
