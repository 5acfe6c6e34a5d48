"""
Capability interfaces for the crawl collaborators.
The scheduler and session only talk to these; concrete implementations live
in fetcher.py, robots.py, parser.py, renderer.py and assembler.py, and tests
substitute their own doubles.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Sequence

from sitepdf.models import FetchResponse, PageResult

UNTITLED_PAGE = "Untitled Page"


class Fetcher(ABC):
    @abstractmethod
    def fetch(self, url: str, timeout: float, user_agent: str) -> FetchResponse:
        """
        GET `url`, following redirects.
        Returns the final response on 2xx; raises FetchError otherwise.
        """
        pass

    @abstractmethod
    def probe(self, url: str, timeout: float, user_agent: str) -> str:
        """
        Check that `url` is reachable and return the final URL after redirects.
        Raises FetchError.
        """
        pass


class RobotsSource(ABC):
    @abstractmethod
    def fetch_robots(self, origin: str) -> Optional["RobotsPolicy"]:
        """Return the site's RobotsPolicy, or None when there is none."""
        pass


class LinkExtractor(ABC):
    @abstractmethod
    def extract_anchors(self, body: str) -> List[str]:
        """Return raw href values of the document's anchors. Pure."""
        pass


class TitleExtractor(ABC):
    @abstractmethod
    def extract_title(self, body: str) -> str:
        """Return the document title, or UNTITLED_PAGE."""
        pass


class Renderer(ABC):
    @abstractmethod
    def render(self, body: str, url: str) -> bytes:
        """
        Convert an HTML document to PDF bytes.
        Potentially slow; never called while holding a lock. Raises RenderError.
        """
        pass

    def close(self) -> None:
        """Release browser resources."""
        pass


class Assembler(ABC):
    @abstractmethod
    def assemble(self, results: Sequence[PageResult]) -> Path:
        """Write one document from already-ordered results and return its path."""
        pass
