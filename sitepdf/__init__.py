"""
sitepdf: crawl a website and assemble its pages into one PDF.
"""
from sitepdf.config import CrawlConfig
from sitepdf.errors import (
    BaseURLUnreachable,
    ConfigError,
    FetchError,
    InvalidURL,
    RenderError,
    ShutdownTimeout,
    SitePdfError,
)
from sitepdf.frontier import Frontier
from sitepdf.models import CrawlTask, PageResult, RunState
from sitepdf.normalizer import normalize_url
from sitepdf.scheduler import CrawlScheduler
from sitepdf.session import CrawlSession, SessionReport

__version__ = "1.0.0"
__all__ = [
    "BaseURLUnreachable",
    "ConfigError",
    "CrawlConfig",
    "CrawlScheduler",
    "CrawlSession",
    "CrawlTask",
    "FetchError",
    "Frontier",
    "InvalidURL",
    "PageResult",
    "RenderError",
    "RunState",
    "SessionReport",
    "ShutdownTimeout",
    "SitePdfError",
    "normalize_url",
]
