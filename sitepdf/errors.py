"""
Exception taxonomy for the crawl pipeline.
Per-task errors are caught at the worker boundary; only seed validation,
configuration and shutdown failures reach the caller.
"""


class SitePdfError(Exception):
    """Base exception for all sitepdf failures."""
    pass


class ConfigError(SitePdfError):
    """Raised when a CrawlConfig option is unknown or out of range."""
    pass


class InvalidURL(SitePdfError):
    """Raised when a raw href cannot be resolved to an absolute http(s) URL."""

    def __init__(self, raw, reason="invalid url"):
        super().__init__(f"{reason}: {raw!r}")
        self.raw = raw
        self.reason = reason


class FetchError(SitePdfError):
    """
    Transport failure, timeout or non-2xx status.
    `retryable` tells the scheduler whether another attempt makes sense.
    """

    def __init__(self, url, message, status=None, retryable=True):
        super().__init__(f"{message} ({url})")
        self.url = url
        self.status = status
        self.retryable = retryable


class UnsupportedContent(SitePdfError):
    """Successful fetch of something that is not HTML."""
    pass


class RenderError(SitePdfError):
    """Raised by a renderer when a page cannot be converted to PDF."""
    pass


class BaseURLUnreachable(SitePdfError):
    """The seed URL failed validation; the run aborts before scheduling."""
    pass


class ShutdownTimeout(SitePdfError):
    """
    Workers were still busy when the shutdown grace period ran out.
    Carries whatever results were collected so the caller can still assemble them.
    """

    def __init__(self, stragglers, results):
        super().__init__(f"{len(stragglers)} worker(s) did not stop before the grace deadline: {', '.join(stragglers)}")
        self.stragglers = stragglers
        self.results = results
