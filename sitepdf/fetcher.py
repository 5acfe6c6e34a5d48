"""
HTTP fetching for the crawler.
One attempt per call; retries, backoff and politeness are the scheduler's job.
"""

import logging
import threading
import time

import requests

from sitepdf.errors import FetchError
from sitepdf.interfaces import Fetcher
from sitepdf.models import FetchResponse

logger = logging.getLogger(__name__)

# 'br' is decoded transparently by urllib3 when brotli is installed
BASE_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate, br",
    "Upgrade-Insecure-Requests": "1",
}

RETRYABLE_STATUSES = frozenset((408, 425, 429, 500, 502, 503, 504))


def is_retryable_status(status: int) -> bool:
    return status in RETRYABLE_STATUSES or status >= 500


class PageFetcher(Fetcher):
    """
    FLOW: Builds browser-like headers -> GETs with redirects followed -> classifies
    the outcome: 2xx returns a FetchResponse, anything else raises FetchError
    flagged retryable for timeouts, connection errors, 429 and 5xx.
    """

    def __init__(self, verify=True):
        self.verify = verify
        self._local = threading.local()

    def _session(self) -> requests.Session:
        # requests.Session is not guaranteed thread-safe; one per worker thread
        session = getattr(self._local, "session", None)
        if session is None:
            session = requests.Session()
            session.headers.update(BASE_HEADERS)
            self._local.session = session
        return session

    def fetch(self, url, timeout, user_agent):
        start_time = time.monotonic()
        try:
            r = self._session().get(
                url,
                timeout=timeout,
                headers={"User-Agent": user_agent},
                verify=self.verify,
                allow_redirects=True,
            )
        except requests.exceptions.Timeout as e:
            raise FetchError(url, f"timeout: {e}", retryable=True) from e
        except requests.exceptions.ConnectionError as e:
            raise FetchError(url, f"connection error: {e}", retryable=True) from e
        except requests.exceptions.RequestException as e:
            raise FetchError(url, f"request error: {e}", retryable=False) from e

        fetch_time_ms = int((time.monotonic() - start_time) * 1000)
        if not 200 <= r.status_code < 300:
            raise FetchError(url, f"http error: {r.status_code}", status=r.status_code,
                             retryable=is_retryable_status(r.status_code))

        logger.debug(f"[FETCH] {r.status_code} {url} -> {r.url} ({fetch_time_ms}ms, {len(r.content)} bytes)")
        return FetchResponse(
            url=url,
            final_url=r.url or url,
            status=r.status_code,
            content_type=r.headers.get("Content-Type", "").lower(),
            body=r.text,
            headers=dict(r.headers),
        )

    def probe(self, url, timeout, user_agent):
        """HEAD the URL; servers that refuse HEAD (405/501) get a streamed GET instead."""
        headers = {"User-Agent": user_agent}
        session = self._session()
        try:
            r = session.head(url, timeout=timeout, headers=headers, verify=self.verify, allow_redirects=True)
            if r.status_code in (405, 501):
                r = session.get(url, timeout=timeout, headers=headers, verify=self.verify,
                                allow_redirects=True, stream=True)
                r.close()
        except requests.exceptions.RequestException as e:
            raise FetchError(url, f"unreachable: {e}") from e

        if not 200 <= r.status_code < 300:
            raise FetchError(url, f"http error: {r.status_code}", status=r.status_code,
                             retryable=is_retryable_status(r.status_code))
        return r.url or url
