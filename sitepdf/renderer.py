"""
HTML -> PDF rendering with Playwright (headless Chromium).
Playwright's sync API must stay on the thread that started it, so rendering
runs on dedicated render threads; crawler workers hand requests over a queue
and block on a per-request result queue.
"""

import logging
import queue
import re
import threading
import time

from playwright.sync_api import sync_playwright

from sitepdf.errors import RenderError
from sitepdf.interfaces import Renderer

logger = logging.getLogger(__name__)

PDF_OPTIONS = {
    "format": "A4",
    "margin": {"top": "1cm", "right": "1cm", "bottom": "1cm", "left": "1cm"},
    "print_background": True,
    "prefer_css_page_size": True,
}

_HEAD_RE = re.compile(r"(<head[^>]*>)", re.IGNORECASE)


def inject_base(html, url):
    """Insert <base href> after <head> so relative stylesheets and images resolve."""
    if not url or not url.startswith(("http://", "https://")) or "<base" in html.lower():
        return html
    base_tag = f'<base href="{url}">'
    injected, count = _HEAD_RE.subn(lambda m: m.group(1) + base_tag, html, count=1)
    if count:
        return injected
    return f"<head>{base_tag}</head>{html}"


class RenderRequest:
    def __init__(self, body, url):
        self.body = body
        self.url = url
        self.result_queue = queue.Queue(maxsize=1)


class RenderResult:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error


class PlaywrightRenderer(Renderer):
    """
    FLOW: render() lazily starts the render threads -> enqueues a RenderRequest ->
    a render thread loads the HTML into a fresh page and prints it to PDF ->
    the caller receives bytes or a RenderError.
    """

    def __init__(self, timeout=30.0, render_threads=1, user_agent=None, wait_until="networkidle"):
        self.timeout = timeout
        self.render_threads = render_threads
        self.user_agent = user_agent
        self.wait_until = wait_until
        self._requests = queue.Queue()
        self._threads = []
        self._init_lock = threading.Lock()
        self._fatal = None
        self._closed = False

    # ------------------------------------------------------------
    # Render thread loop
    # ------------------------------------------------------------
    def _render_loop(self):
        try:
            with sync_playwright() as p:
                browser = p.chromium.launch(
                    headless=True,
                    args=["--disable-gpu", "--no-sandbox", "--disable-dev-shm-usage"],
                )
                context_args = {"user_agent": self.user_agent} if self.user_agent else {}
                context = browser.new_context(**context_args)
                logger.info(f"[RENDER] {threading.current_thread().name} started.")

                while True:
                    req = self._requests.get()
                    if req is None:  # Poison pill
                        break
                    req.result_queue.put(self._render_one(context, req))

                context.close()
                browser.close()
        except Exception as e:
            logger.critical(f"[RENDER] Fatal render thread error: {e}")
            self._fatal = e
            self._fail_pending(e)

    def _render_one(self, context, req):
        page = context.new_page()
        try:
            page.set_content(
                inject_base(req.body, req.url),
                wait_until=self.wait_until,
                timeout=self.timeout * 1000,
            )
            return RenderResult(content=page.pdf(**PDF_OPTIONS))
        except Exception as e:
            return RenderResult(error=e)
        finally:
            page.close()

    def _fail_pending(self, error):
        while True:
            try:
                req = self._requests.get_nowait()
            except queue.Empty:
                return
            if req is not None:
                req.result_queue.put(RenderResult(error=error))

    def _ensure_running(self):
        if self._threads and any(t.is_alive() for t in self._threads):
            return
        with self._init_lock:
            if self._threads and any(t.is_alive() for t in self._threads):
                return
            self._threads = [
                threading.Thread(target=self._render_loop, daemon=True, name=f"RenderWorker-{i}")
                for i in range(self.render_threads)
            ]
            for t in self._threads:
                t.start()

    # ------------------------------------------------------------
    # Public API (blocking)
    # ------------------------------------------------------------
    def render(self, body, url):
        if self._closed:
            raise RenderError(f"renderer is closed ({url})")
        if self._fatal is not None:
            raise RenderError(f"renderer unavailable: {self._fatal}")
        self._ensure_running()

        req = RenderRequest(body, url)
        self._requests.put(req)

        # Generous bound over the page timeout so a wedged browser can't hang a worker
        limit = self.timeout * 2 + 30
        deadline = time.monotonic() + limit
        while True:
            try:
                result = req.result_queue.get(timeout=1.0)
                break
            except queue.Empty:
                # A render thread that died after we queued will never answer
                if self._fatal is not None:
                    raise RenderError(f"renderer unavailable: {self._fatal}")
                if time.monotonic() >= deadline:
                    raise RenderError(f"render timed out after {limit:.0f}s: {url}")

        if result.error is not None:
            raise RenderError(f"PDF conversion failed for {url}: {result.error}") from result.error
        return result.content

    def close(self):
        with self._init_lock:
            self._closed = True
            threads, self._threads = self._threads, []
        for _ in threads:
            self._requests.put(None)
        for t in threads:
            t.join(timeout=self.timeout)
