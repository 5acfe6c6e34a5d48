"""
Page collector: thread-safe accumulation of rendered pages.
drain() orders by (depth, url) so the document layout is deterministic no
matter in which order concurrent workers finished.
"""

import dataclasses
import hashlib
import logging
import shutil
import tempfile
from pathlib import Path
from threading import Lock
from typing import List, Optional

from sitepdf.models import PageResult

logger = logging.getLogger(__name__)


class PageCollector:
    """
    Append-only result store.
    Once in-memory artifacts exceed memory_threshold_mb, later artifacts are
    spilled to a temporary directory and referenced by path.
    """

    def __init__(self, memory_threshold_mb: Optional[int] = None, spill_dir: Optional[str] = None):
        self._threshold = None if memory_threshold_mb is None else memory_threshold_mb * 1024 * 1024
        self._spill_root = spill_dir
        self._spill_dir = None
        self._lock = Lock()
        self._results = {}
        self._memory_bytes = 0
        self._total_bytes = 0
        self._closed = False

    def _spill_path(self, url) -> Path:
        # Only called with the lock held
        if self._spill_dir is None:
            self._spill_dir = tempfile.mkdtemp(prefix="sitepdf-", dir=self._spill_root)
            logger.warning(f"In-memory artifacts exceeded threshold, spilling to {self._spill_dir}")
        name = hashlib.sha256(url.encode("utf-8")).hexdigest() + ".pdf"
        return Path(self._spill_dir) / name

    def add(self, result: PageResult) -> bool:
        """
        Store a result. Returns False if the collector is closed or the URL was
        already collected (which the frontier should make impossible).
        """
        with self._lock:
            if self._closed:
                logger.warning(f"collector closed, dropping late result for {result.url}")
                return False
            if result.url in self._results:
                logger.error(f"duplicate result for {result.url} ignored")
                return False

            if result.artifact is not None and self._threshold is not None \
                    and self._memory_bytes + result.byte_size > self._threshold:
                path = self._spill_path(result.url)
                path.write_bytes(result.artifact)
                result = dataclasses.replace(result, artifact=None, artifact_path=str(path))
            elif result.artifact is not None:
                self._memory_bytes += result.byte_size

            self._results[result.url] = result
            self._total_bytes += result.byte_size
        return True

    def drain(self) -> List[PageResult]:
        with self._lock:
            results = list(self._results.values())
        return sorted(results, key=lambda r: r.sort_key)

    def close(self):
        with self._lock:
            self._closed = True

    def __len__(self):
        with self._lock:
            return len(self._results)

    @property
    def total_bytes(self):
        with self._lock:
            return self._total_bytes

    @property
    def memory_bytes(self):
        with self._lock:
            return self._memory_bytes

    def cleanup(self):
        with self._lock:
            spill_dir, self._spill_dir = self._spill_dir, None
        if spill_dir:
            shutil.rmtree(spill_dir, ignore_errors=True)
