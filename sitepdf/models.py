from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from threading import Lock
from typing import Dict, Optional


class RunState(Enum):
    IDLE = "IDLE"
    RUNNING = "RUNNING"
    DRAINING = "DRAINING"
    TERMINATED = "TERMINATED"


@dataclass(frozen=True)
class CrawlTask:
    """
    One unit of pending work.
    Invariant: created only by Frontier.try_admit, at most once per URL per run.
    """
    url: str
    depth: int = 0


@dataclass(frozen=True)
class FetchResponse:
    """
    Output of the fetch collaborator.
    `final_url` differs from `url` when the transport followed redirects.
    """
    url: str
    final_url: str
    status: int
    content_type: str
    body: str
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def is_html(self) -> bool:
        ct = (self.content_type or "").lower()
        return "text/html" in ct or "application/xhtml+xml" in ct


@dataclass(frozen=True)
class PageResult:
    """
    A rendered page ready for assembly.
    Exactly one of `artifact` (in memory) or `artifact_path` (spilled to disk) is set.
    """
    url: str
    depth: int
    title: str
    byte_size: int
    artifact: Optional[bytes] = None
    artifact_path: Optional[str] = None

    def read_artifact(self) -> bytes:
        if self.artifact is not None:
            return self.artifact
        return Path(self.artifact_path).read_bytes()

    @property
    def sort_key(self):
        return (self.depth, self.url)


@dataclass
class OriginTimer:
    """Per-host politeness state. Mutated only while `lock` is held."""
    last_request_at: Optional[float] = None
    consecutive_errors: int = 0
    lock: Lock = field(default_factory=Lock, repr=False, compare=False)
