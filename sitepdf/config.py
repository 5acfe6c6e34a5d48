"""
Run configuration for the crawler.
Every recognised option is a field of CrawlConfig with its default; values are
validated once, when the config is built. Unknown option keys are rejected.
"""

import os
import re
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

from sitepdf.errors import ConfigError

# Assets and binary files are never worth rendering
DEFAULT_EXCLUDE_PATTERNS = (
    r"(?i)\.(pdf|zip|tar|gz|exe|dmg|jpg|jpeg|png|gif|svg|css|js)$",
)

# Page-like extensions, directory indexes, and documentation trees
DEFAULT_INCLUDE_PATTERNS = (
    r"(?i)\.(html?|php|aspx?|jsp)$",
    r"/$",
    r"/docs/",
)

SCOPE_MODES = ("host", "site")

DEFAULT_USER_AGENT = "sitepdf/1.0 (+https://pypi.org/project/sitepdf/)"

# Environment variable -> (field, converter)
_ENV_FIELDS = {
    "SITEPDF_MAX_DEPTH": ("max_depth", int),
    "SITEPDF_MAX_CONCURRENCY": ("max_concurrency", int),
    "SITEPDF_MIN_DELAY": ("min_delay", float),
    "SITEPDF_MAX_DELAY": ("max_delay", float),
    "SITEPDF_BACKOFF_FACTOR": ("backoff_factor", float),
    "SITEPDF_TIMEOUT": ("timeout", float),
    "SITEPDF_USER_AGENT": ("user_agent", str),
    "SITEPDF_RETRY_ATTEMPTS": ("retry_attempts", int),
    "SITEPDF_RETRY_DELAY": ("retry_delay", float),
    "SITEPDF_SCOPE": ("scope", str),
    "SITEPDF_RESPECT_ROBOTS": ("respect_robots", lambda v: v.strip().lower() in ("1", "true", "yes", "on")),
    "SITEPDF_RUN_TIMEOUT": ("run_timeout", float),
    "SITEPDF_SHUTDOWN_GRACE": ("shutdown_grace", float),
    "SITEPDF_MEMORY_THRESHOLD_MB": ("memory_threshold_mb", int),
    "SITEPDF_OUTPUT": ("output_file", str),
    "SITEPDF_RENDER_TIMEOUT": ("render_timeout", float),
}


@dataclass(frozen=True)
class CrawlConfig:
    max_depth: int = 5
    max_concurrency: int = 8
    min_delay: float = 0.1
    max_delay: float = 2.0
    backoff_factor: float = 2.0
    timeout: float = 30.0
    user_agent: str = DEFAULT_USER_AGENT
    include_patterns: Tuple[str, ...] = DEFAULT_INCLUDE_PATTERNS
    exclude_patterns: Tuple[str, ...] = DEFAULT_EXCLUDE_PATTERNS
    content_fallback: bool = True
    retry_attempts: int = 3
    retry_delay: float = 1.0
    default_scheme: str = "https"
    scope: str = "host"
    allowed_hosts: Tuple[str, ...] = ()
    respect_robots: bool = True
    validate_seed: bool = True
    run_timeout: Optional[float] = None
    shutdown_grace: float = 30.0
    memory_threshold_mb: Optional[int] = 500
    output_file: str = "website.pdf"
    render_timeout: float = 30.0
    include_toc: bool = True

    def __post_init__(self):
        # Lists are accepted for convenience but stored as tuples
        for name in ("include_patterns", "exclude_patterns", "allowed_hosts"):
            value = getattr(self, name)
            if isinstance(value, str):
                value = (value,)
            object.__setattr__(self, name, tuple(value))
        object.__setattr__(self, "allowed_hosts", tuple(h.lower() for h in self.allowed_hosts))
        self._validate()

    def _validate(self):
        if self.max_depth < 0:
            raise ConfigError(f"max_depth must be >= 0, got {self.max_depth}")
        if self.max_concurrency < 1:
            raise ConfigError(f"max_concurrency must be >= 1, got {self.max_concurrency}")
        if self.min_delay < 0:
            raise ConfigError(f"min_delay must be >= 0, got {self.min_delay}")
        if self.max_delay < self.min_delay:
            raise ConfigError(f"max_delay ({self.max_delay}) must be >= min_delay ({self.min_delay})")
        if self.backoff_factor < 1:
            raise ConfigError(f"backoff_factor must be >= 1, got {self.backoff_factor}")
        if self.timeout <= 0:
            raise ConfigError(f"timeout must be > 0, got {self.timeout}")
        if self.retry_attempts < 0:
            raise ConfigError(f"retry_attempts must be >= 0, got {self.retry_attempts}")
        if self.retry_delay < 0:
            raise ConfigError(f"retry_delay must be >= 0, got {self.retry_delay}")
        if self.default_scheme not in ("http", "https"):
            raise ConfigError(f"default_scheme must be http or https, got {self.default_scheme!r}")
        if self.scope not in SCOPE_MODES:
            raise ConfigError(f"scope must be one of {SCOPE_MODES}, got {self.scope!r}")
        if self.run_timeout is not None and self.run_timeout <= 0:
            raise ConfigError(f"run_timeout must be > 0, got {self.run_timeout}")
        if self.shutdown_grace < 0:
            raise ConfigError(f"shutdown_grace must be >= 0, got {self.shutdown_grace}")
        if self.memory_threshold_mb is not None and self.memory_threshold_mb < 0:
            raise ConfigError(f"memory_threshold_mb must be >= 0, got {self.memory_threshold_mb}")
        if self.render_timeout <= 0:
            raise ConfigError(f"render_timeout must be > 0, got {self.render_timeout}")
        if not self.user_agent:
            raise ConfigError("user_agent must not be empty")
        for pattern in self.include_patterns + self.exclude_patterns:
            try:
                re.compile(pattern)
            except re.error as e:
                raise ConfigError(f"invalid pattern {pattern!r}: {e}") from e

    @classmethod
    def option_names(cls):
        return tuple(f.name for f in fields(cls))

    @classmethod
    def from_options(cls, options=None):
        """
        Build a config from a plain mapping merged over the defaults.
        Unknown keys raise ConfigError instead of being silently dropped.
        """
        options = dict(options or {})
        unknown = sorted(set(options) - set(cls.option_names()))
        if unknown:
            raise ConfigError(f"unknown option(s): {', '.join(unknown)}")
        return cls(**options)

    @classmethod
    def from_env(cls, env_file=None, **overrides):
        """
        Load .env (if present), read SITEPDF_* variables, then apply overrides.
        Overrides whose value is None are ignored so CLI defaults don't mask the env.
        """
        load_dotenv(env_file or Path.cwd() / ".env")
        options = {}
        for var, (name, convert) in _ENV_FIELDS.items():
            raw = os.getenv(var)
            if raw is None or raw == "":
                continue
            try:
                options[name] = convert(raw)
            except ValueError as e:
                raise ConfigError(f"{var}={raw!r}: {e}") from e
        options.update({k: v for k, v in overrides.items() if v is not None})
        return cls.from_options(options)

    def with_overrides(self, **changes):
        return replace(self, **changes)
