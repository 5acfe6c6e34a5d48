"""
URL canonicalization for the crawler.
Every URL that reaches the Frontier goes through normalize_url so that two
spellings of the same page compare equal.
"""

import re
from typing import Optional
from urllib.parse import urljoin, urlsplit, urlunsplit, quote

from sitepdf.errors import InvalidURL

ALLOWED_SCHEMES = ("http", "https")
DEFAULT_PORTS = {"http": 80, "https": 443}

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")
_PERCENT_ESCAPE_RE = re.compile(r"%[0-9a-fA-F]{2}")
_PORT_RE = re.compile(r"\d+(?:[/?#]|$)")

# Characters left untouched when re-quoting; '%' keeps existing escapes intact
_PATH_SAFE = "/%:@!$&'()*+,;=-._~"
_QUERY_SAFE = _PATH_SAFE + "?"


def _upper_escapes(value: str) -> str:
    return _PERCENT_ESCAPE_RE.sub(lambda m: m.group(0).upper(), value)


def _lacks_scheme(url: str) -> bool:
    """
    True for 'example.com/docs', 'example.com:8080/docs' and 'localhost:8080/docs',
    False for 'mailto:x'.
    """
    if not _SCHEME_RE.match(url):
        return True
    head, rest = url.split(":", 1)
    if rest.startswith("//"):
        return False
    return "." in head or _PORT_RE.match(rest) is not None


def _remove_dot_segments(path: str) -> str:
    """RFC 3986 section 5.2.4 on a path that starts with '/'. Empty segments are kept."""
    if "/." not in path:
        return path
    output = []
    for segment in path.split("/"):
        if segment == ".":
            continue
        if segment == "..":
            # output[0] is the empty segment before the leading '/'
            if len(output) > 1:
                output.pop()
            continue
        output.append(segment)
    if path.endswith(("/.", "/..")):
        output.append("")
    return "/".join(output) or "/"


def normalize_url(raw: str, base: Optional[str] = None, default_scheme: str = "https") -> str:
    """
    Canonicalize `raw` (absolute or relative to `base`).

    - Resolves relative references against base
    - Defaults a missing scheme to default_scheme
    - Lowercases scheme and host, strips default ports
    - Drops the fragment, keeps path and query
    - Removes dot segments, upper-cases percent escapes, empty path becomes '/'

    Raises InvalidURL for non-http(s) schemes and unparseable input.
    """
    if raw is None:
        raise InvalidURL(raw, "empty url")
    url = raw.strip()
    if not url:
        raise InvalidURL(raw, "empty url")

    try:
        if base:
            url = urljoin(base, url)
        elif url.startswith("//"):
            url = f"{default_scheme}:{url}"
        elif _lacks_scheme(url):
            url = f"{default_scheme}://{url}"
        parts = urlsplit(url)
        port = parts.port
    except ValueError as e:
        raise InvalidURL(raw, f"malformed url ({e})") from e

    scheme = parts.scheme.lower()
    if scheme not in ALLOWED_SCHEMES:
        raise InvalidURL(raw, f"unsupported scheme {scheme or '(none)'}")

    host = (parts.hostname or "").lower().rstrip(".")
    if not host:
        raise InvalidURL(raw, "missing host")
    if ":" in host:
        host = f"[{host}]"

    netloc = host
    if port is not None and port != DEFAULT_PORTS[scheme]:
        netloc = f"{host}:{port}"
    if parts.username is not None:
        userinfo = parts.username
        if parts.password is not None:
            userinfo += f":{parts.password}"
        netloc = f"{userinfo}@{netloc}"

    path = _upper_escapes(quote(parts.path, safe=_PATH_SAFE)) or "/"
    path = _remove_dot_segments(path)
    query = _upper_escapes(quote(parts.query, safe=_QUERY_SAFE))

    return urlunsplit((scheme, netloc, path, query, ""))


def host_of(url: str) -> str:
    """Lowercase host (with port if non-default) of a normalized URL."""
    return urlsplit(url).netloc.rsplit("@", 1)[-1].lower()


def origin_of(url: str) -> str:
    """scheme://host[:port] of a normalized URL."""
    parts = urlsplit(url)
    return f"{parts.scheme}://{host_of(url)}"
