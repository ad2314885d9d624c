"""URL normalization and request identity hashing.

Two observations of the "same" resource must hash identically no matter
which phase surfaced them (opened tab, intercepted request, extracted link)
or which spider reported them, so every identity goes through
normalize_url() first.
"""

import hashlib
from typing import Optional
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

from pagespider.constants import DEFAULT_METHOD, DEFAULT_PORTS, IGNORED_URL_SCHEMES


def normalize_url(url: str, base_url: Optional[str] = None) -> str:
    """Normalize a URL for identity comparison.

    Lowercases scheme and host, drops default ports and the fragment,
    strips a trailing slash from non-root paths, lowercases query keys and
    sorts query parameters. Query values, path and userinfo keep their case.

    Args:
        url: URL to normalize (may be relative when base_url is given)
        base_url: Optional base to resolve relative URLs against

    Returns:
        Normalized absolute URL
    """
    url = url.strip()
    if base_url:
        url = urljoin(base_url, url)

    parts = urlsplit(url)
    scheme = parts.scheme.lower()

    host = (parts.hostname or "").lower()
    if ":" in host:
        host = f"[{host}]"  # IPv6 literal

    netloc = host
    try:
        port = parts.port
    except ValueError:
        port = None
    if port and DEFAULT_PORTS.get(scheme) != port:
        netloc = f"{netloc}:{port}"
    if parts.username is not None:
        userinfo = parts.username
        if parts.password is not None:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"

    path = parts.path or "/"
    if len(path) > 1 and path.endswith("/"):
        path = path.rstrip("/") or "/"

    query = ""
    if parts.query:
        params = [
            (key.lower(), value)
            for key, value in parse_qsl(parts.query, keep_blank_values=True)
        ]
        query = urlencode(sorted(params))

    return urlunsplit((scheme, netloc, path, query, ""))


def compute_request_hash(url: str, method: str = DEFAULT_METHOD) -> str:
    """Compute the identity hash of a request.

    Args:
        url: Request URL
        method: HTTP method

    Returns:
        Hex digest, stable across processes
    """
    key = f"{method.upper()} {normalize_url(url)}"
    return hashlib.sha1(key.encode("utf-8")).hexdigest()


def is_crawlable_url(url: Optional[str]) -> bool:
    """Check whether a URL can become a crawl target."""
    if not url:
        return False
    scheme = urlsplit(url.strip()).scheme.lower()
    if scheme in IGNORED_URL_SCHEMES:
        return False
    return scheme in ("http", "https")
