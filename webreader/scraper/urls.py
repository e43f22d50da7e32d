"""URL helpers: normalization, resolution, domain and glob matching.

Two URLs that normalize to the same string are the same resource everywhere
in webreader: crawl visited sets, cache keys and link de-duplication all key
on :func:`normalize_url`.
"""

from __future__ import annotations

import re
from urllib.parse import parse_qsl, urlencode, urljoin, urlsplit, urlunsplit

from webreader.errors import InvalidUrlError

_DEFAULT_PORTS = {"http": 80, "https": 443}
_FETCHABLE_SCHEMES = frozenset({"http", "https"})


def _split(url: str):
    try:
        parts = urlsplit(url.strip())
        port = parts.port
    except ValueError as exc:
        raise InvalidUrlError(f"Invalid URL: {url!r} ({exc})") from exc
    if not parts.scheme or not parts.hostname:
        raise InvalidUrlError(f"Invalid URL: {url!r}")
    return parts, port


def normalize_url(url: str) -> str:
    """Return the canonical form of *url*.

    - scheme and host are lowercased;
    - the fragment is dropped;
    - the default port (80 for http, 443 for https) is dropped;
    - query parameters are sorted by key (stable for repeated keys);
    - a lone ``/`` path with no query is dropped, so
      ``https://example.com/`` becomes ``https://example.com`` while
      ``https://example.com/blog/`` keeps its slash.

    Raises:
        InvalidUrlError: If *url* has no scheme or no host.
    """
    parts, port = _split(url)
    scheme = parts.scheme.lower()

    host = parts.hostname or ""
    if ":" in host:
        host = f"[{host}]"
    netloc = host
    if port is not None and port != _DEFAULT_PORTS.get(scheme):
        netloc = f"{netloc}:{port}"
    if parts.username is not None:
        userinfo = parts.username
        if parts.password is not None:
            userinfo = f"{userinfo}:{parts.password}"
        netloc = f"{userinfo}@{netloc}"

    path = parts.path or ("/" if scheme in _FETCHABLE_SCHEMES else "")

    query = ""
    if parts.query:
        params = parse_qsl(parts.query, keep_blank_values=True)
        query = urlencode(sorted(params, key=lambda kv: kv[0]))

    normalized = urlunsplit((scheme, netloc, path, query, ""))
    if path == "/" and not query:
        normalized = normalized[:-1]
    return normalized


def extract_domain(url: str) -> str:
    """Return the lowercased hostname of *url* (no port, no brackets)."""
    parts, _ = _split(url)
    return parts.hostname or ""


def resolve_url(base: str, relative: str) -> str:
    """Resolve *relative* against *base* the way a browser would."""
    return urljoin(base, relative)


def is_fetchable_url(url: str) -> bool:
    """Return ``True`` for absolute http(s) URLs with a host."""
    try:
        parts, _ = _split(url)
    except InvalidUrlError:
        return False
    return parts.scheme.lower() in _FETCHABLE_SCHEMES


def matches_pattern(url: str, pattern: str) -> bool:
    """Glob-match *url* against *pattern*.

    ``*`` matches any run of characters (including none); everything else is
    literal.  Matching is case-insensitive and anchored to the whole URL.
    """
    regex = ".*".join(re.escape(part) for part in pattern.split("*"))
    return re.fullmatch(regex, url, flags=re.IGNORECASE | re.DOTALL) is not None


def is_domain_allowed(url: str, allowed_domains: list[str]) -> bool:
    """Return ``True`` if *url*'s host equals or is a subdomain of an allowed domain.

    Unlike the crawler's ``allowed_domains`` filter, this folds subdomains:
    ``docs.example.com`` is allowed by ``example.com``.
    """
    domain = extract_domain(url)
    for allowed in allowed_domains:
        allowed = allowed.lower()
        if domain == allowed or domain.endswith(f".{allowed}"):
            return True
    return False
