"""Link discovery and filtering for the crawler and the ``extract_links`` tool.

Links are found with a real HTML parser (BeautifulSoup), never with regular
expressions: quoting, nesting and malformed markup defeat pattern matching.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal, Optional

from bs4 import BeautifulSoup

from webreader.errors import InvalidUrlError
from webreader.scraper.urls import (
    extract_domain,
    is_fetchable_url,
    matches_pattern,
    normalize_url,
    resolve_url,
)

LinkScope = Literal["internal", "external", "all"]

# Matched as a case-insensitive prefix *before* URL parsing: scheme-specific
# syntax such as ``javascript:void(0)`` can otherwise trip the parser.
_NON_FETCHABLE_SCHEMES = (
    "javascript:",
    "mailto:",
    "tel:",
    "data:",
    "blob:",
    "ftp:",
    "file:",
)


@dataclass(frozen=True)
class ResolvedLink:
    """A hyperlink resolved to an absolute, normalized URL."""

    text: str
    url: str
    is_internal: bool

    def to_dict(self) -> dict[str, object]:
        return {"text": self.text, "url": self.url, "is_internal": self.is_internal}


@dataclass
class LinkFilterOptions:
    """Filters applied by :func:`filter_links`; empty lists mean "no constraint"."""

    allowed_domains: Optional[List[str]] = None
    exclude_patterns: Optional[List[str]] = None
    include_patterns: Optional[List[str]] = None
    filter: LinkScope = "all"


def _has_non_fetchable_scheme(href: str) -> bool:
    return href.lower().startswith(_NON_FETCHABLE_SCHEMES)


def extract_links(
    html: str,
    base_url: str,
    options: LinkFilterOptions | None = None,
) -> list[ResolvedLink]:
    """Return the fetchable links of *html*, in document order.

    Each ``<a href>`` is resolved against *base_url* and normalized; the first
    occurrence of a URL wins.  Fragment-only hrefs and non-http(s) schemes are
    skipped, and an href that cannot be resolved is dropped on its own.
    ``is_internal`` is an exact hostname comparison with *base_url*
    (``blog.example.com`` is external to ``example.com``).

    When *options* is given the result is passed through :func:`filter_links`.
    """
    base_domain = extract_domain(base_url)
    soup = BeautifulSoup(html, "html.parser")

    seen: set[str] = set()
    links: list[ResolvedLink] = []
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"]
        if isinstance(href, list):  # multi-valued attribute on odd markup
            href = " ".join(href)
        href = href.strip()
        if not href or href.startswith("#") or _has_non_fetchable_scheme(href):
            continue

        try:
            normalized = normalize_url(resolve_url(base_url, href))
        except (InvalidUrlError, ValueError):
            continue

        if normalized in seen:
            continue
        seen.add(normalized)

        if not is_fetchable_url(normalized):
            continue

        links.append(
            ResolvedLink(
                text=anchor.get_text().strip(),
                url=normalized,
                is_internal=extract_domain(normalized) == base_domain,
            )
        )

    if options is not None:
        return filter_links(links, base_domain, options)
    return links


def filter_links(
    links: list[ResolvedLink],
    base_domain: str,
    options: LinkFilterOptions,
) -> list[ResolvedLink]:
    """Apply *options* to *links*.

    Checks run cheapest first: internal/external scope, allowed domains
    (case-insensitive exact host match; the page's own domain is *not*
    implicitly allowed), include globs (any must match), exclude globs (none
    may match).  Exclusion wins over inclusion.

    *base_domain* is the hostname the links were extracted from; scope is
    already encoded in each link's ``is_internal`` flag.
    """
    allowed = {d.lower() for d in options.allowed_domains or []}
    include = options.include_patterns or []
    exclude = options.exclude_patterns or []

    kept: list[ResolvedLink] = []
    for link in links:
        if options.filter == "internal" and not link.is_internal:
            continue
        if options.filter == "external" and link.is_internal:
            continue
        if allowed and extract_domain(link.url) not in allowed:
            continue
        if include and not any(matches_pattern(link.url, p) for p in include):
            continue
        if exclude and any(matches_pattern(link.url, p) for p in exclude):
            continue
        kept.append(link)
    return kept
