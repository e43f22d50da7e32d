"""Extraction pipeline: cache → fetch → extract → Markdown → links → cache.

``extract_page`` is what the ``read_url`` tool and the crawler call for every
page; ``extract_page_links`` backs the ``extract_links`` tool.
"""

from __future__ import annotations

import logging

from webreader.crawler.links import (
    LinkFilterOptions,
    LinkScope,
    ResolvedLink,
    extract_links,
    filter_links,
)
from webreader.scraper.cache import CachedLinks, CachedPage, page_cache
from webreader.scraper.extractor import extract_content, to_markdown
from webreader.scraper.fetcher import fetch_page
from webreader.scraper.models import PageLink, PageResult
from webreader.scraper.urls import extract_domain

logger = logging.getLogger(__name__)


def _page_links(links: list[ResolvedLink]) -> list[PageLink]:
    return [PageLink(text=link.text or link.url, url=link.url) for link in links]


def _cache_links(url: str, final_url: str, links: list[ResolvedLink]) -> None:
    page_cache.set_links(
        url,
        CachedLinks(links=[link.to_dict() for link in links], final_url=final_url),
    )


def _cached_links(url: str) -> tuple[str, list[ResolvedLink]] | None:
    cached = page_cache.get_links(url)
    if cached is None:
        return None
    links = [
        ResolvedLink(text=d["text"], url=d["url"], is_internal=d["is_internal"])
        for d in cached.links
    ]
    return cached.final_url or url, links


async def extract_page(
    url: str,
    max_length: int = 0,
    include_links: bool = True,
    use_cache: bool = True,
) -> PageResult:
    """Fetch *url* and return its readable content as Markdown.

    Args:
        url: Page to read.
        max_length: Truncate the Markdown to this many characters (``0`` = no
            limit).  Applied per call; the cache keeps the full text.
        include_links: Keep ``[text](url)`` links in the Markdown.
        use_cache: Serve a cached copy when one exists.  A cached result has
            ``from_cache=True`` and no ``raw_html``.  Fresh results are always
            written back to the cache.

    Raises:
        Whatever :func:`~webreader.scraper.fetcher.fetch_page` raises.
    """
    if use_cache:
        cached = page_cache.get_page(url)
        if cached is not None:
            logger.debug("[pipeline] cache hit for %s", url)
            hit = _cached_links(url)
            return PageResult(
                url=url,
                title=cached.title,
                content=to_markdown(cached.content, include_links, max_length),
                byline=cached.byline,
                excerpt=cached.excerpt,
                links=_page_links(hit[1]) if hit else [],
                raw_html=None,
                from_cache=True,
            )

    fetched = await fetch_page(url)
    extracted = extract_content(fetched.html, fetched.url)
    links = extract_links(fetched.html, fetched.url)

    page_cache.set_page(
        url,
        CachedPage(
            title=extracted.title,
            content=extracted.content,
            byline=extracted.byline,
            excerpt=extracted.excerpt,
        ),
    )
    _cache_links(url, fetched.url, links)

    return PageResult(
        url=url,
        title=extracted.title,
        content=to_markdown(extracted.content, include_links, max_length),
        byline=extracted.byline,
        excerpt=extracted.excerpt,
        links=_page_links(links),
        raw_html=fetched.html,
        from_cache=False,
    )


async def extract_page_links(
    url: str,
    scope: LinkScope = "all",
) -> tuple[str, list[ResolvedLink]]:
    """Return ``(final_url, links)`` for the page at *url*, filtered by *scope*.

    Uses the link cache when possible; otherwise fetches the page (without
    running content extraction) and caches its links.
    """
    hit = _cached_links(url)
    if hit is not None:
        final_url, links = hit
    else:
        fetched = await fetch_page(url)
        final_url = fetched.url
        links = extract_links(fetched.html, final_url)
        _cache_links(url, final_url, links)

    return final_url, filter_links(
        links, extract_domain(final_url), LinkFilterOptions(filter=scope)
    )
