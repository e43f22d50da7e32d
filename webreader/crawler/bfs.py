"""Breadth-first crawl under a token budget.

::

    start URL ──▶ [frontier] ──popleft──▶ extract page ──▶ budget check
                      ▲                                      │
                      └──── append filtered links ◀── under budget

The frontier is a FIFO, so every page at depth *k* is processed before any
page at depth *k + 1*.  The engine is strictly sequential: one page is in
flight at a time, and politeness is left to the fetch queue underneath.

A page that fails (blocked, 404, timeout, ...) is skipped and the crawl goes
on; URLs are marked visited *before* fetching, so a failure is never retried
within the same crawl.  The budget is checked *after* a page is kept, so the
page that crosses the limit is returned in full and a crawl with a tiny
budget still yields its seed page.
"""

from __future__ import annotations

import functools
import logging
from collections import deque
from dataclasses import asdict, dataclass, field
from typing import Any, Awaitable, Callable, List, Literal, Optional, Union

from webreader.config import settings
from webreader.crawler.links import (
    LinkFilterOptions,
    ResolvedLink,
    extract_links,
    filter_links,
)
from webreader.crawler.tokens import estimate_tokens
from webreader.errors import CrawlStartError, SecurityError, format_error
from webreader.scraper.models import PageResult
from webreader.scraper.urls import extract_domain, normalize_url

logger = logging.getLogger(__name__)

StopReason = Literal["token_limit", "no_more_links", "all_visited"]

PageExtractor = Callable[[str], Awaitable[PageResult]]


# ---------------------------------------------------------------------------
# Public types
# ---------------------------------------------------------------------------

@dataclass
class CrawlOptions:
    max_tokens: Optional[int] = None
    allowed_domains: Optional[List[str]] = None
    exclude_patterns: Optional[List[str]] = None
    include_patterns: Optional[List[str]] = None


@dataclass
class CrawlPageResult:
    url: str
    title: str
    content: str
    depth: int
    links_found: int = 0
    tokens: int = 0


@dataclass
class CrawlSummary:
    total_pages: int
    total_tokens: int
    max_depth_reached: int
    stopped_reason: StopReason


@dataclass
class CrawlResult:
    pages: List[CrawlPageResult] = field(default_factory=list)
    summary: Optional[CrawlSummary] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Internal types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class QueueEntry:
    url: str
    depth: int


@dataclass(frozen=True)
class PageFetched:
    page: PageResult


@dataclass(frozen=True)
class PageSkipped:
    url: str
    error: Exception

    @property
    def blocked(self) -> bool:
        return isinstance(self.error, SecurityError)


PageOutcome = Union[PageFetched, PageSkipped]


async def _process(url: str, extract: PageExtractor) -> PageOutcome:
    """Run the extractor for one URL, folding any failure into a skip."""
    try:
        page = await extract(url)
    except Exception as exc:
        return PageSkipped(url=url, error=exc)
    return PageFetched(page=page)


def _log_skip(outcome: PageSkipped) -> None:
    if outcome.blocked:
        logger.warning("[crawl] blocked %s: %s", outcome.url, format_error(outcome.error))
    else:
        logger.info("[crawl] skipped %s: %s", outcome.url, format_error(outcome.error))


def _discover(
    html: str, url: str, start_domain: str, options: LinkFilterOptions
) -> tuple[int, list[ResolvedLink]]:
    """Return the raw link count and the links to follow; a failure yields none."""
    try:
        discovered = extract_links(html, url)
        return len(discovered), filter_links(discovered, start_domain, options)
    except Exception as exc:
        logger.info("[crawl] link discovery failed on %s: %s", url, format_error(exc))
        return 0, []


def _default_extractor() -> PageExtractor:
    # Imported lazily: the pipeline imports the link resolver from this package.
    from webreader.scraper.pipeline import extract_page  # noqa: PLC0415

    # The crawler needs the raw body for link discovery, which cached pages lack.
    return functools.partial(extract_page, use_cache=False)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

async def crawl(
    start_url: str,
    options: CrawlOptions | None = None,
    *,
    extract: PageExtractor | None = None,
) -> CrawlResult:
    """Crawl breadth-first from *start_url* until the token budget is spent.

    Args:
        start_url: Seed page.
        options: Budget and link filters.  ``max_tokens`` defaults to
            ``settings.default_max_tokens``.  Domain restriction is done only
            through ``allowed_domains`` (exact hosts; the seed's own host is
            not implied), never through internal/external classification.
        extract: Coroutine function returning a
            :class:`~webreader.scraper.models.PageResult` for a URL.  Defaults
            to the extraction pipeline.

    Returns:
        A :class:`CrawlResult`.  Pages that fail after the seed are skipped,
        never raised.

    Raises:
        InvalidUrlError: *start_url* is malformed.
        ValueError: ``max_tokens`` is not positive.
        CrawlStartError: The seed page itself could not be fetched/extracted.
    """
    options = options or CrawlOptions()
    max_tokens = (
        options.max_tokens if options.max_tokens is not None else settings.default_max_tokens
    )
    if max_tokens <= 0:
        raise ValueError(f"max_tokens must be positive, got {max_tokens}")
    if extract is None:
        extract = _default_extractor()

    link_options = LinkFilterOptions(
        allowed_domains=options.allowed_domains,
        exclude_patterns=options.exclude_patterns,
        include_patterns=options.include_patterns,
        filter="all",
    )

    start = normalize_url(start_url)
    start_domain = extract_domain(start)

    frontier: deque[QueueEntry] = deque([QueueEntry(url=start, depth=0)])
    visited: set[str] = set()
    pages: list[CrawlPageResult] = []
    total_tokens = 0
    max_depth = 0
    stopped_reason: StopReason = "no_more_links"

    logger.info("[crawl] start %s (budget %d tokens)", start, max_tokens)

    while frontier:
        entry = frontier.popleft()
        if entry.url in visited:
            continue
        visited.add(entry.url)

        outcome = await _process(entry.url, extract)
        if isinstance(outcome, PageSkipped):
            if entry.depth == 0:
                raise CrawlStartError(
                    f"Could not crawl from {start}: {format_error(outcome.error)}",
                    cause=outcome.error,
                ) from outcome.error
            _log_skip(outcome)
            continue

        page = outcome.page
        result = CrawlPageResult(
            url=entry.url,
            title=page.title,
            content=page.content,
            depth=entry.depth,
            tokens=estimate_tokens(page.content),
        )
        pages.append(result)
        total_tokens += result.tokens
        max_depth = max(max_depth, entry.depth)

        if total_tokens >= max_tokens:
            stopped_reason = "token_limit"
            break

        if page.raw_html:
            found, follow = _discover(page.raw_html, entry.url, start_domain, link_options)
            result.links_found = found
            for link in follow:
                if link.url not in visited:
                    frontier.append(QueueEntry(url=link.url, depth=entry.depth + 1))

    if stopped_reason != "token_limit":
        stopped_reason = "no_more_links" if len(pages) < len(visited) else "all_visited"

    summary = CrawlSummary(
        total_pages=len(pages),
        total_tokens=total_tokens,
        max_depth_reached=max_depth,
        stopped_reason=stopped_reason,
    )
    logger.info(
        "[crawl] done %s: %d page(s), %d token(s), depth %d, %s",
        start,
        summary.total_pages,
        summary.total_tokens,
        summary.max_depth_reached,
        summary.stopped_reason,
    )
    return CrawlResult(pages=pages, summary=summary)
