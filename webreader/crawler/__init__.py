"""Crawler package — link resolution, token estimates and the BFS engine."""

from webreader.crawler.bfs import (
    CrawlOptions,
    CrawlPageResult,
    CrawlResult,
    CrawlSummary,
    crawl,
)
from webreader.crawler.links import (
    LinkFilterOptions,
    ResolvedLink,
    extract_links,
    filter_links,
)
from webreader.crawler.tokens import estimate_tokens

__all__ = [
    "crawl",
    "CrawlOptions",
    "CrawlPageResult",
    "CrawlResult",
    "CrawlSummary",
    "extract_links",
    "filter_links",
    "LinkFilterOptions",
    "ResolvedLink",
    "estimate_tokens",
]
