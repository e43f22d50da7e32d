"""Scraper package — safe fetch, content extraction and the page cache.

The extraction pipeline lives in :mod:`webreader.scraper.pipeline`; it is not
re-exported here because it depends on :mod:`webreader.crawler`.
"""

from webreader.scraper.extractor import extract_content, to_markdown
from webreader.scraper.fetcher import fetch_page
from webreader.scraper.models import ExtractedContent, FetchResult, PageLink, PageResult

__all__ = [
    "fetch_page",
    "extract_content",
    "to_markdown",
    "FetchResult",
    "ExtractedContent",
    "PageLink",
    "PageResult",
]
