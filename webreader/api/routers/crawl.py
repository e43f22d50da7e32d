"""BFS crawl.

Routes
------
POST /crawl   Body: {"url": "https://...", "max_tokens": 100000,
                     "allowed_domains": [...], "exclude_patterns": [...],
                     "include_patterns": [...]}
"""

from __future__ import annotations

from typing import Any, List, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field, HttpUrl

from webreader.api.errors import to_http_exception
from webreader.config import settings
from webreader.crawler.bfs import CrawlOptions, crawl
from webreader.errors import UrlReaderError
from webreader.rendering import render_crawl

router = APIRouter()


class CrawlRequest(BaseModel):
    url: HttpUrl
    max_tokens: int = Field(default_factory=lambda: settings.default_max_tokens, gt=0)
    allowed_domains: Optional[List[str]] = None
    exclude_patterns: Optional[List[str]] = None
    include_patterns: Optional[List[str]] = None


@router.post("/crawl")
async def crawl_endpoint(body: CrawlRequest) -> dict[str, Any]:
    """Crawl breadth-first from ``url`` until ``max_tokens`` is spent.

    Returns the crawl result (``pages`` and ``summary``) plus a ``markdown``
    rendering of it.  Only a failure on the start page is an error; later
    pages that fail are left out of the result.
    """
    start_url = str(body.url)
    options = CrawlOptions(
        max_tokens=body.max_tokens,
        allowed_domains=body.allowed_domains,
        exclude_patterns=body.exclude_patterns,
        include_patterns=body.include_patterns,
    )
    try:
        result = await crawl(start_url, options)
    except UrlReaderError as exc:
        raise to_http_exception(exc) from exc

    response = result.to_dict()
    response["markdown"] = render_crawl(start_url, result)
    return response
