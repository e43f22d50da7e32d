"""Link listing.

Routes
------
POST /links   Body: {"url": "https://...", "filter": "all" | "internal" | "external"}
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, HttpUrl

from webreader.api.errors import to_http_exception
from webreader.crawler.links import LinkScope
from webreader.errors import UrlReaderError
from webreader.rendering import render_links
from webreader.scraper.pipeline import extract_page_links

router = APIRouter()


class LinksRequest(BaseModel):
    url: HttpUrl
    filter: LinkScope = "all"


@router.post("/links")
async def links_endpoint(body: LinksRequest) -> dict[str, Any]:
    """List the links on a page, optionally only internal or external ones."""
    try:
        final_url, links = await extract_page_links(str(body.url), body.filter)
    except UrlReaderError as exc:
        raise to_http_exception(exc) from exc

    return {
        "url": final_url,
        "filter": body.filter,
        "count": len(links),
        "links": [link.to_dict() for link in links],
        "markdown": render_links(final_url, links, body.filter),
    }
