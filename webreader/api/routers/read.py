"""Single-page reading.

Routes
------
POST /read    Body: {"url": "https://...", "max_length": 50000, "include_links": true}
"""

from __future__ import annotations

from typing import Any, List, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field, HttpUrl

from webreader.api.errors import to_http_exception
from webreader.config import settings
from webreader.errors import UrlReaderError
from webreader.rendering import render_page
from webreader.scraper.pipeline import extract_page

router = APIRouter()


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class ReadRequest(BaseModel):
    url: HttpUrl
    max_length: int = Field(default_factory=lambda: settings.default_max_length, ge=0)
    include_links: bool = True


class LinkOut(BaseModel):
    text: str
    url: str


class ReadResponse(BaseModel):
    url: str
    title: str
    content: str
    byline: Optional[str] = None
    excerpt: Optional[str] = None
    length: int
    from_cache: bool
    links: List[LinkOut]
    markdown: str


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/read", response_model=ReadResponse)
async def read_endpoint(body: ReadRequest) -> dict[str, Any]:
    """Fetch a URL and return its readable content as Markdown."""
    try:
        page = await extract_page(
            str(body.url),
            max_length=body.max_length,
            include_links=body.include_links,
        )
    except UrlReaderError as exc:
        raise to_http_exception(exc) from exc

    return {
        "url": page.url,
        "title": page.title,
        "content": page.content,
        "byline": page.byline,
        "excerpt": page.excerpt,
        "length": page.length,
        "from_cache": page.from_cache,
        "links": [{"text": link.text, "url": link.url} for link in page.links],
        "markdown": render_page(page, include_links=body.include_links),
    }
