"""Data models for the scraper pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class FetchResult:
    """The raw HTTP response for a single URL fetch."""

    url: str
    html: str
    content_type: str
    status_code: int


@dataclass
class ExtractedContent:
    """Readable content isolated from a page, rendered as Markdown."""

    title: str
    content: str
    text_content: str
    byline: Optional[str] = None
    excerpt: Optional[str] = None
    site_name: Optional[str] = None

    @property
    def length(self) -> int:
        return len(self.text_content)


@dataclass
class PageLink:
    text: str
    url: str


@dataclass
class PageResult:
    """Output of :func:`~webreader.scraper.pipeline.extract_page`.

    ``raw_html`` is the unprocessed response body, kept so the crawler can
    discover links.  It is ``None`` when the page came from the cache.
    """

    url: str
    title: str
    content: str
    byline: Optional[str] = None
    excerpt: Optional[str] = None
    links: List[PageLink] = field(default_factory=list)
    raw_html: Optional[str] = None
    from_cache: bool = False

    @property
    def length(self) -> int:
        return len(self.content)
