"""Content extraction: turns raw HTML into readable Markdown.

``trafilatura`` does the readability work and the Markdown rendering.  The
HTML is cleaned with BeautifulSoup first (scripts, navigation, page chrome,
comments), and BeautifulSoup also provides the fallback when trafilatura
finds no main content.
"""

from __future__ import annotations

import re

import trafilatura
from bs4 import BeautifulSoup, Comment

from webreader.scraper.models import ExtractedContent

_NOISE_TAGS = [
    "script",
    "noscript",
    "style",
    "nav",
    "footer",
    "header",
    "aside",
    "iframe",
]
_NOISE_ROLES = ["navigation", "banner", "contentinfo"]

_ZERO_WIDTH_RE = re.compile("[\u200b\u200c\u200d\u200e\u200f\ufeff\u00ad\u2060-\u2064]")
_TRAILING_WS_RE = re.compile(r"[ \t]+$", re.MULTILINE)
_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")
_MD_LINK_RE = re.compile(r"!?\[([^\]]*)\]\([^)]*\)")

_ELLIPSIS = " ..."


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _strip_noise(html: str) -> BeautifulSoup:
    """Parse *html* and drop elements that never carry article content."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(_NOISE_TAGS):
        tag.decompose()
    for tag in soup.find_all(attrs={"role": _NOISE_ROLES}):
        tag.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    return soup


def _fallback_title(soup: BeautifulSoup) -> str:
    """``og:title`` → ``<title>`` → first ``<h1>``, or empty string."""
    og = soup.find("meta", attrs={"property": "og:title"})
    if og and og.get("content", "").strip():
        return og["content"].strip()
    if soup.title and soup.title.get_text(strip=True):
        return soup.title.get_text(strip=True)
    h1 = soup.find("h1")
    if h1 and h1.get_text(strip=True):
        return h1.get_text(" ", strip=True)
    return ""


def _bs4_fallback(soup: BeautifulSoup) -> str:
    """Collapsed visible text of ``<body>`` (or the whole document)."""
    container = soup.body or soup
    return " ".join(container.get_text(separator=" ").split())


def _strip_md_links(markdown: str) -> str:
    return _MD_LINK_RE.sub(r"\1", markdown)


def _truncate(text: str, max_length: int) -> str:
    """Cut *text* to *max_length* characters at a word boundary, with an ellipsis."""
    target = max_length - len(_ELLIPSIS)
    if target <= 0:
        return text[:max_length]
    truncated = text[:target]
    last_space = truncated.rfind(" ")
    if last_space > 0:
        truncated = truncated[:last_space]
    return truncated + _ELLIPSIS


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def post_process_markdown(markdown: str) -> str:
    """Remove zero-width characters and trailing spaces; collapse blank runs."""
    text = _ZERO_WIDTH_RE.sub("", markdown)
    text = _TRAILING_WS_RE.sub("", text)
    text = _EXCESS_NEWLINES_RE.sub("\n\n", text)
    return text.strip()


def to_markdown(content: str, include_links: bool = True, max_length: int = 0) -> str:
    """Final rendering of extracted Markdown for a caller.

    Args:
        content: Markdown produced by :func:`extract_content`.
        include_links: When ``False``, ``[text](url)`` becomes ``text``.
        max_length: Truncate to this many characters (``0`` = no limit).
    """
    if not content or not content.strip():
        return ""
    text = post_process_markdown(content)
    if not include_links:
        text = _strip_md_links(text)
    if max_length > 0 and len(text) > max_length:
        text = _truncate(text, max_length)
    return text


def extract_content(html: str, url: str) -> ExtractedContent:
    """Extract the main readable content of *html* as Markdown.

    Tries ``trafilatura`` first.  Falls back to the collapsed ``<body>`` text
    when trafilatura returns ``None`` or an empty string (minimal pages, link
    hubs, pages with no article structure).
    """
    soup = _strip_noise(html)
    cleaned = str(soup)

    markdown: str | None = trafilatura.extract(
        cleaned,
        url=url,
        output_format="markdown",
        include_links=True,
        include_images=False,
        include_tables=True,
        include_comments=False,
    )
    metadata = trafilatura.extract_metadata(cleaned, default_url=url)

    title = (metadata.title if metadata is not None else None) or _fallback_title(soup)
    byline = metadata.author if metadata is not None else None
    excerpt = metadata.description if metadata is not None else None
    site_name = metadata.sitename if metadata is not None else None

    if markdown:
        markdown = post_process_markdown(markdown)
        return ExtractedContent(
            title=title,
            content=markdown,
            text_content=_strip_md_links(markdown),
            byline=byline or None,
            excerpt=excerpt or None,
            site_name=site_name or None,
        )

    text = _bs4_fallback(soup)
    return ExtractedContent(
        title=title,
        content=text,
        text_content=text,
        byline=byline or None,
        excerpt=excerpt or None,
        site_name=site_name or None,
    )
