"""Markdown renderings of tool results, shared by the API and the CLI."""

from __future__ import annotations

from typing import List

from webreader.crawler.bfs import CrawlResult
from webreader.crawler.links import LinkScope, ResolvedLink
from webreader.scraper.models import PageResult

MAX_LISTED_LINKS = 50


def render_page(page: PageResult, include_links: bool = True) -> str:
    """Render a read page as a metadata header, its content, and up to 50 links.

    Args:
        page: Result of :func:`~webreader.scraper.pipeline.extract_page`.
        include_links: Append a "Links found on this page" section.

    Returns:
        The Markdown document.
    """
    meta = [f"# {page.title}", f"> URL: {page.url}"]
    if page.byline:
        meta.append(f"> Author: {page.byline}")
    if page.excerpt:
        meta.append(f"> Summary: {page.excerpt}")
    meta.append(f"> Length: {page.length} characters")
    if page.from_cache:
        meta.append("> (from cache)")

    text = "\n".join(meta) + "\n\n" + page.content

    if include_links and page.links:
        listed = "\n".join(
            f"- [{link.text}]({link.url})" for link in page.links[:MAX_LISTED_LINKS]
        )
        text += "\n\n---\n## Links found on this page\n" + listed
    return text


def render_crawl(start_url: str, result: CrawlResult) -> str:
    summary = result.summary
    header = [
        "# Crawl Results",
        f"> Start URL: {start_url}",
    ]
    if summary is not None:
        header += [
            f"> Pages collected: {summary.total_pages}",
            f"> Total tokens: {summary.total_tokens}",
            f"> Max depth reached: {summary.max_depth_reached}",
            f"> Stop reason: {summary.stopped_reason}",
        ]

    sections: List[str] = []
    for i, page in enumerate(result.pages, start=1):
        sections.append(
            "\n".join(
                [
                    "---",
                    f"## Page {i}: {page.title}",
                    f"> URL: {page.url} | Depth: {page.depth} | "
                    f"Tokens: {page.tokens} | Links: {page.links_found}",
                    "",
                    page.content,
                ]
            )
        )
    return "\n".join(header) + "\n\n" + "\n\n".join(sections)


def render_links(final_url: str, links: List[ResolvedLink], scope: LinkScope) -> str:
    lines = [
        f"- [{link.text or '(no text)'}]({link.url})"
        + ("" if link.is_internal else " (external)")
        for link in links
    ]
    return "\n".join(
        [
            f"# Links from {final_url}",
            "",
            f"Found {len(links)} links (filter: {scope})",
            "",
            "\n".join(lines),
        ]
    )
