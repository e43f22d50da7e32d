"""webreader CLI — read, crawl and list links from the terminal.

Usage:
    python cli/main.py --help

Commands:
    read    → fetch one page as Markdown
    crawl   → BFS crawl under a token budget
    links   → list the links of a page
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the project root is on sys.path so that `from webreader.xxx import ...`
# works when the CLI is invoked as `python cli/main.py` from any working
# directory.
_ROOT = Path(__file__).resolve().parent.parent
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import asyncio
import json
from typing import List, Optional

import typer

from webreader.config import configure_logging, settings
from webreader.errors import UrlReaderError, format_error

app = typer.Typer(
    name="webreader",
    help="Safe, rate-limited web reading for LLM tooling.",
    no_args_is_help=True,
)


@app.callback()
def main(
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Logging level (default: LOG_LEVEL or INFO)."
    ),
) -> None:
    configure_logging(log_level)


def _fail(command: str, exc: UrlReaderError) -> None:
    typer.echo(f"[{command}] {format_error(exc)}", err=True)
    raise typer.Exit(1)


# ---------------------------------------------------------------------------
# read
# ---------------------------------------------------------------------------
@app.command("read")
def read(
    url: str = typer.Option(..., help="URL to read."),
    max_length: int = typer.Option(
        settings.default_max_length, "--max-length", help="Truncate content (0 = no limit)."
    ),
    no_links: bool = typer.Option(False, "--no-links", help="Strip links from the output."),
) -> None:
    """Fetch a URL and print its readable content as Markdown."""
    from webreader.rendering import render_page  # noqa: PLC0415
    from webreader.scraper.pipeline import extract_page  # noqa: PLC0415

    include_links = not no_links
    try:
        page = asyncio.run(
            extract_page(url, max_length=max_length, include_links=include_links)
        )
    except UrlReaderError as exc:
        _fail("read", exc)
        return
    typer.echo(render_page(page, include_links=include_links))


# ---------------------------------------------------------------------------
# crawl
# ---------------------------------------------------------------------------
@app.command("crawl")
def crawl_cmd(
    url: str = typer.Option(..., help="Start URL."),
    max_tokens: int = typer.Option(
        settings.default_max_tokens, "--max-tokens", min=1, help="Token budget."
    ),
    allow_domain: Optional[List[str]] = typer.Option(
        None, "--allow-domain", help="Only follow links to this host (repeatable)."
    ),
    exclude: Optional[List[str]] = typer.Option(
        None, "--exclude", help="Skip URLs matching this glob (repeatable)."
    ),
    include: Optional[List[str]] = typer.Option(
        None, "--include", help="Only follow URLs matching this glob (repeatable)."
    ),
    as_json: bool = typer.Option(False, "--json", help="Print the raw result as JSON."),
) -> None:
    """Crawl breadth-first from URL until the token budget is spent."""
    from webreader.crawler.bfs import CrawlOptions, crawl  # noqa: PLC0415
    from webreader.rendering import render_crawl  # noqa: PLC0415

    options = CrawlOptions(
        max_tokens=max_tokens,
        allowed_domains=allow_domain or None,
        exclude_patterns=exclude or None,
        include_patterns=include or None,
    )
    try:
        result = asyncio.run(crawl(url, options))
    except UrlReaderError as exc:
        _fail("crawl", exc)
        return

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
    else:
        typer.echo(render_crawl(url, result))


# ---------------------------------------------------------------------------
# links
# ---------------------------------------------------------------------------
@app.command("links")
def links_cmd(
    url: str = typer.Option(..., help="Page to list links from."),
    filter: str = typer.Option("all", "--filter", help="all | internal | external."),
) -> None:
    """List the links on a page."""
    from webreader.rendering import render_links  # noqa: PLC0415
    from webreader.scraper.pipeline import extract_page_links  # noqa: PLC0415

    if filter not in ("all", "internal", "external"):
        typer.echo(f"[links] Unknown filter {filter!r}. Use: all | internal | external", err=True)
        raise typer.Exit(1)

    try:
        final_url, links = asyncio.run(extract_page_links(url, filter))  # type: ignore[arg-type]
    except UrlReaderError as exc:
        _fail("links", exc)
        return
    typer.echo(render_links(final_url, links, filter))  # type: ignore[arg-type]


if __name__ == "__main__":
    app()
