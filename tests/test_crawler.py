"""Tests for the BFS crawl engine.

The crawler takes its page extractor as a parameter, so these tests drive it
with an in-memory site: a dict of URL → (content, outgoing hrefs).  No
network, DNS, queue or cache is involved.
"""

from __future__ import annotations

import asyncio
import logging
from unittest.mock import AsyncMock, patch

import pytest

from webreader.crawler.bfs import CrawlOptions, CrawlResult, crawl
from webreader.crawler.tokens import estimate_tokens
from webreader.errors import (
    BlockedTargetError,
    CrawlStartError,
    FetchError,
    InvalidUrlError,
)
from webreader.scraper.models import PageResult


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _html(hrefs: list[str]) -> str:
    anchors = "".join(f'<a href="{href}">{href}</a>' for href in hrefs)
    return f"<html><body>{anchors}</body></html>"


class _FakeSite:
    """Serves PageResults from a dict and records the fetch order."""

    def __init__(self, pages: dict[str, tuple[str, list[str]]], errors: dict[str, Exception] | None = None) -> None:
        self.pages = pages
        self.errors = errors or {}
        self.fetched: list[str] = []

    async def __call__(self, url: str) -> PageResult:
        self.fetched.append(url)
        if url in self.errors:
            raise self.errors[url]
        if url not in self.pages:
            raise FetchError(f"HTTP 404 Not Found for {url}", status_code=404)
        content, hrefs = self.pages[url]
        return PageResult(url=url, title=url.rsplit("/", 1)[-1], content=content, raw_html=_html(hrefs))


# Depth 0: root; depth 1: a, b; depth 2: a1, a2, b1; depth 3: deep.
_TREE = {
    "https://site.test": ("root page", ["/a", "/b"]),
    "https://site.test/a": ("page a", ["/a1", "/a2", "/"]),
    "https://site.test/b": ("page b", ["/b1", "/a"]),
    "https://site.test/a1": ("page a1", ["/deep"]),
    "https://site.test/a2": ("page a2", []),
    "https://site.test/b1": ("page b1", ["/a1"]),
    "https://site.test/deep": ("deep page", []),
}


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------

class TestCrawlTraversal:
    async def test_visits_every_page_in_bfs_order(self) -> None:
        site = _FakeSite(_TREE)
        result = await crawl("https://site.test/", extract=site)

        assert [p.url for p in result.pages] == [
            "https://site.test",
            "https://site.test/a",
            "https://site.test/b",
            "https://site.test/a1",
            "https://site.test/a2",
            "https://site.test/b1",
            "https://site.test/deep",
        ]
        depths = [p.depth for p in result.pages]
        assert depths == sorted(depths)
        assert depths == [0, 1, 1, 2, 2, 2, 3]

    async def test_each_url_is_fetched_once(self) -> None:
        site = _FakeSite(_TREE)
        await crawl("https://site.test", extract=site)
        assert len(site.fetched) == len(set(site.fetched)) == len(_TREE)

    async def test_summary(self) -> None:
        result = await crawl("https://site.test", extract=_FakeSite(_TREE))

        assert result.summary is not None
        assert result.summary.total_pages == len(_TREE)
        assert result.summary.total_tokens == sum(p.tokens for p in result.pages)
        assert result.summary.max_depth_reached == 3
        assert result.summary.stopped_reason == "all_visited"

    async def test_page_fields(self) -> None:
        result = await crawl("https://site.test", extract=_FakeSite(_TREE))
        root = result.pages[0]

        assert root.content == "root page"
        assert root.tokens == estimate_tokens("root page")
        assert root.links_found == 2

    async def test_links_found_counts_before_filtering(self) -> None:
        site = _FakeSite(_TREE)
        result = await crawl(
            "https://site.test",
            CrawlOptions(exclude_patterns=["*/b"]),
            extract=site,
        )
        assert result.pages[0].links_found == 2
        assert "https://site.test/b" not in site.fetched

    async def test_include_and_exclude_patterns(self) -> None:
        site = _FakeSite(_TREE)
        result = await crawl(
            "https://site.test",
            CrawlOptions(include_patterns=["*/a*"], exclude_patterns=["*/a2"]),
            extract=site,
        )
        assert [p.url for p in result.pages] == [
            "https://site.test",
            "https://site.test/a",
            "https://site.test/a1",
        ]

    async def test_allowed_domains_is_the_only_domain_restriction(self) -> None:
        site = _FakeSite(
            {
                "https://hub.test": ("aggregator", ["https://one.test/x", "https://two.test/y", "/local"]),
                "https://hub.test/local": ("local", []),
                "https://one.test/x": ("one", []),
                "https://two.test/y": ("two", []),
            }
        )
        result = await crawl(
            "https://hub.test", CrawlOptions(allowed_domains=["one.test"]), extract=site
        )
        # The seed is always fetched; its own host is not implied by allowed_domains.
        assert [p.url for p in result.pages] == ["https://hub.test", "https://one.test/x"]

    async def test_external_links_are_followed_without_allowed_domains(self) -> None:
        site = _FakeSite(
            {
                "https://hub.test": ("aggregator", ["https://one.test/x"]),
                "https://one.test/x": ("one", []),
            }
        )
        result = await crawl("https://hub.test", extract=site)
        assert [p.url for p in result.pages] == ["https://hub.test", "https://one.test/x"]

    async def test_page_without_raw_html_ends_that_branch(self) -> None:
        async def _extract(url: str) -> PageResult:
            return PageResult(url=url, title="t", content="cached text", raw_html=None)

        result = await crawl("https://site.test", extract=_extract)
        assert len(result.pages) == 1
        assert result.pages[0].links_found == 0
        assert result.summary.stopped_reason == "all_visited"


# ---------------------------------------------------------------------------
# Token budget
# ---------------------------------------------------------------------------

class TestCrawlBudget:
    async def test_budget_crossing_page_is_kept(self) -> None:
        big = "x" * 2000  # 500 tokens
        site = _FakeSite({"https://site.test": (big, ["/a"]), "https://site.test/a": ("a", [])})

        result = await crawl("https://site.test", CrawlOptions(max_tokens=1), extract=site)

        assert len(result.pages) == 1
        assert result.pages[0].tokens == 500
        assert result.summary.total_tokens == 500
        assert result.summary.stopped_reason == "token_limit"
        assert site.fetched == ["https://site.test"]

    async def test_stops_once_budget_is_reached(self) -> None:
        pages = {
            "https://site.test": ("x" * 40, ["/1", "/2", "/3"]),  # 10 tokens each
            "https://site.test/1": ("x" * 40, []),
            "https://site.test/2": ("x" * 40, []),
            "https://site.test/3": ("x" * 40, []),
        }
        result = await crawl(
            "https://site.test", CrawlOptions(max_tokens=20), extract=_FakeSite(pages)
        )

        assert len(result.pages) == 2
        assert result.summary.total_tokens == 20
        assert result.summary.stopped_reason == "token_limit"

    @pytest.mark.parametrize("max_tokens", [0, -5])
    async def test_non_positive_budget_is_rejected(self, max_tokens: int) -> None:
        with pytest.raises(ValueError):
            await crawl(
                "https://site.test", CrawlOptions(max_tokens=max_tokens), extract=_FakeSite(_TREE)
            )

    async def test_default_budget_comes_from_settings(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr("webreader.crawler.bfs.settings.default_max_tokens", 1)
        result = await crawl("https://site.test", extract=_FakeSite(_TREE))
        assert result.summary.stopped_reason == "token_limit"
        assert len(result.pages) == 1


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

class TestCrawlFailures:
    async def test_every_link_failing_returns_seed_only(self) -> None:
        site = _FakeSite({"https://site.test": ("root", ["/gone1", "/gone2", "/gone3"])})

        result = await crawl("https://site.test", extract=site)

        assert [p.url for p in result.pages] == ["https://site.test"]
        assert result.summary.stopped_reason == "no_more_links"
        assert len(site.fetched) == 4

    async def test_failed_page_is_not_retried(self) -> None:
        site = _FakeSite(
            {
                "https://site.test": ("root", ["/gone", "/b"]),
                "https://site.test/b": ("b", ["/gone"]),
            }
        )
        await crawl("https://site.test", extract=site)
        assert site.fetched.count("https://site.test/gone") == 1

    async def test_seed_failure_raises_crawl_start_error(self) -> None:
        cause = FetchError("HTTP 503", status_code=503)
        site = _FakeSite({}, errors={"https://site.test": cause})

        with pytest.raises(CrawlStartError) as exc_info:
            await crawl("https://site.test", extract=site)

        assert exc_info.value.cause is cause
        assert exc_info.value.code == "CRAWL_START_FAILED"
        assert "FETCH_FAILED" in exc_info.value.message

    async def test_malformed_start_url(self) -> None:
        with pytest.raises(InvalidUrlError):
            await crawl("not a url", extract=_FakeSite(_TREE))

    async def test_blocked_pages_are_logged_as_warnings(self, caplog: pytest.LogCaptureFixture) -> None:
        site = _FakeSite(
            {"https://site.test": ("root", ["http://internal.test/", "/missing"])},
            errors={
                "http://internal.test": BlockedTargetError(
                    "blocked", hostname="internal.test", address="10.0.0.1"
                )
            },
        )
        with caplog.at_level(logging.INFO, logger="webreader.crawler.bfs"):
            result = await crawl("https://site.test", extract=site)

        assert len(result.pages) == 1
        levels = {
            record.getMessage().split()[2].rstrip(":"): record.levelno
            for record in caplog.records
            if record.getMessage().startswith(("[crawl] blocked", "[crawl] skipped"))
        }
        assert levels["http://internal.test"] == logging.WARNING
        assert levels["https://site.test/missing"] == logging.INFO

    async def test_unexpected_errors_are_contained(self) -> None:
        site = _FakeSite(
            {"https://site.test": ("root", ["/weird"])},
            errors={"https://site.test/weird": RuntimeError("parser crashed")},
        )
        result = await crawl("https://site.test", extract=site)
        assert len(result.pages) == 1

    async def test_link_discovery_failure_keeps_the_page(self, caplog: pytest.LogCaptureFixture) -> None:
        site = _FakeSite(_TREE)
        with patch(
            "webreader.crawler.bfs.extract_links", side_effect=RuntimeError("bad markup")
        ), caplog.at_level(logging.INFO, logger="webreader.crawler.bfs"):
            result = await crawl("https://site.test", extract=site)

        assert [p.url for p in result.pages] == ["https://site.test"]
        assert result.pages[0].links_found == 0
        assert result.summary.stopped_reason == "all_visited"
        assert any("link discovery failed" in r.getMessage() for r in caplog.records)


# ---------------------------------------------------------------------------
# Defaults and serialisation
# ---------------------------------------------------------------------------

class TestCrawlDefaults:
    async def test_default_extractor_bypasses_the_cache(self) -> None:
        page = PageResult(url="https://site.test", title="t", content="c", raw_html="<p></p>")
        extract_page = AsyncMock(return_value=page)
        with patch("webreader.scraper.pipeline.extract_page", new=extract_page):
            await crawl("https://site.test")

        extract_page.assert_awaited_once_with("https://site.test", use_cache=False)

    async def test_to_dict(self) -> None:
        result = await crawl("https://site.test", CrawlOptions(max_tokens=1), extract=_FakeSite(_TREE))
        data = result.to_dict()

        assert isinstance(result, CrawlResult)
        assert data["summary"]["stopped_reason"] == "token_limit"
        assert data["pages"][0] == {
            "url": "https://site.test",
            "title": "site.test",
            "content": "root page",
            "depth": 0,
            "links_found": 0,
            "tokens": estimate_tokens("root page"),
        }

    async def test_concurrent_crawls_are_independent(self) -> None:
        first, second = await asyncio.gather(
            crawl("https://site.test", extract=_FakeSite(_TREE)),
            crawl("https://site.test/b", extract=_FakeSite(_TREE)),
        )
        assert first.summary.total_pages == len(_TREE)
        assert second.pages[0].url == "https://site.test/b"
