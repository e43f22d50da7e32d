"""Tests for the HTTP API.

The library calls behind each endpoint are patched where the router imports
them, so these tests cover request validation, response shape and the
error → status-code mapping without any network access.
"""

from __future__ import annotations

from typing import Generator
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from webreader.api.app import create_app
from webreader.crawler.bfs import CrawlPageResult, CrawlResult, CrawlSummary
from webreader.crawler.links import ResolvedLink
from webreader.errors import (
    BlockedTargetError,
    ContentTypeError,
    CrawlStartError,
    ExtractionError,
    FetchError,
    FetchTimeoutError,
    InvalidUrlError,
    ResponseTooLargeError,
)
from webreader.scraper.models import PageLink, PageResult


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def client() -> Generator[TestClient, None, None]:
    with TestClient(create_app(), raise_server_exceptions=True) as c:
        yield c


def _page(**overrides) -> PageResult:
    fields = dict(
        url="https://example.com/post",
        title="A Post",
        content="Body with [a link](https://example.com/x).",
        byline="Ada",
        excerpt="Short summary",
        links=[PageLink(text="a link", url="https://example.com/x")],
        raw_html="<html></html>",
        from_cache=False,
    )
    fields.update(overrides)
    return PageResult(**fields)


def _crawl_result() -> CrawlResult:
    return CrawlResult(
        pages=[
            CrawlPageResult(
                url="https://example.com", title="Home", content="hi", depth=0, links_found=3, tokens=1
            )
        ],
        summary=CrawlSummary(
            total_pages=1, total_tokens=1, max_depth_reached=0, stopped_reason="all_visited"
        ),
    )


# ---------------------------------------------------------------------------
# /read
# ---------------------------------------------------------------------------

class TestReadEndpoint:
    def test_returns_page_and_markdown(self, client: TestClient) -> None:
        mock = AsyncMock(return_value=_page())
        with patch("webreader.api.routers.read.extract_page", new=mock):
            resp = client.post("/read", json={"url": "https://example.com/post"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["title"] == "A Post"
        assert body["byline"] == "Ada"
        assert body["from_cache"] is False
        assert body["length"] == len(body["content"])
        assert body["links"] == [{"text": "a link", "url": "https://example.com/x"}]
        assert body["markdown"].startswith("# A Post\n> URL: https://example.com/post")
        assert "## Links found on this page" in body["markdown"]
        assert "raw_html" not in body

    def test_defaults_are_passed_through(self, client: TestClient) -> None:
        mock = AsyncMock(return_value=_page())
        with patch("webreader.api.routers.read.extract_page", new=mock):
            client.post("/read", json={"url": "https://example.com/post"})

        _, kwargs = mock.call_args
        assert kwargs == {"max_length": 50000, "include_links": True}

    def test_without_links(self, client: TestClient) -> None:
        mock = AsyncMock(return_value=_page(content="plain"))
        with patch("webreader.api.routers.read.extract_page", new=mock):
            resp = client.post(
                "/read", json={"url": "https://example.com/post", "include_links": False}
            )

        assert "Links found" not in resp.json()["markdown"]

    def test_rejects_non_url(self, client: TestClient) -> None:
        resp = client.post("/read", json={"url": "not a url"})
        assert resp.status_code == 422

    @pytest.mark.parametrize(
        ("error", "status"),
        [
            (BlockedTargetError("blocked", hostname="h", address="10.0.0.1"), 403),
            (ContentTypeError("pdf"), 415),
            (ResponseTooLargeError("big"), 413),
            (FetchTimeoutError("slow"), 504),
            (InvalidUrlError("bad"), 422),
            (FetchError("HTTP 404", status_code=404), 502),
            (ExtractionError("empty"), 502),
        ],
    )
    def test_error_status_mapping(self, client: TestClient, error: Exception, status: int) -> None:
        with patch("webreader.api.routers.read.extract_page", new=AsyncMock(side_effect=error)):
            resp = client.post("/read", json={"url": "https://example.com/post"})

        assert resp.status_code == status
        assert resp.json()["detail"].startswith(f"[{error.code}] ")


# ---------------------------------------------------------------------------
# /crawl
# ---------------------------------------------------------------------------

class TestCrawlEndpoint:
    def test_returns_result_and_markdown(self, client: TestClient) -> None:
        mock = AsyncMock(return_value=_crawl_result())
        with patch("webreader.api.routers.crawl.crawl", new=mock):
            resp = client.post(
                "/crawl",
                json={
                    "url": "https://example.com",
                    "max_tokens": 500,
                    "allowed_domains": ["example.com"],
                    "exclude_patterns": ["*/login*"],
                },
            )

        assert resp.status_code == 200
        body = resp.json()
        assert body["summary"]["stopped_reason"] == "all_visited"
        assert body["pages"][0]["links_found"] == 3
        assert "# Crawl Results" in body["markdown"]
        assert "## Page 1: Home" in body["markdown"]

        _, options = mock.call_args.args
        assert options.max_tokens == 500
        assert options.allowed_domains == ["example.com"]
        assert options.exclude_patterns == ["*/login*"]
        assert options.include_patterns is None

    def test_rejects_non_positive_budget(self, client: TestClient) -> None:
        resp = client.post("/crawl", json={"url": "https://example.com", "max_tokens": 0})
        assert resp.status_code == 422

    def test_seed_failure_is_502(self, client: TestClient) -> None:
        error = CrawlStartError("Could not crawl", cause=FetchError("HTTP 500", status_code=500))
        with patch("webreader.api.routers.crawl.crawl", new=AsyncMock(side_effect=error)):
            resp = client.post("/crawl", json={"url": "https://example.com"})

        assert resp.status_code == 502
        assert resp.json()["detail"].startswith("[CRAWL_START_FAILED]")

    def test_blocked_seed_is_403(self, client: TestClient) -> None:
        blocked = BlockedTargetError("blocked", hostname="localhost", address="127.0.0.1")
        error = CrawlStartError("Could not crawl from http://localhost: [SSRF_BLOCKED] blocked", cause=blocked)
        with patch("webreader.api.routers.crawl.crawl", new=AsyncMock(side_effect=error)):
            resp = client.post("/crawl", json={"url": "http://localhost"})

        assert resp.status_code == 403
        assert "[SSRF_BLOCKED]" in resp.json()["detail"]

    def test_seed_timeout_is_504(self, client: TestClient) -> None:
        error = CrawlStartError("Could not crawl", cause=FetchTimeoutError("timed out"))
        with patch("webreader.api.routers.crawl.crawl", new=AsyncMock(side_effect=error)):
            resp = client.post("/crawl", json={"url": "https://example.com"})

        assert resp.status_code == 504


# ---------------------------------------------------------------------------
# /links
# ---------------------------------------------------------------------------

class TestLinksEndpoint:
    def test_lists_links(self, client: TestClient) -> None:
        links = [
            ResolvedLink(text="Docs", url="https://example.com/docs", is_internal=True),
            ResolvedLink(text="", url="https://other.org", is_internal=False),
        ]
        mock = AsyncMock(return_value=("https://example.com", links))
        with patch("webreader.api.routers.links.extract_page_links", new=mock):
            resp = client.post("/links", json={"url": "https://example.com", "filter": "all"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["count"] == 2
        assert body["links"][1] == {"text": "", "url": "https://other.org", "is_internal": False}
        assert "- [(no text)](https://other.org) (external)" in body["markdown"]
        assert "Found 2 links (filter: all)" in body["markdown"]

    def test_rejects_unknown_filter(self, client: TestClient) -> None:
        resp = client.post("/links", json={"url": "https://example.com", "filter": "sideways"})
        assert resp.status_code == 422

    def test_blocked_target_is_403(self, client: TestClient) -> None:
        error = BlockedTargetError("blocked", hostname="localhost", address="127.0.0.1")
        with patch("webreader.api.routers.links.extract_page_links", new=AsyncMock(side_effect=error)):
            resp = client.post("/links", json={"url": "http://localhost"})
        assert resp.status_code == 403


# ---------------------------------------------------------------------------
# /health
# ---------------------------------------------------------------------------

class TestHealthEndpoint:
    def test_reports_queue_and_cache(self, client: TestClient) -> None:
        resp = client.get("/health")

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["queue"] == {"global_load": 0, "domain_count": 0}
        assert body["cache"]["total_entries"] == 0
