"""Safe HTTP fetcher: rate-limited queue → SSRF gate → size-capped download."""

from __future__ import annotations

import logging
from urllib.parse import urlsplit

import httpx

from webreader.config import settings
from webreader.errors import (
    ContentTypeError,
    FetchError,
    FetchTimeoutError,
    ResponseTooLargeError,
    SecurityError,
)
from webreader.scraper.models import FetchResult
from webreader.scraper.network import validate_hostname
from webreader.scraper.queue import enqueue_fetch
from webreader.scraper.urls import normalize_url

logger = logging.getLogger(__name__)

_ALLOWED_CONTENT_TYPES = frozenset(
    {
        "text/html",
        "application/xhtml+xml",
        "text/xml",
        "application/xml",
    }
)


def _default_headers() -> dict[str, str]:
    return {
        "User-Agent": settings.user_agent,
        "Accept": "text/html, application/xhtml+xml, */*;q=0.1",
        "Accept-Language": "en-US,en;q=0.9,ja;q=0.8",
    }


def _mime_type(content_type: str | None) -> str:
    if not content_type:
        return ""
    return content_type.split(";", 1)[0].strip().lower()


async def _read_body(response: httpx.Response, max_bytes: int) -> str:
    """Stream the body of *response*, refusing anything over *max_bytes*."""
    declared = response.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > max_bytes:
        raise ResponseTooLargeError(
            f"Response Content-Length ({declared} bytes) exceeds limit of {max_bytes} bytes"
        )

    body = bytearray()
    async for chunk in response.aiter_bytes():
        body.extend(chunk)
        if len(body) > max_bytes:
            raise ResponseTooLargeError(
                f"Response body exceeds limit of {max_bytes} bytes "
                f"(read {len(body)} bytes so far)"
            )

    try:
        return body.decode(response.encoding or "utf-8", errors="replace")
    except LookupError:
        return body.decode("utf-8", errors="replace")


def _redirect_guard(origin_host: str):
    """Build an httpx request hook that re-validates hosts reached by redirects."""

    async def _guard(request: httpx.Request) -> None:
        host = request.url.host
        if host and host != origin_host:
            await validate_hostname(host)

    return _guard


async def fetch_page(url: str) -> FetchResult:
    """Fetch *url* and return its decoded HTML.

    The hostname is validated against private networks once the fetch queue
    admits the request, immediately before connecting; hosts reached through
    redirects are validated as well.  The request itself runs through the
    process-wide fetch queue.

    Raises:
        InvalidUrlError: *url* cannot be parsed.
        FetchError: Unsupported scheme, transport failure, or non-2xx status.
        SecurityError: The host (or a redirect target) is internal.
        FetchTimeoutError: No complete response within ``settings.fetch_timeout``.
        ContentTypeError: The response is not HTML/XML.
        ResponseTooLargeError: The body exceeds ``settings.max_response_size``.
    """
    normalized = normalize_url(url)
    parts = urlsplit(normalized)
    if parts.scheme not in ("http", "https"):
        raise FetchError(
            f"Unsupported protocol: {parts.scheme}: (only http: and https: are allowed)"
        )
    hostname = parts.hostname or ""

    async def _request() -> FetchResult:
        # Checked once the queue admits the request, so pacing delays cannot
        # leave a stale answer.
        try:
            await validate_hostname(hostname)
        except SecurityError:
            raise
        except Exception as exc:
            raise SecurityError(f"Hostname validation failed for {hostname}: {exc}") from exc

        async with httpx.AsyncClient(
            headers=_default_headers(),
            timeout=settings.fetch_timeout,
            follow_redirects=True,
            max_redirects=settings.max_redirects,
            event_hooks={"request": [_redirect_guard(hostname)]},
        ) as client:
            try:
                async with client.stream("GET", normalized) as response:
                    if not response.is_success:
                        raise FetchError(
                            f"HTTP {response.status_code} {response.reason_phrase} "
                            f"for {normalized}",
                            status_code=response.status_code,
                        )

                    content_type = response.headers.get("content-type")
                    mime_type = _mime_type(content_type)
                    if mime_type not in _ALLOWED_CONTENT_TYPES:
                        raise ContentTypeError(
                            f'Unacceptable Content-Type: "{mime_type or "(none)"}" '
                            f"for {normalized}. Expected one of: "
                            f"{', '.join(sorted(_ALLOWED_CONTENT_TYPES))}"
                        )

                    html = await _read_body(response, settings.max_response_size)
                    return FetchResult(
                        url=str(response.url),
                        html=html,
                        content_type=content_type or "text/html",
                        status_code=response.status_code,
                    )
            except httpx.TimeoutException as exc:
                raise FetchTimeoutError(
                    f"Request to {normalized} timed out after {settings.fetch_timeout}s"
                ) from exc
            except httpx.HTTPError as exc:
                raise FetchError(f"Failed to fetch {normalized}: {exc}") from exc

    logger.debug("[fetch] queueing %s", normalized)
    return await enqueue_fetch(hostname, _request)
