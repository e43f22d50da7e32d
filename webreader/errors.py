"""Error taxonomy shared by the fetch layer, the crawler and the adapters.

Every error raised on purpose by webreader derives from
:class:`UrlReaderError` and carries a stable machine-readable ``code``.  The
API and CLI render them with :func:`format_error`.
"""

from __future__ import annotations


class UrlReaderError(Exception):
    """Base class for every webreader error."""

    code: str = "URL_READER_ERROR"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class InvalidUrlError(UrlReaderError, ValueError):
    """The URL has no scheme or no host and cannot be fetched or normalized."""

    code = "INVALID_URL"


# ---------------------------------------------------------------------------
# Transport-level errors
# ---------------------------------------------------------------------------

class FetchError(UrlReaderError):
    """DNS/TCP/HTTP failure, including non-2xx responses."""

    code = "FETCH_FAILED"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class FetchTimeoutError(UrlReaderError):
    """The request did not complete within ``settings.fetch_timeout``."""

    code = "TIMEOUT"


class ContentTypeError(UrlReaderError):
    code = "CONTENT_TYPE_REJECTED"


class ResponseTooLargeError(UrlReaderError):
    code = "RESPONSE_TOO_LARGE"


class ExtractionError(UrlReaderError):
    code = "EXTRACTION_FAILED"


# ---------------------------------------------------------------------------
# Security errors
# ---------------------------------------------------------------------------

class SecurityError(UrlReaderError):
    """A request was refused to prevent SSRF.  Never retried."""

    code = "SSRF_BLOCKED"


class BlockedTargetError(SecurityError):
    """*hostname* resolved to the private/reserved *address*."""

    def __init__(self, message: str, hostname: str, address: str | None = None) -> None:
        super().__init__(message)
        self.hostname = hostname
        self.address = address


class UnresolvableHostError(BlockedTargetError):
    """Neither an A nor an AAAA lookup returned an address for *hostname*."""

    def __init__(self, message: str, hostname: str) -> None:
        super().__init__(message, hostname=hostname, address=None)


# ---------------------------------------------------------------------------
# Crawl / queue errors
# ---------------------------------------------------------------------------

class CrawlStartError(UrlReaderError):
    """The seed URL of a crawl could not be processed."""

    code = "CRAWL_START_FAILED"

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class QueueClearedError(UrlReaderError):
    """A queued task was discarded by ``FetchQueue.clear_pending`` before it started."""

    code = "QUEUE_CLEARED"


def format_error(error: BaseException) -> str:
    """Render *error* as ``[CODE] message`` for adapters and logs."""
    if isinstance(error, UrlReaderError):
        return f"[{error.code}] {error.message}"
    return str(error) or error.__class__.__name__
