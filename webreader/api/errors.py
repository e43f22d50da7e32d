"""Translate :class:`~webreader.errors.UrlReaderError` into HTTP errors.

Status codes by error class (first match wins, so subclasses come first):

    SecurityError           403
    ContentTypeError        415
    ResponseTooLargeError   413
    FetchTimeoutError       504
    InvalidUrlError         422
    QueueClearedError       503
    anything else           502

A :class:`~webreader.errors.CrawlStartError` takes the status of its cause, so
a blocked crawl seed answers 403 just like a blocked read.
"""

from __future__ import annotations

from fastapi import HTTPException

from webreader.errors import (
    ContentTypeError,
    CrawlStartError,
    FetchTimeoutError,
    InvalidUrlError,
    QueueClearedError,
    ResponseTooLargeError,
    SecurityError,
    UrlReaderError,
    format_error,
)

_STATUS_BY_ERROR: list[tuple[type[UrlReaderError], int]] = [
    (SecurityError, 403),
    (ContentTypeError, 415),
    (ResponseTooLargeError, 413),
    (FetchTimeoutError, 504),
    (InvalidUrlError, 422),
    (QueueClearedError, 503),
]


def status_for(exc: UrlReaderError) -> int:
    if isinstance(exc, CrawlStartError) and isinstance(exc.cause, UrlReaderError):
        return status_for(exc.cause)
    for error_type, status in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status
    return 502


def to_http_exception(exc: UrlReaderError) -> HTTPException:
    """Build the ``HTTPException`` an endpoint raises for *exc*."""
    return HTTPException(status_code=status_for(exc), detail=format_error(exc))
