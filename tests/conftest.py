"""Shared fixtures.

The fetch queue and the page cache are process-wide singletons.  Every test
gets an empty cache and a queue with no per-domain delay so tests neither
leak state into each other nor wait out real politeness intervals.
"""

from __future__ import annotations

from typing import Iterator

import pytest

from webreader.scraper.cache import page_cache
from webreader.scraper.queue import FetchQueue


@pytest.fixture(autouse=True)
def fresh_cache() -> Iterator[None]:
    page_cache.clear()
    yield
    page_cache.clear()


@pytest.fixture(autouse=True)
def fast_queue(monkeypatch: pytest.MonkeyPatch) -> FetchQueue:
    queue = FetchQueue(max_concurrent=3, per_domain_interval=0)
    monkeypatch.setattr("webreader.scraper.queue.fetch_queue", queue)
    return queue
