"""Liveness and runtime statistics.

Routes
------
GET /health
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from webreader.scraper import queue
from webreader.scraper.cache import page_cache

router = APIRouter()


@router.get("/health")
def health() -> dict[str, Any]:
    return {
        "status": "ok",
        "queue": {
            "global_load": queue.fetch_queue.global_load,
            "domain_count": queue.fetch_queue.domain_count,
        },
        "cache": page_cache.stats(),
    }
