"""FastAPI application factory.

Lifespan
--------
On startup the app configures logging.  On shutdown it discards fetches
that have not started yet and waits for the running ones to finish, so no
request is cut off mid-response.

Routers
-------
    POST /read    — fetch one page as Markdown
    POST /crawl   — BFS crawl under a token budget
    POST /links   — list the links of one page
    GET  /health  — queue load and cache statistics
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from webreader.config import configure_logging
from webreader.scraper import queue

from webreader.api.routers import crawl as crawl_router
from webreader.api.routers import health as health_router
from webreader.api.routers import links as links_router
from webreader.api.routers import read as read_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Drain the fetch queue on shutdown."""
    logger.info("[api] starting")
    try:
        yield
    finally:
        queue.fetch_queue.clear_pending()
        await queue.fetch_queue.drain()
        logger.info("[api] stopped")


def create_app() -> FastAPI:
    """Return a fully-configured FastAPI application instance."""
    configure_logging()

    app = FastAPI(
        title="webreader API",
        description=(
            "Web reading tools for LLM clients: read a page as Markdown, "
            "crawl breadth-first under a token budget, and list page links. "
            "Every fetch is SSRF-checked and rate-limited per domain."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )

    # Allow browser frontends on any origin (tighten for production).
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(read_router.router, tags=["read"])
    app.include_router(crawl_router.router, tags=["crawl"])
    app.include_router(links_router.router, tags=["links"])
    app.include_router(health_router.router, tags=["health"])

    return app


# Module-level instance used by uvicorn:
#   uvicorn webreader.api.app:app --reload
app = create_app()
