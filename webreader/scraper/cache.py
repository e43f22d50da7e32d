"""In-process TTL cache for extracted pages and link lists.

Keys are ``page:<sha256>`` / ``links:<sha256>`` of the normalized URL, so
URLs differing only in case, fragment, default port or query order share an
entry.  The cache is process-local and is rebuilt empty on restart.
"""

from __future__ import annotations

import hashlib
import time
from dataclasses import dataclass, field
from typing import Any

from webreader.config import settings
from webreader.scraper.urls import normalize_url

_PAGE_PREFIX = "page:"
_LINKS_PREFIX = "links:"


@dataclass
class CachedPage:
    title: str
    content: str
    byline: str | None = None
    excerpt: str | None = None
    fetched_at: float = field(default_factory=time.time)


@dataclass
class CachedLinks:
    links: list[dict[str, Any]]
    final_url: str = ""
    fetched_at: float = field(default_factory=time.time)


class PageCache:
    """Dict-backed cache with a per-entry TTL and a hard key limit."""

    def __init__(self, ttl: float | None = None, max_keys: int | None = None) -> None:
        self.ttl = ttl if ttl is not None else settings.cache_ttl
        self.max_keys = max_keys if max_keys is not None else settings.cache_max_keys
        self._entries: dict[str, tuple[float, Any]] = {}
        self._hits = 0
        self._misses = 0

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _key(prefix: str, url: str) -> str:
        return prefix + hashlib.sha256(normalize_url(url).encode("utf-8")).hexdigest()

    def _live(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if time.monotonic() >= expires_at:
            del self._entries[key]
            return None
        return value

    def _get(self, key: str) -> Any | None:
        value = self._live(key)
        if value is None:
            self._misses += 1
        else:
            self._hits += 1
        return value

    def _set(self, key: str, value: Any) -> bool:
        if key not in self._entries and len(self._entries) >= self.max_keys:
            self._evict_expired()
            if len(self._entries) >= self.max_keys:
                return False
        self._entries[key] = (time.monotonic() + self.ttl, value)
        return True

    def _evict_expired(self) -> None:
        now = time.monotonic()
        for key in [k for k, (exp, _) in self._entries.items() if now >= exp]:
            del self._entries[key]

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------
    def get_page(self, url: str) -> CachedPage | None:
        return self._get(self._key(_PAGE_PREFIX, url))

    def set_page(self, url: str, page: CachedPage) -> bool:
        return self._set(self._key(_PAGE_PREFIX, url), page)

    def has_page(self, url: str) -> bool:
        return self._live(self._key(_PAGE_PREFIX, url)) is not None

    def invalidate_page(self, url: str) -> int:
        return 1 if self._entries.pop(self._key(_PAGE_PREFIX, url), None) else 0

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------
    def get_links(self, url: str) -> CachedLinks | None:
        return self._get(self._key(_LINKS_PREFIX, url))

    def set_links(self, url: str, links: CachedLinks) -> bool:
        return self._set(self._key(_LINKS_PREFIX, url), links)

    def has_links(self, url: str) -> bool:
        return self._live(self._key(_LINKS_PREFIX, url)) is not None

    def invalidate_links(self, url: str) -> int:
        return 1 if self._entries.pop(self._key(_LINKS_PREFIX, url), None) else 0

    def invalidate_url(self, url: str) -> int:
        return self.invalidate_page(url) + self.invalidate_links(url)

    # ------------------------------------------------------------------
    # Housekeeping
    # ------------------------------------------------------------------
    def stats(self) -> dict[str, float | int]:
        """Hit/miss counters (hit rate in percent) and live entries per kind."""
        self._evict_expired()
        total = self._hits + self._misses
        page_entries = sum(1 for k in self._entries if k.startswith(_PAGE_PREFIX))
        link_entries = sum(1 for k in self._entries if k.startswith(_LINKS_PREFIX))
        return {
            "total_requests": total,
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": (self._hits / total) * 100 if total else 0.0,
            "page_entries": page_entries,
            "link_entries": link_entries,
            "total_entries": len(self._entries),
        }

    def clear(self) -> None:
        self._entries.clear()
        self._hits = 0
        self._misses = 0


# Module-level singleton shared by the pipeline and the API.
page_cache = PageCache()
