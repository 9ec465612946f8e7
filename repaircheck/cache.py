"""
AI Review Cache

In-memory TTL cache for second-opinion reviews.
Key = SHA-256(text + engine + model). TTL = 1 hour.

Prevents a repeat LLM call when the same document is submitted twice.
Deterministic reports are never cached: they are cheaper to recompute
than to look up. Guarded by an asyncio lock.

Usage:
    from repaircheck.cache import review_cache
    cached = await review_cache.get(text, "document", model)
    if cached:
        return cached
    review = await ...
    await review_cache.put(text, "document", model, review)
"""

from __future__ import annotations

import asyncio
import hashlib
import time
from typing import Optional


class ReviewCache:
    """In-memory cache with TTL eviction and a size bound."""

    def __init__(self, ttl_seconds: int = 3600, max_entries: int = 500):
        self._cache: dict[str, tuple[float, dict]] = {}
        self._ttl = ttl_seconds
        self._max_entries = max_entries
        self._lock = asyncio.Lock()
        self._hits = 0
        self._misses = 0

    @staticmethod
    def _make_key(text: str, engine: str, model: str) -> str:
        raw = f"{text}||{engine}||{model}"
        return hashlib.sha256(raw.encode()).hexdigest()

    async def get(self, text: str, engine: str, model: str) -> Optional[dict]:
        """Return the cached review if present and not expired."""
        key = self._make_key(text, engine, model)
        async with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                self._misses += 1
                return None

            ts, review = entry
            if time.monotonic() - ts > self._ttl:
                del self._cache[key]
                self._misses += 1
                return None

            self._hits += 1
            return {**review, "cached": True}

    async def put(self, text: str, engine: str, model: str, review: dict) -> None:
        """Store a review. Evicts the oldest entry when full."""
        key = self._make_key(text, engine, model)
        async with self._lock:
            if key not in self._cache and len(self._cache) >= self._max_entries:
                oldest_key = min(self._cache, key=lambda k: self._cache[k][0])
                del self._cache[oldest_key]

            self._cache[key] = (time.monotonic(), review)

    async def clear(self) -> None:
        async with self._lock:
            self._cache.clear()
            self._hits = 0
            self._misses = 0

    @property
    def stats(self) -> dict:
        """Cache hit/miss statistics."""
        total = self._hits + self._misses
        return {
            "entries": len(self._cache),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": round(self._hits / total, 3) if total > 0 else 0.0,
        }


# Singleton: shared across the application
review_cache = ReviewCache()
