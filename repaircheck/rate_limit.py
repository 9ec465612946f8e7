"""
Rate Limiter — Per-Key Request Throttling and Usage Tracking

Sliding window rate limiter backed by an in-memory dict, plus daily
token counters for the AI review layer.

Keys name either an API client (its address) or an outbound budget,
e.g. "ai_review" for the shared LLM quota:
  - API clients:  60 requests/minute, 1000/hour
  - AI review:    REPAIRCHECK_AI_RATE_PER_MINUTE / _PER_HOUR (30 / 600)
"""

from __future__ import annotations

import os
import time
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from fastapi import HTTPException


# Maximum number of unique keys tracked before LRU eviction
MAX_RATE_LIMIT_KEYS = 5000

# Longest window tracked; older timestamps are pruned
HOUR_SECONDS = 3600


@dataclass
class RateWindow:
    """Sliding window counter."""
    timestamps: list[float] = field(default_factory=list)

    def count_within(self, window_seconds: float) -> int:
        """Count requests within the sliding window. Read-only."""
        cutoff = time.time() - window_seconds
        return sum(1 for t in self.timestamps if t > cutoff)

    def prune(self, max_age: float = HOUR_SECONDS):
        """Drop timestamps older than the longest window."""
        cutoff = time.time() - max_age
        self.timestamps = [t for t in self.timestamps if t > cutoff]

    def record(self):
        self.timestamps.append(time.time())


@dataclass
class RateLimits:
    """Rate limit configuration."""
    per_minute: int = 60
    per_hour: int = 1000


@dataclass
class UsageCounter:
    """Token and request totals. `requests_today` resets on a new day."""
    tokens_used: int = 0
    requests_today: int = 0
    day: date = field(default_factory=date.today)

    def add(self, tokens: int) -> None:
        today = date.today()
        if today != self.day:
            self.requests_today = 0
            self.day = today
        self.tokens_used += max(0, tokens)
        self.requests_today += 1


# Default limits: override via env
DEFAULT_LIMITS = RateLimits(
    per_minute=int(os.getenv("REPAIRCHECK_RATE_PER_MINUTE", "60")),
    per_hour=int(os.getenv("REPAIRCHECK_RATE_PER_HOUR", "1000")),
)

# LRU-bounded store: key → RateWindow
_windows: OrderedDict[str, RateWindow] = OrderedDict()
_usage: dict[str, UsageCounter] = {}
_lock = threading.Lock()

RATE_LIMIT_ENABLED = os.getenv("REPAIRCHECK_RATE_LIMIT", "true").lower() == "true"


def check_rate_limit(
    key_id: Optional[str],
    limits: Optional[RateLimits] = None,
) -> None:
    """
    Check and enforce rate limits for a given key, recording the request
    when it is admitted.

    Args:
        key_id: The budget being drawn from. None = no limit.
        limits: Override default limits.

    Raises:
        HTTPException 429 if rate limit exceeded.
    """
    if not RATE_LIMIT_ENABLED:
        return
    if key_id is None:
        return

    limits = limits or DEFAULT_LIMITS

    with _lock:
        if key_id not in _windows:
            if len(_windows) >= MAX_RATE_LIMIT_KEYS:
                _windows.popitem(last=False)  # Remove least-recently-used
            _windows[key_id] = RateWindow()
        else:
            _windows.move_to_end(key_id)

        window = _windows[key_id]
        window.prune()

        minute_count = window.count_within(60)
        if minute_count >= limits.per_minute:
            retry_after = 60 - int(time.time() % 60)
            raise HTTPException(
                status_code=429,
                detail=f"Rate limit exceeded: {limits.per_minute} requests/minute. "
                       f"Retry after {retry_after} seconds.",
                headers={"Retry-After": str(retry_after)},
            )

        hour_count = window.count_within(HOUR_SECONDS)
        if hour_count >= limits.per_hour:
            raise HTTPException(
                status_code=429,
                detail=f"Rate limit exceeded: {limits.per_hour} requests/hour.",
                headers={"Retry-After": "3600"},
            )

        window.record()


def track_usage(key_id: str, tokens: int) -> None:
    """Add a completed request's token count to the key's totals."""
    with _lock:
        counter = _usage.setdefault(key_id, UsageCounter())
        counter.add(tokens)


def get_usage(key_id: str) -> dict:
    """Current window counts and token totals for a key."""
    with _lock:
        window = _windows.get(key_id)
        counter = _usage.get(key_id)
        return {
            "minute": window.count_within(60) if window else 0,
            "hour": window.count_within(HOUR_SECONDS) if window else 0,
            "tokens_used": counter.tokens_used if counter else 0,
            "requests_today": counter.requests_today if counter else 0,
        }


def cleanup_stale_windows(max_age: float = 7200):
    """Remove windows with no recent activity. Call periodically."""
    cutoff = time.time() - max_age
    with _lock:
        stale = [
            k for k, w in _windows.items()
            if not w.timestamps or w.timestamps[-1] < cutoff
        ]
        for k in stale:
            del _windows[k]
