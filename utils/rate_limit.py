"""
Per-client fixed-window rate limiter for the tracking endpoints.

In-memory, so limits apply per process.
"""

import threading
import time
from typing import Callable, Optional

import structlog
from fastapi import Request

from config import settings
from exceptions import RateLimitExceededError

logger = structlog.get_logger(__name__)

WINDOW_SECONDS = 60

# Purge expired windows once the table grows past this size
CLEANUP_THRESHOLD = 1000


def client_key(request: Request) -> str:
    """First X-Forwarded-For hop, else the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


class RateLimiter:
    """Allow at most `limit` hits per key per window."""

    def __init__(
        self,
        limit: Optional[int] = None,
        window_seconds: int = WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = limit or settings.shipsgo_rate_limit
        self.window_seconds = window_seconds
        self.clock = clock
        self._windows: dict[str, tuple[int, float]] = {}
        self._lock = threading.Lock()

    def hit(self, key: str) -> None:
        """
        Count one request for key.

        Raises:
            RateLimitExceededError: If key already used its quota this window
        """
        now = self.clock()
        with self._lock:
            if len(self._windows) > CLEANUP_THRESHOLD:
                self._cleanup(now)

            count, reset_at = self._windows.get(key, (0, 0.0))
            if now >= reset_at:
                count, reset_at = 0, now + self.window_seconds

            if count >= self.limit:
                logger.warning("rate_limit_exceeded", client=key, limit=self.limit)
                raise RateLimitExceededError(self.limit, self.window_seconds)

            self._windows[key] = (count + 1, reset_at)

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def _cleanup(self, now: float) -> None:
        expired = [key for key, (_, reset_at) in self._windows.items() if now >= reset_at]
        for key in expired:
            del self._windows[key]


tracking_rate_limiter = RateLimiter()


def limit_tracking_requests(request: Request) -> None:
    """FastAPI dependency applied to the tracking routes."""
    tracking_rate_limiter.hit(client_key(request))
