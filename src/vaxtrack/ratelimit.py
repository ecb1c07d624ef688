from __future__ import annotations

from typing import Callable, Optional

from fastapi import HTTPException, Request, status
from limits import RateLimitItemPerSecond
from limits.storage import Storage, storage_from_string
from limits.strategies import FixedWindowRateLimiter

from src.vaxtrack.config import settings

# Counters expire with their window. "memory://" is per process; point
# RATE_LIMIT_STORAGE_URI at Redis to share limits between workers.
rate_limit_storage: Storage = storage_from_string(settings.rate_limit_storage_uri)


class RateLimit:
    """A fixed-window limit on requests per client key.

    ``namespace`` keeps the counters of different limits apart when they
    share one storage.
    """

    def __init__(
        self,
        namespace: str,
        max_requests: int,
        window_seconds: int,
        *,
        message: str,
        storage: Optional[Storage] = None,
    ) -> None:
        self.namespace = namespace
        self.max_requests = max_requests
        self.message = message
        self.item = RateLimitItemPerSecond(max_requests, window_seconds)
        self._strategy = FixedWindowRateLimiter(storage if storage is not None else rate_limit_storage)

    def hit(self, key: str) -> bool:
        """Record one request; return False once the key is over its limit."""
        return self._strategy.hit(self.item, self.namespace, key)


def reset_rate_limits() -> None:
    rate_limit_storage.reset()


api_limiter = RateLimit(
    "api",
    settings.rate_limit_max_requests,
    settings.rate_limit_window_minutes * 60,
    message="Too many requests from this IP, please try again later",
)
auth_limiter = RateLimit(
    "auth",
    settings.auth_rate_limit_max_requests,
    15 * 60,
    message="Too many authentication attempts, please try again later",
)
ai_limiter = RateLimit(
    "ai",
    settings.ai_rate_limit_max_requests,
    60 * 60,
    message="AI request limit exceeded, please try again later",
)


def rate_limit(limiter: RateLimit) -> Callable:
    """Build a FastAPI dependency enforcing ``limiter`` per client address."""

    async def _dependency(request: Request) -> None:
        if not settings.rate_limit_enabled:
            return
        key = request.client.host if request.client else "unknown"
        if not limiter.hit(key):
            raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=limiter.message)

    return _dependency
