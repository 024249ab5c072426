"""
In-memory fixed-window rate limiting.

``AccessRateLimiter`` counts failed access-code attempts per client IP.
``RateLimitMiddleware`` caps total API requests per client IP.
Both keep their state per process.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Dict

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from core.config import settings


logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass
class _Window:
    count: int
    started: float


class AccessRateLimiter:
    def __init__(self, max_attempts: int = 5, window_seconds: float = 15 * 60, clock: Clock = time.monotonic) -> None:
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self._clock = clock
        self._attempts: Dict[str, _Window] = {}

    def _expired(self, entry: _Window, now: float) -> bool:
        return now - entry.started > self.window_seconds

    def is_limited(self, ip: str) -> bool:
        entry = self._attempts.get(ip)
        if entry is None:
            return False
        if self._expired(entry, self._clock()):
            del self._attempts[ip]
            return False
        return entry.count >= self.max_attempts

    def record_failure(self, ip: str) -> None:
        now = self._clock()
        entry = self._attempts.get(ip)
        if entry is None or self._expired(entry, now):
            self._attempts[ip] = _Window(count=1, started=now)
        else:
            entry.count += 1
            entry.started = now

    def retry_after(self, ip: str) -> int:
        entry = self._attempts.get(ip)
        if entry is None:
            return 0
        remaining = self.window_seconds - (self._clock() - entry.started)
        return max(0, math.ceil(remaining))

    def reset(self, ip: str) -> None:
        self._attempts.pop(ip, None)


class RequestRateLimiter:
    """Fixed window per key; unlike AccessRateLimiter the window is not extended by new hits."""

    def __init__(self, limit: int = 100, window_seconds: float = 15 * 60, clock: Clock = time.monotonic) -> None:
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._last_cleanup = clock()

    def hit(self, key: str) -> bool:
        """Count a request; return False once ``key`` is over the limit."""
        now = self._clock()
        self._cleanup(now)
        entry = self._windows.get(key)
        if entry is None or now - entry.started >= self.window_seconds:
            self._windows[key] = _Window(count=1, started=now)
            return True
        entry.count += 1
        return entry.count <= self.limit

    def retry_after(self, key: str) -> int:
        entry = self._windows.get(key)
        if entry is None:
            return 0
        return max(0, math.ceil(self.window_seconds - (self._clock() - entry.started)))

    def _cleanup(self, now: float) -> None:
        if now - self._last_cleanup < self.window_seconds:
            return
        self._windows = {k: w for k, w in self._windows.items() if now - w.started < self.window_seconds}
        self._last_cleanup = now


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: RequestRateLimiter, path_prefix: str = "/api") -> None:
        super().__init__(app)
        self.limiter = limiter
        self.path_prefix = path_prefix

    async def dispatch(self, request: Request, call_next) -> Response:
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)
        ip = client_ip(request)
        if not self.limiter.hit(ip):
            logger.warning("ratelimit.exceeded", extra={"ip": ip, "path": request.url.path})
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={"detail": "Too many requests, please try again later"},
                headers={"Retry-After": str(self.limiter.retry_after(ip))},
            )
        return await call_next(request)


@lru_cache(maxsize=1)
def get_access_rate_limiter() -> AccessRateLimiter:
    return AccessRateLimiter(settings.access_max_attempts, settings.access_window_seconds)
