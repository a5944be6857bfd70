"""In-memory sliding-window rate limiter, keyed by client IP.

Suitable for a single API instance.  Health checks and Clerk webhooks are
exempt: the former are polled by the platform, the latter are signed.
"""

from __future__ import annotations

import logging
import time
from collections import defaultdict, deque
from typing import Any, Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from src.config import Settings, get_settings

logger = logging.getLogger("fitfare.ratelimit")

EXEMPT_PATHS: frozenset[str] = frozenset({"/health", "/api/v1/webhooks/clerk"})


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Allow ``rate_limit_per_minute`` requests per IP in any 60 s window."""

    def __init__(
        self,
        app: Any,
        settings: Settings | None = None,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(app)
        s = settings or get_settings()
        self._max_requests = s.rate_limit_per_minute
        self._window_seconds = window_seconds
        self._clock = clock
        self._hits: dict[str, deque[float]] = defaultdict(deque)
        self._last_sweep = clock()

    @staticmethod
    def _client_ip(request: Request) -> str:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    def _prune(self, hits: deque[float], now: float) -> None:
        cutoff = now - self._window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()

    def _sweep(self, now: float) -> None:
        """Drop IPs whose every hit has aged out of the window."""
        for ip in list(self._hits):
            hits = self._hits[ip]
            self._prune(hits, now)
            if not hits:
                del self._hits[ip]
        self._last_sweep = now

    def _admit(self, ip: str) -> int | None:
        """Record a hit for ``ip``; return Retry-After seconds when over the limit."""
        now = self._clock()
        if now - self._last_sweep >= self._window_seconds:
            self._sweep(now)

        hits = self._hits[ip]
        self._prune(hits, now)
        if len(hits) >= self._max_requests:
            return max(int(self._window_seconds - (now - hits[0])), 1)
        hits.append(now)
        return None

    def remaining(self, ip: str) -> int:
        hits = self._hits.get(ip)
        return max(self._max_requests - (len(hits) if hits else 0), 0)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        ip = self._client_ip(request)
        retry_after = self._admit(ip)
        if retry_after is not None:
            logger.warning("Rate limit exceeded for ip=%s path=%s", ip, request.url.path)
            return JSONResponse(
                {"detail": "Rate limit exceeded"},
                status_code=429,
                headers={"Retry-After": str(retry_after)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self._max_requests)
        response.headers["X-RateLimit-Remaining"] = str(self.remaining(ip))
        return response
