"""Sliding-window rate limiting.

``InMemoryRateLimiter`` keeps request timestamps per key in process memory.
For multi-replica deployments, swap to a shared store with the same
``check`` / ``record`` contract.
"""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.types import ASGIApp

from cashledger.app.api.deps import get_current_user
from cashledger.app.core.config import settings
from cashledger.app.core.i18n import translate
from cashledger.app.models.user import User


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    retry_after_ms: int | None = None

    @property
    def retry_after_seconds(self) -> int:
        return max(1, math.ceil((self.retry_after_ms or 0) / 1000))


@dataclass(frozen=True)
class RateLimitRule:
    key_prefix: str
    limit: int
    window_ms: int


API_BY_IP = RateLimitRule("api:ip", settings.API_BY_IP_LIMIT, settings.API_BY_IP_WINDOW_MS)
IMPORT_BY_USER = RateLimitRule(
    "import:user", settings.IMPORT_BY_USER_LIMIT, settings.IMPORT_BY_USER_WINDOW_MS
)


class InMemoryRateLimiter:
    """Sliding-window in-memory rate limiter keyed by an arbitrary string.

    Keys whose window has drained are dropped when touched, and a sweep
    every ``sweep_interval_ms`` drops keys nobody touches any more.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sweep_interval_ms: int = 60_000,
    ) -> None:
        self._clock = clock
        self._hits: dict[str, list[float]] = {}
        self._lock = threading.Lock()
        self._sweep_interval_ms = sweep_interval_ms
        self._longest_window_ms = 0
        self._last_sweep = self._now_ms()

    @property
    def tracked_keys(self) -> int:
        with self._lock:
            return len(self._hits)

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def _sweep(self, now: float) -> None:
        if now - self._last_sweep < self._sweep_interval_ms:
            return
        self._last_sweep = now
        horizon = now - self._longest_window_ms
        for key in [k for k, hits in self._hits.items() if hits[-1] <= horizon]:
            del self._hits[key]

    def _window(self, key: str, window_ms: int, now: float) -> list[float]:
        self._longest_window_ms = max(self._longest_window_ms, window_ms)
        self._sweep(now)
        hits = [t for t in self._hits.get(key, ()) if t > now - window_ms]
        if hits:
            self._hits[key] = hits
        else:
            self._hits.pop(key, None)
        return hits

    def _add(self, key: str, hits: list[float], now: float) -> None:
        hits.append(now)
        self._hits[key] = hits

    def check(self, key: str, limit: int, window_ms: int) -> RateLimitResult:
        """Would one more request for *key* fit in the window? Records nothing."""
        with self._lock:
            now = self._now_ms()
            hits = self._window(key, window_ms, now)
            if len(hits) >= limit:
                retry_after = hits[0] + window_ms - now
                return RateLimitResult(False, 0, max(0, math.ceil(retry_after)))
            return RateLimitResult(True, limit - len(hits) - 1)

    def record(self, key: str, window_ms: int) -> None:
        with self._lock:
            now = self._now_ms()
            self._add(key, self._window(key, window_ms, now), now)

    def check_and_record(self, key: str, limit: int, window_ms: int) -> RateLimitResult:
        with self._lock:
            now = self._now_ms()
            hits = self._window(key, window_ms, now)
            if len(hits) >= limit:
                retry_after = hits[0] + window_ms - now
                return RateLimitResult(False, 0, max(0, math.ceil(retry_after)))
            self._add(key, hits, now)
            return RateLimitResult(True, limit - len(hits))

    def reset(self, key: str) -> None:
        with self._lock:
            self._hits.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._hits.clear()


limiter = InMemoryRateLimiter()


def is_public_path(path: str) -> bool:
    return any(path == p or path.startswith(p.rstrip("/") + "/") for p in settings.PUBLIC_PATHS)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-client-IP limit on every non-public path (``API_BY_IP``)."""

    def __init__(
        self,
        app: ASGIApp,
        rate_limiter: InMemoryRateLimiter = limiter,
        rule: RateLimitRule = API_BY_IP,
    ) -> None:
        super().__init__(app)
        self._limiter = rate_limiter
        self._rule = rule

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not settings.RATE_LIMIT_ENABLED or is_public_path(request.url.path):
            return await call_next(request)

        client = request.client.host if request.client else "unknown"
        key = f"{self._rule.key_prefix}:{client}"
        result = self._limiter.check_and_record(key, self._rule.limit, self._rule.window_ms)
        if not result.allowed:
            language = getattr(request.state, "language", "en")
            return JSONResponse(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                content={
                    "detail": translate(
                        language, "error.rate_limited", seconds=str(result.retry_after_seconds)
                    )
                },
                headers={"Retry-After": str(result.retry_after_seconds)},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(self._rule.limit)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)
        return response


def rate_limit_per_user(rule: RateLimitRule):
    """FastAPI dependency factory: limits an endpoint per authenticated user.

    Returns the ``User`` so the endpoint can use it::

        current_user = Depends(rate_limit_per_user(IMPORT_BY_USER))
    """

    def _checker(
        request: Request,
        current_user: User = Depends(get_current_user),
    ) -> User:
        if not settings.RATE_LIMIT_ENABLED:
            return current_user
        result = limiter.check_and_record(
            f"{rule.key_prefix}:{current_user.id}", rule.limit, rule.window_ms
        )
        if not result.allowed:
            language = getattr(request.state, "language", "en")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail=translate(
                    language, "error.rate_limited", seconds=str(result.retry_after_seconds)
                ),
                headers={"Retry-After": str(result.retry_after_seconds)},
            )
        return current_user

    return _checker
