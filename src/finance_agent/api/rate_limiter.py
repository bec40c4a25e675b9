"""Per-user fixed window rate limiter."""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from fastapi import Depends, HTTPException, Request, status

from finance_agent.api.auth import verify_token
from finance_agent.observability.logger import get_logger

logger = get_logger("rate_limiter")


class RateLimiter(Protocol):
    def check(self, key: str) -> tuple[bool, float]: ...


@dataclass
class _Window:
    count: int
    reset_at: float


class InMemoryRateLimiter:
    """Lock-guarded ``{count, reset_at}`` map for a single process.

    A window opens on the first request and resets once ``now > reset_at``.
    Multi-instance deployments should supply a shared-store implementation of
    ``RateLimiter`` instead.
    """

    def __init__(
        self,
        max_requests: int = 20,
        window_seconds: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._next_sweep = clock() + window_seconds

    def __len__(self) -> int:
        return len(self._windows)

    def check(self, key: str) -> tuple[bool, float]:
        """Return (allowed, seconds until the window resets)."""
        now = self._clock()
        with self._lock:
            if now > self._next_sweep:
                self._sweep(now)
            window = self._windows.get(key)
            if window is None or now > window.reset_at:
                self._windows[key] = _Window(count=1, reset_at=now + self._window_seconds)
                return True, self._window_seconds
            if window.count >= self._max_requests:
                return False, max(0.0, window.reset_at - now)
            window.count += 1
            return True, window.reset_at - now

    def _sweep(self, now: float) -> None:
        expired = [key for key, window in self._windows.items() if now > window.reset_at]
        for key in expired:
            del self._windows[key]
        self._next_sweep = now + self._window_seconds


async def rate_limit(
    request: Request,
    token_payload: dict = Depends(verify_token),
) -> dict:
    """FastAPI dependency: enforce rate limiting per authenticated user.

    Chains verify_token internally. Returns the token payload for downstream use.
    """
    limiter: RateLimiter = request.app.state.rate_limiter
    key = token_payload["sub"]

    allowed, retry_after = limiter.check(key)
    if not allowed:
        logger.warning("rate_limited", user_id=key)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Rate limit exceeded. Please wait before sending more messages.",
            headers={"Retry-After": str(max(1, math.ceil(retry_after)))},
        )
    return token_payload
