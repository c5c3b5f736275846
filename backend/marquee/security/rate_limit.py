"""
In-memory fixed-window rate limiting.

Counters live in a process-wide dict, so limits are per worker process; there
is no coordination between instances.

Two call styles share one store:
- hit(identifier, limit, interval): per-route limits keyed by user id + route name.
  The request is counted before the check, so blocked requests keep counting.
- check(identifier, preset): named presets keyed by client IP. Blocked requests
  are not counted.
"""

import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from fastapi import Depends, Request, Response

from marquee.api.responses import rate_limit_exceeded
from marquee.auth import AuthContext, get_auth_context

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitConfig:
    max_requests: int
    window_seconds: float


RATE_LIMITS: Dict[str, RateLimitConfig] = {
    "PUBLIC_READ": RateLimitConfig(max_requests=100, window_seconds=60),
    "WRITE": RateLimitConfig(max_requests=30, window_seconds=60),
    "AUTH": RateLimitConfig(max_requests=5, window_seconds=60),
    "SEARCH": RateLimitConfig(max_requests=50, window_seconds=60),
    "UPLOAD": RateLimitConfig(max_requests=10, window_seconds=60),
}


@dataclass
class RateLimitResult:
    success: bool
    limit: int
    remaining: int
    reset_at: float  # epoch seconds

    @property
    def reset_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.reset_at, tz=timezone.utc)

    @property
    def retry_after(self) -> int:
        return max(0, int(self.reset_at - time.time()) + 1)


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """Fixed-window counters keyed by string; safe to share across threads."""

    def __init__(self, sweep_interval: float = 60.0, clock: Callable[[], float] = time.time):
        self._store: Dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._sweep_interval = sweep_interval
        self._last_sweep = clock()

    def hit(self, identifier: str, limit: int = 10, interval: float = 60.0) -> RateLimitResult:
        now = self._clock()
        key = f"ratelimit:{identifier}"
        with self._lock:
            self._maybe_sweep(now)
            window = self._store.get(key)
            if window is None or now > window.reset_at:
                window = _Window(count=0, reset_at=now + interval)
                self._store[key] = window
            window.count += 1
            return RateLimitResult(
                success=window.count <= limit,
                limit=limit,
                remaining=max(0, limit - window.count),
                reset_at=window.reset_at,
            )

    def check(self, identifier: str, preset: str = "PUBLIC_READ") -> RateLimitResult:
        config = RATE_LIMITS[preset]
        now = self._clock()
        key = f"preset:{preset}:{identifier}"
        with self._lock:
            self._maybe_sweep(now)
            window = self._store.get(key)
            if window is None or now > window.reset_at:
                window = _Window(count=1, reset_at=now + config.window_seconds)
                self._store[key] = window
                return RateLimitResult(True, config.max_requests, config.max_requests - 1, window.reset_at)

            if window.count >= config.max_requests:
                return RateLimitResult(False, config.max_requests, 0, window.reset_at)

            window.count += 1
            return RateLimitResult(
                True, config.max_requests, config.max_requests - window.count, window.reset_at
            )

    def reset(self, identifier: str, preset: Optional[str] = None) -> None:
        key = f"preset:{preset}:{identifier}" if preset else f"ratelimit:{identifier}"
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._store.clear()

    def sweep(self) -> int:
        """Drop expired windows; returns how many were removed."""
        with self._lock:
            return self._sweep(self._clock())

    def __len__(self) -> int:
        return len(self._store)

    def _maybe_sweep(self, now: float) -> None:
        if now - self._last_sweep >= self._sweep_interval:
            removed = self._sweep(now)
            if removed:
                logger.debug(f"Rate limiter swept {removed} expired window(s)")

    def _sweep(self, now: float) -> int:
        expired = [key for key, window in self._store.items() if now > window.reset_at]
        for key in expired:
            del self._store[key]
        self._last_sweep = now
        return len(expired)


_rate_limiter = RateLimiter()


def get_rate_limiter() -> RateLimiter:
    return _rate_limiter


def rate_limit_headers(result: RateLimitResult) -> Dict[str, str]:
    return {
        "X-RateLimit-Limit": str(result.limit),
        "X-RateLimit-Remaining": str(result.remaining),
        "X-RateLimit-Reset": result.reset_datetime.isoformat().replace("+00:00", "Z"),
    }


def client_ip(request: Request) -> str:
    """First X-Forwarded-For hop, else X-Real-IP, else 'unknown'."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()
    return "unknown"


def enforce(result: RateLimitResult, response: Optional[Response] = None) -> RateLimitResult:
    """Raise 429 on denial; otherwise copy the X-RateLimit headers onto `response`."""
    headers = rate_limit_headers(result)
    if not result.success:
        headers["Retry-After"] = str(result.retry_after)
        raise rate_limit_exceeded(result.reset_datetime, headers)
    if response is not None:
        response.headers.update(headers)
    return result


def limit_by_user(name: str, limit: int, interval: float):
    """
    Dependency: authenticate, then count the request against `name:<user id>`.

    Returns the AuthContext so routes can depend on this instead of get_auth_context.
    """

    def dependency(response: Response, auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
        enforce(get_rate_limiter().hit(f"{name}:{auth.user.id}", limit, interval), response)
        return auth

    return dependency


def limit_by_ip(preset: str):
    """Dependency: count the request against the preset for the client IP."""

    def dependency(request: Request, response: Response) -> RateLimitResult:
        return enforce(get_rate_limiter().check(client_ip(request), preset), response)

    return dependency
