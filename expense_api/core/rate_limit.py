import threading
import time
from typing import Callable, Dict, Tuple

from fastapi import Request

from .errors import RateLimitError, error_response


class FixedWindowRateLimiter:
    """Counts requests per client key in fixed windows of `window_seconds`."""

    def __init__(self, max_requests: int, window_seconds: int, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._next_prune = clock() + window_seconds
        self._lock = threading.Lock()

    def hit(self, key: str) -> None:
        """Record one request for `key`; raise RateLimitError once the window is full."""
        now = self._clock()
        with self._lock:
            started, count = self._windows.get(key, (now, 0))
            if now - started >= self.window_seconds:
                started, count = now, 0
            if count >= self.max_requests:
                retry_after = max(1, int(started + self.window_seconds - now))
                raise RateLimitError(retry_after)
            self._windows[key] = (started, count + 1)
            if now >= self._next_prune:
                self._prune(now)

    def _prune(self, now: float) -> None:
        """Drop clients whose window has ended; runs at most once per window."""
        expired = [k for k, (started, _) in self._windows.items() if now - started >= self.window_seconds]
        for k in expired:
            del self._windows[k]
        self._next_prune = now + self.window_seconds

    @property
    def tracked_clients(self) -> int:
        return len(self._windows)


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def rate_limit_middleware(limiter: FixedWindowRateLimiter):
    async def middleware(request: Request, call_next):
        try:
            limiter.hit(client_key(request))
        except RateLimitError as exc:
            return error_response(exc)
        return await call_next(request)

    return middleware
