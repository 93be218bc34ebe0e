import asyncio
import time
from collections import deque
from typing import Callable, Deque, Dict, Tuple

from shared.settings import RateLimitSettings, load_rate_limit_settings


class SimpleRateLimiter:
    """
    Per-client sliding window kept in process memory.

    Each client IP maps to the timestamps of its requests inside the current
    window. A client whose window empties is forgotten, so memory tracks only
    the clients active within the last `window_seconds`.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: int = 60,
        burst: int = 0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.limit = max(1, max_requests) + max(0, burst)
        self.window_seconds = max(1, window_seconds)
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._lock = asyncio.Lock()

    @property
    def tracked_clients(self) -> int:
        return len(self._hits)

    async def allow(self, client_id: str) -> Tuple[bool, float]:
        """
        Record a request for `client_id` if the window has room.

        Returns (allowed, retry_after_seconds); retry_after is 0.0 when allowed.
        """

        async with self._lock:
            now = self._clock()
            self._prune(now)
            hits = self._hits.setdefault(client_id, deque())
            if len(hits) >= self.limit:
                return False, max(self.window_seconds - (now - hits[0]), 0.0)
            hits.append(now)
            return True, 0.0

    def remaining(self, client_id: str) -> int:
        hits = self._hits.get(client_id)
        if hits is None:
            return self.limit
        self._expire(client_id, hits, self._clock())
        return max(self.limit - len(hits), 0)

    def _prune(self, now: float) -> None:
        for client_id, hits in list(self._hits.items()):
            self._expire(client_id, hits, now)

    def _expire(self, client_id: str, hits: Deque[float], now: float) -> None:
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()
        if not hits:
            self._hits.pop(client_id, None)


def build_rate_limiter(settings: RateLimitSettings | None = None) -> SimpleRateLimiter:
    settings = settings or load_rate_limit_settings()
    return SimpleRateLimiter(
        max_requests=settings.max_requests,
        window_seconds=settings.window_seconds,
        burst=settings.burst,
    )
