"""In-process fixed-window rate limiting keyed by client identity."""

import time
from collections.abc import Callable
from dataclasses import dataclass


@dataclass
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    reset_after_seconds: float


class FixedWindowRateLimiter:
    """Counts hits per key inside windows of `window_seconds`.

    A key's window opens on its first hit and closes `window_seconds` later;
    the next hit after that starts a fresh window with a zero count. State
    lives on the instance, one per app.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._windows: dict[str, tuple[float, int]] = {}

    def hit(self, key: str) -> RateLimitDecision:
        """Record one request for `key` and decide whether it may proceed."""

        now = self._clock()
        started_at, count = self._windows.get(key, (now, 0))
        if now - started_at >= self.window_seconds:
            started_at, count = now, 0
        count += 1
        self._windows[key] = (started_at, count)
        self._evict_expired(now)

        reset_after = max(0.0, started_at + self.window_seconds - now)
        return RateLimitDecision(
            allowed=count <= self.max_requests,
            limit=self.max_requests,
            remaining=max(0, self.max_requests - count),
            reset_after_seconds=reset_after,
        )

    def reset(self, key: str | None = None) -> None:
        if key is None:
            self._windows.clear()
        else:
            self._windows.pop(key, None)

    def _evict_expired(self, now: float) -> None:
        # Bounded sweep keeps the table from growing with one-off clients.
        if len(self._windows) < 10_000:
            return
        expired = [k for k, (start, _) in self._windows.items() if now - start >= self.window_seconds]
        for k in expired:
            del self._windows[k]
