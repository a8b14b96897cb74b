"""Per-actor rate limiting for model-invoking operations.

The in-memory limiter counts calls inside this process only. Deployments
with several server instances should inject an implementation backed by a
shared store instead.
"""

import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Dict, Protocol

from estate_intake.core.exceptions import RateLimitExceededError
from estate_intake.utils.logging import get_logger

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of one rate-limit check."""
    allowed: bool
    remaining: int
    retry_after_seconds: float = 0.0


class RateLimiter(Protocol):
    def hit(self, key: str) -> RateLimitDecision:
        ...


class InMemorySlidingWindowRateLimiter:
    """Sliding-window limiter keeping call timestamps per key.

    Attributes:
        limit: Maximum number of calls allowed inside one window
        window_seconds: Window length in seconds
    """

    def __init__(
        self,
        limit: int = 20,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        if limit <= 0:
            raise ValueError("limit must be positive")
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._calls: Dict[str, Deque[float]] = {}
        self._last_sweep = clock()

    def hit(self, key: str) -> RateLimitDecision:
        """Record a call for ``key`` if the window still has room.

        Rejected calls are not recorded.
        """
        now = self._clock()
        cutoff = now - self.window_seconds
        if now - self._last_sweep >= self.window_seconds:
            self._evict_idle(cutoff)
            self._last_sweep = now

        calls = self._calls.get(key)
        if calls is None:
            calls = self._calls[key] = deque()
        while calls and calls[0] <= cutoff:
            calls.popleft()

        if len(calls) >= self.limit:
            retry_after = calls[0] + self.window_seconds - now
            return RateLimitDecision(allowed=False, remaining=0, retry_after_seconds=max(retry_after, 0.0))

        calls.append(now)
        return RateLimitDecision(allowed=True, remaining=self.limit - len(calls))

    def _evict_idle(self, cutoff: float) -> None:
        """Drop keys whose newest call is outside the window."""
        idle = [key for key, calls in self._calls.items() if not calls or calls[-1] <= cutoff]
        for key in idle:
            del self._calls[key]

    def reset(self) -> None:
        self._calls.clear()


def enforce_rate_limit(limiter: RateLimiter, key: str) -> RateLimitDecision:
    """Check the limiter and raise when the caller is over budget.

    Raises:
        RateLimitExceededError: If the key has no calls left in the window
    """
    decision = limiter.hit(key)
    if not decision.allowed:
        LOGGER.warning(
            "Rate limit exceeded",
            extra={"key": key, "retry_after_seconds": decision.retry_after_seconds},
        )
        raise RateLimitExceededError(
            "Rate limit exceeded", retry_after_seconds=decision.retry_after_seconds
        )
    return decision
