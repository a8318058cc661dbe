"""
Sliding-window rate limiting per origin.

Each key keeps the timestamps of its admitted requests inside the trailing
window. A request is admitted while fewer than ``max_requests`` of those
timestamps are younger than ``window_seconds``.
"""

from __future__ import annotations

import time
from collections import deque
from typing import Callable, Deque, Dict

import structlog

logger = structlog.get_logger(__name__)


class SlidingWindowRateLimiter:
    """
    In-process sliding-window admission control.

    The limiter is not thread-safe. It is meant to be owned by a single
    event loop, where ``check_limit`` runs without a suspension point and
    the test-and-record step is therefore atomic.
    """

    def __init__(
        self,
        max_requests: int = 10,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._requests: Dict[str, Deque[float]] = {}

    def _prune(self, key: str, now: float) -> Deque[float]:
        history = self._requests.get(key)
        if history is None:
            return deque()
        while history and now - history[0] >= self.window_seconds:
            history.popleft()
        if not history:
            del self._requests[key]
        return history

    def check_limit(self, key: str) -> bool:
        """Admit and record a request for ``key`` if the window has room."""
        now = self._clock()
        history = self._prune(key, now)
        if len(history) >= self.max_requests:
            logger.debug("Rate limit reached", key=key, limit=self.max_requests, window=self.window_seconds)
            return False
        history.append(now)
        self._requests[key] = history
        return True

    def get_remaining_requests(self, key: str) -> int:
        """Requests ``key`` may still make in the current window. Never records."""
        history = self._prune(key, self._clock())
        return max(0, self.max_requests - len(history))

    def retry_after(self, key: str) -> float:
        """Seconds until ``key`` regains at least one slot (0 if it has one now)."""
        now = self._clock()
        history = self._prune(key, now)
        if len(history) < self.max_requests:
            return 0.0
        return max(0.0, history[0] + self.window_seconds - now)

    def prune(self) -> None:
        """Drop expired timestamps for every key."""
        now = self._clock()
        for key in list(self._requests):
            self._prune(key, now)

    def reset(self, key: str | None = None) -> None:
        if key is None:
            self._requests.clear()
        else:
            self._requests.pop(key, None)

    def __len__(self) -> int:
        return len(self._requests)
