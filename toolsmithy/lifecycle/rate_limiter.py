"""Sliding-window admission control."""

from __future__ import annotations

import math
from collections import deque
from dataclasses import dataclass

from toolsmithy.domain.errors import RateLimitedError


@dataclass(frozen=True)
class Admission:
    """Outcome of ``RateLimiter.admit``; ``retry_after`` is whole seconds."""

    allowed: bool
    retry_after: int = 0

    def __bool__(self) -> bool:
        return self.allowed


ALLOWED = Admission(allowed=True)


class RateLimiter:
    """Admit at most ``max_requests`` per trailing ``window_seconds``.

    Capacity refills as individual timestamps age out of the window; there is
    no periodic reset.
    """

    def __init__(self, max_requests: int, window_seconds: float) -> None:
        self._validate(max_requests, window_seconds)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._admitted: deque[float] = deque()

    @staticmethod
    def _validate(max_requests: int, window_seconds: float) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

    def _prune(self, now: float) -> None:
        window_start = now - self.window_seconds
        while self._admitted and self._admitted[0] <= window_start:
            self._admitted.popleft()

    def admit(self, now: float) -> Admission:
        self._prune(now)
        if len(self._admitted) < self.max_requests:
            self._admitted.append(now)
            return ALLOWED
        # A denial never says "retry now": under a second left rounds up to 1
        return Admission(allowed=False, retry_after=max(1, self.retry_after(now)))

    def acquire(self, now: float) -> None:
        """Like ``admit`` but raises ``RateLimitedError`` when denied."""
        admission = self.admit(now)
        if not admission:
            raise RateLimitedError(admission.retry_after)

    def retry_after(self, now: float) -> int:
        if not self._admitted:
            return math.ceil(self.window_seconds)
        oldest = self._admitted[0]
        return max(0, math.floor(oldest + self.window_seconds - now))

    def reconfigure(self, max_requests: int, window_seconds: float) -> None:
        self._validate(max_requests, window_seconds)
        self.max_requests = max_requests
        self.window_seconds = window_seconds

    def in_window(self, now: float) -> int:
        """Number of admissions still counted against the window."""
        self._prune(now)
        return len(self._admitted)
