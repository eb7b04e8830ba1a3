"""Caller supplied time budgets."""
from __future__ import annotations

import time
from typing import Callable, Optional

from .errors import DeadlineExceeded


class Deadline:
    """A point on the monotonic clock after which no new fetch may start."""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self.expires_at = clock() + seconds

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def timeout(self, default: float) -> float:
        """Cap a per-request timeout at the time left, failing once none is left."""

        remaining = self.remaining()
        if remaining <= 0.0:
            raise DeadlineExceeded("Deadline elapsed before the request could start")
        return min(default, remaining)


def request_timeout(deadline: Optional[Deadline], default: float) -> float:
    return default if deadline is None else deadline.timeout(default)


__all__ = ["Deadline", "request_timeout"]
