"""Blocking rate limiter that serializes access to a shared resource."""

from __future__ import annotations

import threading
import time
from typing import Callable, Generic, TypeVar

T = TypeVar("T")
R = TypeVar("R")


class RateLimited(Generic[T]):
    """Wrap a resource so operations on it run one at a time, spaced by interval.

    The lock is held across the wait and the operation itself, so callers
    queue behind each other and no bursts are possible: successive
    invocations start at least ``interval`` seconds apart system-wide.
    """

    def __init__(
        self,
        resource: T,
        interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if interval < 0:
            raise ValueError("interval must be non-negative")
        self.resource = resource
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._lock = threading.Lock()
        self._last_use: float | None = None

    def use(self, operation: Callable[[T], R]) -> R:
        """Run operation(resource) once the spacing interval has elapsed."""
        with self._lock:
            if self._last_use is not None:
                wait = self.interval - (self._clock() - self._last_use)
                if wait > 0:
                    self._sleep(wait)
            self._last_use = self._clock()
            return operation(self.resource)
