"""Token-bucket limits on connections and requests."""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable
from typing import Any


class ReqReachLimitError(Exception):
    """A request was refused because the rate limit was reached."""

    def __init__(self, message: str = "req reached rate limit") -> None:
        super().__init__(message)


class TokenBucket:
    """A bucket that starts full and gains one token per ``fill_interval`` seconds."""

    def __init__(
        self,
        fill_interval: float,
        capacity: int,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if fill_interval <= 0:
            raise ValueError("token bucket fill interval is not > 0")
        if capacity <= 0:
            raise ValueError("token bucket capacity is not > 0")
        self.fill_interval = fill_interval
        self.capacity = capacity
        self._clock = clock
        self._sleep = sleep
        self._start = clock()
        self._latest_tick = 0
        self._available = capacity
        self._lock = threading.Lock()

    def _current_tick(self, now: float) -> int:
        return int((now - self._start) // self.fill_interval)

    def _adjust(self, tick: int) -> None:
        if self._available >= self.capacity:
            self._latest_tick = tick
            return
        self._available = min(self.capacity, self._available + (tick - self._latest_tick))
        self._latest_tick = tick

    def take_available(self, count: int) -> int:
        """Take up to ``count`` tokens without waiting; return how many were taken."""
        if count <= 0:
            return 0
        with self._lock:
            self._adjust(self._current_tick(self._clock()))
            if self._available <= 0:
                return 0
            taken = min(count, self._available)
            self._available -= taken
            return taken

    def wait(self, count: int) -> None:
        """Take ``count`` tokens, sleeping until they are due."""
        if count <= 0:
            return
        with self._lock:
            now = self._clock()
            tick = self._current_tick(now)
            self._adjust(tick)
            self._available -= count
            if self._available >= 0:
                return
            end_tick = tick + math.ceil(-self._available)
            delay = self._start + end_tick * self.fill_interval - now
        if delay > 0:
            self._sleep(delay)


class RateLimitingPlugin:
    """Limits how many connections are accepted per unit of time."""

    def __init__(self, fill_interval: float, capacity: int, **bucket_options: Any) -> None:
        self.fill_interval = fill_interval
        self.capacity = capacity
        self._bucket = TokenBucket(fill_interval, capacity, **bucket_options)

    def handle_conn_accept(self, conn: Any) -> tuple[Any, bool]:
        """Accept the connection only if a token is available."""
        return conn, self._bucket.take_available(1) > 0


class ReqRateLimitingPlugin:
    """Limits how many requests are processed per unit of time.

    With ``block`` set, a request over the limit waits for a token;
    otherwise it is refused with ReqReachLimitError.
    """

    def __init__(self, fill_interval: float, capacity: int, block: bool = False, **bucket_options: Any) -> None:
        self.fill_interval = fill_interval
        self.capacity = capacity
        self.block = block
        self._bucket = TokenBucket(fill_interval, capacity, **bucket_options)

    def post_read_request(self, ctx: Any, r: Any, e: BaseException | None) -> None:
        """Take a token for the request, waiting or raising when there is none."""
        if self.block:
            self._bucket.wait(1)
            return
        if self._bucket.take_available(1) != 1:
            raise ReqReachLimitError()