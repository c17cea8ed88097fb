"""A byte-buffer pool made of size levels between a minimum and a maximum."""

from __future__ import annotations

import math
import threading


class LevelPool:
    """A free list of buffers that are at least ``size`` bytes long."""

    def __init__(self, size: int) -> None:
        self.size = size
        self._free: list[bytearray] = []
        self._lock = threading.Lock()

    def get(self) -> bytearray:
        """Return a pooled buffer, or a fresh one of ``size`` bytes."""
        with self._lock:
            if self._free:
                return self._free.pop()
        return bytearray(self.size)

    def put(self, buf: bytearray) -> None:
        """Hand a buffer back for reuse."""
        with self._lock:
            self._free.append(buf)

    def __repr__(self) -> str:
        return f"LevelPool(size={self.size})"


class LimitedPool:
    """Buffers whose sizes double from ``min_size`` up to ``max_size``.

    ``get`` returns a memoryview of the requested length over a pooled
    bytearray; ``put`` returns the underlying bytearray to the level that
    its full length fits.
    """

    _MULTIPLIER = 2

    def __init__(self, min_size: int, max_size: int) -> None:
        if max_size < min_size:
            raise ValueError("max_size can't be less than min_size")
        if min_size <= 0:
            raise ValueError("min_size must be positive")
        self.min_size = min_size
        self.max_size = max_size
        self.pools: list[LevelPool] = []
        cur = min_size
        while cur < max_size:
            self.pools.append(LevelPool(cur))
            cur *= self._MULTIPLIER
        self.pools.append(LevelPool(max_size))

    def _level(self, size: int, rounding) -> LevelPool | None:
        idx = 0 if size <= 0 else int(rounding(math.log2(size / self.min_size)))
        idx = max(idx, 0)
        if idx > len(self.pools) - 1:
            return None
        return self.pools[idx]

    def find_pool(self, size: int) -> LevelPool | None:
        """Return the smallest level able to serve ``size`` bytes."""
        if size > self.max_size:
            return None
        return self._level(size, math.ceil)

    def find_put_pool(self, size: int) -> LevelPool | None:
        """Return the level a buffer of capacity ``size`` goes back to."""
        if size > self.max_size or size < self.min_size:
            return None
        return self._level(size, math.floor)

    def get(self, size: int) -> memoryview:
        """Return a writable view of exactly ``size`` bytes."""
        if size < 0:
            raise ValueError("size must not be negative")
        level = self.find_pool(size)
        if level is None:
            return memoryview(bytearray(size))
        return memoryview(level.get())[:size]

    def put(self, buf: memoryview | bytearray) -> None:
        """Return a buffer obtained from ``get`` (or any bytearray) to the pool."""
        underlying = buf.obj if isinstance(buf, memoryview) else buf
        if not isinstance(underlying, bytearray):
            return
        level = self.find_put_pool(len(underlying))
        if level is None:
            return
        level.put(underlying)