"""In-process metrics: counters, meters, histograms and a registry of them."""

from __future__ import annotations

import math
import random
import threading
import time
from collections.abc import Callable, Iterator
from typing import Any, TypeVar

_TICK_SECONDS = 5.0
DEFAULT_RESERVOIR_SIZE = 1028

T = TypeVar("T")


class Counter:
    """A value that is incremented and decremented."""

    def __init__(self) -> None:
        self._count = 0
        self._lock = threading.Lock()

    @property
    def count(self) -> int:
        """The current value."""
        with self._lock:
            return self._count

    def inc(self, n: int = 1) -> None:
        """Add ``n``."""
        with self._lock:
            self._count += n

    def dec(self, n: int = 1) -> None:
        """Subtract ``n``."""
        with self._lock:
            self._count -= n

    def clear(self) -> None:
        """Reset to zero."""
        with self._lock:
            self._count = 0


class _EWMA:
    """An exponentially weighted moving average ticked every five seconds."""

    def __init__(self, minutes: float) -> None:
        self.alpha = 1.0 - math.exp(-_TICK_SECONDS / 60.0 / minutes)
        self.rate = 0.0
        self.uncounted = 0
        self.initialized = False

    def update(self, n: int) -> None:
        self.uncounted += n

    def tick(self) -> None:
        instant = self.uncounted / _TICK_SECONDS
        self.uncounted = 0
        if self.initialized:
            self.rate += self.alpha * (instant - self.rate)
        else:
            self.rate = instant
            self.initialized = True


class Meter:
    """Counts events and their rates over 1, 5 and 15 minutes and overall.

    Moving averages advance in five-second ticks, caught up lazily from
    the clock whenever the meter is marked or read.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._start = clock()
        self._last_tick = self._start
        self._count = 0
        self._ewmas = (_EWMA(1), _EWMA(5), _EWMA(15))
        self._lock = threading.Lock()

    def _tick(self) -> None:
        for ewma in self._ewmas:
            ewma.tick()

    def _catch_up(self) -> None:
        now = self._clock()
        while now - self._last_tick >= _TICK_SECONDS:
            self._tick()
            self._last_tick += _TICK_SECONDS

    @property
    def count(self) -> int:
        """Number of events marked so far."""
        with self._lock:
            return self._count

    def mark(self, n: int = 1) -> None:
        """Record ``n`` events."""
        with self._lock:
            self._catch_up()
            self._count += n
            for ewma in self._ewmas:
                ewma.update(n)

    def tick(self) -> None:
        """Advance the moving averages by one interval."""
        with self._lock:
            self._tick()

    def _rate(self, index: int) -> float:
        with self._lock:
            self._catch_up()
            return self._ewmas[index].rate

    def rate1(self) -> float:
        """One-minute moving average rate, in events per second."""
        return self._rate(0)

    def rate5(self) -> float:
        """Five-minute moving average rate, in events per second."""
        return self._rate(1)

    def rate15(self) -> float:
        """Fifteen-minute moving average rate, in events per second."""
        return self._rate(2)

    def rate_mean(self) -> float:
        """Events per second since the meter was created."""
        with self._lock:
            elapsed = self._clock() - self._start
            return self._count / elapsed if elapsed > 0 else 0.0


class Histogram:
    """Distribution of values kept in a bounded uniform random sample."""

    def __init__(self, reservoir_size: int = DEFAULT_RESERVOIR_SIZE, rng: random.Random | None = None) -> None:
        if reservoir_size <= 0:
            raise ValueError("reservoir_size must be positive")
        self.reservoir_size = reservoir_size
        self._values: list[float] = []
        self._count = 0
        self._rng = rng or random.Random()
        self._lock = threading.Lock()

    def update(self, value: float) -> None:
        """Record one value."""
        with self._lock:
            self._count += 1
            if len(self._values) < self.reservoir_size:
                self._values.append(value)
            else:
                slot = self._rng.randrange(self._count)
                if slot < self.reservoir_size:
                    self._values[slot] = value

    @property
    def count(self) -> int:
        """Number of values recorded, sampled or not."""
        with self._lock:
            return self._count

    @property
    def values(self) -> list[float]:
        """A copy of the current sample."""
        with self._lock:
            return list(self._values)

    @property
    def min(self) -> float:
        """Smallest sampled value, or 0."""
        values = self.values
        return min(values) if values else 0

    @property
    def max(self) -> float:
        """Largest sampled value, or 0."""
        values = self.values
        return max(values) if values else 0

    def mean(self) -> float:
        """Mean of the sample, or 0."""
        values = self.values
        return sum(values) / len(values) if values else 0.0

    def variance(self) -> float:
        """Population variance of the sample, or 0."""
        values = self.values
        if not values:
            return 0.0
        m = sum(values) / len(values)
        return sum((v - m) ** 2 for v in values) / len(values)

    def stddev(self) -> float:
        """Standard deviation of the sample, or 0."""
        return math.sqrt(self.variance())

    def percentiles(self, ps: list[float]) -> list[float]:
        """Interpolated percentiles of the sample, one per fraction in ``ps``."""
        values = sorted(self.values)
        size = len(values)
        if not size:
            return [0.0 for _ in ps]
        result = []
        for p in ps:
            pos = p * (size + 1)
            if pos < 1:
                result.append(float(values[0]))
            elif pos >= size:
                result.append(float(values[-1]))
            else:
                lower = values[int(pos) - 1]
                upper = values[int(pos)]
                result.append(lower + (pos - math.floor(pos)) * (upper - lower))
        return result


class Registry:
    """Metrics by name."""

    def __init__(self) -> None:
        self._metrics: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, name: str) -> Any:
        """Return the metric called ``name``, or None."""
        with self._lock:
            return self._metrics.get(name)

    def get_or_register(self, name: str, factory: Callable[[], T]) -> Any:
        """Return the metric called ``name``, creating it with ``factory`` if absent."""
        with self._lock:
            metric = self._metrics.get(name)
            if metric is None:
                metric = factory()
                self._metrics[name] = metric
            return metric

    def unregister(self, name: str) -> None:
        """Remove the metric called ``name`` if there is one."""
        with self._lock:
            self._metrics.pop(name, None)

    def each(self) -> Iterator[tuple[str, Any]]:
        """Yield ``(name, metric)`` pairs in name order."""
        with self._lock:
            items = sorted(self._metrics.items())
        yield from items

    def __len__(self) -> int:
        with self._lock:
            return len(self._metrics)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._metrics


DEFAULT_REGISTRY = Registry()


def _typed(name: str, registry: Registry | None, kind: type[T], factory: Callable[[], T]) -> T:
    reg = registry if registry is not None else DEFAULT_REGISTRY
    metric = reg.get_or_register(name, factory)
    if not isinstance(metric, kind):
        raise TypeError(f"metric {name!r} is a {type(metric).__name__}, not a {kind.__name__}")
    return metric


def get_or_register_counter(name: str, registry: Registry | None = None) -> Counter:
    """Return the counter called ``name`` in ``registry``, creating it if needed."""
    return _typed(name, registry, Counter, Counter)


def get_or_register_meter(name: str, registry: Registry | None = None) -> Meter:
    """Return the meter called ``name`` in ``registry``, creating it if needed."""
    return _typed(name, registry, Meter, Meter)


def get_or_register_histogram(
    name: str, registry: Registry | None = None, reservoir_size: int = DEFAULT_RESERVOIR_SIZE
) -> Histogram:
    """Return the histogram called ``name`` in ``registry``, creating it if needed."""
    return _typed(name, registry, Histogram, lambda: Histogram(reservoir_size))