"""A server plugin that collects call and connection metrics."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any

from svcplug.serverplugin.metrics import (
    DEFAULT_REGISTRY,
    Counter,
    Histogram,
    Meter,
    Registry,
    get_or_register_counter,
    get_or_register_histogram,
    get_or_register_meter,
)
from svcplug.share.share import ContextKey

# Holds the time (nanoseconds since the epoch) at which a request started.
START_REQUEST_CONTEXT_KEY = ContextKey("start-parse-request")

_MAX_CALL_NANOS = 30 * 60 * 1_000_000_000
_CALL_TIME_RESERVOIR = 1028


def _describe(name: str, metric: Any) -> list[str]:
    if isinstance(metric, Counter):
        return [f"counter {name}", f"  count:       {metric.count:9d}"]
    if isinstance(metric, Meter):
        return [
            f"meter {name}",
            f"  count:       {metric.count:9d}",
            f"  1-min rate:  {metric.rate1():12.2f}",
            f"  5-min rate:  {metric.rate5():12.2f}",
            f"  15-min rate: {metric.rate15():12.2f}",
            f"  mean rate:   {metric.rate_mean():12.2f}",
        ]
    if isinstance(metric, Histogram):
        p50, p75, p95, p99, p999 = metric.percentiles([0.5, 0.75, 0.95, 0.99, 0.999])
        return [
            f"histogram {name}",
            f"  count:       {metric.count:9d}",
            f"  min:         {metric.min:9}",
            f"  max:         {metric.max:9}",
            f"  mean:        {metric.mean():12.2f}",
            f"  stddev:      {metric.stddev():12.2f}",
            f"  median:      {p50:12.2f}",
            f"  75%:         {p75:12.2f}",
            f"  95%:         {p95:12.2f}",
            f"  99%:         {p99:12.2f}",
            f"  99.9%:       {p999:12.2f}",
        ]
    return []


class MetricsPlugin:
    """Counts registered services, accepted connections, reads, writes and call times."""

    def __init__(self, registry: Registry | None = None, prefix: str = "") -> None:
        self.registry = registry if registry is not None else DEFAULT_REGISTRY
        self.prefix = prefix

    def _name(self, metric: str) -> str:
        return self.prefix + metric

    def register(self, name: str, rcvr: Any, metadata: str) -> None:
        """Count a registered service."""
        get_or_register_counter(self._name("serviceCounter"), self.registry).inc(1)

    def handle_conn_accept(self, conn: Any) -> tuple[Any, bool]:
        """Count an accepted connection; always accepts it."""
        get_or_register_meter(self._name("clientMeter"), self.registry).mark(1)
        return conn, True

    def pre_read_request(self, ctx: Any) -> None:
        """Nothing to do before a request is read."""

    def post_read_request(self, ctx: Any, r: Any, e: BaseException | None) -> None:
        """Count a request read for its service method."""
        if not r.service_path:
            return
        name = self._name(f"service.{r.service_path}.{r.service_method}.Read_Qps")
        get_or_register_meter(name, self.registry).mark(1)

    def post_write_response(self, ctx: Any, req: Any, res: Any, e: BaseException | None) -> None:
        """Count a response written and record how long the call took."""
        sp, sm = res.service_path, res.service_method
        if not sp:
            return
        get_or_register_meter(self._name(f"service.{sp}.{sm}.Write_Qps"), self.registry).mark(1)

        started = ctx.value(START_REQUEST_CONTEXT_KEY) or 0
        if started > 0:
            elapsed = time.time_ns() - started
            if elapsed < _MAX_CALL_NANOS:
                get_or_register_histogram(
                    self._name(f"service.{sp}.{sm}.CallTime"), self.registry, _CALL_TIME_RESERVOIR
                ).update(elapsed)

    def log(self, freq: float, logger: logging.Logger | Any) -> threading.Event:
        """Write every metric to ``logger.info`` each ``freq`` seconds.

        Returns an event; set it to stop reporting.
        """
        stop = threading.Event()

        def run() -> None:
            while not stop.wait(freq):
                for name, metric in self.registry.each():
                    for line in _describe(name, metric):
                        logger.info(line)

        threading.Thread(target=run, name="metrics-log", daemon=True).start()
        return stop