import logging
import time
from dataclasses import dataclass, field

from svcplug.serverplugin.metrics import Registry
from svcplug.serverplugin.metrics_plugin import START_REQUEST_CONTEXT_KEY, MetricsPlugin
from svcplug.share.context import Background, new_context, with_value


@dataclass
class Msg:
    service_path: str = ""
    service_method: str = ""
    metadata: dict = field(default_factory=dict)


def test_register_counts_services():
    reg = Registry()
    p = MetricsPlugin(reg)
    p.register("Arith", object(), "")
    p.register("Echo", object(), "")
    assert reg.get("serviceCounter").count == 2


def test_prefix_applied():
    reg = Registry()
    p = MetricsPlugin(reg, prefix="app.")
    p.register("Arith", object(), "")
    assert reg.get("app.serviceCounter").count == 1
    assert reg.get("serviceCounter") is None


def test_handle_conn_accept_marks_meter():
    reg = Registry()
    p = MetricsPlugin(reg)
    conn = object()
    assert p.handle_conn_accept(conn) == (conn, True)
    assert reg.get("clientMeter").count == 1


def test_post_read_request_marks_read_qps():
    reg = Registry()
    p = MetricsPlugin(reg)
    p.post_read_request(new_context(Background()), Msg("Arith", "Mul"), None)
    assert reg.get("service.Arith.Mul.Read_Qps").count == 1


def test_post_read_request_without_path_ignored():
    reg = Registry()
    p = MetricsPlugin(reg)
    p.post_read_request(new_context(Background()), Msg(), None)
    assert len(reg) == 0


def test_post_write_response_records_call_time():
    reg = Registry()
    p = MetricsPlugin(reg)
    ctx = with_value(Background(), START_REQUEST_CONTEXT_KEY, time.time_ns() - 1000)
    res = Msg("Arith", "Mul")
    p.post_write_response(ctx, Msg("Arith", "Mul"), res, None)
    assert reg.get("service.Arith.Mul.Write_Qps").count == 1
    h = reg.get("service.Arith.Mul.CallTime")
    assert h.count == 1
    assert h.min >= 1000


def test_post_write_response_ignores_old_start():
    reg = Registry()
    p = MetricsPlugin(reg)
    start = time.time_ns() - 31 * 60 * 1_000_000_000
    ctx = with_value(Background(), START_REQUEST_CONTEXT_KEY, start)
    p.post_write_response(ctx, Msg(), Msg("Arith", "Mul"), None)
    assert reg.get("service.Arith.Mul.CallTime") is None
    assert reg.get("service.Arith.Mul.Write_Qps").count == 1


def test_post_write_response_without_start_time():
    reg = Registry()
    p = MetricsPlugin(reg)
    p.post_write_response(new_context(Background()), Msg(), Msg("Arith", "Mul"), None)
    assert reg.get("service.Arith.Mul.CallTime") is None


def test_log_writes_metrics():
    reg = Registry()
    p = MetricsPlugin(reg, prefix="svc.")
    p.register("Arith", object(), "")

    messages = []

    class Collect(logging.Handler):
        def emit(self, record):
            messages.append(record.getMessage())

    logger = logging.getLogger("svcplug.test.metrics_log")
    logger.setLevel(logging.INFO)
    logger.propagate = False
    handler = Collect()
    logger.addHandler(handler)
    stop = p.log(0.01, logger)
    assert stop.is_set() is False
    try:
        deadline = time.monotonic() + 5
        while not messages and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        stop.set()
        logger.removeHandler(handler)
    assert stop.is_set() is True
    assert "counter svc.serviceCounter" in messages