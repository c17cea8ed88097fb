import pytest

from svcplug.serverplugin.rate_limiting import (
    RateLimitingPlugin,
    ReqRateLimitingPlugin,
    ReqReachLimitError,
    TokenBucket,
)


class FakeTime:
    def __init__(self):
        self.now = 0.0
        self.slept = []

    def clock(self):
        return self.now

    def sleep(self, seconds):
        self.slept.append(seconds)
        self.now += seconds


def make_bucket(fill, cap):
    t = FakeTime()
    return TokenBucket(fill, cap, clock=t.clock, sleep=t.sleep), t


def test_starts_full_and_empties():
    b, _ = make_bucket(0.5, 3)
    assert b.take_available(5) == 3
    assert b.take_available(1) == 0


def test_refills_one_per_interval():
    b, t = make_bucket(0.5, 3)
    b.take_available(3)
    t.now += 0.5
    assert b.take_available(3) == 1


def test_refill_capped_at_capacity():
    b, t = make_bucket(0.5, 3)
    b.take_available(3)
    t.now += 100
    assert b.take_available(10) == 3


def test_take_zero():
    b, _ = make_bucket(0.5, 3)
    assert b.take_available(0) == 0
    assert b.take_available(3) == 3


def test_wait_sleeps_until_token_due():
    b, t = make_bucket(0.5, 3)
    b.take_available(3)
    b.wait(1)
    assert t.slept == [pytest.approx(0.5)]


def test_wait_without_sleep_when_available():
    b, t = make_bucket(0.5, 3)
    b.wait(2)
    assert t.slept == []
    assert b.take_available(5) == 1


@pytest.mark.parametrize("fill, cap", [(0, 1), (-1, 1), (1, 0)])
def test_invalid_bucket(fill, cap):
    with pytest.raises(ValueError):
        TokenBucket(fill, cap)


def test_rate_limiting_plugin():
    t = FakeTime()
    p = RateLimitingPlugin(1.0, 1, clock=t.clock, sleep=t.sleep)
    conn = object()
    assert p.handle_conn_accept(conn) == (conn, True)
    assert p.handle_conn_accept(conn) == (conn, False)
    t.now += 1.0
    assert p.handle_conn_accept(conn) == (conn, True)


def test_req_rate_limiting_refuses():
    t = FakeTime()
    p = ReqRateLimitingPlugin(1.0, 1, clock=t.clock, sleep=t.sleep)
    p.post_read_request(None, None, None)
    with pytest.raises(ReqReachLimitError, match="rate limit"):
        p.post_read_request(None, None, None)


def test_req_rate_limiting_blocks():
    t = FakeTime()
    p = ReqRateLimitingPlugin(1.0, 1, block=True, clock=t.clock, sleep=t.sleep)
    p.post_read_request(None, None, None)
    p.post_read_request(None, None, None)
    assert t.slept == [pytest.approx(1.0)]