import pytest

from svcplug.util.buffer_pool import LevelPool, LimitedPool


@pytest.fixture
def pool():
    return LimitedPool(512, 4096)


@pytest.mark.parametrize(
    "size, want",
    [
        (200, 512),
        (512, 512),
        (1000, 1024),
        (2000, 2048),
        (2048, 2048),
        (4095, 4096),
        (4096, 4096),
        (4097, None),
    ],
)
def test_find_pool(pool, size, want):
    got = pool.find_pool(size)
    if want is None:
        assert got is None
    else:
        assert got.size == want


@pytest.mark.parametrize(
    "size, want",
    [
        (200, None),
        (512, 512),
        (1000, 512),
        (2000, 1024),
        (2048, 2048),
        (4095, 2048),
        (4096, 4096),
        (4097, None),
    ],
)
def test_find_put_pool(pool, size, want):
    got = pool.find_put_pool(size)
    if want is None:
        assert got is None
    else:
        assert got.size == want


def test_levels(pool):
    assert [p.size for p in pool.pools] == [512, 1024, 2048, 4096]


def test_max_less_than_min_rejected():
    with pytest.raises(ValueError):
        LimitedPool(4096, 512)


def test_get_returns_requested_length(pool):
    view = pool.get(1000)
    assert len(view) == 1000
    assert len(view.obj) == 1024


def test_put_then_get_reuses_buffer(pool):
    view = pool.get(700)
    underlying = view.obj
    pool.put(view)
    again = pool.get(600)
    assert again.obj is underlying
    assert len(again) == 600


def test_oversized_get_is_not_pooled(pool):
    view = pool.get(5000)
    assert len(view) == 5000
    pool.put(view)
    assert pool.get(5000).obj is not view.obj or len(pool.get(5000)) == 5000
    assert all(not p._free for p in pool.pools)


def test_too_small_buffer_is_discarded(pool):
    pool.put(bytearray(100))
    assert all(not p._free for p in pool.pools)


def test_larger_buffer_goes_to_floor_level(pool):
    pool.put(bytearray(1000))
    view = pool.get(300)
    assert len(view) == 300
    assert len(view.obj) == 1000


def test_negative_size_rejected(pool):
    with pytest.raises(ValueError):
        pool.get(-1)


def test_level_pool_roundtrip():
    level = LevelPool(16)
    buf = level.get()
    assert len(buf) == 16
    level.put(buf)
    assert level.get() is buf