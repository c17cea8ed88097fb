import pytest

from svcplug.serverplugin.kvstore import KeyNotFoundError, KVPair, MemoryStore, StoreError


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now


def test_put_get_round_trip():
    store = MemoryStore()
    store.put("base/svc", b"payload")
    pair = store.get("base/svc")
    assert pair.key == "base/svc"
    assert pair.value == b"payload"


def test_str_values_are_stored_as_utf8():
    store = MemoryStore()
    store.put("k", "héllo")
    assert store.get("k").value == "héllo".encode("utf-8")


def test_keys_ignore_outer_slashes():
    store = MemoryStore()
    store.put("/a/b/", "v")
    assert store.get("a/b").value == b"v"
    assert "a/b" in store


def test_get_missing_raises():
    store = MemoryStore()
    with pytest.raises(KeyNotFoundError) as info:
        store.get("nope")
    assert info.value.key == "nope"


def test_exists_and_delete():
    store = MemoryStore()
    store.put("k", "v")
    assert store.exists("k") is True
    store.delete("k")
    assert store.exists("k") is False
    assert len(store) == 0


def test_delete_missing_raises():
    store = MemoryStore()
    with pytest.raises(KeyNotFoundError):
        store.delete("missing")


def test_put_replaces_and_bumps_index():
    store = MemoryStore()
    store.put("k", "one")
    first = store.get("k")
    store.put("k", "two")
    second = store.get("k")
    assert second.value == b"two"
    assert second.last_index > first.last_index


def test_ttl_expiry():
    clock = FakeClock()
    store = MemoryStore(clock=clock)
    store.put("k", "v", ttl=10)
    clock.now = 9.5
    assert store.exists("k")
    clock.now = 10.0
    assert not store.exists("k")
    with pytest.raises(KeyNotFoundError):
        store.get("k")


def test_zero_ttl_never_expires():
    clock = FakeClock()
    store = MemoryStore(clock=clock)
    store.put("k", "v", ttl=0)
    clock.now = 1e9
    assert store.get("k").value == b"v"


def test_atomic_put_creates_only_new_keys():
    store = MemoryStore()
    pair = store.atomic_put("k", "v")
    assert isinstance(pair, KVPair)
    assert store.get("k") == pair
    with pytest.raises(StoreError):
        store.atomic_put("k", "other")
    assert store.get("k").value == b"v"


def test_atomic_put_with_previous():
    store = MemoryStore()
    store.put("k", "v1")
    current = store.get("k")
    updated = store.atomic_put("k", "v2", previous=current)
    assert store.get("k") == updated
    with pytest.raises(StoreError):
        store.atomic_put("k", "v3", previous=current)
    assert store.get("k").value == b"v2"


def test_atomic_put_previous_for_missing_key():
    store = MemoryStore()
    with pytest.raises(KeyNotFoundError):
        store.atomic_put("k", "v", previous=KVPair("k", b"", 1))


def test_closed_store_refuses_operations():
    store = MemoryStore()
    store.put("k", "v")
    store.close()
    assert store.closed is True
    with pytest.raises(StoreError):
        store.get("k")
    with pytest.raises(StoreError):
        store.put("k", "v")
    assert "k" in store