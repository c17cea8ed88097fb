"""A key-value store interface and an in-memory implementation of it."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass


class StoreError(Exception):
    """A key-value store operation failed."""


class KeyNotFoundError(StoreError):
    """The key does not exist in the store."""

    def __init__(self, key: str) -> None:
        super().__init__(f"key not found in store: {key}")
        self.key = key


@dataclass(frozen=True)
class KVPair:
    """A stored value with the index of its last modification."""

    key: str
    value: bytes
    last_index: int


@dataclass
class _Entry:
    value: bytes
    index: int
    expires: float | None
    is_dir: bool


def _normalize(key: str) -> str:
    return key.strip("/")


def _as_bytes(value: bytes | str) -> bytes:
    return value.encode("utf-8") if isinstance(value, str) else bytes(value)


class MemoryStore:
    """A thread-safe key-value store kept in memory, with per-key TTLs.

    Keys are compared without leading or trailing slashes. A TTL of None
    or of zero or less means the key never expires.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._data: dict[str, _Entry] = {}
        self._index = 0
        self._closed = False
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        """Whether ``close`` has been called."""
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise StoreError("store is closed")

    def _live(self, key: str) -> _Entry | None:
        entry = self._data.get(key)
        if entry is not None and entry.expires is not None and self._clock() >= entry.expires:
            del self._data[key]
            return None
        return entry

    def _store(self, key: str, value: bytes | str, is_dir: bool, ttl: float | None) -> KVPair:
        self._index += 1
        expires = self._clock() + ttl if ttl is not None and ttl > 0 else None
        data = _as_bytes(value)
        self._data[key] = _Entry(data, self._index, expires, is_dir)
        return KVPair(key, data, self._index)

    def put(self, key: str, value: bytes | str, is_dir: bool = False, ttl: float | None = None) -> None:
        """Store ``value`` under ``key``, replacing what was there."""
        with self._lock:
            self._check_open()
            self._store(_normalize(key), value, is_dir, ttl)

    def get(self, key: str) -> KVPair:
        """Return the pair stored under ``key``; raise KeyNotFoundError if absent."""
        key = _normalize(key)
        with self._lock:
            self._check_open()
            entry = self._live(key)
            if entry is None:
                raise KeyNotFoundError(key)
            return KVPair(key, entry.value, entry.index)

    def exists(self, key: str) -> bool:
        """Return whether ``key`` is stored and not expired."""
        with self._lock:
            self._check_open()
            return self._live(_normalize(key)) is not None

    def delete(self, key: str) -> None:
        """Remove ``key``; raise KeyNotFoundError if absent."""
        key = _normalize(key)
        with self._lock:
            self._check_open()
            if self._live(key) is None:
                raise KeyNotFoundError(key)
            del self._data[key]

    def atomic_put(
        self, key: str, value: bytes | str, previous: KVPair | None = None, ttl: float | None = None
    ) -> KVPair:
        """Store ``value`` only if ``key`` is unchanged since ``previous``.

        With no ``previous`` the key must not exist yet.
        """
        key = _normalize(key)
        with self._lock:
            self._check_open()
            entry = self._live(key)
            if previous is None:
                if entry is not None:
                    raise StoreError(f"key already exists: {key}")
            else:
                if entry is None:
                    raise KeyNotFoundError(key)
                if entry.index != previous.last_index:
                    raise StoreError(f"key modified since it was read: {key}")
            return self._store(key, value, False, ttl)

    def close(self) -> None:
        """Close the store; further operations raise StoreError."""
        with self._lock:
            self._closed = True

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, str):
            return False
        with self._lock:
            return self._live(_normalize(key)) is not None

    def __len__(self) -> int:
        with self._lock:
            return sum(1 for key in list(self._data) if self._live(key) is not None)