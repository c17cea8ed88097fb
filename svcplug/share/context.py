"""A request context that holds its own values on top of a parent context."""

from __future__ import annotations

import threading
from types import MappingProxyType
from typing import Any, Hashable, Mapping


class Background:
    """The empty root context: it holds no values."""

    def __init__(self) -> None:
        self._values: Mapping = MappingProxyType({})

    def value(self, key: Hashable) -> Any:
        """Return the value for ``key``; the root holds none, so this is None."""
        return self._values.get(key)

    def __str__(self) -> str:
        return "context.Background"


def _check_key(key: Any) -> None:
    if key is None:
        raise ValueError("nil key")
    try:
        hash(key)
    except TypeError as exc:
        raise TypeError("key is not comparable") from exc


class Context:
    """A context with local values that shadow those of its parent."""

    def __init__(self, parent: Any = None, tags: dict | None = None) -> None:
        self.parent = parent if parent is not None else Background()
        self.tags: dict = tags if tags is not None else {}
        self._lock = threading.Lock()

    def value(self, key: Hashable) -> Any:
        """Return the local value for ``key``, else the parent's."""
        with self._lock:
            if key in self.tags:
                return self.tags[key]
        return self.parent.value(key)

    def set_value(self, key: Hashable, val: Any) -> None:
        """Set a local value."""
        with self._lock:
            self.tags[key] = val

    def delete_key(self, key: Hashable) -> None:
        """Remove a local value; missing keys and None are ignored."""
        if key is None:
            return
        with self._lock:
            self.tags.pop(key, None)

    def __str__(self) -> str:
        return f"{self.parent}.WithValue({self.tags})"


def new_context(parent: Any) -> Context:
    """Return an empty Context on top of ``parent``."""
    return Context(parent)


def with_value(parent: Any, key: Hashable, val: Any) -> Context:
    """Return a new Context on top of ``parent`` holding one value."""
    _check_key(key)
    return Context(parent, {key: val})


def with_local_value(ctx: Context, key: Hashable, val: Any) -> Context:
    """Set ``key`` on ``ctx`` itself and return it."""
    _check_key(key)
    ctx.set_value(key, val)
    return ctx