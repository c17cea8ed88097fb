"""Registering services in a key-value store and keeping their nodes fresh."""

from __future__ import annotations

import contextlib
import logging
import threading
from collections.abc import Callable
from typing import Any
from urllib.parse import parse_qsl, urlencode

from svcplug.serverplugin.kvstore import StoreError
from svcplug.serverplugin.metrics import Registry, get_or_register_meter

_log = logging.getLogger(__name__)

StoreFactory = Callable[[list, Any], Any]


def _merge_meta(raw: bytes | str, extra: dict[str, str]) -> str:
    text = raw.decode("utf-8", "replace") if isinstance(raw, (bytes, bytearray)) else raw
    values: dict[str, list[str]] = {}
    for key, value in parse_qsl(text, keep_blank_values=True):
        values.setdefault(key, []).append(value)
    for key, value in extra.items():
        values[key] = [value]
    return urlencode([(key, value) for key in sorted(values) for value in values[key]])


class KVRegisterPlugin:
    """Registers services at ``BASE/service/address`` nodes of a key-value store.

    The store is given directly or made by ``store_factory(servers, options)``.
    With a positive ``update_interval`` (seconds) a background thread
    refreshes the nodes, adding call and connection rates from ``metrics``.
    """

    backend = "kv"
    strip_leading_slash = True
    _UNREGISTER_EMPTY = "Unregister service `name` can't be empty"

    def __init__(
        self,
        service_address: str = "",
        servers: list[str] | None = None,
        base_path: str = "",
        metrics: Registry | None = None,
        update_interval: float = 0.0,
        options: Any = None,
        *,
        store: Any = None,
        store_factory: StoreFactory | None = None,
    ) -> None:
        self.service_address = service_address
        self.servers = list(servers or [])
        self.base_path = base_path
        self.metrics = metrics
        self.update_interval = update_interval
        self.options = options
        self.services: list[str] = []
        self.kv = store
        self._store_factory = store_factory
        self._metas: dict[str, str] = {}
        self._lock = threading.Lock()
        self._dying = threading.Event()
        self._thread: threading.Thread | None = None

    def _ensure_store(self) -> Any:
        if self.kv is None:
            try:
                if self._store_factory is None:
                    raise StoreError(f"no {self.backend} store configured")
                self.kv = self._store_factory(self.servers, self.options)
            except Exception as exc:
                _log.error("cannot create %s registry: %s", self.backend, exc)
                raise
        return self.kv

    def _normalize_base_path(self) -> None:
        if self.strip_leading_slash and self.base_path.startswith("/"):
            self.base_path = self.base_path[1:]

    def _ttl(self) -> float:
        return self.update_interval * 2

    def _node_path(self, name: str) -> str:
        return f"{self.base_path}/{name}/{self.service_address}"

    def _put_dir(self, path: str, value: str) -> None:
        try:
            self.kv.put(path, value, is_dir=True)
        except StoreError as exc:
            _log.error("cannot create %s path %s: %s", self.backend, path, exc)
            raise

    def _create_node(self, path: str, metadata: str) -> None:
        try:
            self.kv.put(path, metadata, ttl=self._ttl())
        except StoreError as exc:
            _log.error("cannot create %s path %s: %s", self.backend, path, exc)
            raise

    def _extra_meta(self) -> dict[str, str]:
        if self.metrics is None:
            return {}
        return {
            "calls": f"{get_or_register_meter('calls', self.metrics).rate_mean():.2f}",
            "connections": f"{get_or_register_meter('connections', self.metrics).rate_mean():.2f}",
        }

    def start(self) -> None:
        """Connect to the store, create the base path and start refreshing."""
        self._ensure_store()
        self._normalize_base_path()
        self._put_dir(self.base_path, "rpcx_path")
        if self.update_interval > 0 and (self._thread is None or not self._thread.is_alive()):
            self._dying = threading.Event()
            self._thread = threading.Thread(
                target=self._run, args=(self._dying,), name=f"{self.backend}-register", daemon=True
            )
            self._thread.start()

    def _run(self, dying: threading.Event) -> None:
        try:
            while not dying.wait(self.update_interval):
                try:
                    self.refresh()
                except Exception:
                    _log.exception("failed to refresh %s registry", self.backend)
        finally:
            if self.kv is not None:
                self.kv.close()

    def refresh(self) -> None:
        """Rewrite every service node once, re-creating nodes that are gone."""
        kv = self._ensure_store()
        extra = self._extra_meta()
        ttl = self._ttl()
        with self._lock:
            names = list(self.services)
        for name in names:
            path = self._node_path(name)
            try:
                pair = kv.get(path)
            except StoreError as exc:
                _log.warning("can't get data of node: %s, will re-create, because of %s", path, exc)
                with self._lock:
                    meta = self._metas.get(name, "")
                try:
                    kv.put(path, meta, ttl=ttl)
                except StoreError as put_exc:
                    _log.error("cannot re-create %s path %s: %s", self.backend, path, put_exc)
                continue
            with contextlib.suppress(StoreError):
                kv.put(path, _merge_meta(pair.value, extra), ttl=ttl)

    def stop(self) -> None:
        """Remove the nodes of all services and stop refreshing."""
        kv = self._ensure_store()
        self._normalize_base_path()
        with self._lock:
            names = list(self.services)
        for name in names:
            path = self._node_path(name)
            try:
                exists = kv.exists(path)
            except StoreError as exc:
                _log.error("cannot delete path %s: %s", path, exc)
                continue
            if exists:
                with contextlib.suppress(StoreError):
                    kv.delete(path)
                _log.info("delete path %s", path)
        self._dying.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def handle_conn_accept(self, conn: Any) -> tuple[Any, bool]:
        """Count the connection; always accepts it."""
        if self.metrics is not None:
            get_or_register_meter("connections", self.metrics).mark(1)
        return conn, True

    def pre_call(self, ctx: Any, service_path: str, service_method: str, args: Any) -> Any:
        """Count the call and pass its arguments on unchanged."""
        if self.metrics is not None:
            get_or_register_meter("calls", self.metrics).mark(1)
        return args

    def register(self, name: str, rcvr: Any, metadata: str) -> None:
        """Register a service at ``BASE/name/service_address``."""
        if not name.strip():
            raise ValueError("Register service `name` can't be empty")
        self._ensure_store()
        self._normalize_base_path()
        self._put_dir(self.base_path, "rpcx_path")
        self._put_dir(f"{self.base_path}/{name}", name)
        self._create_node(self._node_path(name), metadata)
        with self._lock:
            self.services.append(name)
            self._metas[name] = metadata

    def register_function(self, service_name: str, fname: str, fn: Any, metadata: str) -> None:
        """Register a function; its service node is that of ``service_name``."""
        self.register(service_name, fn, metadata)

    def unregister(self, name: str) -> None:
        """Remove the node of a registered service."""
        with self._lock:
            if not self.services:
                return
        if not name.strip():
            raise ValueError(self._UNREGISTER_EMPTY)
        kv = self._ensure_store()
        self._normalize_base_path()
        self._put_dir(self.base_path, "rpcx_path")
        self._put_dir(f"{self.base_path}/{name}", name)
        path = self._node_path(name)
        try:
            kv.delete(path)
        except StoreError as exc:
            _log.error("cannot remove %s path %s: %s", self.backend, path, exc)
            raise
        with self._lock:
            self.services = [s for s in self.services if s != name]
            self._metas.pop(name, None)