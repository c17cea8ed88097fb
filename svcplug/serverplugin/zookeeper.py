"""Service registration in a ZooKeeper key-value store."""

from __future__ import annotations

import contextlib
import logging
from typing import Any

from svcplug.serverplugin.kvstore import StoreError
from svcplug.serverplugin.metrics import Registry
from svcplug.serverplugin.registry import KVRegisterPlugin, StoreFactory

_log = logging.getLogger(__name__)


class ZooKeeperRegisterPlugin(KVRegisterPlugin):
    """Registers services in ZooKeeper under ``BASE/service/address``.

    The ZooKeeper client is supplied as ``store`` or made by ``store_factory``.
    A leading slash of the base path is dropped. A service node is deleted
    before it is created, since creating an existing node fails.
    """

    backend = "zk"
    strip_leading_slash = True
    _UNREGISTER_EMPTY = "Register service `name` can't be empty"

    def __init__(
        self,
        service_address: str = "",
        zookeeper_servers: list[str] | None = None,
        base_path: str = "",
        metrics: Registry | None = None,
        update_interval: float = 0.0,
        options: Any = None,
        *,
        store: Any = None,
        store_factory: StoreFactory | None = None,
    ) -> None:
        super().__init__(
            service_address,
            zookeeper_servers,
            base_path,
            metrics,
            update_interval,
            options,
            store=store,
            store_factory=store_factory,
        )

    @property
    def zookeeper_servers(self) -> list[str]:
        """Addresses of the ZooKeeper servers."""
        return self.servers

    def register(self, name: str, rcvr: Any, metadata: str) -> None:
        """Register a service at ``BASE/name/service_address``."""
        if not name.strip():
            raise ValueError("Register service `name` can't be empty")
        kv = self._ensure_store()
        self._normalize_base_path()
        self._put_dir(self.base_path, "rpcx_path")
        self._put_dir(f"{self.base_path}/{name}", name)
        path = self._node_path(name)
        with contextlib.suppress(StoreError):
            kv.delete(path)
        try:
            kv.atomic_put(path, metadata, None, self._ttl())
        except StoreError as exc:
            _log.error("cannot create %s path %s: %s", self.backend, path, exc)
            raise
        with self._lock:
            self.services.append(name)
            self._metas[name] = metadata