"""Service registration in a Redis key-value store."""

from __future__ import annotations

import logging
from typing import Any

from svcplug.serverplugin.kvstore import StoreError
from svcplug.serverplugin.metrics import Registry
from svcplug.serverplugin.registry import KVRegisterPlugin, StoreFactory

_log = logging.getLogger(__name__)

_NOT_A_FILE = "Not a file"


class RedisRegisterPlugin(KVRegisterPlugin):
    """Registers services in Redis under ``BASE/service/address``.

    The Redis client is supplied as ``store`` or made by ``store_factory``.
    The base path is used as given. Creating a directory node that the
    store reports as "Not a file" counts as success.
    """

    backend = "redis"
    strip_leading_slash = False
    _UNREGISTER_EMPTY = "Register service `name` can't be empty"

    def __init__(
        self,
        service_address: str = "",
        redis_servers: list[str] | None = None,
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
            redis_servers,
            base_path,
            metrics,
            update_interval,
            options,
            store=store,
            store_factory=store_factory,
        )

    @property
    def redis_servers(self) -> list[str]:
        """Addresses of the Redis servers."""
        return self.servers

    def _put_dir(self, path: str, value: str) -> None:
        try:
            self.kv.put(path, value, is_dir=True)
        except StoreError as exc:
            if _NOT_A_FILE in str(exc):
                return
            _log.error("cannot create %s path %s: %s", self.backend, path, exc)
            raise

    def register(self, name: str, rcvr: Any, metadata: str) -> None:
        """Register a service at ``BASE/name/service_address``."""
        super().register(name, rcvr, metadata)

    def unregister(self, name: str) -> None:
        """Remove the node of a registered service."""
        super().unregister(name)