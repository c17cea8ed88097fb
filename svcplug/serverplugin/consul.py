"""Service registration in a Consul key-value store."""

from __future__ import annotations

from typing import Any

from svcplug.serverplugin.metrics import Registry
from svcplug.serverplugin.registry import KVRegisterPlugin, StoreFactory


class ConsulRegisterPlugin(KVRegisterPlugin):
    """Registers services in Consul under ``BASE/service/address``.

    The Consul client is supplied as ``store`` or made by ``store_factory``.
    A leading slash of the base path is dropped.
    """

    backend = "consul"
    strip_leading_slash = True

    def __init__(
        self,
        service_address: str = "",
        consul_servers: list[str] | None = None,
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
            consul_servers,
            base_path,
            metrics,
            update_interval,
            options,
            store=store,
            store_factory=store_factory,
        )

    @property
    def consul_servers(self) -> list[str]:
        """Addresses of the Consul servers."""
        return self.servers