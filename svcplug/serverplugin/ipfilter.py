"""Accepting or refusing connections by remote IP address."""

from __future__ import annotations

import ipaddress
from collections.abc import Iterable, Mapping
from typing import Any, Union

_Network = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


def _remote_host(conn: Any) -> str | None:
    try:
        peer = conn.getpeername()
    except (OSError, AttributeError):
        return None
    if isinstance(peer, tuple) and peer and isinstance(peer[0], str):
        return peer[0]
    return None


def _parse_ip(host: str):
    try:
        ip = ipaddress.ip_address(host.split("%", 1)[0])
    except ValueError:
        return None
    if ip.version == 6 and ip.ipv4_mapped is not None:
        return ip.ipv4_mapped
    return ip


def _in_networks(host: str, networks: Iterable[_Network]) -> bool:
    ip = _parse_ip(host)
    if ip is None:
        return False
    return any(ip.version == net.version and ip in net for net in networks)


def _as_flags(addresses: Mapping[str, bool] | Iterable[str] | None) -> dict[str, bool]:
    if addresses is None:
        return {}
    if isinstance(addresses, Mapping):
        return dict(addresses)
    return dict.fromkeys(addresses, True)


def _as_networks(masks: Iterable[Any] | None) -> list[_Network]:
    return [ipaddress.ip_network(m, strict=False) for m in masks or ()]


class BlacklistPlugin:
    """Refuses connections from listed addresses or networks."""

    def __init__(
        self,
        blacklist: Mapping[str, bool] | Iterable[str] | None = None,
        blacklist_mask: Iterable[Any] | None = None,
    ) -> None:
        self.blacklist = _as_flags(blacklist)
        self.blacklist_mask = _as_networks(blacklist_mask)

    def handle_conn_accept(self, conn: Any) -> tuple[Any, bool]:
        """Return the connection and whether it is accepted."""
        host = _remote_host(conn)
        if host is None:
            return conn, True
        if self.blacklist.get(host):
            return conn, False
        if _in_networks(host, self.blacklist_mask):
            return conn, False
        return conn, True


class WhitelistPlugin:
    """Accepts connections only from listed addresses or networks."""

    def __init__(
        self,
        whitelist: Mapping[str, bool] | Iterable[str] | None = None,
        whitelist_mask: Iterable[Any] | None = None,
    ) -> None:
        self.whitelist = _as_flags(whitelist)
        self.whitelist_mask = _as_networks(whitelist_mask)

    def handle_conn_accept(self, conn: Any) -> tuple[Any, bool]:
        """Return the connection and whether it is accepted."""
        host = _remote_host(conn)
        if host is None:
            return conn, False
        if self.whitelist.get(host):
            return conn, True
        if _in_networks(host, self.whitelist_mask):
            return conn, True
        return conn, False