"""Network helpers: free ports, service addresses, metadata strings, local IPs."""

from __future__ import annotations

import ipaddress
import re
import socket
from collections.abc import Callable, Mapping
from urllib.parse import quote_plus, unquote_plus

import psutil

_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_PORT = re.compile(r"[+-]?[0-9]+")
_NO_NETWORK = "are you connected to the network?"


def get_free_port() -> int:
    """Return a TCP port on 127.0.0.1 that is free right now."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def _split_host_port(hostport: str) -> tuple[str, str]:
    def fail(reason: str) -> ValueError:
        return ValueError(f"address {hostport}: {reason}")

    i = hostport.rfind(":")
    if i < 0:
        raise fail("missing port in address")
    if hostport.startswith("["):
        end = hostport.find("]")
        if end < 0:
            raise fail("missing ']' in address")
        if end + 1 == len(hostport):
            raise fail("missing port in address")
        if end + 1 != i:
            if hostport[end + 1] == ":":
                raise fail("too many colons in address")
            raise fail("missing port in address")
        host = hostport[1:end]
        j, k = 1, end + 1
    else:
        host = hostport[:i]
        if ":" in host:
            raise fail("too many colons in address")
        j = k = 0
    if "[" in hostport[j:]:
        raise fail("unexpected '[' in address")
    if "]" in hostport[k:]:
        raise fail("unexpected ']' in address")
    return host, hostport[i + 1:]


def parse_rpcx_address(addr: str) -> tuple[str, str, int]:
    """Split an address such as ``tcp@127.0.0.1:8972`` into network, host and port."""
    at = addr.find("@")
    if at <= 0:
        raise ValueError(f"invalid rpcx address: {addr}")
    network = addr[:at]
    host, port_text = _split_host_port(addr[at + 1:])
    if not _PORT.fullmatch(port_text):
        raise ValueError(f"invalid port: {port_text!r}")
    return network, host, int(port_text)


def _unescape(text: str) -> str:
    if _BAD_ESCAPE.search(text):
        raise ValueError(f"invalid URL escape in {text!r}")
    return unquote_plus(text)


def _parse_query(query: str) -> dict[str, list[str]]:
    values: dict[str, list[str]] = {}
    for part in query.split("&"):
        if not part:
            continue
        if ";" in part:
            raise ValueError("invalid semicolon separator in query")
        key, _, value = part.partition("=")
        values.setdefault(_unescape(key), []).append(_unescape(value))
    return values


def convert_meta_to_map(meta: str) -> dict[str, str]:
    """Parse a query-encoded metadata string; the first value of each key wins.

    A malformed string yields an empty dict.
    """
    if not meta:
        return {}
    try:
        parsed = _parse_query(meta)
    except ValueError:
        return {}
    return {key: vals[0] if vals else "" for key, vals in parsed.items()}


def convert_map_to_string(meta: Mapping[str, str]) -> str:
    """Encode metadata as a query string with keys in sorted order."""
    return "&".join(
        f"{quote_plus(key, safe='')}={quote_plus(meta[key], safe='')}" for key in sorted(meta)
    )


def _is_loopback_interface(stats) -> bool:
    flags = getattr(stats, "flags", "") or ""
    return "loopback" in flags.split(",")


def _first_external(pick: Callable[[ipaddress._BaseAddress], str | None]) -> str:
    stats = psutil.net_if_stats()
    for name, addrs in psutil.net_if_addrs().items():
        st = stats.get(name)
        if st is None or not st.isup or _is_loopback_interface(st):
            continue
        for entry in addrs:
            if entry.family not in (socket.AF_INET, socket.AF_INET6):
                continue
            try:
                ip = ipaddress.ip_address(entry.address.split("%", 1)[0])
            except ValueError:
                continue
            if ip.is_loopback:
                continue
            found = pick(ip)
            if found is not None:
                return found
    raise OSError(_NO_NETWORK)


def _as_ipv4(ip) -> str | None:
    if ip.version == 4:
        return str(ip)
    mapped = ip.ipv4_mapped
    return str(mapped) if mapped is not None else None


def _as_any(ip) -> str:
    if ip.version == 6 and ip.ipv4_mapped is not None:
        return str(ip.ipv4_mapped)
    return str(ip)


def external_ipv4() -> str:
    """Return the first non-loopback IPv4 address of an interface that is up."""
    return _first_external(_as_ipv4)


def external_ipv6() -> str:
    """Return the first non-loopback address of an interface that is up.

    IPv4 addresses count too and are given in dotted form.
    """
    return _first_external(_as_any)