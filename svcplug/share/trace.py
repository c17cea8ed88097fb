"""Carrying trace context through request metadata.

A propagator is any object with ``inject(ctx, carrier)`` and
``extract(ctx, carrier)``; ``extract`` returns the span context it found.
"""

from __future__ import annotations

import enum
from typing import Any

from svcplug.share.context import Context
from svcplug.share.share import REQ_META_DATA_KEY


class _TraceKey(enum.Enum):
    OPEN_TELEMETRY = 0


OPEN_TELEMETRY_KEY = _TraceKey.OPEN_TELEMETRY


class MetadataSupplier:
    """A text-map carrier over a metadata dict."""

    def __init__(self, metadata: dict[str, str]) -> None:
        self.metadata = metadata

    def get(self, key: str) -> str:
        """Return the value for ``key``, or an empty string."""
        return self.metadata.get(key, "")

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``."""
        self.metadata[key] = value

    def keys(self) -> list[str]:
        """Return all keys."""
        return list(self.metadata)


def _request_metadata(ctx: Any) -> dict[str, str]:
    meta = ctx.value(REQ_META_DATA_KEY)
    if meta is None:
        meta = {}
        if isinstance(ctx, Context):
            ctx.set_value(REQ_META_DATA_KEY, meta)
    return meta


def inject(ctx: Any, propagator: Any) -> None:
    """Write the trace context of ``ctx`` into its request metadata."""
    propagator.inject(ctx, MetadataSupplier(_request_metadata(ctx)))


def extract(ctx: Any, propagator: Any) -> Any:
    """Read a span context from the request metadata of ``ctx``."""
    return propagator.extract(ctx, MetadataSupplier(_request_metadata(ctx)))