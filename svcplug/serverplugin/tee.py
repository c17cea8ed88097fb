"""Copying the bytes clients send to a second writer."""

from __future__ import annotations

import contextlib
from typing import Any


class TeeConn:
    """A connection whose received bytes are also written to ``writer``.

    Everything else is delegated to the wrapped connection. Errors from
    the writer are ignored.
    """

    def __init__(self, conn: Any, writer: Any = None) -> None:
        self._conn = conn
        self.writer = writer

    def _copy(self, data: bytes) -> bytes:
        if data and self.writer is not None:
            with contextlib.suppress(OSError, ValueError):
                self.writer.write(data)
        return data

    def recv(self, size: int) -> bytes:
        """Receive from a socket-like connection."""
        return self._copy(self._conn.recv(size))

    def read(self, size: int = -1) -> bytes:
        """Read from a file-like connection."""
        return self._copy(self._conn.read(size))

    def __getattr__(self, name: str) -> Any:
        if name == "_conn":
            raise AttributeError(name)
        return getattr(self._conn, name)


class TeeConnPlugin:
    """Wraps accepted connections so that incoming bytes are copied to a writer."""

    def __init__(self, writer: Any = None) -> None:
        self.writer = writer

    def update(self, writer: Any) -> None:
        """Set the writer for connections accepted from now on; None stops copying."""
        self.writer = writer

    def handle_conn_accept(self, conn: Any) -> tuple[TeeConn, bool]:
        """Wrap the connection and accept it."""
        return TeeConn(conn, self.writer), True