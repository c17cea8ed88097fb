"""Names, keys and message types shared between server and client."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

DEFAULT_RPC_PATH = "/_rpcx_"
AUTH_KEY = "__AUTH"
SERVER_ADDRESS = "__ServerAddress"
SERVER_TIMEOUT = "__ServerTimeout"
SEND_FILE_SERVICE_NAME = "_filetransfer"
STREAM_SERVICE_NAME = "_streamservice"

# Enables trace logging; meant for tests, not production.
TRACE = False

# Codecs by serialize type; extend with register_codec.
CODECS: dict[Any, Any] = {}


def register_codec(serialize_type: Any, codec: Any) -> None:
    """Register (or replace) the codec used for ``serialize_type``."""
    CODECS[serialize_type] = codec


@dataclass(frozen=True)
class ContextKey:
    """A context key that never collides with plain string keys."""

    name: str

    def __str__(self) -> str:
        return self.name


REQ_META_DATA_KEY = ContextKey("__req_metadata")
RES_META_DATA_KEY = ContextKey("__res_metadata")


@dataclass
class FileTransferArgs:
    """Arguments of a file upload request."""

    file_name: str = ""
    file_size: int = 0
    meta: dict[str, str] = field(default_factory=dict)


@dataclass
class FileTransferReply:
    """Token and address handed to a client for a file transfer."""

    token: bytes = b""
    addr: str = ""


@dataclass
class DownloadFileArgs:
    """Arguments of a file download request."""

    file_name: str = ""
    meta: dict[str, str] = field(default_factory=dict)


@dataclass
class StreamServiceArgs:
    """Request of the stream service."""

    meta: dict[str, str] = field(default_factory=dict)


@dataclass
class StreamServiceReply:
    """Reply of the stream service."""

    token: bytes = b""
    addr: str = ""