"""
ChatLink - Point-to-point text and file exchange over one stream

A framed protocol multiplexing short text messages and file payloads
over a single asyncio stream connection, with a background read loop
dispatching to a handler.

Version: 1.0.0
License: MIT
"""

__version__ = "1.0.0"
__license__ = "MIT"

from .config import Config
from .connection import Connection, ConnectionOptions, ConnectionState
from .constants import APP_NAME, VERSION
from .errors import (
    ChatLinkError,
    ConfigError,
    ConnectionClosedError,
    ErrorCode,
    FileTransferError,
    IOFailureError,
    NetworkError,
    ProtocolViolationError,
    ServerError,
    TruncatedFrameError,
    TruncatedTransferError,
)
from .handler import CallbackHandler, ConnectionHandler
from .naming import ReceivedFileNamer
from .protocol import FrameType, Protocol
from .server import ConnectionServer, open_connection

__all__ = [
    "APP_NAME",
    "VERSION",
    "CallbackHandler",
    "ChatLinkError",
    "Config",
    "ConfigError",
    "Connection",
    "ConnectionClosedError",
    "ConnectionHandler",
    "ConnectionOptions",
    "ConnectionServer",
    "ConnectionState",
    "ErrorCode",
    "FileTransferError",
    "FrameType",
    "IOFailureError",
    "NetworkError",
    "Protocol",
    "ProtocolViolationError",
    "ReceivedFileNamer",
    "ServerError",
    "TruncatedFrameError",
    "TruncatedTransferError",
    "open_connection",
    "__license__",
    "__version__",
]
