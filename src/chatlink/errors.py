"""
ChatLink - Custom Exception Classes and Error Codes

This module defines all custom exceptions and error codes used throughout
the ChatLink package. Each error has a unique code for logging and debugging.

Author: chatlink contributors
Version: 1.0.0
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Enumeration of all ChatLink error codes."""

    # General Errors (E001-E099)
    E001_UNKNOWN_ERROR = "E001"
    E002_INVALID_ARGUMENT = "E002"
    E003_FILE_NOT_FOUND = "E003"
    E004_PERMISSION_DENIED = "E004"

    # Network Errors (E200-E299)
    E200_NETWORK_ERROR = "E200"
    E201_CONNECTION_FAILED = "E201"
    E202_CONNECTION_TIMEOUT = "E202"
    E203_CONNECTION_CLOSED = "E203"
    E210_READ_LOOP_ACTIVE = "E210"
    E211_TRUNCATED_FRAME = "E211"
    E212_PROTOCOL_VIOLATION = "E212"
    E213_IO_FAILURE = "E213"

    # File Transfer Errors (E600-E699)
    E600_FILE_TRANSFER_ERROR = "E600"
    E601_FILE_TOO_LARGE = "E601"
    E605_TRANSFER_CANCELLED = "E605"
    E607_TRUNCATED_TRANSFER = "E607"

    # Config Errors (E700-E799)
    E700_CONFIG_ERROR = "E700"
    E701_CONFIG_LOAD_FAILED = "E701"
    E702_CONFIG_SAVE_FAILED = "E702"
    E703_INVALID_CONFIG = "E703"
    E704_CONFIG_PARSE_ERROR = "E704"

    # Server Errors (E800-E899)
    E800_SERVER_ERROR = "E800"
    E801_SERVER_START_FAILED = "E801"


class ChatLinkError(Exception):
    """Base exception class for all ChatLink errors.

    Provides standardized error handling and logging.

    Attributes:
        code: Error code from ErrorCode enum
        message: Human-readable error message
        details: Additional error details (optional)
    """

    def __init__(self, code: ErrorCode, message: str, details: Optional[Dict[str, Any]] = None):
        """Initialize a ChatLink error.

        Args:
            code: Error code from ErrorCode enum
            message: Human-readable error message
            details: Additional error context (optional)
        """
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(f"[{code.value}] {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for serialization.

        Returns:
            Dictionary containing error information
        """
        return {"code": self.code.value, "message": self.message, "details": self.details}


class NetworkError(ChatLinkError):
    """Exception raised for network operation failures.

    This includes connection errors, timeouts, send/receive failures,
    and protocol violations.
    """

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E200_NETWORK_ERROR,
        message: str = "Network operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)


class ConnectionClosedError(NetworkError):
    """Raised when an operation is attempted on a terminal connection."""

    def __init__(
        self,
        message: str = "Connection is closed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(ErrorCode.E203_CONNECTION_CLOSED, message, details)


class TruncatedFrameError(NetworkError):
    """Raised when the stream ends inside a frame header or text payload."""

    def __init__(
        self,
        message: str = "Stream ended inside a frame",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(ErrorCode.E211_TRUNCATED_FRAME, message, details)


class ProtocolViolationError(NetworkError):
    """Raised for malformed or out-of-bound frame fields."""

    def __init__(
        self,
        message: str = "Protocol violation",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(ErrorCode.E212_PROTOCOL_VIOLATION, message, details)


class IOFailureError(NetworkError):
    """Raised when the underlying transport fails to read or write."""

    def __init__(
        self,
        message: str = "Transport I/O failure",
        details: Optional[Dict[str, Any]] = None,
        code: ErrorCode = ErrorCode.E213_IO_FAILURE,
    ):
        super().__init__(code, message, details)


class FileTransferError(ChatLinkError):
    """Exception raised for file transfer failures.

    This includes unreadable source files, oversized payloads,
    cancelled and truncated transfers.
    """

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E600_FILE_TRANSFER_ERROR,
        message: str = "File transfer operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)


class TruncatedTransferError(FileTransferError):
    """Raised when a file payload ends before its declared length."""

    def __init__(
        self,
        message: str = "File payload ended before its declared length",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(ErrorCode.E607_TRUNCATED_TRANSFER, message, details)


class ConfigError(ChatLinkError):
    """Exception raised for configuration failures.

    This includes loading, parsing, and validating configuration files.
    """

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E700_CONFIG_ERROR,
        message: str = "Configuration operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)


class ServerError(ChatLinkError):
    """Exception raised for server operation failures."""

    def __init__(
        self,
        code: ErrorCode = ErrorCode.E800_SERVER_ERROR,
        message: str = "Server operation failed",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(code, message, details)
