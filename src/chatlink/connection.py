"""
ChatLink - Framed connection over one asyncio stream.

This module implements:
- Serialized TEXT and FILE sends (one write lock spans a whole frame)
- A single background read loop per connection that decodes frames and
  dispatches them to a handler
- Idempotent close with a one-way OPEN -> ACTIVE -> CLOSED lifecycle

Known limitations:
- send_file captures the file size once; a file that grows while it is
  being sent is truncated to the captured size, and a file that shrinks
  terminates the connection.
- There is no abort frame. A send_file that fails or is cancelled midway
  leaves a partial frame on the wire, so the connection is closed.
"""

import asyncio
import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional, Union

from .constants import (
    FILE_CHUNK_SIZE,
    MAX_FILE_SIZE,
    MAX_NAME_LENGTH,
    MAX_TEXT_LENGTH,
    RECEIVED_DIR,
)
from .errors import (
    ChatLinkError,
    ConnectionClosedError,
    ErrorCode,
    FileTransferError,
    IOFailureError,
    NetworkError,
    TruncatedTransferError,
)
from .handler import ConnectionHandler, invoke
from .naming import ReceivedFileNamer
from .protocol import FrameType, Protocol

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], Any]


class ConnectionState(Enum):
    """Connection lifecycle states."""

    OPEN = "open"  # Stream attached, read loop not started
    ACTIVE = "active"  # Read loop running
    CLOSED = "closed"  # Terminal


@dataclass
class ConnectionOptions:
    """Tunables for a connection.

    Attributes:
        chunk_size: Bytes per file chunk on send and receive
        max_text_length: Largest accepted TEXT payload in bytes
        max_name_length: Largest accepted file name in bytes
        max_file_size: Largest accepted file payload (0 = unbounded)
        read_timeout: Seconds to wait on any read (None = forever)
        write_timeout: Seconds to wait on any drain (None = forever)
        received_dir: Directory for received files
    """

    chunk_size: int = FILE_CHUNK_SIZE
    max_text_length: int = MAX_TEXT_LENGTH
    max_name_length: int = MAX_NAME_LENGTH
    max_file_size: int = MAX_FILE_SIZE
    read_timeout: Optional[float] = None
    write_timeout: Optional[float] = None
    received_dir: Union[str, Path] = RECEIVED_DIR

    @classmethod
    def from_config(cls, config) -> "ConnectionOptions":
        """Build options from a Config instance. Timeouts of 0 mean none."""
        return cls(
            chunk_size=config.get("limits", "chunk_size", FILE_CHUNK_SIZE),
            max_text_length=config.get("limits", "max_text_length", MAX_TEXT_LENGTH),
            max_name_length=config.get("limits", "max_name_length", MAX_NAME_LENGTH),
            max_file_size=config.get("limits", "max_file_size", MAX_FILE_SIZE),
            read_timeout=config.get("network", "read_timeout", 0) or None,
            write_timeout=config.get("network", "write_timeout", 0) or None,
            received_dir=config.get("storage", "received_dir", RECEIVED_DIR),
        )


class Connection:
    """A framed text/file link with one peer.

    Sends may be issued from any number of tasks; they are serialized by
    a single write lock. Received frames are delivered to the handler
    passed to read_loop().
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        options: Optional[ConnectionOptions] = None,
        namer: Optional[ReceivedFileNamer] = None,
    ):
        self.reader = reader
        self.writer = writer
        self.options = options or ConnectionOptions()
        self.protocol = Protocol(
            max_text_length=self.options.max_text_length,
            max_name_length=self.options.max_name_length,
            max_file_size=self.options.max_file_size,
        )
        self.namer = namer or ReceivedFileNamer(self.options.received_dir)
        self.peer = writer.get_extra_info("peername")
        self.state = ConnectionState.OPEN

        self.bytes_sent = 0
        self.bytes_received = 0

        self._closed = False
        self._write_lock = asyncio.Lock()
        self._read_task: Optional[asyncio.Task] = None

    async def __aenter__(self) -> "Connection":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"<Connection peer={self.peer} state={self.state.value}>"

    # -- status -----------------------------------------------------------

    def is_closed(self) -> bool:
        """Return True once the connection is terminal."""
        return self._closed

    def _ensure_open(self) -> None:
        if self._closed:
            raise ConnectionClosedError(f"Connection to {self.peer} is closed")

    # -- sending ----------------------------------------------------------

    async def send_message(self, text: str) -> None:
        """
        Send a TEXT frame.

        Raises:
            ConnectionClosedError: If the connection is terminal
            ProtocolViolationError: If the text exceeds the frame limit
            IOFailureError: If the write fails (the connection is closed)
        """
        self._ensure_open()
        frame = self.protocol.encode_text(text)

        async with self._write_lock:
            self._ensure_open()
            await self._write(frame)

        logger.debug(f"Sent text frame to {self.peer} ({len(frame)} bytes)")

    async def send_file(
        self,
        path: Union[str, Path],
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> int:
        """
        Send a FILE frame streaming the contents of ``path``.

        The size is read once before the header is written. The whole
        frame is written under the write lock, so no other frame can be
        interleaved with it.

        Args:
            path: File to send
            progress_callback: Optional callback(sent, total) after each chunk
            cancel_event: Optional event checked between chunks

        Returns:
            Number of payload bytes sent

        Raises:
            ConnectionClosedError: If the connection is terminal
            FileTransferError: If the file cannot be read, is too large,
                or the transfer was cancelled
            TruncatedTransferError: If the file shrank while being sent
            IOFailureError: If a write fails
        """
        self._ensure_open()
        file_path = Path(path)

        if not file_path.is_file():
            raise FileTransferError(
                ErrorCode.E003_FILE_NOT_FOUND, f"File not found: {file_path}", {"path": str(file_path)}
            )

        try:
            handle = open(file_path, "rb")
        except OSError as e:
            raise FileTransferError(
                ErrorCode.E004_PERMISSION_DENIED,
                f"Cannot read {file_path}: {e}",
                {"path": str(file_path), "error": str(e)},
            )

        with handle:
            total = os.fstat(handle.fileno()).st_size
            max_size = self.options.max_file_size
            if max_size and total > max_size:
                raise FileTransferError(
                    ErrorCode.E601_FILE_TOO_LARGE,
                    f"File too large: {total} > {max_size}",
                    {"size": total, "max_size": max_size},
                )

            header = self.protocol.encode_file_header(file_path.name, total)
            logger.info(f"Sending {file_path.name} ({total} bytes) to {self.peer}")

            async with self._write_lock:
                self._ensure_open()
                await self._write(header)
                sent = await self._stream_file(handle, file_path, total, progress_callback, cancel_event)

        logger.info(f"Sent {file_path.name} to {self.peer}")
        return sent

    async def _stream_file(
        self,
        handle,
        file_path: Path,
        total: int,
        progress_callback: Optional[ProgressCallback],
        cancel_event: Optional[asyncio.Event],
    ) -> int:
        sent = 0
        while sent < total:
            if cancel_event is not None and cancel_event.is_set():
                logger.warning(f"Transfer of {file_path.name} cancelled at {sent}/{total} bytes")
                await self.close()
                raise FileTransferError(
                    ErrorCode.E605_TRANSFER_CANCELLED,
                    f"Transfer of {file_path.name} cancelled",
                    {"sent": sent, "total": total},
                )

            try:
                chunk = handle.read(min(self.options.chunk_size, total - sent))
            except OSError as e:
                await self.close()
                raise FileTransferError(
                    ErrorCode.E600_FILE_TRANSFER_ERROR,
                    f"Reading {file_path} failed: {e}",
                    {"sent": sent, "total": total, "error": str(e)},
                )

            if not chunk:
                await self.close()
                raise TruncatedTransferError(
                    f"{file_path.name} shrank while being sent",
                    {"sent": sent, "total": total},
                )

            await self._write(chunk)
            sent += len(chunk)

            if progress_callback is not None:
                await invoke(progress_callback, sent, total)

        return sent

    async def _write(self, data: bytes) -> None:
        """Write and drain. Must be called with the write lock held."""
        self._ensure_open()
        try:
            self.writer.write(data)
            await asyncio.wait_for(self.writer.drain(), self.options.write_timeout)
        except asyncio.TimeoutError:
            await self._abort()
            raise IOFailureError(
                f"Write to {self.peer} timed out",
                {"timeout": self.options.write_timeout},
                code=ErrorCode.E202_CONNECTION_TIMEOUT,
            )
        except OSError as e:
            await self._abort()
            raise IOFailureError(f"Write to {self.peer} failed: {e}", {"error": str(e)})

        self.bytes_sent += len(data)

    # -- receiving --------------------------------------------------------

    def read_loop(self, handler: ConnectionHandler) -> asyncio.Task:
        """
        Start the background read loop and return its task immediately.

        Raises:
            ConnectionClosedError: If the connection is terminal
            NetworkError: If a read loop was already started
        """
        self._ensure_open()
        if self._read_task is not None:
            raise NetworkError(
                ErrorCode.E210_READ_LOOP_ACTIVE, f"Read loop already started for {self.peer}"
            )

        self.state = ConnectionState.ACTIVE
        self._read_task = asyncio.create_task(self._read_loop(handler))
        return self._read_task

    async def wait_closed(self) -> None:
        """Wait for the read loop (if any) to finish."""
        if self._read_task is not None:
            await asyncio.shield(self._read_task)

    async def _read_loop(self, handler: ConnectionHandler) -> None:
        """Background task decoding frames until EOF or failure."""
        logger.debug(f"Read loop started for {self.peer}")
        error: Optional[ChatLinkError] = None
        closed_locally = False

        try:
            await self._receive_frames(handler)
        except ChatLinkError as e:
            error = e
            closed_locally = self._closed
        except asyncio.CancelledError:
            logger.debug(f"Read loop cancelled for {self.peer}")
            raise
        except Exception as e:
            logger.error(f"Unexpected error in read loop for {self.peer}: {e}", exc_info=True)
            error = ChatLinkError(ErrorCode.E001_UNKNOWN_ERROR, str(e), {"error": repr(e)})
            closed_locally = self._closed
        finally:
            await self.close()

            if error is not None and not closed_locally:
                logger.warning(f"Read loop for {self.peer} ended with error: {error}")
                on_error = getattr(handler, "on_error", None)
                await self._dispatch("on_error", on_error, error)

            await self._dispatch("on_disconnect", handler.on_disconnect)
            logger.debug(f"Read loop ended for {self.peer}")

    async def _receive_frames(self, handler: ConnectionHandler) -> None:
        timeout = self.options.read_timeout

        while not self._closed:
            frame_type = await self.protocol.decode_tag(self.reader, timeout)

            if frame_type is None:
                logger.info(f"Connection closed by {self.peer}")
                return

            if frame_type == FrameType.TEXT:
                text = await self.protocol.decode_text(self.reader, timeout)
                self.bytes_received += len(text.encode("utf-8"))
                logger.debug(f"Received text frame from {self.peer}")
                await self._dispatch("on_message", handler.on_message, text)

            elif frame_type == FrameType.FILE:
                name, size = await self.protocol.decode_file_header(self.reader, timeout)
                saved_path = await self._receive_file(name, size)
                await self._dispatch("on_file_received", handler.on_file_received, name, saved_path)

            else:
                logger.warning(f"Ignoring unknown frame type {frame_type} from {self.peer}")

    async def _receive_file(self, name: str, size: int) -> Path:
        """Copy exactly ``size`` payload bytes to a fresh destination."""
        try:
            destination = self.namer.name_for(name)
        except OSError as e:
            raise FileTransferError(
                ErrorCode.E600_FILE_TRANSFER_ERROR,
                f"No destination for {name!r}: {e}",
                {"name": name, "error": str(e)},
            )

        timeout = self.options.read_timeout
        remaining = size
        logger.info(f"Receiving {name} ({size} bytes) from {self.peer} into {destination}")

        try:
            f = open(destination, "xb")
        except OSError as e:
            raise FileTransferError(
                ErrorCode.E600_FILE_TRANSFER_ERROR,
                f"Could not create {destination}: {e}",
                {"path": str(destination), "error": str(e)},
            )

        try:
            with f:
                while remaining > 0:
                    try:
                        chunk = await asyncio.wait_for(
                            self.reader.read(min(self.options.chunk_size, remaining)), timeout
                        )
                    except asyncio.TimeoutError:
                        raise IOFailureError(
                            f"Timed out receiving {name}",
                            {"remaining": remaining, "timeout": timeout},
                            code=ErrorCode.E202_CONNECTION_TIMEOUT,
                        )
                    except OSError as e:
                        raise IOFailureError(f"Read failed: {e}", {"error": str(e)})

                    if not chunk:
                        raise TruncatedTransferError(
                            f"Stream ended with {remaining} of {size} bytes of {name} outstanding",
                            {"name": name, "size": size, "remaining": remaining},
                        )

                    f.write(chunk)
                    remaining -= len(chunk)
                    self.bytes_received += len(chunk)

                f.flush()
                os.fsync(f.fileno())
        except ChatLinkError:
            destination.unlink(missing_ok=True)
            raise
        except OSError as e:
            destination.unlink(missing_ok=True)
            raise FileTransferError(
                ErrorCode.E600_FILE_TRANSFER_ERROR,
                f"Could not write {destination}: {e}",
                {"path": str(destination), "error": str(e)},
            )

        logger.info(f"Received {name} from {self.peer}")
        return destination

    async def _dispatch(self, event: str, callback: Optional[Callable], *args) -> None:
        """Invoke a handler callback, logging rather than propagating its errors."""
        try:
            await invoke(callback, *args)
        except Exception as e:
            logger.error(f"Handler {event} failed for {self.peer}: {e}", exc_info=True)

    # -- lifecycle --------------------------------------------------------

    async def close(self) -> None:
        """Close the connection. Safe to call repeatedly and concurrently."""
        if self._closed:
            return
        self._closed = True
        self.state = ConnectionState.CLOSED

        logger.info(f"Closing connection to {self.peer}")
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except OSError as e:
            logger.debug(f"Error closing writer for {self.peer}: {e}")

    async def _abort(self) -> None:
        """Close without waiting for buffered output the peer is not reading."""
        if not self._closed:
            self.writer.transport.abort()
        await self.close()
