"""
ChatLink - Wire protocol definitions.

This module defines the framing used on a ChatLink stream. Every frame
starts with a one byte tag followed by a tag specific payload:

- TEXT: length (4 bytes, big-endian) + UTF-8 bytes
- FILE: name length (4 bytes) + UTF-8 name + size (8 bytes) + raw data

File data is streamed by the connection after the header, it is never
buffered by the codec.
"""

import asyncio
import struct
from enum import IntEnum
from typing import Optional, Tuple, Union

from .constants import (
    FILE_SIZE_FIELD_SIZE,
    FRAME_TAG_SIZE,
    LENGTH_PREFIX_SIZE,
    MAX_FILE_SIZE,
    MAX_FILE_SIZE_FIELD,
    MAX_NAME_LENGTH,
    MAX_TEXT_LENGTH,
)
from .errors import ErrorCode, IOFailureError, ProtocolViolationError, TruncatedFrameError


class FrameType(IntEnum):
    """Frame tag definitions."""

    TEXT = 1
    FILE = 2


class Protocol:
    """Frame codec.

    Limits are per instance so a connection can be configured with its
    own bounds; the class attributes are the defaults.
    """

    TAG_FORMAT = "!B"
    LENGTH_FORMAT = "!I"
    SIZE_FORMAT = "!Q"

    def __init__(
        self,
        max_text_length: int = MAX_TEXT_LENGTH,
        max_name_length: int = MAX_NAME_LENGTH,
        max_file_size: int = MAX_FILE_SIZE,
    ):
        self.max_text_length = max_text_length
        self.max_name_length = max_name_length
        self.max_file_size = max_file_size

    # -- encoding ---------------------------------------------------------

    def encode_text(self, message: str) -> bytes:
        """
        Encode a TEXT frame.

        Raises:
            ProtocolViolationError: If the encoded message exceeds the text limit
        """
        payload = message.encode("utf-8")
        self._check_length(len(payload), self.max_text_length, "text")
        return struct.pack("!BI", FrameType.TEXT, len(payload)) + payload

    def encode_file_header(self, name: str, size: int) -> bytes:
        """
        Encode a FILE frame header. The ``size`` payload bytes follow separately.

        Raises:
            ProtocolViolationError: If the name or size is out of bounds
        """
        name_bytes = name.encode("utf-8")
        self._check_length(len(name_bytes), self.max_name_length, "file name")
        self._check_file_size(size)
        return (
            struct.pack("!BI", FrameType.FILE, len(name_bytes))
            + name_bytes
            + struct.pack(self.SIZE_FORMAT, size)
        )

    # -- decoding ---------------------------------------------------------

    async def decode_tag(
        self, reader: asyncio.StreamReader, timeout: Optional[float] = None
    ) -> Optional[Union[FrameType, int]]:
        """
        Read one frame tag.

        Returns:
            The FrameType, the raw tag value for unknown tags, or None when
            the peer closed the stream cleanly at this frame boundary.
        """
        try:
            data = await asyncio.wait_for(reader.readexactly(FRAME_TAG_SIZE), timeout)
        except asyncio.IncompleteReadError:
            return None
        except asyncio.TimeoutError:
            raise IOFailureError(
                "Timed out waiting for the next frame",
                {"timeout": timeout},
                code=ErrorCode.E202_CONNECTION_TIMEOUT,
            )
        except OSError as e:
            raise IOFailureError(f"Read failed: {e}", {"error": str(e)})

        (tag,) = struct.unpack(self.TAG_FORMAT, data)
        try:
            return FrameType(tag)
        except ValueError:
            return tag

    async def decode_text(
        self, reader: asyncio.StreamReader, timeout: Optional[float] = None
    ) -> str:
        """Read one length-prefixed TEXT payload."""
        return await self._read_string(reader, self.max_text_length, "text", timeout)

    async def decode_file_header(
        self, reader: asyncio.StreamReader, timeout: Optional[float] = None
    ) -> Tuple[str, int]:
        """Read the name and declared size of a FILE frame."""
        name = await self._read_string(reader, self.max_name_length, "file name", timeout)
        data = await read_exactly(reader, FILE_SIZE_FIELD_SIZE, "file size", timeout)
        (size,) = struct.unpack(self.SIZE_FORMAT, data)
        self._check_file_size(size)
        return name, size

    async def _read_string(
        self,
        reader: asyncio.StreamReader,
        limit: int,
        field: str,
        timeout: Optional[float],
    ) -> str:
        data = await read_exactly(reader, LENGTH_PREFIX_SIZE, f"{field} length", timeout)
        (length,) = struct.unpack(self.LENGTH_FORMAT, data)

        # Bound the declared length before allocating anything for it
        self._check_length(length, limit, field)

        payload = await read_exactly(reader, length, field, timeout)
        try:
            return payload.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProtocolViolationError(
                f"Invalid UTF-8 in {field}: {e}", {"field": field, "error": str(e)}
            )

    # -- validation -------------------------------------------------------

    @staticmethod
    def _check_length(length: int, limit: int, field: str) -> None:
        if length > limit:
            raise ProtocolViolationError(
                f"{field.capitalize()} too large: {length} > {limit}",
                {"field": field, "size": length, "max_size": limit},
            )

    def _check_file_size(self, size: int) -> None:
        if size < 0 or size > MAX_FILE_SIZE_FIELD:
            raise ProtocolViolationError(
                f"File size out of range: {size}", {"size": size}
            )
        if self.max_file_size and size > self.max_file_size:
            raise ProtocolViolationError(
                f"File too large: {size} > {self.max_file_size}",
                {"size": size, "max_size": self.max_file_size},
            )


async def read_exactly(
    reader: asyncio.StreamReader,
    count: int,
    field: str,
    timeout: Optional[float] = None,
) -> bytes:
    """
    Read exactly ``count`` bytes from inside a frame.

    Raises:
        TruncatedFrameError: If the stream ends first
        IOFailureError: On transport failure or timeout
    """
    try:
        return await asyncio.wait_for(reader.readexactly(count), timeout)
    except asyncio.IncompleteReadError as e:
        raise TruncatedFrameError(
            f"Stream ended while reading {field}: got {len(e.partial)} of {count} bytes",
            {"field": field, "expected": count, "received": len(e.partial)},
        )
    except asyncio.TimeoutError:
        raise IOFailureError(
            f"Timed out reading {field}",
            {"field": field, "timeout": timeout},
            code=ErrorCode.E202_CONNECTION_TIMEOUT,
        )
    except OSError as e:
        raise IOFailureError(f"Read failed: {e}", {"field": field, "error": str(e)})
