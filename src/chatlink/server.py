"""
ChatLink - Accepting and establishing connections.

ConnectionServer listens for peers and hands each accepted stream to a
callback as a Connection; open_connection() dials a peer.
"""

import asyncio
import logging
from typing import Any, Callable, Optional, Set

from .connection import Connection, ConnectionOptions
from .constants import CONNECT_TIMEOUT, DEFAULT_HOST, DEFAULT_SERVER_PORT
from .errors import ErrorCode, NetworkError, ServerError
from .handler import invoke
from .utils import validate_port

logger = logging.getLogger(__name__)


async def open_connection(
    host: str,
    port: int,
    options: Optional[ConnectionOptions] = None,
    timeout: Optional[float] = CONNECT_TIMEOUT,
) -> Connection:
    """
    Connect to a peer and wrap the stream in a Connection.

    Raises:
        NetworkError: If the connection cannot be established
    """
    logger.info(f"Connecting to {host}:{port}")
    try:
        reader, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout)
    except asyncio.TimeoutError:
        raise NetworkError(
            ErrorCode.E202_CONNECTION_TIMEOUT,
            f"Connection to {host}:{port} timed out after {timeout}s",
            {"host": host, "port": port, "timeout": timeout},
        )
    except OSError as e:
        raise NetworkError(
            ErrorCode.E201_CONNECTION_FAILED,
            f"Connection to {host}:{port} failed: {e}",
            {"host": host, "port": port, "error": str(e)},
        )

    logger.info(f"Connected to {host}:{port}")
    return Connection(reader, writer, options)


class ConnectionServer:
    """Listens for incoming peers using asyncio.

    Each accepted client becomes a Connection passed to ``on_connection``
    (sync or async). The callback owns the connection from then on.
    """

    def __init__(
        self,
        on_connection: Callable[[Connection], Any],
        host: str = DEFAULT_HOST,
        port: int = DEFAULT_SERVER_PORT,
        options: Optional[ConnectionOptions] = None,
    ):
        if not validate_port(port):
            raise ServerError(ErrorCode.E002_INVALID_ARGUMENT, f"Invalid port: {port}", {"port": port})

        self.on_connection = on_connection
        self.host = host
        self.port = port
        self.options = options

        self.server: Optional[asyncio.AbstractServer] = None
        self.connections: Set[Connection] = set()

    @property
    def running(self) -> bool:
        return self.server is not None

    async def start(self) -> None:
        """
        Start listening. With port 0 the bound port is stored in ``port``.

        Raises:
            ServerError: If the socket cannot be bound
        """
        try:
            self.server = await asyncio.start_server(self._handle_client, self.host, self.port)
        except OSError as e:
            raise ServerError(
                ErrorCode.E801_SERVER_START_FAILED,
                f"Failed to listen on {self.host}:{self.port}: {e}",
                {"host": self.host, "port": self.port, "error": str(e)},
            )

        self.port = self.server.sockets[0].getsockname()[1]
        logger.info(f"Listening on {self.host}:{self.port}")

    async def stop(self) -> None:
        """Stop listening and close every connection accepted so far."""
        if self.server is None:
            return

        server, self.server = self.server, None
        server.close()

        # Close clients first: wait_closed() also waits for open client streams
        for connection in list(self.connections):
            await connection.close()
        self.connections.clear()

        await server.wait_closed()
        logger.info("Server stopped")

    async def __aenter__(self) -> "ConnectionServer":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    async def _handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        """Wrap an accepted stream and pass it to the callback."""
        connection = Connection(reader, writer, self.options)
        logger.info(f"Client connected: {connection.peer}")
        self.connections.add(connection)

        try:
            await invoke(self.on_connection, connection)
        except Exception as e:
            logger.error(f"Connection callback failed for {connection.peer}: {e}", exc_info=True)
            await connection.close()

        # Forget the connection once its read loop is done; connections the
        # callback keeps without a read loop stay tracked until stop()
        await connection.wait_closed()
        if connection.is_closed():
            self.connections.discard(connection)
