"""
Pytest configuration and fixtures for ChatLink tests.

Provides temporary directories, loopback connection pairs and a
recording handler shared by unit and integration tests.
"""

import asyncio
import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest
import pytest_asyncio

from chatlink.connection import ConnectionOptions
from chatlink.constants import LOCALHOST
from chatlink.server import ConnectionServer, open_connection

# Small chunks so multi-chunk transfers stay fast
TEST_CHUNK_SIZE = 1024


class RecordingHandler:
    """Handler that records every event in arrival order."""

    def __init__(self):
        self.events = []
        self.messages = []
        self.files = []
        self.errors = []
        self.disconnects = 0
        self.disconnected = asyncio.Event()
        self._changed = asyncio.Event()

    def on_message(self, text):
        self.messages.append(text)
        self._record(("message", text))

    def on_file_received(self, original_name, saved_path):
        self.files.append((original_name, saved_path))
        self._record(("file", original_name))

    def on_error(self, error):
        self.errors.append(error)
        self._record(("error", error.code))

    def on_disconnect(self):
        self.disconnects += 1
        self._record(("disconnect",))
        self.disconnected.set()

    def _record(self, event):
        self.events.append(event)
        self._changed.set()

    async def wait_for(self, predicate, timeout: float = 5.0) -> None:
        """Wait until ``predicate()`` holds or fail after ``timeout`` seconds."""

        async def poll():
            while not predicate():
                self._changed.clear()
                await self._changed.wait()

        await asyncio.wait_for(poll(), timeout)

    async def wait_disconnected(self, timeout: float = 5.0) -> None:
        await asyncio.wait_for(self.disconnected.wait(), timeout)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """
    Create a temporary directory for test data.

    Yields:
        Path: Temporary directory path
    """
    tmp = Path(tempfile.mkdtemp(prefix="chatlink_test_"))
    try:
        yield tmp
    finally:
        shutil.rmtree(tmp, ignore_errors=True)


@pytest.fixture
def make_file(temp_dir: Path):
    """Factory writing a file with the given content under temp_dir/outgoing."""

    def _make(name: str, content: bytes) -> Path:
        path = temp_dir / "outgoing" / name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return path

    return _make


@pytest.fixture
def options_for(temp_dir: Path):
    """Factory building ConnectionOptions with a per-side received dir."""

    def _options(side: str, **overrides) -> ConnectionOptions:
        settings = {"chunk_size": TEST_CHUNK_SIZE, "received_dir": temp_dir / f"{side}_received"}
        settings.update(overrides)
        return ConnectionOptions(**settings)

    return _options


@pytest_asyncio.fixture
async def server(options_for):
    """A listening ConnectionServer on an ephemeral loopback port.

    ``server.accepted`` is a queue of server side connections.
    """
    accepted: asyncio.Queue = asyncio.Queue()
    srv = ConnectionServer(accepted.put_nowait, host=LOCALHOST, port=0, options=options_for("server"))
    srv.accepted = accepted
    await srv.start()
    try:
        yield srv
    finally:
        await srv.stop()


@pytest_asyncio.fixture
async def connection_pair(server, options_for):
    """A connected (client, server side) Connection pair over loopback."""
    client = await open_connection(LOCALHOST, server.port, options_for("client"))
    server_side = await asyncio.wait_for(server.accepted.get(), 5)
    try:
        yield client, server_side
    finally:
        await client.close()
        await server_side.close()


@pytest_asyncio.fixture
async def recorder() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def make_recorder():
    """Factory for extra RecordingHandler instances (call inside the test loop)."""
    return RecordingHandler


# Pytest marks
def pytest_configure(config):
    """
    Configure pytest markers.

    Args:
        config: Pytest configuration object
    """
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


def pytest_collection_modifyitems(config, items):
    """
    Add markers based on test location.

    Args:
        config: Pytest configuration
        items: List of collected test items
    """
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)

