"""
ChatLink - Event handler contract for connection read loops.

A read loop reports what it receives through a handler object:

- on_message(text): one call per TEXT frame, in wire order
- on_file_received(original_name, saved_path): once the payload is on disk
- on_error(error): optional, before on_disconnect when an error ended the loop
- on_disconnect(): exactly once, always the last call

Each method may be a plain function or a coroutine function.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from .errors import ChatLinkError

logger = logging.getLogger(__name__)


@runtime_checkable
class ConnectionHandler(Protocol):
    """Capabilities a consumer implements to receive connection events."""

    def on_message(self, text: str) -> Any:
        ...

    def on_file_received(self, original_name: str, saved_path: Path) -> Any:
        ...

    def on_disconnect(self) -> Any:
        ...


@dataclass
class CallbackHandler:
    """Adapts plain callables to the handler contract.

    Any callback left as None is skipped.
    """

    message: Optional[Callable[[str], Any]] = None
    file_received: Optional[Callable[[str, Path], Any]] = None
    disconnect: Optional[Callable[[], Any]] = None
    error: Optional[Callable[[ChatLinkError], Any]] = None

    async def on_message(self, text: str) -> None:
        await invoke(self.message, text)

    async def on_file_received(self, original_name: str, saved_path: Path) -> None:
        await invoke(self.file_received, original_name, saved_path)

    async def on_disconnect(self) -> None:
        await invoke(self.disconnect)

    async def on_error(self, error: ChatLinkError) -> None:
        await invoke(self.error, error)


async def invoke(callback: Optional[Callable], *args) -> Any:
    """Call a sync or async callback, awaiting it when needed."""
    if callback is None:
        return None
    result = callback(*args)
    if asyncio.iscoroutine(result):
        result = await result
    return result
