"""
ChatLink - Terminal rendering of connection events.

ConsoleHandler implements the connection handler contract by printing
each event with rich, and can optionally open received files with the
default application.
"""

import logging
from pathlib import Path
from typing import Callable, Optional

from rich.console import Console
from rich.markup import escape

from .errors import ChatLinkError
from .opener import open_with_default_app
from .utils import format_size

logger = logging.getLogger(__name__)


class ConsoleHandler:
    """Prints messages, received files and status changes to a terminal.

    Attributes:
        label: Name shown in front of peer messages
        open_received: Whether received files are opened automatically
        files: Paths of every file received so far
    """

    def __init__(
        self,
        label: str = "PEER",
        console: Optional[Console] = None,
        open_received: bool = False,
    ):
        self.label = label
        self.console = console or Console()
        self.open_received = open_received
        self.files = []

    def on_message(self, text: str) -> None:
        self.console.print(f"[bold cyan]\\[{escape(self.label)}][/bold cyan] {escape(text)}")

    def on_file_received(self, original_name: str, saved_path: Path) -> None:
        self.files.append(saved_path)
        size = format_size(saved_path.stat().st_size)
        self.console.print(
            f"[bold cyan]\\[{escape(self.label)} SENT FILE][/bold cyan] {escape(original_name)} "
            f"({size}) [dim]saved as {escape(str(saved_path.resolve()))}[/dim]"
        )
        if self.open_received:
            open_with_default_app(saved_path)

    def on_error(self, error: ChatLinkError) -> None:
        self.console.print(f"[red]Connection error {error.code.value}: {escape(error.message)}[/red]")

    def on_disconnect(self) -> None:
        self.console.print(f"[yellow]{escape(self.label)} disconnected.[/yellow]")

    def progress_callback(self, name: str, step: int = 10) -> Callable[[int, int], None]:
        """Return a send_file progress callback printing every ``step`` percent."""
        last = {"percent": -step}

        def report(sent: int, total: int) -> None:
            percent = 100 if total == 0 else sent * 100 // total
            if percent - last["percent"] >= step or sent == total:
                last["percent"] = percent
                self.console.print(
                    f"[green]Sending {escape(name)}: {percent}% "
                    f"({format_size(sent)} / {format_size(total)})[/green]"
                )

        return report
