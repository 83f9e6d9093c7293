"""Console output formatting built on rich."""

import json
from datetime import datetime
from typing import Any, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .utils import format_size


class OutputFormatter:
    """Prints timestamped, colored status lines for a running deployment.

    In quiet mode only warnings and errors are printed. In JSON mode
    human-readable lines go to stderr so stdout stays machine readable.
    """

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console(stderr=json_output, highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    @staticmethod
    def timestamp() -> str:
        """Current wall-clock time as ``HH:MM:SS``."""
        return datetime.now().strftime("%H:%M:%S")

    def _line(self, message: str, style: str) -> str:
        return f"[dim]{self.timestamp()}[/dim] [{style}]{escape(message)}[/{style}]"

    def info(self, message: str) -> None:
        if not self.quiet:
            self.console.print(self._line(message, "default"))

    def success(self, message: str) -> None:
        if not self.quiet:
            self.console.print(self._line(message, "green"))

    def warning(self, message: str) -> None:
        self.err_console.print(self._line(message, "yellow"))

    def error(self, message: str) -> None:
        self.err_console.print(self._line(message, "bold red"))

    def format_size(self, size_bytes: int) -> str:
        return format_size(size_bytes)

    def print_summary(self, title: str, rows: list[tuple[str, Any]]) -> None:
        """Print a two-column summary table."""
        if self.quiet:
            return
        table = Table(title=title, show_header=False)
        table.add_column("Key", style="bold")
        table.add_column("Value")
        for key, value in rows:
            table.add_row(key, str(value))
        self.console.print(table)

    def output_json(self, data: Any) -> None:
        """Write ``data`` as JSON to stdout."""
        print(json.dumps(data, indent=2, default=str))
