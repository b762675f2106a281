"""Console output formatting for the pysynchron CLI."""

import json
import sys
from typing import Any, Optional

from rich.console import Console
from rich.table import Table

from .utils import format_size


class OutputFormatter:
    """Writes human-readable or JSON output for CLI commands.

    Human-readable messages go through a rich Console; errors and warnings
    are written to stderr so that JSON on stdout stays parseable.
    """

    def __init__(
        self,
        json_output: bool = False,
        quiet: bool = False,
        console: Optional[Console] = None,
        err_console: Optional[Console] = None,
    ):
        """Initialize output formatter.

        Args:
            json_output: Emit machine-readable JSON instead of text
            quiet: Suppress informational messages
            console: Console for regular output
            err_console: Console for errors and warnings
        """
        self.json_output = json_output
        self.quiet = quiet
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    def print(self, message: str = "") -> None:
        if not self.json_output:
            self.console.print(message)

    def info(self, message: str) -> None:
        if not self.quiet and not self.json_output:
            self.console.print(message)

    def success(self, message: str) -> None:
        if not self.quiet and not self.json_output:
            self.console.print(f"[green]✓[/green] {message}")

    def progress_message(self, message: str) -> None:
        if not self.quiet and not self.json_output:
            self.console.print(f"[dim]{message}[/dim]")

    def warning(self, message: str) -> None:
        self.err_console.print(f"[yellow]Warning:[/yellow] {message}")

    def error(self, message: str) -> None:
        self.err_console.print(f"[red]Error:[/red] {message}")

    def format_size(self, size_bytes: int) -> str:
        return format_size(size_bytes)

    def output_json(self, data: Any) -> None:
        """Write data as indented JSON to stdout."""
        sys.stdout.write(json.dumps(data, indent=2, default=str))
        sys.stdout.write("\n")

    def output_table(
        self,
        rows: list[dict],
        columns: list[str],
        headers: Optional[dict[str, str]] = None,
        title: Optional[str] = None,
    ) -> None:
        """Render rows as a table (or a JSON list in JSON mode).

        Args:
            rows: One dictionary per row
            columns: Keys to show, in order
            headers: Display names per key (defaults to the key)
            title: Optional table title
        """
        if self.json_output:
            self.output_json([{c: row.get(c) for c in columns} for row in rows])
            return

        headers = headers or {}
        table = Table(title=title)
        for column in columns:
            table.add_column(headers.get(column, column))
        for row in rows:
            table.add_row(*(str(row.get(c, "")) for c in columns))
        self.console.print(table)

    def print_summary(self, title: str, items: list[tuple[str, str]]) -> None:
        """Render a titled two-column summary."""
        if self.json_output:
            return
        table = Table(title=title, show_header=False, box=None)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        for label, value in items:
            table.add_row(label, value)
        self.console.print()
        self.console.print(table)
