"""
Rich console utilities for dual-mode CLI output.

Provides readable terminal output for humans and structured JSON for
automation. All output functions adapt based on the global output_mode
setting, which the CLI sets from its --format and --quiet flags.

This module provides:
- OutputMode: Class to manage output format (text/json/quiet)
- spinner(): Context manager showing a spinner in human mode
- Output functions: success(), error(), warning(), info()
- Display functions: print_batch_summary(), print_catalog_table()

Human Mode (--format text):
    - Progress lines streamed to stdout, then a summary panel
    - ANSI colors and Unicode symbols

Agent Mode (--format json):
    - A single JSON document on stdout
    - No ANSI codes or spinners

Quiet Mode (--quiet):
    - Tab-separated summary, no decorations

Examples:
    >>> from bookshelf_migrate.utils.console import output_mode, success
    >>> output_mode.format = "json"
    >>> success("Migrations applied")  # Buffers to JSON
    >>> output_mode.flush_json()        # Outputs JSON to stdout
"""

from __future__ import annotations

import json
import sys
from contextlib import contextmanager
from typing import Any

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from bookshelf_migrate.migrations.runner import MigrationBatch


class OutputMode:
    """
    Output mode configuration for dual-mode CLI.

    Attributes:
        format: Output format - "text" (human) or "json" (agent)
        quiet: If True, suppress non-essential output
        _json_buffer: Internal buffer for JSON output in agent mode

    Examples:
        >>> mode = OutputMode()
        >>> mode.is_human()
        True
        >>> mode.format = "json"
        >>> mode.is_agent()
        True
    """

    def __init__(self, format_type: str = "text", quiet: bool = False):
        """
        Initialize output mode.

        Raises:
            ValueError: If format_type is not "text" or "json"
        """
        if format_type not in ["text", "json"]:
            raise ValueError(f"Invalid format: {format_type}. Must be 'text' or 'json'")

        self.format = format_type
        self.quiet = quiet
        self._json_buffer: dict[str, Any] = {}

    def is_human(self) -> bool:
        """True if format is "text"."""
        return self.format == "text"

    def is_agent(self) -> bool:
        """True if format is "json"."""
        return self.format == "json"

    def add_json(self, key: str, value: Any) -> None:
        """Add key-value pair to the JSON buffer (flushed by flush_json())."""
        self._json_buffer[key] = value

    def flush_json(self) -> None:
        """
        Output buffered JSON to stdout and clear buffer.

        Only outputs in agent mode. In human mode, this is a no-op.
        """
        if self.is_agent() and self._json_buffer:
            json.dump(self._json_buffer, sys.stdout, indent=2)
            sys.stdout.write("\n")
            sys.stdout.flush()
            self._json_buffer.clear()


# Global output mode instance (set by CLI flags)
output_mode = OutputMode()

# Global Rich console instances for human mode
console = Console()  # stdout
console_err = Console(stderr=True)  # stderr


@contextmanager
def spinner(message: str):
    """
    Context manager for showing a spinner during operations.

    Silent in agent and quiet modes.
    """
    if output_mode.is_human() and not output_mode.quiet:
        with console.status(f"[bold blue]{message}", spinner="dots") as status:
            yield status
    else:
        yield None


def success(message: str) -> None:
    """
    Print a success message.

    Human mode: Green checkmark with message
    Agent mode: Buffer to JSON
    Quiet mode: Silent
    """
    if output_mode.is_agent():
        output_mode.add_json("status", "success")
        output_mode.add_json("message", message)
    elif not output_mode.quiet:
        console.print(f"[green]✓[/green] {message}")


def error(message: str) -> None:
    """
    Print an error message.

    Human mode: Red X with message to stderr (also in quiet mode)
    Agent mode: Buffer to JSON
    """
    if output_mode.is_agent():
        output_mode.add_json("status", "error")
        output_mode.add_json("error", message)
    else:
        console_err.print(f"[red]✗[/red] {message}", style="red")


def warning(message: str) -> None:
    """
    Print a warning message.

    Human mode: Yellow warning symbol with message
    Agent mode: Buffer to JSON
    Quiet mode: Silent
    """
    if output_mode.is_agent():
        output_mode.add_json("warning", message)
    elif not output_mode.quiet:
        console.print(f"[yellow]⚠[/yellow] {message}", style="yellow")


def info(message: str) -> None:
    """
    Print an info message.

    Human mode: Blue info symbol with message
    Agent/Quiet mode: Silent
    """
    if output_mode.is_human() and not output_mode.quiet:
        console.print(f"[blue]ℹ[/blue] {message}")


def print_batch_summary(batch: MigrationBatch, dry_run: bool = False) -> None:
    """
    Print the outcome of a migration run.

    Human mode: Panel with a green border if the run completed, red if halted
    Agent mode: Buffer direction/applied/total/error as JSON
    Quiet mode: Tab-separated ``direction  applied  total  status``

    Args:
        batch: MigrationBatch returned by the runner
        dry_run: Whether the run used an in-memory store
    """
    if output_mode.is_agent():
        for key, value in batch.to_dict().items():
            output_mode.add_json(key, value)
        output_mode.add_json("dry_run", dry_run)
        return

    if output_mode.quiet:
        print(f"{batch.direction.value}\t{len(batch.applied)}\t{batch.total}\t{batch.status}")
        return

    summary_text = f"""
[bold]Direction:[/bold] {batch.direction.value}
[bold]Applied:[/bold] {len(batch.applied)} of {batch.total} discovered
"""
    if dry_run:
        summary_text += "[bold]Dry run:[/bold] nothing was written to the database\n"
    if batch.error is not None:
        summary_text += f"[bold]Error:[/bold] {batch.error}\n"

    if batch.completed:
        border_style = "green"
        title = "[bold green]✓ Migrations Applied[/bold green]"
    else:
        border_style = "red"
        title = "[bold red]✗ Migration Halted[/bold red]"

    console.print(
        Panel(
            summary_text.strip(),
            title=title,
            border_style=border_style,
            box=box.ROUNDED,
        )
    )


def print_catalog_table(direction: str, directory: str, names: list[str]) -> None:
    """
    Print the ordered migration catalog for one direction.

    Human mode: Rich table with execution order
    Agent mode: Buffer the name list as JSON
    Quiet mode: One name per line

    Args:
        direction: "up" or "down"
        directory: Directory the catalog was read from
        names: Migration names in execution order
    """
    if output_mode.is_agent():
        output_mode.add_json("direction", direction)
        output_mode.add_json("directory", directory)
        output_mode.add_json("migrations", names)
        return

    if output_mode.quiet:
        for name in names:
            print(name)
        return

    table = Table(title=f"{direction} migrations in {directory}", box=box.ROUNDED)
    table.add_column("#", justify="right", style="cyan", no_wrap=True)
    table.add_column("Migration", style="magenta")

    for position, name in enumerate(names, start=1):
        table.add_row(str(position), name)

    console.print(table)
