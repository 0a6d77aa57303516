"""Output formatting for vidctl.

Provides consistent output in JSON, table, and quiet modes using Rich.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from enum import Enum
from typing import Any

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

# =============================================================================
# Console Instances
# =============================================================================

console = Console()
err_console = Console(stderr=True)


# =============================================================================
# Output Format
# =============================================================================


class OutputFormat(Enum):
    """Output format options."""

    JSON = "json"
    TABLE = "table"

    @classmethod
    def from_string(cls, value: str) -> OutputFormat:
        """Create from string value."""
        return cls(value.lower())


# =============================================================================
# Table Output
# =============================================================================


def print_table(
    rows: Sequence[dict[str, Any]],
    columns: Sequence[str],
    *,
    title: str | None = None,
    column_labels: dict[str, str] | None = None,
) -> None:
    """Print data as a Rich table.

    Args:
        rows: List of dictionaries with data.
        columns: Column keys to display.
        title: Optional table title.
        column_labels: Optional mapping of column keys to display labels.
    """
    if not rows:
        console.print("[dim]No results[/dim]")
        return

    table = Table(title=title, show_header=True, header_style="bold")

    labels = column_labels or {}
    for col in columns:
        table.add_column(labels.get(col, col.replace("_", " ").title()))

    for row in rows:
        values = []
        for col in columns:
            val = row.get(col, "")
            if val is None:
                val = ""
            elif isinstance(val, bool):
                val = "Yes" if val else "No"
            elif isinstance(val, (list, dict)):
                val = json.dumps(val)
            values.append(str(val))
        table.add_row(*values)

    console.print(table)


def print_key_value(
    data: dict[str, Any],
    *,
    title: str | None = None,
    key_labels: dict[str, str] | None = None,
) -> None:
    """Print key-value pairs in a formatted way."""
    if title:
        console.print(f"[bold]{title}[/bold]")

    labels = key_labels or {}
    max_key_len = max(len(labels.get(k, k)) for k in data.keys()) if data else 0

    for key, value in data.items():
        label = labels.get(key, key.replace("_", " ").title())
        if value is None:
            value = "[dim]-[/dim]"
        elif isinstance(value, bool):
            value = "[green]Yes[/green]" if value else "[red]No[/red]"
        elif isinstance(value, (list, dict)):
            value = json.dumps(value, indent=2)

        console.print(f"  {label:<{max_key_len}}  {value}")


def print_json(data: Any, *, indent: int = 2) -> None:
    """Print data as JSON."""
    print(json.dumps(data, indent=indent, default=str))


# =============================================================================
# Unified Output
# =============================================================================


def print_output(
    data: Any,
    *,
    format: OutputFormat = OutputFormat.TABLE,
    columns: Sequence[str] | None = None,
    column_labels: dict[str, str] | None = None,
    title: str | None = None,
    quiet: bool = False,
    id_field: str = "upload_id",
) -> None:
    """Print data in the specified format.

    Args:
        data: Data to print (dict, list, or scalar).
        format: Output format.
        columns: Columns for table format.
        column_labels: Labels for columns.
        title: Optional title.
        quiet: If True, only print IDs.
        id_field: Field to use for IDs in quiet mode.
    """
    if quiet:
        items = data if isinstance(data, list) else [data]
        for item in items:
            if isinstance(item, dict):
                print(item.get(id_field) or item.get("id") or "")
            else:
                print(item)
        return

    if format == OutputFormat.JSON:
        print_json(data)
        return

    if isinstance(data, list) and columns:
        print_table(data, columns, title=title, column_labels=column_labels)
    elif isinstance(data, dict):
        if columns:
            print_table([data], columns, title=title, column_labels=column_labels)
        else:
            print_key_value(data, title=title, key_labels=column_labels)
    else:
        print_json(data)


# =============================================================================
# Status Messages
# =============================================================================


def print_error(message: str) -> None:
    """Print error message to stderr."""
    err_console.print(f"[red]Error:[/red] {message}")


def print_warning(message: str) -> None:
    """Print warning message to stderr."""
    err_console.print(f"[yellow]Warning:[/yellow] {message}")


def print_success(message: str) -> None:
    """Print success message."""
    console.print(f"[green]✓[/green] {message}")


# =============================================================================
# Progress
# =============================================================================


def create_upload_progress() -> Progress:
    """Create a Rich progress display with one percentage bar per upload.

    Tasks carry a ``parts`` field rendered as "completed/total".
    """
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TaskProgressColumn(),
        TextColumn("{task.fields[parts]}"),
        TimeElapsedColumn(),
        console=err_console,
        transient=False,
    )
