"""Rich UI components for the Canine SDK CLI."""

from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.panel import Panel
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

# Create a global console instance
console = Console()


def log(message: str, style: Optional[str] = None) -> None:
    """Log a message to the console with optional styling.

    Args:
        message: The message to log
        style: Optional style to apply to the message
    """
    console.print(message, style=style)


def info(message: str) -> None:
    console.print(f"[blue]INFO:[/blue] {message}")


def success(message: str) -> None:
    console.print(f"[green]SUCCESS:[/green] {message}")


def warning(message: str) -> None:
    console.print(f"[yellow]WARNING:[/yellow] {message}")


def error(message: str) -> None:
    console.print(f"[bold red]ERROR:[/bold red] {message}")


def print_table(
    title: str,
    data: List[Dict[str, Any]],
    columns: List[str],
    style: Optional[str] = None,
) -> None:
    """Print a table of data.

    Args:
        title: The title of the table
        data: List of dictionaries containing the data
        columns: List of column names to include
        style: Optional style to apply to the table
    """
    table = Table(title=title, style=style, expand=True, show_edge=True)

    for column in columns:
        table.add_column(column)

    for row in data:
        table.add_row(*[str(row.get(column, "")) for column in columns])

    console.print(table)


def print_panel(content: str, title: Optional[str] = None) -> None:
    console.print(Panel(content, title=title))


def create_progress() -> Progress:
    """Create a Rich progress bar for percentage-based transfers.

    Returns:
        A Rich Progress instance configured for the Canine CLI
    """
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
        TimeElapsedColumn(),
        console=console,
    )
