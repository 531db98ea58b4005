"""Shared utility functions for the Nexus App Builder.

Provides identifier and naming helpers, wall-clock stamps, and Rich-based
console output used by the interactive shell.
"""

from __future__ import annotations

import random
import string
from datetime import datetime
from typing import Optional

from rich.console import Console
from rich.rule import Rule
from rich.table import Table

console = Console()

# ---------------------------------------------------------------------------
# Identifiers & names
# ---------------------------------------------------------------------------

_ID_ALPHABET = string.digits + string.ascii_lowercase


def random_id(length: int = 9, rng: Optional[random.Random] = None) -> str:
    """Return a random base-36 identifier (lowercase letters and digits).

    Examples::

        random_id()  -> "k3x9q0z1b"
    """
    source = rng or random
    return "".join(source.choice(_ID_ALPHABET) for _ in range(length))


def project_name_from_prompt(prompt: str, words: int = 3) -> str:
    """Derive a short project name from the first words of a prompt.

    Examples::

        project_name_from_prompt("Todo App with dark mode") -> "Todo App with"
        project_name_from_prompt("  Blog  ") -> "Blog"
    """
    return " ".join(prompt.split()[:words])


def timestamp(now: Optional[datetime] = None) -> str:
    """Format a local wall-clock time as ``HH:MM:SS``."""
    return (now or datetime.now()).strftime("%H:%M:%S")


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_view_header(title: str, color: str = "bright_cyan") -> None:
    """Print a full-width rule announcing the current view."""
    console.print()
    console.print(Rule(f"[bold {color}] {title} [/bold {color}]", style=color))
    console.print()


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
    """
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")
