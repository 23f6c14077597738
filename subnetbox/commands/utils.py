"""
Shared console and formatting helpers.
"""

from rich.console import Console

console = Console()

DASHES = "------"


def print_section(title: str) -> None:
    """Print a section banner the same way for every phase."""
    console.print(f"\n[bold cyan]{DASHES} {title} {DASHES}[/bold cyan]")

