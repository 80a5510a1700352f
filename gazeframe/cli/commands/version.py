"""Version command."""

import click
from rich.console import Console

from ... import __version__

console = Console()


@click.command()
def version() -> None:
    """Show Gazeframe version."""
    console.print(f"[bold]Gazeframe[/bold] v{__version__}")
