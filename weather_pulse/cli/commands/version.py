"""Version command."""

import click
from rich.console import Console
from rich.table import Table

from ... import __version__
from ..app import load_config

console = Console()


@click.command()
@click.option("--show-config", is_flag=True, help="Also print the effective configuration")
@click.pass_context
def version(ctx: click.Context, show_config: bool) -> None:
    """Show Weather Pulse version.

    Examples:

        pulse version

        pulse version --show-config
    """
    console.print(f"[bold]Weather Pulse[/bold] v{__version__}")

    if show_config:
        config = load_config(ctx)
        table = Table(title="Configuration")
        table.add_column("Section", style="cyan")
        table.add_column("Key")
        table.add_column("Value")
        for section, values in config.to_dict().items():
            for key, value in values.items():
                if section == "api" and key == "key":
                    value = "***" if value else "(unset)"
                table.add_row(section, key, str(value))
        console.print()
        console.print(table)
