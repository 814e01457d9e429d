"""Weather Pulse CLI application."""

import os
from pathlib import Path

import click
from rich.console import Console

from .. import __version__
from ..config import PulseConfig

console = Console()


def find_config() -> str | None:
    """
    Find config file using standard priority order:

    1. PULSE_CONFIG environment variable
    2. .pulse.yaml in current directory (project config)
    3. ~/.config/weather-pulse/config.yaml (user config)

    Returns None if no config found.
    """
    env_config = os.environ.get("PULSE_CONFIG")
    if env_config:
        path = Path(env_config)
        if path.exists():
            return str(path)

    project_config = Path.cwd() / ".pulse.yaml"
    if project_config.exists():
        return str(project_config)

    user_config = Path.home() / ".config" / "weather-pulse" / "config.yaml"
    if user_config.exists():
        return str(user_config)

    return None


def load_config(ctx: click.Context) -> PulseConfig:
    """Config for a subcommand: the discovered file (or defaults) with CLI log flags applied."""
    path = ctx.obj.get("config")
    config = PulseConfig.load(path) if path else PulseConfig()
    if ctx.obj.get("debug"):
        config.log_level = "DEBUG"
    elif ctx.obj.get("verbose"):
        config.log_level = "INFO"
    return config


@click.group()
@click.version_option(version=__version__, prog_name="pulse")
@click.option("--config", "-c", type=click.Path(exists=True), help="Config file path")
@click.option("--no-config", is_flag=True, help="Disable config auto-loading")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option("--debug", is_flag=True, help="Debug mode")
@click.pass_context
def cli(ctx: click.Context, config: str, no_config: bool, verbose: bool, debug: bool) -> None:
    """Weather Pulse: resilient polling for live weather data.

    Config file locations (in priority order):

        1. -c/--config PATH (explicit)

        2. PULSE_CONFIG env var

        3. .pulse.yaml (project config)

        4. ~/.config/weather-pulse/config.yaml (user config)

    Examples:

        pulse fetch London

        pulse fetch --forecast --json Porto

        pulse watch --count 3
    """
    ctx.ensure_object(dict)

    if no_config:
        config = None
    elif config is None:
        config = find_config()
        if config and verbose:
            console.print(f"[dim]Using config: {config}[/dim]")

    ctx.obj["config"] = config
    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug


from .commands import fetch, version, watch

cli.add_command(fetch.fetch)
cli.add_command(watch.watch)
cli.add_command(version.version)
