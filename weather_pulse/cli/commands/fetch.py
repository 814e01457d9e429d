"""Fetch command: one refresh through the full pipeline."""

import asyncio
import json

import click
from rich.console import Console

from ... import weather
from ...orchestrator import FetchOrchestrator
from ..app import load_config
from ..display import forecast_table, reading_table, result_to_dict

console = Console()


@click.command()
@click.argument("city", required=False)
@click.option("--forecast", "use_forecast", is_flag=True, help="Fetch the 5-day forecast")
@click.option("--json", "json_output", is_flag=True, help="JSON output format")
@click.pass_context
def fetch(ctx: click.Context, city: str, use_forecast: bool, json_output: bool) -> None:
    """Fetch current weather (or forecast) once.

    Exits with status 1 when the fetch failed and there is nothing to show.

    Examples:

        pulse fetch London

        pulse fetch --forecast Porto

        pulse fetch --json Lisbon | jq .value.main.temp
    """
    config = load_config(ctx)
    city = city or config.default_city
    ok = asyncio.run(_fetch_async(
        config=config,
        city=city,
        use_forecast=use_forecast,
        json_output=json_output,
        debug=ctx.obj.get("debug", False),
    ))
    if not ok:
        raise SystemExit(1)


async def _fetch_async(config, city: str, use_forecast: bool, json_output: bool, debug: bool) -> bool:
    """Async fetch implementation. Returns False when there is nothing to show."""
    # Logging goes to stdout; keep JSON output clean unless debugging.
    orchestrator = FetchOrchestrator.from_config(
        config,
        configure_logging=debug or not json_output,
        synthetic_factory=lambda key: weather.synthetic_weather(city),
    )
    descriptor = weather.forecast(city, config) if use_forecast else weather.current_weather(city, config)
    resource = orchestrator.register(city.lower(), descriptor, ttl_ms=weather.ttl_for(descriptor))

    try:
        result = await orchestrator.refresh(resource.key)
    except Exception as e:
        if debug:
            console.print_exception()
        else:
            console.print(f"[red]Error: {e}[/red]")
        return False
    finally:
        await orchestrator.aclose()

    if json_output:
        console.print_json(json.dumps(result_to_dict(result), default=str))
    elif use_forecast:
        console.print(forecast_table(result))
        if result.error is not None:
            console.print(f"[red]Error: {result.error}[/red]")
    else:
        console.print(reading_table(result))

    return result.has_value
