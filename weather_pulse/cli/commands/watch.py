"""Watch command: run the adaptive polling loop."""

import asyncio
from typing import Optional

import click
from rich.console import Console

from ... import weather
from ...events import RetryEvent, SnapshotEvent
from ...orchestrator import FetchOrchestrator
from ...types import FetchResult
from ..app import load_config
from ..display import status_text

console = Console()


@click.command()
@click.argument("city", required=False)
@click.option("--forecast", "use_forecast", is_flag=True, help="Poll the forecast instead of current weather")
@click.option("--count", "-n", type=int, default=None, help="Stop after N published results")
@click.pass_context
def watch(ctx: click.Context, city: str, use_forecast: bool, count: Optional[int]) -> None:
    """Poll a city until interrupted, printing every published result.

    Examples:

        pulse watch London

        pulse watch --count 5 Porto
    """
    config = load_config(ctx)
    city = city or config.default_city
    try:
        asyncio.run(_watch_async(config, city, use_forecast, count, ctx.obj.get("verbose", False)))
    except KeyboardInterrupt:
        console.print("[dim]Stopped[/dim]")


async def _watch_async(config, city: str, use_forecast: bool, count: Optional[int], verbose: bool) -> None:
    orchestrator = FetchOrchestrator.from_config(
        config,
        configure_logging=True,
        synthetic_factory=lambda key: weather.synthetic_weather(city),
    )
    descriptor = weather.forecast(city, config) if use_forecast else weather.current_weather(city, config)
    orchestrator.register(city.lower(), descriptor, ttl_ms=weather.ttl_for(descriptor))

    done = asyncio.Event()
    received = 0

    def on_result(key: str, result: FetchResult) -> None:
        nonlocal received
        received += 1
        line = status_text(result)
        if result.has_value and use_forecast:
            days = weather.summarize_forecast(result.value)
            line.append(f"  {len(days)} day(s)")
        elif result.has_value and isinstance(result.value, dict):
            point = weather.to_temperature_point(result.value)
            line.append(f"  {point.timestamp:%H:%M:%S}  {point.city}  {point.temperature:.1f}°  {point.humidity}%")
        if result.error is not None:
            line.append(f"  ({result.error})", style="red")
        console.print(line)
        if count is not None and received >= count:
            done.set()

    unsubscribe = orchestrator.subscribe(on_result, key=city.lower())

    if verbose:
        @orchestrator.on(RetryEvent)
        def on_retry(event: RetryEvent) -> None:
            console.print(f"[yellow]retry {event.attempt} in {event.delay_ms:.0f}ms: {event.error}[/yellow]")

        @orchestrator.on(SnapshotEvent)
        def on_snapshot(event: SnapshotEvent) -> None:
            console.print(f"[dim]interval now {event.interval_ms}ms[/dim]")

    try:
        await orchestrator.start()
        await done.wait()
    finally:
        unsubscribe()
        await orchestrator.aclose()
