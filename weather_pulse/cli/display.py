"""Rendering of fetch results for the terminal."""

from typing import Any, Dict

from rich.table import Table
from rich.text import Text

from ..types import FetchResult
from ..weather import summarize_forecast, to_temperature_point


def status_text(result: FetchResult) -> Text:
    """One-word status with color: fresh, cached, stale, synthetic or failed."""
    if result.success:
        return Text("cached" if result.from_cache else "fresh", style="green")
    if result.stale:
        return Text("stale", style="yellow")
    if result.synthetic:
        return Text("synthetic", style="magenta")
    return Text("failed", style="red")


def reading_table(result: FetchResult) -> Table:
    """Current-weather reading as a two-column table."""
    table = Table(title=f"Weather ({result.key})", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")

    table.add_row("status", status_text(result))
    if result.has_value and isinstance(result.value, dict):
        point = to_temperature_point(result.value)
        table.add_row("city", point.city or "-")
        table.add_row("temperature", f"{point.temperature:.1f}")
        table.add_row("humidity", f"{point.humidity}%")
    if result.error is not None:
        table.add_row("error", Text(str(result.error), style="red"))
    table.add_row("attempts", str(result.attempts))
    return table


def forecast_table(result: FetchResult) -> Table:
    """Daily forecast summary table."""
    table = Table(title=f"Forecast ({result.key})")
    table.add_column("Day", style="cyan")
    table.add_column("Avg", justify="right")
    table.add_column("Min", justify="right")
    table.add_column("Max", justify="right")

    if result.has_value and isinstance(result.value, dict):
        for day in summarize_forecast(result.value):
            table.add_row(day.day, f"{day.average:.1f}", f"{day.minimum:.1f}", f"{day.maximum:.1f}")
    return table


def result_to_dict(result: FetchResult) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "key": result.key,
        "success": result.success,
        "stale": result.stale,
        "synthetic": result.synthetic,
        "from_cache": result.from_cache,
        "attempts": result.attempts,
        "duration_ms": result.duration_ms,
        "value": result.value,
    }
    if result.error is not None:
        data["error"] = str(result.error)
        data["status"] = getattr(result.error, "status", None)
    return data
