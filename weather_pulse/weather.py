"""
Weather resources: request descriptors, reading transforms, synthetic data.

Descriptors follow the OpenWeatherMap 2.5 layout (``/weather`` for current
conditions, ``/forecast`` for the 5-day/3-hour forecast). Responses are plain
dicts; only the fields used here are read.
"""

import math
import random
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from .config import PulseConfig
from .types import RequestDescriptor

CURRENT_WEATHER_TTL_MS = 300000  # 5 minutes
FORECAST_TTL_MS = 600000  # 10 minutes


def ttl_for(descriptor: RequestDescriptor, default_ttl_ms: int = CURRENT_WEATHER_TTL_MS) -> int:
    """Endpoint-specific freshness: forecasts change less often than current conditions."""
    if "/forecast" in descriptor.url:
        return FORECAST_TTL_MS
    if "/weather" in descriptor.url:
        return CURRENT_WEATHER_TTL_MS
    return default_ttl_ms


def _location(city: str, country_code: str = "") -> str:
    return f"{city},{country_code}" if country_code else city


def current_weather(city: str, config: Optional[PulseConfig] = None) -> RequestDescriptor:
    config = config if config is not None else PulseConfig()
    return RequestDescriptor(
        url="/weather",
        params={"q": city, "units": config.units, "lang": config.lang},
    )


def forecast(city: str, config: Optional[PulseConfig] = None) -> RequestDescriptor:
    config = config if config is not None else PulseConfig()
    return RequestDescriptor(
        url="/forecast",
        params={
            "q": _location(city, config.country_code),
            "units": config.units,
            "lang": config.lang,
        },
    )


@dataclass
class TemperaturePoint:
    """One chart sample derived from a current-weather response."""
    timestamp: datetime
    temperature: float
    humidity: int
    city: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "temperature": self.temperature,
            "humidity": self.humidity,
            "city": self.city,
        }


@dataclass
class DailySummary:
    """Average/min/max temperature for one forecast day."""
    day: str  # YYYY-MM-DD
    average: float
    minimum: float
    maximum: float
    samples: int


def to_temperature_point(data: Dict[str, Any], now: Optional[datetime] = None) -> TemperaturePoint:
    """Reduce a current-weather payload to a rounded chart point."""
    main = data.get("main", {})
    return TemperaturePoint(
        timestamp=now or datetime.now(),
        temperature=round(float(main.get("temp", 0.0)), 1),
        humidity=int(main.get("humidity", 0)),
        city=data.get("name", ""),
    )


def summarize_forecast(data: Dict[str, Any]) -> List[DailySummary]:
    """
    Group forecast entries by calendar day.

    Entries without a usable ``dt_txt`` or temperature are skipped. Days are
    returned in chronological order.
    """
    temps_by_day: Dict[str, List[float]] = {}
    for item in data.get("list", []):
        stamp = item.get("dt_txt")
        temp = item.get("main", {}).get("temp")
        if not stamp or temp is None:
            continue
        try:
            day = datetime.fromisoformat(stamp).strftime("%Y-%m-%d")
        except ValueError:
            continue
        temps_by_day.setdefault(day, []).append(float(temp))

    return [
        DailySummary(
            day=day,
            average=round(sum(temps) / len(temps), 1),
            minimum=round(min(temps), 1),
            maximum=round(max(temps), 1),
            samples=len(temps),
        )
        for day, temps in sorted(temps_by_day.items())
    ]


def synthetic_weather(
    city: str,
    now: Optional[datetime] = None,
    rng: Callable[[], float] = random.random,
) -> Dict[str, Any]:
    """
    Plausible current-weather payload for degraded mode.

    Temperature follows a daily sine around 22°C with a little noise.
    Only used when ``fallback_mode`` is ``synthetic``.
    """
    now = now or datetime.now()
    base_temp = 22 + math.sin((now.hour / 24) * 2 * math.pi) * 8
    temperature = round(base_temp + (rng() - 0.5) * 3, 1)
    return {
        "main": {
            "temp": temperature,
            "humidity": round(45 + rng() * 30),
            "temp_min": temperature - 3,
            "temp_max": temperature + 4,
            "feels_like": round(temperature + (rng() - 0.5) * 2, 1),
        },
        "weather": [{"main": "Clear", "description": "clear sky", "icon": "01d"}],
        "name": city,
        "dt": int(time.time()),
    }
