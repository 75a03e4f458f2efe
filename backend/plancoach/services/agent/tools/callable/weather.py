"""
Weather Forecast Tool - daily forecast from Open-Meteo.

The only tool with I/O. Failures are reported in the payload so the model
can schedule without the forecast.
"""
from typing import Any, Optional

import httpx

from plancoach.core.config import settings
from plancoach.core.logging import get_logger
from plancoach.services.agent.tools.callable.base import Tool, int_arg, missing_argument, number_arg
from plancoach.services.agent.tools.definitions import object_schema

logger = get_logger(__name__)

DAILY_FIELDS = [
    "temperature_2m_max",
    "temperature_2m_min",
    "precipitation_probability_max",
    "wind_speed_10m_max",
    "uv_index_max",
    "weather_code",
]

WEATHER_CONDITIONS = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Fog", 48: "Fog",
    51: "Drizzle", 53: "Drizzle", 55: "Drizzle",
    56: "Freezing drizzle", 57: "Freezing drizzle",
    61: "Rain", 63: "Rain", 65: "Rain",
    66: "Freezing rain", 67: "Freezing rain",
    71: "Snow", 73: "Snow", 75: "Snow",
    77: "Snow grains",
    80: "Rain showers", 81: "Rain showers", 82: "Rain showers",
    85: "Snow showers", 86: "Snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with hail", 99: "Thunderstorm with hail",
}


def weather_condition(code: Any) -> str:
    return WEATHER_CONDITIONS.get(code, "Unknown")


class GetWeatherForecastTool(Tool):
    """Daily forecast for the runner's location."""

    name = "get_weather_forecast"
    description = (
        "Get weather forecast for a location. Use to schedule indoor vs outdoor workouts "
        "and adjust paces for conditions."
    )
    parameters = object_schema(
        {
            "latitude": {"type": "number", "description": "Latitude of the location"},
            "longitude": {"type": "number", "description": "Longitude of the location"},
            "days": {
                "type": "integer",
                "description": "Number of forecast days (1-14)",
                "minimum": 1,
                "maximum": 14,
            },
        },
        ["latitude", "longitude", "days"],
    )

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(name=self.name, description=self.description, parameters=self.parameters)
        self._transport = transport

    async def execute(self, arguments: dict[str, Any]) -> dict[str, Any]:
        latitude = number_arg(arguments, "latitude")
        longitude = number_arg(arguments, "longitude")
        if latitude is None:
            return missing_argument("latitude")
        if longitude is None:
            return missing_argument("longitude")
        days = int_arg(arguments, "days")
        days = min(max(7 if days is None else days, 1), 14)

        params = {
            "latitude": latitude,
            "longitude": longitude,
            "daily": ",".join(DAILY_FIELDS),
            "forecast_days": days,
            "timezone": "auto",
        }

        try:
            async with httpx.AsyncClient(
                timeout=settings.WEATHER_REQUEST_TIMEOUT,
                transport=self._transport,
            ) as client:
                response = await client.get(settings.WEATHER_API_URL, params=params)
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Weather fetch failed", error=str(e))
            return {"error": f"Weather fetch failed: {e}"}

        return self._parse_forecast(data)

    def _parse_forecast(self, data: Any) -> dict[str, Any]:
        daily = data.get("daily") if isinstance(data, dict) else None
        if not isinstance(daily, dict):
            return {"error": "Failed to parse weather response"}

        try:
            dates = daily["time"]
            columns = [daily[name] for name in DAILY_FIELDS]
            forecasts = []
            for i, day in enumerate(dates):
                temp_max, temp_min, precip, wind, uv, code = (column[i] for column in columns)
                forecasts.append({
                    "date": day,
                    "temp_high_c": temp_max,
                    "temp_low_c": temp_min,
                    "precipitation_probability_pct": precip,
                    "wind_speed_kmh": wind,
                    "condition": weather_condition(code),
                    "uv_index": uv,
                })
        except (KeyError, IndexError, TypeError):
            return {"error": "Failed to parse weather response"}

        return {"daily": forecasts}
