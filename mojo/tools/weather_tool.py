"""Weather forecast tool."""

from __future__ import annotations

from typing import Any

from mojo.providers.weather import OpenWeatherClient
from mojo.tools.base import Tool


class WeatherTool(Tool):
    """Returns the 5-day / 3-hour forecast for a coordinate."""

    name = "get_weather_data"
    description = "Get the weather data for the given coordinates."
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "lat": {"type": "number", "description": "The latitude of the location.", "minimum": -90, "maximum": 90},
            "lon": {
                "type": "number",
                "description": "The longitude of the location.",
                "minimum": -180,
                "maximum": 180,
            },
        },
        "required": ["lat", "lon"],
        "additionalProperties": False,
    }

    def __init__(self, client: OpenWeatherClient) -> None:
        self._client = client

    @property
    def enabled(self) -> bool:
        return self._client.enabled

    async def run(self, **kwargs: Any) -> dict[str, Any]:
        data = await self._client.forecast(kwargs["lat"], kwargs["lon"])
        city = data.get("city") or {}
        return {
            "city": {
                "name": city.get("name"),
                "country": city.get("country"),
                "timezone_offset": city.get("timezone"),
            },
            "forecast": [
                {
                    "time": entry.get("dt_txt"),
                    "temp": entry.get("main", {}).get("temp"),
                    "feels_like": entry.get("main", {}).get("feels_like"),
                    "humidity": entry.get("main", {}).get("humidity"),
                    "description": (entry.get("weather") or [{}])[0].get("description"),
                    "wind_speed": entry.get("wind", {}).get("speed"),
                    "precipitation_probability": entry.get("pop"),
                }
                for entry in data["list"]
            ],
        }
