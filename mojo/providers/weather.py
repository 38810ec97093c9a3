"""OpenWeatherMap 5-day forecast."""

from __future__ import annotations

from typing import Any

from mojo.errors import ProviderErrorKind
from mojo.providers.base import ProviderClient


class OpenWeatherClient(ProviderClient):
    name = "openweather"
    base_url = "https://api.openweathermap.org/data/2.5"

    async def forecast(self, lat: float, lon: float) -> dict[str, Any]:
        data = await self._get_json(
            "/forecast",
            params={"lat": lat, "lon": lon, "appid": self._api_key, "units": "metric"},
        )
        if not isinstance(data, dict) or not isinstance(data.get("list"), list):
            raise self._error(ProviderErrorKind.MALFORMED, "forecast response has no list")
        return data
