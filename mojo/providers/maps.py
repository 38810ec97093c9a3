"""Geocoding and timezone lookups: Google Maps and Mapbox."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from mojo.errors import ProviderErrorKind
from mojo.providers.base import ProviderClient

# Google reports failures inside a 200 body.
_GOOGLE_ERROR_KINDS = {
    "REQUEST_DENIED": ProviderErrorKind.UNAUTHORIZED,
    "OVER_QUERY_LIMIT": ProviderErrorKind.RATE_LIMITED,
    "OVER_DAILY_LIMIT": ProviderErrorKind.RATE_LIMITED,
    "UNKNOWN_ERROR": ProviderErrorKind.UNAVAILABLE,
    "INVALID_REQUEST": ProviderErrorKind.MALFORMED,
}


class GoogleMapsClient(ProviderClient):
    name = "google-maps"
    base_url = "https://maps.googleapis.com/maps/api"

    async def geocode_forward(self, address: str) -> list[dict[str, Any]]:
        data = await self._get_json("/geocode/json", params={"address": address, "key": self._api_key})
        self._check_status(data)
        return data.get("results", [])

    async def timezone(self, lat: float, lon: float, timestamp: int) -> str:
        data = await self._get_json(
            "/timezone/json",
            params={"location": f"{lat},{lon}", "timestamp": timestamp, "key": self._api_key},
        )
        self._check_status(data)
        return data.get("timeZoneId") or "UTC"

    def _check_status(self, data: Any) -> None:
        if not isinstance(data, dict):
            raise self._error(ProviderErrorKind.MALFORMED, "response is not an object")
        status = data.get("status", "OK")
        if status in ("OK", "ZERO_RESULTS"):
            return
        kind = _GOOGLE_ERROR_KINDS.get(status, ProviderErrorKind.MALFORMED)
        raise self._error(kind, data.get("error_message") or status)


class MapboxClient(ProviderClient):
    name = "mapbox"
    base_url = "https://api.mapbox.com"

    async def geocode_reverse(self, lat: float, lon: float) -> list[dict[str, Any]]:
        data = await self._get_json(
            "/search/geocode/v6/reverse",
            params={"longitude": lon, "latitude": lat, "access_token": self._api_key},
        )
        return self._features(data)

    async def search_places(self, query: str, proximity: tuple[float, float] | None = None) -> list[dict[str, Any]]:
        params: dict[str, Any] = {"types": "poi", "access_token": self._api_key}
        if proximity is not None:
            lon, lat = proximity
            params["proximity"] = f"{lon},{lat}"
        data = await self._get_json(f"/geocoding/v5/mapbox.places/{quote(query)}.json", params=params)
        return self._features(data)

    def _features(self, data: Any) -> list[dict[str, Any]]:
        features = data.get("features") if isinstance(data, dict) else None
        if not isinstance(features, list):
            raise self._error(ProviderErrorKind.MALFORMED, "response has no features list")
        return features
