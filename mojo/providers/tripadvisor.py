"""TripAdvisor content API: nearby search, details and photos."""

from __future__ import annotations

from typing import Any

from mojo.errors import ProviderErrorKind
from mojo.providers.base import ProviderClient

# The content API checks the referer against the key's allowed domains.
_HEADERS = {"Accept": "application/json", "origin": "https://mplx.local", "referer": "https://mplx.local"}


class TripAdvisorClient(ProviderClient):
    name = "tripadvisor"
    base_url = "https://api.content.tripadvisor.com/api/v1"

    async def nearby(self, lat: float, lon: float, category: str, radius: int) -> list[dict[str, Any]]:
        data = await self._get_json(
            "/location/nearby_search",
            params={
                "latLong": f"{lat},{lon}",
                "category": category,
                "radius": radius,
                "radiusUnit": "m",
                "language": "en",
                "key": self._api_key,
            },
            headers=_HEADERS,
        )
        if not isinstance(data, dict):
            raise self._error(ProviderErrorKind.MALFORMED, "nearby response is not an object")
        return data.get("data") or []

    async def details(self, location_id: str) -> dict[str, Any]:
        return await self._get_json(
            f"/location/{location_id}/details",
            params={"language": "en", "currency": "USD", "key": self._api_key},
            headers=_HEADERS,
        )

    async def photos(self, location_id: str) -> list[dict[str, Any]]:
        data = await self._get_json(
            f"/location/{location_id}/photos",
            params={"language": "en", "key": self._api_key},
            headers=_HEADERS,
        )
        if not isinstance(data, dict):
            return []
        return data.get("data") or []
