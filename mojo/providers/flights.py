"""AviationStack flight status."""

from __future__ import annotations

from typing import Any

from mojo.errors import ProviderErrorKind
from mojo.providers.base import ProviderClient

_API_ERROR_KINDS = {
    "invalid_access_key": ProviderErrorKind.UNAUTHORIZED,
    "missing_access_key": ProviderErrorKind.UNAUTHORIZED,
    "usage_limit_reached": ProviderErrorKind.RATE_LIMITED,
    "rate_limit_reached": ProviderErrorKind.RATE_LIMITED,
}


class AviationStackClient(ProviderClient):
    name = "aviationstack"
    base_url = "https://api.aviationstack.com/v1"

    async def flights(self, flight_iata: str) -> list[dict[str, Any]]:
        data = await self._get_json("/flights", params={"access_key": self._api_key, "flight_iata": flight_iata})
        if not isinstance(data, dict):
            raise self._error(ProviderErrorKind.MALFORMED, "response is not an object")
        if error := data.get("error"):
            code = error.get("code", "") if isinstance(error, dict) else ""
            message = error.get("message", code) if isinstance(error, dict) else str(error)
            raise self._error(_API_ERROR_KINDS.get(code, ProviderErrorKind.MALFORMED), message)
        return data.get("data") or []
