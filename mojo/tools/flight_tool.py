"""Flight status tool."""

from __future__ import annotations

import re
from typing import Any

from mojo.providers.flights import AviationStackClient
from mojo.tools.base import Tool

_FLIGHT_NUMBER = re.compile(r"^[A-Z0-9]{2,3}\d{1,4}[A-Z]?$")


class TrackFlightTool(Tool):
    name = "track_flight"
    description = "Track flight information and status"
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "flight_number": {"type": "string", "description": "The IATA flight number to track, e.g. 'BA142'."}
        },
        "required": ["flight_number"],
        "additionalProperties": False,
    }

    def __init__(self, client: AviationStackClient) -> None:
        self._client = client

    @property
    def enabled(self) -> bool:
        return self._client.enabled

    async def run(self, **kwargs: Any) -> dict[str, Any]:
        flight_number = re.sub(r"\s+", "", kwargs["flight_number"]).upper()
        if not _FLIGHT_NUMBER.match(flight_number):
            raise ValueError(f"Not an IATA flight number: {kwargs['flight_number']!r}")
        flights = await self._client.flights(flight_number)
        return {"flight_number": flight_number, "data": flights}
