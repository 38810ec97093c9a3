"""Place lookup tools: geocoding, text search and nearby search with opening hours."""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone
from typing import Any, Callable

from mojo.availability import OpeningPeriod, local_time_in, resolve_availability
from mojo.errors import ProviderError
from mojo.fanout import FanOutExecutor, ItemError
from mojo.providers.maps import GoogleMapsClient, MapboxClient
from mojo.providers.tripadvisor import TripAdvisorClient
from mojo.tools.base import Tool

LOGGER = logging.getLogger(__name__)

METERS_PER_DEGREE = 111_320


def _parse_lat_lng(location: str) -> tuple[float, float]:
    lat, lng = (float(part) for part in location.split(","))
    return lat, lng


class FindPlaceTool(Tool):
    """Forward geocode with Google and reverse geocode with Mapbox, concurrently."""

    name = "find_place"
    description = "Find a place using Google Maps API for forward geocoding and Mapbox for reverse geocoding."
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": "The search query for forward geocoding"},
            "coordinates": {
                "type": "array",
                "items": {"type": "number"},
                "description": "Array of [latitude, longitude] for reverse geocoding",
            },
        },
        "required": ["query"],
        "additionalProperties": False,
    }

    def __init__(self, google: GoogleMapsClient, mapbox: MapboxClient, fanout: FanOutExecutor) -> None:
        self._google = google
        self._mapbox = mapbox
        self._fanout = fanout

    @property
    def enabled(self) -> bool:
        return self._google.enabled and self._mapbox.enabled

    async def run(self, **kwargs: Any) -> dict[str, Any]:
        lookups: list[Callable[[], Any]] = [lambda: self._forward(kwargs["query"])]
        coordinates: list[float] = kwargs.get("coordinates") or []
        if len(coordinates) >= 2:
            lat, lng = coordinates[0], coordinates[1]
            lookups.append(lambda: self._reverse(lat, lng))

        batch = await self._fanout.run(lookups, lambda lookup: lookup())
        features = [feature for slot in batch.successes for feature in slot]
        payload: dict[str, Any] = {
            "features": features,
            "google_attribution": "Powered by Google Maps Platform",
            "mapbox_attribution": "Powered by Mapbox",
        }
        if batch.errors:
            payload["errors"] = [error.message for _, error in batch.errors]
        return payload

    async def _forward(self, query: str) -> list[dict[str, Any]]:
        results = await self._google.geocode_forward(query)
        return [
            {
                "id": result.get("place_id"),
                "name": result.get("formatted_address", "").split(",")[0],
                "formatted_address": result.get("formatted_address"),
                "geometry": {
                    "type": "Point",
                    "coordinates": [
                        result["geometry"]["location"]["lng"],
                        result["geometry"]["location"]["lat"],
                    ],
                },
                "feature_type": (result.get("types") or [None])[0],
                "address_components": result.get("address_components", []),
                "viewport": result["geometry"].get("viewport"),
                "place_id": result.get("place_id"),
                "source": "google",
            }
            for result in results
            if result.get("geometry", {}).get("location")
        ]

    async def _reverse(self, lat: float, lng: float) -> list[dict[str, Any]]:
        features = await self._mapbox.geocode_reverse(lat, lng)
        out = []
        for feature in features:
            props = feature.get("properties", {})
            out.append(
                {
                    "id": feature.get("id"),
                    "name": props.get("name_preferred") or props.get("name"),
                    "formatted_address": props.get("full_address"),
                    "geometry": feature.get("geometry"),
                    "feature_type": props.get("feature_type"),
                    "context": props.get("context"),
                    "coordinates": props.get("coordinates"),
                    "bbox": props.get("bbox"),
                    "source": "mapbox",
                }
            )
        return out


class TextSearchTool(Tool):
    name = "text_search"
    description = "Perform a text-based search for places using Mapbox API."
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": "The search query (e.g., '123 main street')."},
            "location": {
                "type": "string",
                "description": "'latitude,longitude' to center the search (e.g., '42.3675294,-71.186966').",
            },
            "radius": {
                "type": "number",
                "description": "The radius of the search area in meters (max 50000).",
                "minimum": 1,
                "maximum": 50000,
            },
        },
        "required": ["query"],
        "additionalProperties": False,
    }

    def __init__(self, mapbox: MapboxClient) -> None:
        self._mapbox = mapbox

    @property
    def enabled(self) -> bool:
        return self._mapbox.enabled

    async def run(self, **kwargs: Any) -> dict[str, Any]:
        center: tuple[float, float] | None = None
        if kwargs.get("location"):
            try:
                center = _parse_lat_lng(kwargs["location"])
            except ValueError as exc:
                raise ValueError(f"location must be 'latitude,longitude': {kwargs['location']!r}") from exc

        features = await self._mapbox.search_places(
            kwargs["query"], proximity=(center[1], center[0]) if center else None
        )
        radius = kwargs.get("radius")
        if center and radius:
            limit = radius / METERS_PER_DEGREE
            features = [
                f for f in features
                if math.hypot(f["center"][0] - center[1], f["center"][1] - center[0]) <= limit
            ]
        return {
            "results": [
                {
                    "name": f.get("text"),
                    "formatted_address": f.get("place_name"),
                    "geometry": {"location": {"lat": f["center"][1], "lng": f["center"][0]}},
                }
                for f in features
                if f.get("center")
            ]
        }


class NearbySearchTool(Tool):
    """Nearby places from TripAdvisor, each enriched with photos and live open/closed state."""

    name = "nearby_search"
    description = "Search for nearby places, such as restaurants or hotels based on the details given."
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "location": {"type": "string", "description": "The location name given by user."},
            "latitude": {"type": "number", "description": "The latitude of the location."},
            "longitude": {"type": "number", "description": "The longitude of the location."},
            "type": {
                "type": "string",
                "enum": ["restaurants", "hotels", "attractions", "geos"],
                "description": "The type of place to search for.",
            },
            "radius": {
                "type": "integer",
                "description": "The radius in meters (max 50000, default 6000).",
                "default": 6000,
                "minimum": 1,
                "maximum": 50000,
            },
        },
        "required": ["location", "latitude", "longitude", "type"],
        "additionalProperties": False,
    }

    def __init__(
        self,
        tripadvisor: TripAdvisorClient,
        google: GoogleMapsClient,
        fanout: FanOutExecutor,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._tripadvisor = tripadvisor
        self._google = google
        self._fanout = fanout
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def enabled(self) -> bool:
        return self._tripadvisor.enabled and self._google.enabled

    async def run(self, **kwargs: Any) -> dict[str, Any]:
        lat, lng = await self._center(kwargs["location"], kwargs["latitude"], kwargs["longitude"])
        places = await self._tripadvisor.nearby(lat, lng, kwargs["type"], kwargs.get("radius", 6000))
        if not places:
            LOGGER.info("No nearby places found")
            return {"results": [], "center": {"lat": lat, "lng": lng}}

        now = self._clock()
        candidates = [p for p in places if p.get("location_id")]
        batch = await self._fanout.run(
            candidates,
            lambda place: self._describe(place, kwargs["type"], (lat, lng), now),
            require_any=False,
        )
        for index, error in batch.errors:
            LOGGER.info("Dropping place %r: %s", candidates[index].get("name"), error.message)
        results = sorted(batch.successes, key=lambda p: p["distance"])
        return {"results": results, "center": {"lat": lat, "lng": lng}}

    async def _center(self, location: str, lat: float, lng: float) -> tuple[float, float]:
        """Prefer geocoding the named location; fall back to the given coordinates."""
        try:
            results = await self._google.geocode_forward(location)
        except ProviderError as exc:
            LOGGER.info("Geocoding %r failed, using provided coordinates: %s", location, exc)
            return lat, lng
        if results and results[0].get("geometry", {}).get("location"):
            point = results[0]["geometry"]["location"]
            return round(float(point["lat"]), 6), round(float(point["lng"]), 6)
        return lat, lng

    async def _describe(
        self, place: dict[str, Any], category: str, center: tuple[float, float], now: datetime
    ) -> dict[str, Any]:
        location_id = str(place["location_id"])
        details = await self._tripadvisor.details(location_id)

        try:
            photos = await self._tripadvisor.photos(location_id)
        except ProviderError as exc:
            LOGGER.info("Photo fetch failed for %r: %s", place.get("name"), exc)
            photos = []

        lat = float(details.get("latitude") or place.get("latitude") or center[0])
        lng = float(details.get("longitude") or place.get("longitude") or center[1])
        try:
            tz_name = await self._google.timezone(lat, lng, int(now.timestamp()))
        except ProviderError as exc:
            LOGGER.info("Timezone lookup failed for %r: %s", place.get("name"), exc)
            tz_name = "UTC"

        hours = details.get("hours") or {}
        periods = [OpeningPeriod.from_dict(p) for p in hours.get("periods") or [] if p.get("open")]
        state = resolve_availability(periods, local_time_in(tz_name, now))

        return {
            "name": place.get("name") or "Unnamed Place",
            "location": {"lat": lat, "lng": lng},
            "timezone": tz_name,
            "place_id": location_id,
            "vicinity": (place.get("address_obj") or {}).get("address_string", ""),
            "distance": float(place.get("distance") or 0),
            "bearing": place.get("bearing", ""),
            "type": category,
            "rating": float(details.get("rating") or 0),
            "price_level": details.get("price_level", ""),
            "cuisine": ((details.get("cuisine") or [{}])[0]).get("name", ""),
            "description": details.get("description", ""),
            "phone": details.get("phone", ""),
            "website": details.get("website", ""),
            "reviews_count": int(details.get("num_reviews") or 0),
            "is_closed": not state.is_open,
            "next_open_close": state.next_transition_time,
            "next_day": state.next_transition_day,
            "hours": hours.get("weekday_text", []),
            "periods": hours.get("periods", []),
            "photos": [
                {
                    "thumbnail": (photo.get("images") or {}).get("thumbnail", {}).get("url"),
                    "small": (photo.get("images") or {}).get("small", {}).get("url"),
                    "medium": (photo.get("images") or {}).get("medium", {}).get("url"),
                    "large": (photo.get("images") or {}).get("large", {}).get("url"),
                    "original": (photo.get("images") or {}).get("original", {}).get("url"),
                    "caption": photo.get("caption"),
                }
                for photo in photos
                if (photo.get("images") or {}).get("medium", {}).get("url")
            ],
            "source": (details.get("source") or {}).get("name", "TripAdvisor"),
        }
