"""Movie and TV lookups through TMDB."""

from __future__ import annotations

import asyncio
from typing import Any

from mojo.providers.media import TmdbClient, tmdb_image
from mojo.tools.base import Tool

_NO_PARAMS: dict[str, Any] = {"type": "object", "properties": {}, "additionalProperties": False}


def _with_images(item: dict[str, Any]) -> dict[str, Any]:
    return {
        **item,
        "poster_path": tmdb_image(item.get("poster_path")),
        "backdrop_path": tmdb_image(item.get("backdrop_path")),
    }


class TmdbSearchTool(Tool):
    name = "tmdb_search"
    description = "Search for a movie or TV show using TMDB API"
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {"query": {"type": "string", "description": "The search query for movies/TV shows"}},
        "required": ["query"],
        "additionalProperties": False,
    }

    def __init__(self, tmdb: TmdbClient) -> None:
        self._tmdb = tmdb

    @property
    def enabled(self) -> bool:
        return self._tmdb.enabled

    async def run(self, **kwargs: Any) -> dict[str, Any]:
        hits = await self._tmdb.search_multi(kwargs["query"])
        first = next((hit for hit in hits if hit.get("media_type") in ("movie", "tv")), None)
        if first is None:
            return {"result": None}

        media_type, media_id = first["media_type"], first["id"]
        details, credits = await asyncio.gather(
            self._tmdb.details(media_type, media_id),
            self._tmdb.credits(media_type, media_id),
        )
        crew = credits.get("crew") or []
        result = {
            **_with_images(details),
            "media_type": media_type,
            "credits": {
                "cast": [
                    {**person, "profile_path": tmdb_image(person.get("profile_path"))}
                    for person in (credits.get("cast") or [])[:5]
                ],
                "director": next((p["name"] for p in crew if p.get("job") == "Director"), None),
                "writer": next((p["name"] for p in crew if p.get("job") in ("Screenplay", "Writer")), None),
            },
        }
        return {"result": result}


class TrendingTool(Tool):
    """Today's trending movies or TV shows."""

    parameters_schema = _NO_PARAMS

    def __init__(self, tmdb: TmdbClient, kind: str) -> None:
        if kind not in ("movie", "tv"):
            raise ValueError(f"Unsupported trending kind: {kind}")
        self._tmdb = tmdb
        self._kind = kind
        self.name = "trending_movies" if kind == "movie" else "trending_tv"
        self.description = f"Get trending {'movies' if kind == 'movie' else 'TV shows'} from TMDB"

    @property
    def enabled(self) -> bool:
        return self._tmdb.enabled

    async def run(self, **kwargs: Any) -> dict[str, Any]:
        items = await self._tmdb.trending(self._kind)
        return {"results": [_with_images(item) for item in items]}
