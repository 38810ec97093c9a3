"""Media metadata providers: TMDB and the YouTube details service."""

from __future__ import annotations

from typing import Any

from mojo.errors import ProviderErrorKind
from mojo.providers.base import ProviderClient

TMDB_IMAGE_BASE = "https://image.tmdb.org/t/p/original"


class TmdbClient(ProviderClient):
    name = "tmdb"
    base_url = "https://api.themoviedb.org/3"

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._api_key}", "Accept": "application/json"}

    async def search_multi(self, query: str) -> list[dict[str, Any]]:
        data = await self._get_json(
            "/search/multi",
            params={"query": query, "include_adult": "true", "language": "en-US", "page": 1},
            headers=self._headers(),
        )
        return self._results(data)

    async def details(self, media_type: str, media_id: int) -> dict[str, Any]:
        return await self._get_json(
            f"/{media_type}/{media_id}", params={"language": "en-US"}, headers=self._headers()
        )

    async def credits(self, media_type: str, media_id: int) -> dict[str, Any]:
        return await self._get_json(
            f"/{media_type}/{media_id}/credits", params={"language": "en-US"}, headers=self._headers()
        )

    async def trending(self, kind: str) -> list[dict[str, Any]]:
        data = await self._get_json(f"/trending/{kind}/day", params={"language": "en-US"}, headers=self._headers())
        return self._results(data)

    def _results(self, data: Any) -> list[dict[str, Any]]:
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            raise self._error(ProviderErrorKind.MALFORMED, "response has no results list")
        return results


def tmdb_image(path: str | None) -> str | None:
    return f"{TMDB_IMAGE_BASE}{path}" if path else None


class YouTubeDetailsClient(ProviderClient):
    """Self-hosted service returning oEmbed data, captions and chapter timestamps."""

    name = "youtube-details"

    def __init__(self, endpoint: str, **kwargs: Any) -> None:
        super().__init__(api_key="", **kwargs)
        self.base_url = endpoint.rstrip("/")

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    async def video_data(self, url: str) -> dict[str, Any]:
        return await self._post_json("/video-data", json={"url": url})

    async def video_captions(self, url: str) -> str:
        resp = await self._send("POST", "/video-captions", json={"url": url})
        return resp.text

    async def video_timestamps(self, url: str) -> list[str]:
        data = await self._post_json("/video-timestamps", json={"url": url})
        return data if isinstance(data, list) else []
