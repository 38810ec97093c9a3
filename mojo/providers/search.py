"""Web search backends: Tavily and DuckDuckGo."""

from __future__ import annotations

import asyncio
from typing import Any

from ddgs import DDGS
from ddgs.exceptions import DDGSException, RatelimitException, TimeoutException

from mojo.errors import ProviderError, ProviderErrorKind
from mojo.providers.base import ProviderClient


class TavilyClient(ProviderClient):
    """Tavily search API. Responses carry results, images and an answer."""

    name = "tavily"
    base_url = "https://api.tavily.com"

    async def search(
        self,
        query: str,
        *,
        topic: str = "general",
        max_results: int = 10,
        search_depth: str = "basic",
        exclude_domains: list[str] | None = None,
        days: int | None = None,
        include_images: bool = True,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "query": query,
            "topic": topic,
            "max_results": max_results,
            "search_depth": search_depth,
            "include_answer": True,
            "include_images": include_images,
            "include_image_descriptions": include_images,
            "exclude_domains": exclude_domains or [],
        }
        if days is not None:
            payload["days"] = days
        data = await self._post_json(
            "/search",
            json=payload,
            headers={"Authorization": f"Bearer {self._api_key}"},
        )
        if not isinstance(data, dict) or not isinstance(data.get("results"), list):
            raise self._error(ProviderErrorKind.MALFORMED, "search response has no results list")
        return data


class DuckDuckGoClient(ProviderClient):
    """Keyless search through DuckDuckGo, shaped like a Tavily response."""

    name = "duckduckgo"

    @property
    def enabled(self) -> bool:
        return True

    async def search(
        self,
        query: str,
        *,
        topic: str = "general",
        max_results: int = 10,
        **_: Any,
    ) -> dict[str, Any]:
        def _query() -> list[dict[str, Any]]:
            ddgs = DDGS(timeout=int(self._timeout_seconds))
            if topic == "news":
                return ddgs.news(query, max_results=max_results)
            return ddgs.text(query, max_results=max_results, backend="duckduckgo")

        try:
            rows = await asyncio.to_thread(_query)
        except RatelimitException as exc:
            raise ProviderError(ProviderErrorKind.RATE_LIMITED, str(exc), provider=self.name) from exc
        except TimeoutException as exc:
            raise ProviderError(ProviderErrorKind.UNAVAILABLE, str(exc), provider=self.name) from exc
        except DDGSException as exc:
            raise ProviderError(ProviderErrorKind.UNAVAILABLE, str(exc), provider=self.name) from exc

        return {
            "query": query,
            "results": [
                {
                    "url": row.get("href") or row.get("url", ""),
                    "title": row.get("title", ""),
                    "content": row.get("body", ""),
                    "published_date": row.get("date"),
                }
                for row in rows or []
            ],
            "images": [],
        }
