"""Exa neural search, used for academic papers and YouTube lookups."""

from __future__ import annotations

from typing import Any

from mojo.errors import ProviderErrorKind
from mojo.providers.base import ProviderClient


class ExaClient(ProviderClient):
    name = "exa"
    base_url = "https://api.exa.ai"

    async def search(
        self,
        query: str,
        *,
        search_type: str = "auto",
        num_results: int = 10,
        include_domains: list[str] | None = None,
        category: str | None = None,
        contents: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]:
        payload: dict[str, Any] = {"query": query, "type": search_type, "numResults": num_results}
        if include_domains:
            payload["includeDomains"] = include_domains
        if category:
            payload["category"] = category
        if contents:
            payload["contents"] = contents
        data = await self._post_json("/search", json=payload, headers={"x-api-key": self._api_key})
        results = data.get("results") if isinstance(data, dict) else None
        if not isinstance(results, list):
            raise self._error(ProviderErrorKind.MALFORMED, "search response has no results list")
        return results

    async def search_and_contents(
        self, query: str, *, num_results: int = 20, category: str | None = None, summary_query: str = ""
    ) -> list[dict[str, Any]]:
        return await self.search(
            query,
            num_results=num_results,
            category=category,
            contents={"summary": {"query": summary_query}} if summary_query else {"text": True},
        )
