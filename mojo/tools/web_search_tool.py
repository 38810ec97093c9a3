"""Multi-query web search tool."""

from __future__ import annotations

import logging
from typing import Any, Protocol

from mojo.fanout import FanOutExecutor, ItemError
from mojo.images import ImageLinkValidator
from mojo.tools.base import Tool

LOGGER = logging.getLogger(__name__)

NEWS_WINDOW_DAYS = 7


class SearchBackend(Protocol):
    enabled: bool

    async def search(self, query: str, **kwargs: Any) -> dict[str, Any]: ...


def _pick(values: list[Any], index: int, fallback: Any) -> Any:
    """Per-query option: own slot, else the first slot, else the fallback."""
    if index < len(values):
        return values[index]
    return values[0] if values else fallback


class WebSearchTool(Tool):
    """Run several web queries concurrently and return one result block per query."""

    name = "web_search"
    description = (
        "Search the web for information with multiple queries, max results and search depth. "
        "Each array is read per query; a shorter array reuses its first value."
    )
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "queries": {
                "type": "array",
                "items": {"type": "string"},
                "description": "Array of search queries to look up on the web.",
            },
            "max_results": {
                "type": "array",
                "items": {"type": "integer"},
                "description": "Array of maximum number of results to return per query.",
                "default": [10],
            },
            "topics": {
                "type": "array",
                "items": {"type": "string", "enum": ["general", "news"]},
                "description": "Array of topic types to search for.",
                "default": ["general"],
            },
            "search_depth": {
                "type": "array",
                "items": {"type": "string", "enum": ["basic", "advanced"]},
                "description": "Array of search depths to use.",
                "default": ["basic"],
            },
            "exclude_domains": {
                "type": "array",
                "items": {"type": "string"},
                "description": "A list of domains to exclude from all search results.",
                "default": [],
            },
        },
        "required": ["queries"],
        "additionalProperties": False,
    }

    def __init__(
        self,
        backend: SearchBackend,
        fanout: FanOutExecutor,
        image_validator: ImageLinkValidator,
    ) -> None:
        self._backend = backend
        self._fanout = fanout
        self._images = image_validator

    @property
    def enabled(self) -> bool:
        return self._backend.enabled

    async def run(self, **kwargs: Any) -> dict[str, Any]:
        queries: list[str] = [q.strip() for q in kwargs["queries"] if q.strip()]
        if not queries:
            raise ValueError("At least one non-empty query is required")
        max_results: list[int] = kwargs.get("max_results") or [10]
        topics: list[str] = kwargs.get("topics") or ["general"]
        depths: list[str] = kwargs.get("search_depth") or ["basic"]
        exclude_domains: list[str] = kwargs.get("exclude_domains") or []

        LOGGER.info("Web search queries=%r topics=%r", queries, topics)

        async def _search(item: tuple[int, str]) -> dict[str, Any]:
            index, query = item
            topic = _pick(topics, index, "general")
            data = await self._backend.search(
                query,
                topic=topic,
                max_results=min(max(int(_pick(max_results, index, 10)), 1), 20),
                search_depth=_pick(depths, index, "basic"),
                exclude_domains=exclude_domains,
                days=NEWS_WINDOW_DAYS if topic == "news" else None,
            )
            images = await self._images.filter_images(
                [img if isinstance(img, dict) else {"url": img} for img in data.get("images") or []]
            )
            return {
                "query": query,
                "results": [
                    {
                        "url": row.get("url", ""),
                        "title": row.get("title", ""),
                        "content": row.get("content", ""),
                        "raw_content": row.get("raw_content"),
                        "published_date": row.get("published_date") if topic == "news" else None,
                    }
                    for row in data.get("results", [])
                ],
                "images": images,
            }

        batch = await self._fanout.run(list(enumerate(queries)), _search)
        searches = [
            {"query": queries[i], "results": [], "images": [], "error": slot.message}
            if isinstance(slot, ItemError)
            else slot
            for i, slot in enumerate(batch.slots)
        ]
        return {"searches": searches}
