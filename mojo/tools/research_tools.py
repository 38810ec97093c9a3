"""Academic search, YouTube search and page retrieval."""

from __future__ import annotations

import logging
import re
from typing import Any

from mojo.fanout import FanOutExecutor, ItemError
from mojo.providers.exa import ExaClient
from mojo.providers.media import YouTubeDetailsClient
from mojo.providers.retrieval import FirecrawlClient
from mojo.tools.base import Tool

LOGGER = logging.getLogger(__name__)

_VIDEO_ID = re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([^&?/]+)")
_ACADEMIC_LIMIT = 10


class AcademicSearchTool(Tool):
    name = "academic_search"
    description = "Search academic papers and research."
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {"query": {"type": "string", "description": "The search query"}},
        "required": ["query"],
        "additionalProperties": False,
    }

    def __init__(self, exa: ExaClient) -> None:
        self._exa = exa

    @property
    def enabled(self) -> bool:
        return self._exa.enabled

    async def run(self, **kwargs: Any) -> dict[str, Any]:
        papers = await self._exa.search_and_contents(
            kwargs["query"],
            num_results=20,
            category="research paper",
            summary_query="Abstract of the Paper",
        )
        seen: set[str] = set()
        results: list[dict[str, Any]] = []
        for paper in papers:
            url, summary = paper.get("url"), paper.get("summary")
            if not url or not summary or url in seen:
                continue
            seen.add(url)
            results.append(
                {
                    **paper,
                    "title": re.sub(r"\s\[.*?\]$", "", paper.get("title") or ""),
                    "summary": re.sub(r"^Summary:\s*", "", summary, flags=re.IGNORECASE),
                }
            )
        return {"results": results[:_ACADEMIC_LIMIT]}


class YouTubeSearchTool(Tool):
    """Find videos through Exa, then enrich each one concurrently."""

    name = "youtube_search"
    description = "Search YouTube videos using Exa AI and get detailed video information."
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "query": {"type": "string", "description": "The search query for YouTube videos"},
            "no_of_results": {
                "type": "integer",
                "description": "The number of results to return",
                "default": 5,
                "minimum": 1,
                "maximum": 20,
            },
        },
        "required": ["query"],
        "additionalProperties": False,
    }

    def __init__(self, exa: ExaClient, details: YouTubeDetailsClient, fanout: FanOutExecutor) -> None:
        self._exa = exa
        self._details = details
        self._fanout = fanout

    @property
    def enabled(self) -> bool:
        return self._exa.enabled and self._details.enabled

    async def run(self, **kwargs: Any) -> dict[str, Any]:
        hits = await self._exa.search(
            kwargs["query"],
            search_type="keyword",
            num_results=kwargs.get("no_of_results", 5),
            include_domains=["youtube.com"],
        )
        videos = []
        for hit in hits:
            match = _VIDEO_ID.search(hit.get("url", ""))
            if match:
                videos.append({"video_id": match.group(1), "url": hit["url"]})

        batch = await self._fanout.run(videos, self._enrich, require_any=False)
        results = [
            videos[i] if isinstance(slot, ItemError) else slot
            for i, slot in enumerate(batch.slots)
        ]
        return {"results": results}

    async def _enrich(self, video: dict[str, Any]) -> dict[str, Any]:
        # Each lookup is optional; a missing part leaves its key unset.
        lookups = await self._fanout.run(
            [self._details.video_data, self._details.video_captions, self._details.video_timestamps],
            lambda fetch: fetch(video["url"]),
        )
        enriched = dict(video)
        for key, slot in zip(("details", "captions", "timestamps"), lookups.slots):
            if not isinstance(slot, ItemError) and slot:
                enriched[key] = slot
        return enriched


class RetrieveTool(Tool):
    """Fetch a web page and return it as clean markdown."""

    name = "retrieve"
    description = "Retrieve the information from a URL using Firecrawl."
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {"url": {"type": "string", "description": "The URL to retrieve the information from."}},
        "required": ["url"],
        "additionalProperties": False,
    }

    def __init__(self, firecrawl: FirecrawlClient) -> None:
        self._firecrawl = firecrawl

    @property
    def enabled(self) -> bool:
        return self._firecrawl.enabled

    async def run(self, **kwargs: Any) -> dict[str, Any]:
        url = str(kwargs["url"]).strip()
        page = await self._firecrawl.scrape(url)
        metadata = page["metadata"]
        return {
            "results": [
                {
                    "title": metadata.get("title"),
                    "content": page.get("markdown", ""),
                    "url": metadata.get("sourceURL", url),
                    "description": metadata.get("description"),
                    "language": metadata.get("language"),
                }
            ]
        }
