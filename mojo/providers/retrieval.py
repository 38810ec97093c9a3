"""Firecrawl page scraping."""

from __future__ import annotations

from typing import Any

from mojo.errors import ProviderErrorKind
from mojo.providers.base import ProviderClient


class FirecrawlClient(ProviderClient):
    name = "firecrawl"
    base_url = "https://api.firecrawl.dev/v1"

    async def scrape(self, url: str) -> dict[str, Any]:
        """Return ``{"markdown": ..., "metadata": {...}}`` for a page."""
        data = await self._post_json(
            "/scrape",
            json={"url": url, "formats": ["markdown"]},
            headers={"Authorization": f"Bearer {self._api_key}"},
        )
        if not isinstance(data, dict) or not data.get("success") or not isinstance(data.get("data"), dict):
            raise self._error(ProviderErrorKind.MALFORMED, f"scrape returned no content for {url}")
        page = data["data"]
        if not isinstance(page.get("metadata"), dict):
            raise self._error(ProviderErrorKind.MALFORMED, f"scrape returned no metadata for {url}")
        return page
