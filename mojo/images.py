"""Best-effort validation of image links returned by search providers."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any

import httpx

LOGGER = logging.getLogger(__name__)

IMAGE_PROBE_TIMEOUT_SECONDS = 5.0


def sanitize_url(url: str) -> str:
    return re.sub(r"\s+", "%20", url)


class ImageLinkValidator:
    """HEAD-probe URLs and keep only reachable images."""

    def __init__(
        self,
        timeout_seconds: float = IMAGE_PROBE_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    async def is_valid_image(self, url: str) -> bool:
        """Return True only for a 2xx response declaring an image content type.

        Never raises: timeouts and network errors count as invalid.
        """
        try:
            return await asyncio.wait_for(self._probe(url), timeout=self._timeout_seconds)
        except asyncio.TimeoutError:
            LOGGER.debug("Image probe timed out: %s", url)
            return False
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            LOGGER.debug("Image probe failed for %s: %s", url, exc)
            return False

    async def _probe(self, url: str) -> bool:
        async with httpx.AsyncClient(
            timeout=self._timeout_seconds, transport=self._transport, follow_redirects=True
        ) as client:
            resp = await client.head(url)
        content_type = resp.headers.get("content-type", "")
        return resp.is_success and content_type.lower().startswith("image/")

    async def filter_images(self, images: list[dict[str, Any]]) -> list[dict[str, str]]:
        """Validate ``{url, description}`` entries concurrently, keeping input order.

        Entries without a description are dropped along with broken links.
        """
        candidates = [
            {"url": sanitize_url(str(image.get("url", ""))), "description": image.get("description") or ""}
            for image in images
            if image.get("url")
        ]
        verdicts = await asyncio.gather(*(self.is_valid_image(c["url"]) for c in candidates))
        return [c for c, ok in zip(candidates, verdicts) if ok and c["description"]]
