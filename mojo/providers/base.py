"""Shared HTTP plumbing for provider clients."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from mojo.errors import ProviderError, ProviderErrorKind

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 15.0


def classify_status(status_code: int) -> ProviderErrorKind:
    if status_code in (401, 403):
        return ProviderErrorKind.UNAUTHORIZED
    if status_code == 429:
        return ProviderErrorKind.RATE_LIMITED
    if status_code >= 500:
        return ProviderErrorKind.UNAVAILABLE
    return ProviderErrorKind.MALFORMED


class ProviderClient:
    """Base class for thin JSON-over-HTTPS provider clients.

    Clients hold configuration only and open a short-lived ``httpx.AsyncClient``
    per call, so one instance can be shared by concurrent invocations. Every
    failure leaves this class as a ``ProviderError`` with a typed kind.
    """

    name = "provider"
    base_url = ""

    def __init__(
        self,
        api_key: str = "",
        *,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    def _error(self, kind: ProviderErrorKind, message: str, status_code: int | None = None) -> ProviderError:
        return ProviderError(kind, message, provider=self.name, status_code=status_code)

    async def _send(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self._timeout_seconds, transport=self._transport
            ) as client:
                resp = await client.request(method, url, params=params, json=json, headers=headers)
        except httpx.TimeoutException as exc:
            raise self._error(ProviderErrorKind.UNAVAILABLE, f"request timed out: {exc}") from exc
        except httpx.HTTPError as exc:
            raise self._error(ProviderErrorKind.UNAVAILABLE, f"request failed: {exc}") from exc

        if not resp.is_success:
            LOGGER.warning("%s returned HTTP %d for %s", self.name, resp.status_code, resp.request.url.path)
            raise self._error(
                classify_status(resp.status_code),
                f"HTTP {resp.status_code}",
                status_code=resp.status_code,
            )
        return resp

    async def _get_json(self, url: str, **kwargs: Any) -> Any:
        return self._decode(await self._send("GET", url, **kwargs))

    async def _post_json(self, url: str, **kwargs: Any) -> Any:
        return self._decode(await self._send("POST", url, **kwargs))

    def _decode(self, resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as exc:
            raise self._error(ProviderErrorKind.MALFORMED, "response is not valid JSON") from exc
