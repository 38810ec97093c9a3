"""OpenRouter implementation of LLMProvider."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, AsyncIterator

import httpx

from mojo.config import Settings
from mojo.errors import ModelError, ProviderError, ProviderErrorKind, StreamError
from mojo.llm.base import LLMProvider
from mojo.models import ModelEvent, StepFinish, TextDelta, ToolInvocation
from mojo.providers.base import classify_status

_LOGGER = logging.getLogger(__name__)

_MAX_RETRIES = 3
_RETRY_BACKOFF_SECONDS = [5, 15, 45]


class OpenRouterProvider(LLMProvider):
    """LLM provider using OpenRouter's OpenAI-compatible streaming chat endpoint."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._settings = settings
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return bool(self._settings.openrouter_api_key)

    async def stream(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> AsyncIterator[ModelEvent]:
        payload: dict[str, Any] = {
            "model": self._settings.openrouter_model,
            "messages": messages,
            "temperature": 0,
            "stream": True,
        }
        if tools:
            payload["tools"] = tools

        timeout = httpx.Timeout(self._settings.request_timeout_seconds)
        async with httpx.AsyncClient(
            base_url=self._settings.openrouter_base_url, timeout=timeout, transport=self._transport
        ) as client:
            for attempt in range(_MAX_RETRIES + 1):
                request = client.build_request(
                    "POST",
                    "/chat/completions",
                    headers={
                        "Authorization": f"Bearer {self._settings.openrouter_api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                )
                try:
                    response = await client.send(request, stream=True)
                except httpx.HTTPError as exc:
                    raise StreamError(f"Failed to reach model backend: {exc}") from exc
                if response.status_code == 429 and attempt < _MAX_RETRIES:
                    await response.aclose()
                    wait = _RETRY_BACKOFF_SECONDS[attempt]
                    _LOGGER.warning(
                        "OpenRouter rate limited (429), retrying in %ds (attempt %d/%d)",
                        wait,
                        attempt + 1,
                        _MAX_RETRIES,
                    )
                    await asyncio.sleep(wait)
                    continue
                break

            try:
                if not response.is_success:
                    await self._raise_for_status(response)
                async for event in self._parse(response):
                    yield event
            except httpx.HTTPError as exc:
                raise StreamError(f"Model stream interrupted: {exc}") from exc
            finally:
                await response.aclose()

    async def _raise_for_status(self, response: httpx.Response) -> None:
        body = (await response.aread()).decode("utf-8", errors="replace")
        detail = _error_message(body) or f"HTTP {response.status_code}"
        if response.status_code in (400, 404, 413, 422):
            raise ModelError(f"Model rejected the request: {detail}")
        raise ProviderError(
            classify_status(response.status_code), detail, provider="openrouter", status_code=response.status_code
        )

    async def _parse(self, response: httpx.Response) -> AsyncIterator[ModelEvent]:
        pending_calls: list[dict[str, Any]] = []
        emitted = 0
        finish_reason: str | None = None
        async for line in response.aiter_lines():
            if not line.startswith("data:"):
                continue
            chunk = line[len("data:"):].strip()
            if chunk == "[DONE]":
                break
            try:
                data = json.loads(chunk)
            except json.JSONDecodeError:
                _LOGGER.debug("Skipping undecodable stream chunk: %r", chunk[:200])
                continue
            if error := data.get("error"):
                raise ModelError(f"Model stream error: {_error_message(json.dumps(error)) or error}")
            choices = data.get("choices") or []
            if not choices:
                continue
            choice = choices[0]
            delta = choice.get("delta") or {}
            if content := delta.get("content"):
                yield TextDelta(content)
            if tool_deltas := delta.get("tool_calls"):
                latest = _merge_tool_calls(pending_calls, tool_deltas)
                # A named call is complete once a higher index starts streaming.
                while emitted < latest and (invocation := _to_invocation(pending_calls[emitted])):
                    yield invocation
                    emitted += 1
            if choice.get("finish_reason"):
                finish_reason = choice["finish_reason"]

        _LOGGER.info("LLM step finished: finish_reason=%r tool_calls=%d", finish_reason, len(pending_calls))
        if finish_reason == "content_filter":
            raise ModelError("Model response was blocked by a safety filter")
        for call in pending_calls[emitted:]:
            if invocation := _to_invocation(call):
                yield invocation
        yield StepFinish(finish_reason)


def _to_invocation(call: dict[str, Any]) -> ToolInvocation | None:
    function = call.get("function") or {}
    if not function.get("name"):
        return None
    kwargs: dict[str, Any] = {
        "name": function["name"],
        "arguments": _safe_json_loads(function.get("arguments") or "{}"),
    }
    if call.get("id"):
        kwargs["call_id"] = call["id"]
    return ToolInvocation(**kwargs)


def _merge_tool_calls(accumulator: list[dict[str, Any]], deltas: list[dict[str, Any]]) -> int:
    """Fold streamed tool-call fragments into complete calls, keyed by index.

    Returns the highest index touched by ``deltas``.
    """
    latest = -1
    for delta in deltas:
        index = delta.get("index")
        if not isinstance(index, int) or index < 0:
            index = len(accumulator)
        while len(accumulator) <= index:
            accumulator.append({"id": None, "function": {"name": None, "arguments": ""}})
        entry = accumulator[index]
        if delta.get("id"):
            entry["id"] = delta["id"]
        function_delta = delta.get("function") or {}
        if function_delta.get("name"):
            entry["function"]["name"] = function_delta["name"]
        if function_delta.get("arguments"):
            entry["function"]["arguments"] += function_delta["arguments"]
        latest = max(latest, index)
    return latest


def _error_message(body: str) -> str:
    try:
        parsed = json.loads(body)
    except json.JSONDecodeError:
        return body[:200]
    if isinstance(parsed, dict):
        error = parsed.get("error", parsed)
        if isinstance(error, dict):
            return str(error.get("message") or "")
        return str(error)
    return ""


def _safe_json_loads(raw: str) -> dict[str, Any]:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    return parsed if isinstance(parsed, dict) else {}
