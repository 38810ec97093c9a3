from typing import Any
from unittest.mock import AsyncMock

import pytest

from mojo.errors import AllFailedError, ProviderError, ProviderErrorKind, ToolErrorKind
from mojo.models import ToolInvocation
from mojo.tools.base import Tool
from mojo.tools.registry import ToolRegistry, validate_arguments


class EchoTool(Tool):
    name = "echo"
    description = "Echo arguments back"
    parameters_schema = {
        "type": "object",
        "properties": {
            "text": {"type": "string"},
            "mode": {"type": "string", "enum": ["plain", "loud"], "default": "plain"},
            "count": {"type": "integer", "minimum": 1, "maximum": 3, "default": 1},
            "tags": {"type": "array", "items": {"type": "string"}},
        },
        "required": ["text"],
        "additionalProperties": False,
    }

    def __init__(self, side_effect: Any = None) -> None:
        self.run_mock = AsyncMock(side_effect=side_effect, return_value={"ok": True})

    async def run(self, **kwargs: Any) -> Any:
        return await self.run_mock(**kwargs)


def _registry(tool: Tool) -> ToolRegistry:
    registry = ToolRegistry()
    registry.register(tool)
    return registry


@pytest.mark.asyncio
async def test_execute_validates_and_fills_defaults():
    tool = EchoTool()
    result = await _registry(tool).execute(ToolInvocation("echo", {"text": "hi"}, call_id="c1"))

    assert result.succeeded
    assert result.to_dict() == {"result": {"ok": True}}
    tool.run_mock.assert_awaited_once_with(text="hi", mode="plain", count=1)


@pytest.mark.asyncio
async def test_unknown_tool_is_invalid_arguments():
    tool = EchoTool()
    result = await _registry(tool).execute(ToolInvocation("nope", {}))

    assert result.error.kind is ToolErrorKind.INVALID_ARGUMENTS
    tool.run_mock.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "arguments",
    [
        {},
        {"text": "hi", "mode": "shout"},
        {"text": "hi", "count": 9},
        {"text": "hi", "extra": 1},
        {"text": "hi", "tags": "not-a-list"},
    ],
)
async def test_invalid_arguments_never_reach_tool(arguments):
    tool = EchoTool()
    result = await _registry(tool).execute(ToolInvocation("echo", arguments))

    assert result.error.kind is ToolErrorKind.INVALID_ARGUMENTS
    tool.run_mock.assert_not_awaited()


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "exc,kind",
    [
        (ProviderError(ProviderErrorKind.UNAUTHORIZED, "bad key", provider="exa"), ToolErrorKind.PROVIDER_FAILURE),
        (RuntimeError("boom"), ToolErrorKind.PROVIDER_FAILURE),
        (ValueError("Not an IATA flight number"), ToolErrorKind.PROVIDER_FAILURE),
        (AllFailedError(["a", "b"]), ToolErrorKind.ALL_FAILED),
    ],
)
async def test_tool_failures_become_error_results(exc, kind):
    result = await _registry(EchoTool(side_effect=exc)).execute(ToolInvocation("echo", {"text": "x"}, call_id="c9"))

    assert result.call_id == "c9"
    assert result.error.kind is kind
    assert result.payload is None


@pytest.mark.asyncio
async def test_all_failed_message_lists_item_errors():
    result = await _registry(EchoTool(side_effect=AllFailedError(["q1 down", "q2 down"]))).execute(
        ToolInvocation("echo", {"text": "x"})
    )
    assert "q1 down" in result.error.message
    assert "q2 down" in result.error.message


def test_register_rejects_duplicates():
    registry = _registry(EchoTool())
    with pytest.raises(ValueError):
        registry.register(EchoTool())


def test_list_tool_specs_filters_by_name():
    registry = _registry(EchoTool())
    assert registry.list_tool_specs(["missing"]) == []
    spec = registry.list_tool_specs(["echo"])[0]
    assert spec["type"] == "function"
    assert spec["function"]["name"] == "echo"
    assert spec["function"]["parameters"] is EchoTool.parameters_schema


def test_validate_arguments_allows_extra_when_not_forbidden():
    schema = {"properties": {"q": {"type": "string"}}, "required": ["q"]}
    assert validate_arguments(schema, {"q": "x", "other": 1}) == {"q": "x"}


def test_validate_arguments_rejects_non_object():
    with pytest.raises(ValueError):
        validate_arguments(EchoTool.parameters_schema, ["text"])  # type: ignore[arg-type]
