"""Registry for tool registration, validation and dispatch."""

from __future__ import annotations

import logging
from typing import Annotated, Any, Iterable, Literal, Optional

from pydantic import ConfigDict, Field, create_model
from pydantic import ValidationError as PydanticValidationError

from mojo.errors import AllFailedError, ProviderError, ToolErrorKind
from mojo.models import ToolInvocation, ToolResult
from mojo.tools.base import Tool

LOGGER = logging.getLogger(__name__)


class ToolRegistry:
    """Explicit registry of tools, keyed by name."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        if tool.name in self._tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def get(self, name: str) -> Tool | None:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def list_tool_specs(self, names: Iterable[str] | None = None) -> list[dict[str, Any]]:
        selected = self._tools.values() if names is None else [self._tools[n] for n in names if n in self._tools]
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.parameters_schema,
                },
            }
            for tool in selected
        ]

    async def execute(self, invocation: ToolInvocation) -> ToolResult:
        """Validate and run one invocation. Failures come back as error results."""

        tool = self._tools.get(invocation.name)
        if tool is None:
            return ToolResult.fail(
                invocation.call_id, ToolErrorKind.INVALID_ARGUMENTS, f"Unknown tool: {invocation.name}"
            )

        try:
            validated = validate_arguments(tool.parameters_schema, invocation.arguments)
        except ValueError as exc:
            LOGGER.info("Rejected arguments for %s: %s", tool.name, exc)
            return ToolResult.fail(invocation.call_id, ToolErrorKind.INVALID_ARGUMENTS, str(exc))

        LOGGER.info("Tool called: %s", tool.name)
        try:
            payload = await tool.run(**validated)
        except AllFailedError as exc:
            LOGGER.warning("Tool %s: %s (%s)", tool.name, exc, "; ".join(exc.errors))
            return ToolResult.fail(invocation.call_id, ToolErrorKind.ALL_FAILED, f"{exc}: {'; '.join(exc.errors)}")
        except ProviderError as exc:
            LOGGER.warning("Tool %s failed: %s", tool.name, exc)
            return ToolResult.fail(invocation.call_id, ToolErrorKind.PROVIDER_FAILURE, str(exc))
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Tool %s raised", tool.name)
            return ToolResult.fail(
                invocation.call_id, ToolErrorKind.PROVIDER_FAILURE, str(exc) or type(exc).__name__
            )
        return ToolResult.ok(invocation.call_id, payload)


def validate_arguments(schema: dict[str, Any], payload: dict[str, Any]) -> dict[str, Any]:
    """Check ``payload`` against a JSON-schema style object schema.

    Supports property types, ``enum``, ``default``, ``minimum``/``maximum``,
    typed array items and ``additionalProperties: false``. Raises ``ValueError``.
    """
    if not isinstance(payload, dict):
        raise ValueError("Tool arguments must be an object")

    props = schema.get("properties", {})
    required = set(schema.get("required", []))
    fields: dict[str, Any] = {}
    for name, config in props.items():
        typ = _python_type(config)
        constraints: dict[str, Any] = {}
        if "minimum" in config:
            constraints["ge"] = config["minimum"]
        if "maximum" in config:
            constraints["le"] = config["maximum"]
        if constraints:
            typ = Annotated[typ, Field(**constraints)]
        if name in required:
            default: Any = ...
        elif "default" in config:
            default = config["default"]
        else:
            typ = Optional[typ]
            default = None
        fields[name] = (typ, default)

    extra = "ignore" if schema.get("additionalProperties", True) else "forbid"
    model = create_model("ToolInputModel", __config__=ConfigDict(extra=extra), **fields)
    try:
        value = model(**payload)
    except PydanticValidationError as exc:
        raise ValueError(f"Invalid input for tool: {exc}") from exc
    return value.model_dump(exclude_none=True)


def _python_type(config: dict[str, Any]) -> Any:
    if "enum" in config:
        return Literal[tuple(config["enum"])]
    schema_type = config.get("type", "string")
    if schema_type == "array":
        return list[_python_type(config.get("items", {}))]
    mapping: dict[str, type[Any]] = {
        "string": str,
        "integer": int,
        "number": float,
        "boolean": bool,
        "object": dict,
    }
    return mapping.get(schema_type, str)
