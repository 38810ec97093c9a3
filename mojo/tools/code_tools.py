"""Code execution tools backed by the sandbox."""

from __future__ import annotations

import logging
import re
from typing import Any

from mojo.providers.sandbox import SandboxClient
from mojo.tools.base import Tool

LOGGER = logging.getLogger(__name__)

_ICONS = ["stock", "date", "calculation", "default"]
_CURRENCY = re.compile(r"^[A-Z]{3}$")

_CURRENCY_SNIPPET = """
import yfinance as yf
data = yf.Ticker({pair!r}).history(period="1d")
float(data["Close"].iloc[-1]) * {amount!r}
"""


class CodeInterpreterTool(Tool):
    name = "code_interpreter"
    description = "Write and execute Python code."
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "title": {"type": "string", "description": "The title of the code snippet."},
            "code": {
                "type": "string",
                "description": (
                    "The Python code to execute. Put the variables at the end of the code to show them; "
                    "do not use the print function."
                ),
            },
            "icon": {"type": "string", "enum": _ICONS, "description": "The icon to display for the code snippet."},
        },
        "required": ["title", "code", "icon"],
        "additionalProperties": False,
    }

    def __init__(self, sandbox: SandboxClient) -> None:
        self._sandbox = sandbox

    async def run(self, **kwargs: Any) -> dict[str, Any]:
        LOGGER.info("Running code for %r", kwargs["title"])
        execution = await self._sandbox.run_code(kwargs["code"])
        if execution.error:
            LOGGER.info("Code for %r failed: %s", kwargs["title"], execution.error)
        return {"message": execution.to_message(), **execution.to_dict()}


class StockChartTool(CodeInterpreterTool):
    name = "stock_chart"
    description = "Write and execute Python code to find stock data and generate a stock chart."
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "title": {"type": "string", "description": "The title of the chart."},
            "code": {"type": "string", "description": "The Python code to execute."},
            "icon": {"type": "string", "enum": _ICONS, "description": "The icon to display for the chart."},
        },
        "required": ["title", "code", "icon"],
        "additionalProperties": False,
    }


class CurrencyConverterTool(Tool):
    name = "currency_converter"
    description = "Convert currency from one to another using yfinance"
    parameters_schema: dict[str, Any] = {
        "type": "object",
        "properties": {
            "from_currency": {"type": "string", "description": "The source currency code."},
            "to_currency": {"type": "string", "description": "The target currency code."},
            "amount": {"type": "number", "description": "The amount to convert.", "default": 1, "minimum": 0},
        },
        "required": ["from_currency", "to_currency"],
        "additionalProperties": False,
    }

    def __init__(self, sandbox: SandboxClient) -> None:
        self._sandbox = sandbox

    async def run(self, **kwargs: Any) -> dict[str, Any]:
        source = kwargs["from_currency"].strip().upper()
        target = kwargs["to_currency"].strip().upper()
        for code in (source, target):
            if not _CURRENCY.match(code):
                raise ValueError(f"Not an ISO currency code: {code!r}")
        # Codes are validated above, so only literals reach the snippet.
        snippet = _CURRENCY_SNIPPET.format(pair=f"{source}{target}=X", amount=float(kwargs.get("amount", 1)))
        execution = await self._sandbox.run_code(snippet)
        if execution.error:
            raise RuntimeError(f"Conversion {source}->{target} failed: {execution.error}")
        return {"from": source, "to": target, "amount": kwargs.get("amount", 1), "converted": execution.to_message()}
