"""Tests for ModeRegistry and the default tool wiring."""

from __future__ import annotations

import sys
from datetime import date

import pytest

from mojo.api import build_registry
from mojo.config import Settings
from mojo.errors import ConfigurationError
from mojo.modes import Mode, ModeConfig, ModeRegistry
from mojo.tools.registry import ToolRegistry


def _default_modes() -> ModeRegistry:
    return ModeRegistry.default(build_registry(Settings()), today=lambda: date(2024, 5, 1))


def test_default_modes_reference_registered_tools():
    modes = _default_modes()
    assert modes.modes() == ["web", "academic", "youtube", "analysis", "fun"]
    assert modes.resolve("fun").tools == ()
    assert "web_search" in modes.resolve("web").tools


def test_resolve_appends_safety_rules_and_date():
    config = _default_modes().resolve("academic")
    assert config.mode is Mode.ACADEMIC
    assert "untrusted data" in config.system_prompt
    assert config.system_prompt.endswith("Today's date is 2024-05-01.")


@pytest.mark.parametrize("name", ["", "astrology", "WEB"])
def test_unknown_mode_is_configuration_error(name):
    with pytest.raises(ConfigurationError):
        _default_modes().resolve(name)


def test_mode_with_unregistered_tool_rejected():
    with pytest.raises(ValueError):
        ModeRegistry([ModeConfig(Mode.WEB, ("ghost",), "prompt")], ToolRegistry())


def test_mode_with_empty_prompt_rejected():
    with pytest.raises(ValueError):
        ModeRegistry([ModeConfig(Mode.FUN, (), "  ")], ToolRegistry())


def test_code_tools_share_configured_sandbox_interpreter():
    registry = build_registry(Settings(sandbox_python="/opt/analysis/bin/python"))
    for name in ("code_interpreter", "stock_chart", "currency_converter"):
        assert registry.get(name)._sandbox._python == "/opt/analysis/bin/python"


def test_sandbox_defaults_to_running_interpreter(monkeypatch):
    monkeypatch.delenv("SANDBOX_PYTHON", raising=False)
    registry = build_registry(Settings())
    assert registry.get("currency_converter")._sandbox._python == sys.executable
