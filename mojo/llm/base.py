"""LLM provider interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator

from mojo.models import ModelEvent


class LLMProvider(ABC):
    """Abstract streaming model provider used by the orchestrator."""

    @property
    def enabled(self) -> bool:
        return True

    @abstractmethod
    def stream(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
    ) -> AsyncIterator[ModelEvent]:
        """Stream one model step: text deltas, then tool calls, then a StepFinish."""
