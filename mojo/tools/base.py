"""Tool contracts."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class Tool(ABC):
    """Base class for all model-callable tools."""

    name: str
    description: str
    parameters_schema: dict[str, Any]

    @property
    def enabled(self) -> bool:
        """Whether the credentials this tool needs are configured."""
        return True

    @abstractmethod
    async def run(self, **kwargs: Any) -> Any:
        """Execute tool with validated arguments."""
