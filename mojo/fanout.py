"""Concurrent fan-out of homogeneous sub-operations."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, Sequence, TypeVar

from mojo.errors import AllFailedError, ProviderError

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(slots=True)
class ItemError:
    """Failure of a single fan-out slot."""

    message: str
    kind: str | None = None


@dataclass(slots=True)
class FanOutResult(Generic[R]):
    """Results parallel to the input batch: slot i belongs to item i."""

    slots: list[R | ItemError] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.slots)

    @property
    def successes(self) -> list[R]:
        return [slot for slot in self.slots if not isinstance(slot, ItemError)]

    @property
    def errors(self) -> list[tuple[int, ItemError]]:
        return [(i, slot) for i, slot in enumerate(self.slots) if isinstance(slot, ItemError)]

    @property
    def all_failed(self) -> bool:
        return bool(self.slots) and not self.successes


class FanOutExecutor:
    """Run one operation per item concurrently, isolating per-item failures.

    Concurrency equals the batch size, capped at ``max_concurrency``. When
    ``require_any`` is set and every item fails, the batch raises
    ``AllFailedError`` so an empty-handed call is distinguishable from a
    partial success.
    """

    def __init__(self, max_concurrency: int = 16) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self._max_concurrency = max_concurrency

    async def run(
        self,
        items: Sequence[T],
        op: Callable[[T], Awaitable[R]],
        *,
        require_any: bool = True,
    ) -> FanOutResult[R]:
        if not items:
            return FanOutResult()

        semaphore = asyncio.Semaphore(min(len(items), self._max_concurrency))

        async def _guarded(index: int, item: T) -> R | ItemError:
            async with semaphore:
                try:
                    return await op(item)
                except ProviderError as exc:
                    LOGGER.warning("Fan-out item %d failed: %s", index, exc)
                    return ItemError(message=str(exc), kind=exc.kind.value)
                except Exception as exc:  # noqa: BLE001
                    LOGGER.warning("Fan-out item %d failed: %s", index, exc)
                    return ItemError(message=str(exc) or type(exc).__name__)

        slots = await asyncio.gather(*(_guarded(i, item) for i, item in enumerate(items)))
        result: FanOutResult[R] = FanOutResult(slots=list(slots))
        if require_any and result.all_failed:
            raise AllFailedError([error.message for _, error in result.errors])
        return result
