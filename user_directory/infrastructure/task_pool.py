"""I/O Task Pool — runs one asyncio task per item and joins results in input order.

Invariants:
    - Outcome list is preallocated and indexed by input position: order == input order,
      whatever order the tasks complete in
    - A failing item is captured as a TaskOutcome with its exception — never propagated,
      never aborts the other items
    - At most max_concurrency items are in flight at once across the whole pool

Design Decisions:
    - Semaphore-bounded gather over a fixed worker set: items are I/O bound, so the
      limit is generous (hundreds) and acts as a safety valve, not a throttle
    - No cancellation API: callers await the full batch
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class TaskOutcome(Generic[R]):
    value: R | None = None
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class IOTaskPool:
    """Bounded pool of lightweight asyncio tasks for I/O-bound batch work."""

    def __init__(self, max_concurrency: int = 256):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.max_concurrency = max_concurrency
        self._semaphore = asyncio.Semaphore(max_concurrency)

    async def map_ordered(
        self, func: Callable[[T], Awaitable[R]], items: Sequence[T],
    ) -> list[TaskOutcome[R]]:
        """Apply func to every item concurrently; outcomes follow input order."""
        outcomes: list[TaskOutcome[R] | None] = [None] * len(items)

        async def run(index: int, item: T) -> None:
            async with self._semaphore:
                try:
                    outcomes[index] = TaskOutcome(value=await func(item))
                except Exception as e:
                    logger.warning(
                        f"Batch item {index} failed: {e!r}", exc_info=True,
                    )
                    outcomes[index] = TaskOutcome(error=e)

        await asyncio.gather(*(run(i, item) for i, item in enumerate(items)))
        return outcomes  # type: ignore[return-value]
