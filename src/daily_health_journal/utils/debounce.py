"""
Debounced, single-flight lookups on the event loop.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable
from typing import Any

logger = logging.getLogger(__name__)


class Debouncer:
    """
    Delay a lookup until triggers stop arriving, keeping only the latest.

    Each :meth:`submit` cancels the pending delay (or in-flight lookup) of the
    previous one. A lookup whose key is no longer the latest when it finishes
    is discarded.
    """

    def __init__(self, delay_seconds: float = 0.5) -> None:
        self.delay_seconds = delay_seconds
        self._task: asyncio.Task | None = None
        self._latest_key: Hashable | None = None

    @property
    def latest_key(self) -> Hashable | None:
        return self._latest_key

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _delayed(self, lookup: Callable[[], Awaitable[Any]]) -> Any:
        await asyncio.sleep(self.delay_seconds)
        return await lookup()

    async def submit(self, key: Hashable, lookup: Callable[[], Awaitable[Any]]) -> tuple[bool, Any]:
        """
        Schedule a lookup for ``key`` and wait for its outcome.

        Args:
            key: Value the lookup is for.
            lookup: Coroutine function performing the lookup.

        Returns:
            Tuple of (whether the result is current, result). A superseded
            submission returns ``(False, None)``.

        Raises:
            Exception: Whatever the lookup raised, if it is still current.
        """
        self.cancel()
        self._latest_key = key
        task = asyncio.create_task(self._delayed(lookup))
        self._task = task

        try:
            await asyncio.wait({task})
        except asyncio.CancelledError:
            task.cancel()
            raise

        if task.cancelled() or key != self._latest_key or task is not self._task:
            logger.debug(f"Discarding stale lookup for {key}")
            return False, None

        return True, task.result()

    def cancel(self) -> None:
        """Cancel the pending lookup, if any."""
        if self.pending:
            self._task.cancel()
