"""
Request deduplication for concurrent async work.

At most one in-flight task exists per key. Callers arriving while it runs
await the same task and observe the same value or the same exception. The
registration is dropped when the task settles, before any awaiting caller
resumes, so a later call starts fresh work.
"""

import asyncio
from typing import Awaitable, Callable, Dict, Generic, Hashable, Optional, TypeVar

T = TypeVar('T')


class RequestDeduplicator(Generic[T]):

    def __init__(self):
        self._pending: Dict[Hashable, 'asyncio.Task[T]'] = {}

    async def _run(self, key: Hashable, factory: Callable[[], Awaitable[T]]) -> T:
        try:
            return await factory()
        finally:
            if self._pending.get(key) is asyncio.current_task():
                del self._pending[key]

    async def dedupe(self, key: Hashable, factory: Callable[[], Awaitable[T]]) -> T:
        """Await the in-flight task for `key`, starting it with `factory` if none exists."""
        task = self._pending.get(key)
        if task is None:
            task = asyncio.ensure_future(self._run(key, factory))
            task.add_done_callback(_consume_exception)
            self._pending[key] = task
        # A cancelled caller must not cancel the work other callers share
        return await asyncio.shield(task)

    def pending(self, key: Hashable) -> Optional['asyncio.Task[T]']:
        return self._pending.get(key)

    def clear(self) -> None:
        """Forget all registrations. Running tasks finish on their own."""
        self._pending.clear()

    def __contains__(self, key: Hashable) -> bool:
        return key in self._pending

    def __len__(self) -> int:
        return len(self._pending)


def _consume_exception(task: asyncio.Task) -> None:
    # Failures are delivered to awaiting callers; mark them retrieved
    # so a task whose callers all went away is not reported as unhandled
    if not task.cancelled():
        task.exception()
