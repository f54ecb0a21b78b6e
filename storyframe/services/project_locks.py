"""Per-project serialization of generation requests.

Causal history is read from persisted plot points without any version check,
so generating two acts of the same project concurrently can miss a write that
is still in flight. Generation flows hold the project's lock from the causal
read until their result is persisted.

The lock is re-entrant for the task that holds it, so a caller may wrap a
generation flow and its own follow-up work in a single ``hold()``.
"""
from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

from storyframe.utils.logging_config import get_logger

logger = get_logger("storyframe.locks")


class ProjectLockRegistry:
    """Hands out one ``asyncio.Lock`` per project id."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}
        self._owners: Dict[str, Optional[asyncio.Task]] = {}

    def lock_for(self, project_id: str) -> asyncio.Lock:
        lock = self._locks.get(project_id)
        if lock is None:
            lock = self._locks[project_id] = asyncio.Lock()
        return lock

    def is_locked(self, project_id: str) -> bool:
        lock = self._locks.get(project_id)
        return lock is not None and lock.locked()

    @asynccontextmanager
    async def hold(self, project_id: str) -> AsyncIterator[None]:
        task = asyncio.current_task()
        if task is not None and self._owners.get(project_id) is task:
            yield
            return

        lock = self.lock_for(project_id)
        if lock.locked():
            logger.info("Waiting for in-flight generation", extra={"project_id": project_id})
        async with lock:
            self._owners[project_id] = task
            try:
                yield
            finally:
                self._owners.pop(project_id, None)
