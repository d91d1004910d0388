"""Per-project in-process locks.

Database row locks serialise writers across processes; these locks also
serialise reads that span several statements (version log reconstruction)
inside one process, where SQLite test databases have no row locks at all.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Tuple
from uuid import UUID

from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

LockKey = Tuple[str, UUID]


class _LockEntry:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = asyncio.Lock()
        self.users = 0


class ProjectLockRegistry:
    """Registry of one ``asyncio.Lock`` per (namespace, project).

    Locks are kept per event loop since an ``asyncio.Lock`` cannot be
    shared between loops. An entry lives only while some task holds or
    waits for its lock, so the registry does not grow with the number of
    projects ever touched.
    """

    def __init__(self):
        self._locks: Dict[asyncio.AbstractEventLoop, Dict[LockKey, _LockEntry]] = {}

    def __len__(self) -> int:
        return sum(len(loop_locks) for loop_locks in self._locks.values())

    @asynccontextmanager
    async def hold(self, namespace: str, project_id: UUID) -> AsyncIterator[None]:
        loop = asyncio.get_running_loop()
        key = (namespace, project_id)
        loop_locks = self._locks.setdefault(loop, {})
        entry = loop_locks.get(key)
        if entry is None:
            entry = loop_locks[key] = _LockEntry()

        entry.users += 1
        try:
            if entry.lock.locked():
                LOGGER.debug(
                    "Waiting for project lock",
                    extra={"namespace": namespace, "project_id": str(project_id)}
                )
            async with entry.lock:
                yield
        finally:
            entry.users -= 1
            if entry.users == 0:
                del loop_locks[key]
                if not loop_locks:
                    self._locks.pop(loop, None)


project_locks = ProjectLockRegistry()
