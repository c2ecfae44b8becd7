"""Per-property mutual exclusion for ledger mutations within one process."""

import asyncio
import uuid
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class PropertyLocks:
    """Hands out one :class:`asyncio.Lock` per property id.

    Locks are held weakly and disappear once no coroutine holds or waits on
    them. Across processes the services additionally lock the property row
    (``SELECT ... FOR UPDATE``).
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakValueDictionary[uuid.UUID, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, property_id: uuid.UUID) -> asyncio.Lock:
        lock = self._locks.get(property_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[property_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, property_id: uuid.UUID) -> AsyncIterator[None]:
        lock = self._lock_for(property_id)
        async with lock:
            yield


property_locks = PropertyLocks()
