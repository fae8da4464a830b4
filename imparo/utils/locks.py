import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Generic, Hashable, List, TypeVar

K = TypeVar("K", bound=Hashable)


class KeyedLocks(Generic[K]):
    """
    One asyncio.Lock per key, created on first use and dropped as soon as no
    task holds or waits for it.
    """

    def __init__(self):
        # key -> [lock, holders + waiters]
        self._entries: Dict[K, List] = {}

    @asynccontextmanager
    async def hold(self, key: K) -> AsyncIterator[None]:
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = [asyncio.Lock(), 0]
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
