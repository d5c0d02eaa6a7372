"""Per-entity mutual exclusion for the event loop."""
from typing import Dict
import asyncio


class KeyedLockRegistry:
    """Hands out one asyncio.Lock per key.

    Locks are created lazily and never discarded, so two callers asking for
    the same key always serialize on the same lock.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}

    def get(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    def __contains__(self, key: str) -> bool:
        return key in self._locks

    def __len__(self) -> int:
        return len(self._locks)
