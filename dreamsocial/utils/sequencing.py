"""
Per-pair sequencing of relationship mutations.

Two quick taps on the same profile (follow, then unfollow) must land in the
order they were made. Every mutation involving a pair of users holds that
pair's lock, so later requests wait for earlier ones to finish.
"""
import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Tuple


PairKey = Tuple[str, str]


class PairSequencer:
    """Hands out one asyncio.Lock per unordered pair of user ids."""

    def __init__(self) -> None:
        self._locks: Dict[PairKey, asyncio.Lock] = {}
        self._holders: Dict[PairKey, int] = {}

    @staticmethod
    def key(user_a: str, user_b: str) -> PairKey:
        """Order-independent key, so block(A, B) and follow(B, A) share a lock."""
        return (user_a, user_b) if user_a <= user_b else (user_b, user_a)

    @asynccontextmanager
    async def hold(self, user_a: str, user_b: str) -> AsyncIterator[None]:
        """
        Hold the lock for a pair for the duration of the block.

        Locks are dropped once nobody holds or waits on them, so the table
        only grows with pairs that have requests in flight.
        """
        key = self.key(user_a, user_b)
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)
