"""
Locked Buffers
==============
Containers shared between Playwright event callbacks and the harvest loop.

Playwright delivers ``route`` / ``response`` events on the same event loop
that runs the harvest loop, but as separate tasks; a callback can run
between any two awaits of the loop.  Every buffer is therefore guarded by an
``asyncio.Lock`` and consumed with a drain-and-clear: the consumer takes the
whole batch under the lock, releases it, then processes the batch.
"""

from __future__ import annotations

import asyncio
from collections import deque
from typing import Deque, Generic, List, Optional, Set, TypeVar

T = TypeVar("T")


class PostIdSet:
    """A set of record ids used to detect duplicates."""

    def __init__(self):
        self._ids: Set[str] = set()

    def add(self, post_id: str) -> bool:
        """
        Add a record id to the set.

        Returns:
            True if the id was already in the set, False if not.
        """
        contains = post_id in self._ids
        self._ids.add(post_id)
        return contains

    def __contains__(self, post_id: object) -> bool:
        return post_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)


class LockedBuffer(Generic[T]):
    """
    FIFO queue guarded by an ``asyncio.Lock``.

    Producers ``push`` single items; the consumer either ``pop``s one item
    at a time (output records) or ``drain``s the whole buffer at once
    (intercepted requests and responses).
    """

    def __init__(self):
        self._items: Deque[T] = deque()
        self._lock = asyncio.Lock()

    async def push(self, item: T) -> None:
        async with self._lock:
            self._items.append(item)

    async def pop(self) -> Optional[T]:
        """Pop the oldest item, or None if the buffer is empty."""
        async with self._lock:
            if self._items:
                return self._items.popleft()
            return None

    async def drain(self) -> List[T]:
        """Take every buffered item in arrival order and clear the buffer."""
        async with self._lock:
            items = list(self._items)
            self._items.clear()
        return items

    async def clear(self) -> None:
        async with self._lock:
            self._items.clear()

    async def size(self) -> int:
        async with self._lock:
            return len(self._items)

    def __len__(self) -> int:
        # Unlocked snapshot; only for logging and tests
        return len(self._items)
