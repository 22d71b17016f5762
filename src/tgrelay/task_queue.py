from __future__ import annotations

from collections import deque
from typing import Generic, TypeVar

import anyio

T = TypeVar("T")


class TaskQueue(Generic[T]):
    """Bounded FIFO handoff between intake handlers and the worker.

    ``put`` suspends while the queue is full and has no timeout. ``get`` waits
    up to ``timeout`` seconds and returns ``None`` without dequeuing anything
    when it elapses.
    """

    def __init__(self, capacity: int = 1) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._items: deque[T] = deque()
        self._cond = anyio.Condition()

    def __len__(self) -> int:
        return len(self._items)

    def full(self) -> bool:
        return len(self._items) >= self._capacity

    async def put(self, item: T) -> None:
        async with self._cond:
            while self.full():
                await self._cond.wait()
            self._items.append(item)
            self._cond.notify_all()

    async def get(self, timeout: float | None = None) -> T | None:
        with anyio.move_on_after(timeout):
            async with self._cond:
                while not self._items:
                    await self._cond.wait()
                item = self._items.popleft()
                self._cond.notify_all()
                return item
        return None
