from __future__ import annotations


class SessionTracker:
    """Users that currently have an admitted, unfinished task.

    All methods are synchronous and run on the event loop thread, so there is no
    suspension point between the membership check and the insert in
    ``try_acquire``.
    """

    def __init__(self) -> None:
        self._active: set[int] = set()

    def try_acquire(self, user_id: int) -> bool:
        if user_id in self._active:
            return False
        self._active.add(user_id)
        return True

    def release(self, user_id: int) -> None:
        self._active.discard(user_id)

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._active

    def __len__(self) -> int:
        return len(self._active)
