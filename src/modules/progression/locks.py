"""
Per-user asyncio lock registry.

Serialises read-modify-write sequences on the same user's progression
record inside one process. Cross-process safety comes from the
compare-and-swap in the repositories.

A user's lock exists only while someone holds or waits for it, so the
registry stays as small as the number of users being updated right now.

Usage
-----
    locks = UserLockRegistry()

    async with locks.hold("user-1"):
        ...

    async with locks.hold("user-1", "user-2"):  # sorted acquisition
        ...
"""

from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack, asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict


@dataclass
class _Slot:
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    holders: int = 0


class UserLockRegistry:
    """``asyncio.Lock`` per user id, dropped when its last holder leaves."""

    def __init__(self) -> None:
        self._slots: Dict[str, _Slot] = {}

    def is_held(self, user_id: str) -> bool:
        slot = self._slots.get(user_id)
        return slot is not None and slot.lock.locked()

    @asynccontextmanager
    async def _hold_one(self, user_id: str) -> AsyncIterator[None]:
        slot = self._slots.get(user_id)
        if slot is None:
            slot = self._slots[user_id] = _Slot()
        # counted before waiting so a queued holder keeps the slot alive
        slot.holders += 1
        try:
            async with slot.lock:
                yield
        finally:
            slot.holders -= 1
            if slot.holders == 0:
                del self._slots[user_id]

    @asynccontextmanager
    async def hold(self, *user_ids: str) -> AsyncIterator[None]:
        """
        Hold the locks of every given user.

        Locks are acquired in sorted id order so two coroutines locking the
        same pair can never deadlock. Duplicate ids are locked once.
        """
        async with AsyncExitStack() as stack:
            for user_id in sorted(set(user_ids)):
                await stack.enter_async_context(self._hold_one(user_id))
            yield

    def __len__(self) -> int:
        """Users currently holding or waiting for their lock."""
        return len(self._slots)
