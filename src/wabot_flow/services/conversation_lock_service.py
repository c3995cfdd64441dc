import asyncio
import weakref
from typing import Tuple


class ConversationLockService:
    """
    Hands out one asyncio.Lock per (bot_id, user_number) so messages of the
    same conversation are processed one at a time. Locks nobody holds are
    dropped from the registry automatically.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[Tuple[str, str], asyncio.Lock]" = weakref.WeakValueDictionary()

    def get_lock(self, bot_id: str, user_number: str) -> asyncio.Lock:
        key = (bot_id, user_number)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    def active_conversations(self) -> int:
        return len(self._locks)
