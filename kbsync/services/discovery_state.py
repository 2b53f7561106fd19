"""
Discovery state store.

Keeps one DiscoveryCursor per (source_type, library_id, customer_id) between
invocations, plus one asyncio.Lock per key so runs for the same key never
overlap. Different keys share nothing. Stored in-memory only.

A key's lock lives only while the key has stored state or a run holding or
waiting on it; finished runs and resets drop idle locks.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional, Tuple

from kbsync.models.staging import DiscoveryCursor, SourceType

StateKey = Tuple[str, str, Optional[str]]


class DiscoveryStateStore:
    def __init__(self):
        self._states: Dict[StateKey, DiscoveryCursor] = {}
        self._locks: Dict[StateKey, asyncio.Lock] = {}
        self._users: Dict[StateKey, int] = {}

    @staticmethod
    def _key(source_type: SourceType, library_id: str, customer_id: Optional[str]) -> StateKey:
        return (source_type.value, library_id, customer_id)

    def lock_for(
        self, source_type: SourceType, library_id: str, customer_id: Optional[str] = None
    ) -> asyncio.Lock:
        key = self._key(source_type, library_id, customer_id)
        if key not in self._locks:
            self._locks[key] = asyncio.Lock()
        return self._locks[key]

    @asynccontextmanager
    async def hold(
        self, source_type: SourceType, library_id: str, customer_id: Optional[str] = None
    ) -> AsyncIterator[None]:
        """Serialize a run for the key, dropping the lock once nobody uses it."""
        key = self._key(source_type, library_id, customer_id)
        lock = self.lock_for(source_type, library_id, customer_id)
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if not self._users[key]:
                del self._users[key]
                if key not in self._states:
                    self._drop_lock(key)

    def _drop_lock(self, key: StateKey) -> None:
        if self._users.get(key):
            return
        lock = self._locks.get(key)
        if lock is not None and not lock.locked():
            del self._locks[key]

    def get(
        self, source_type: SourceType, library_id: str, customer_id: Optional[str] = None
    ) -> DiscoveryCursor:
        """Stored state for the key, or an empty cursor."""
        key = self._key(source_type, library_id, customer_id)
        state = self._states.get(key)
        if state is None:
            return DiscoveryCursor(
                source_type=source_type, library_id=library_id, customer_id=customer_id
            )
        return state

    def save(self, state: DiscoveryCursor) -> None:
        if state.is_empty:
            self._states.pop(state.key, None)
        else:
            self._states[state.key] = state

    def reset(
        self, source_type: SourceType, library_id: str, customer_id: Optional[str] = None
    ) -> None:
        key = self._key(source_type, library_id, customer_id)
        self._states.pop(key, None)
        self._drop_lock(key)
