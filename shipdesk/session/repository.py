"""
Persisted mirror of the current session: an `auth_data` record plus a bare
`session_id` marker. Storage failures never escape this class.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Awaitable, Optional, TypeVar

from shipdesk import config
from shipdesk.errors import StorageError
from shipdesk.session.models import PersistedSessionRecord, Session
from shipdesk.storage.kv import KeyValueStore

logger = logging.getLogger("shipdesk.session.storage")

AUTH_STORAGE_KEY = "auth_data"
SESSION_ID_KEY = "session_id"

T = TypeVar("T")


class PersistedSessionRepository:
    def __init__(self, storage: KeyValueStore, *, timeout_s: Optional[float] = None):
        self._storage = storage
        self._timeout_s = float(timeout_s) if timeout_s is not None else config.storage_timeout_s()

    async def _io(self, op: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(op, timeout=self._timeout_s)
        except asyncio.TimeoutError as e:
            raise StorageError(f"storage call timed out after {self._timeout_s}s") from e
        except StorageError:
            raise
        except Exception as e:
            # Anything a back-end raises is a storage failure.
            raise StorageError(f"storage call failed: {e!r}") from e

    async def save(self, session: Session) -> bool:
        """
        Write the marker, then the record. Returns False if either write failed.
        A session without a session_id is stamped with a fresh one first.
        """
        if not session.session_id:
            session = session.stamped()
        record = PersistedSessionRecord(session=session)
        try:
            await self._io(self._storage.set_item(SESSION_ID_KEY, record.session_id))
            await self._io(self._storage.set_item(AUTH_STORAGE_KEY, record.to_json()))
        except StorageError as e:
            logger.warning("Failed to persist session %s: %s", record.session_id, e)
            return False
        logger.debug("Persisted session %s", record.session_id)
        return True

    async def load(self) -> Optional[PersistedSessionRecord]:
        try:
            raw = await self._io(self._storage.get_item(AUTH_STORAGE_KEY))
        except StorageError as e:
            logger.warning("Failed to read persisted session: %s", e)
            return None
        if not raw:
            return None
        try:
            return PersistedSessionRecord.from_json(raw)
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logger.warning("Discarding malformed persisted session: %s", e)
            return None

    async def clear(self) -> bool:
        ok = True
        for key in (AUTH_STORAGE_KEY, SESSION_ID_KEY):
            try:
                await self._io(self._storage.remove_item(key))
            except StorageError as e:
                logger.warning("Failed to remove %s: %s", key, e)
                ok = False
        return ok

    async def validate(self, candidate_session_id: Optional[str]) -> bool:
        if not candidate_session_id:
            return False
        try:
            stored = await self._io(self._storage.get_item(SESSION_ID_KEY))
        except StorageError as e:
            logger.warning("Failed to read session marker: %s", e)
            return False
        return stored == candidate_session_id
