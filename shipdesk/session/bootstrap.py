from __future__ import annotations

import logging
from typing import Optional

from shipdesk.session.models import Session
from shipdesk.session.repository import PersistedSessionRepository
from shipdesk.session.store import SessionStore

logger = logging.getLogger("shipdesk.session.bootstrap")


async def restore_session(store: SessionStore, repository: PersistedSessionRepository) -> Optional[Session]:
    """
    Reconcile persisted storage into the store at process start.

    A record is adopted only if its embedded sessionId matches the stored
    marker; anything else (missing, malformed, tampered, half-written) ends
    logged out with the leftover keys removed.
    """
    attempt = store.begin_restore()

    record = await repository.load()
    session: Optional[Session] = None
    if record is not None:
        if await repository.validate(record.session_id):
            session = record.session
        else:
            logger.warning("Persisted session %s failed marker validation", record.session_id)

    if session is None:
        await store.discard_persisted(attempt)

    if not store.finish_restore(attempt, session):
        return store.current_session()
    if session is not None:
        logger.info("Restored session %s for %s", session.session_id, session.user_id)
    return session
