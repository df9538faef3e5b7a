from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

from shipdesk import config
from shipdesk.cache.registry import CacheRegistry
from shipdesk.cache.tags import IDENTITY_SCOPED_TAGS
from shipdesk.protocol import SessionEvent
from shipdesk.session.store import SessionStore, SessionTransition

logger = logging.getLogger("shipdesk.session.listeners")

IDENTITY_EVENTS = frozenset({SessionEvent.SESSION_COMMITTED, SessionEvent.SESSION_CLEARED})


class ResettableApi(Protocol):
    def reset_state(self) -> None: ...


def install_cache_reset_listener(
    store: SessionStore,
    *,
    base_api: ResettableApi,
    auth_api: ResettableApi,
    registry: CacheRegistry,
    preserve_global_tags: Optional[bool] = None,
) -> Callable[[], None]:
    """
    Wipe every cache layer whenever the identity changes.

    Runs synchronously inside the transition, before any observer registered
    later hears about the new session, so nobody sees the new token next to a
    response fetched for the previous one. Install it before anything else.
    """
    preserve = config.cache_preserve_global_tags() if preserve_global_tags is None else preserve_global_tags

    def _on_transition(transition: SessionTransition) -> None:
        if transition.event == SessionEvent.SESSION_RESTORED:
            # Caches are normally still empty at restore; only sweep them if
            # something was fetched anonymously while storage was being read.
            if len(registry.stale_tags()) == len(registry.tags):
                base_api.reset_state()
                return
        elif transition.event not in IDENTITY_EVENTS:
            return
        base_api.reset_state()
        auth_api.reset_state()
        if preserve:
            registry.invalidate(IDENTITY_SCOPED_TAGS)
        else:
            registry.invalidate_all()
        logger.debug("Caches reset after %s", transition.event.value)

    return store.on_transition(_on_transition)
