"""
Client facade: wires storage, session store, cache layers and listeners, and
exposes the small surface consumers use (login, logout, use_session).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import httpx

from shipdesk.api.auth import AuthApi
from shipdesk.api.base import BaseApi
from shipdesk.api.resources import ResourceApi
from shipdesk.cache.registry import CacheRegistry
from shipdesk.session.bootstrap import restore_session
from shipdesk.session.listeners import install_cache_reset_listener
from shipdesk.session.models import Session
from shipdesk.session.repository import PersistedSessionRepository
from shipdesk.session.store import SessionStore, SessionView
from shipdesk.storage.kv import FileKeyValueStore, KeyValueStore
from shipdesk.storage.paths import data_dir

logger = logging.getLogger("shipdesk.client")


class ShipdeskClient:
    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        storage: Optional[KeyValueStore] = None,
        storage_dir: Optional[Path | str] = None,
        storage_timeout_s: Optional[float] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        preserve_global_tags: Optional[bool] = None,
    ):
        if storage is None:
            storage = FileKeyValueStore(storage_dir or data_dir())
        self.repository = PersistedSessionRepository(storage, timeout_s=storage_timeout_s)
        self.registry = CacheRegistry()
        self.auth_api = AuthApi(base_url=base_url, timeout_s=timeout_s, transport=transport)
        self.store = SessionStore(repository=self.repository, auth=self.auth_api)
        self.base_api = BaseApi(
            registry=self.registry,
            token_getter=self.store.current_token,
            owner_getter=self._current_session_id,
            base_url=base_url,
            timeout_s=timeout_s,
            transport=transport,
        )
        self.resources = ResourceApi(api=self.base_api, store=self.store)
        # First observer, so caches are wiped before anyone else hears of a new identity.
        install_cache_reset_listener(
            self.store,
            base_api=self.base_api,
            auth_api=self.auth_api,
            registry=self.registry,
            preserve_global_tags=preserve_global_tags,
        )

    def _current_session_id(self) -> Optional[str]:
        session = self.store.current_session()
        return session.session_id if session else None

    async def startup(self) -> Optional[Session]:
        """Restore a persisted session. Call once before first use."""
        return await restore_session(self.store, self.repository)

    async def login(self, email: str, password: str) -> Session:
        return await self.store.login(email, password)

    async def logout(self) -> None:
        await self.store.logout()

    def use_session(self) -> SessionView:
        return self.store.snapshot()

    async def aclose(self) -> None:
        await self.store.aclose()
        await self.base_api.aclose()
        await self.auth_api.aclose()

    async def __aenter__(self) -> "ShipdeskClient":
        await self.startup()
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()
