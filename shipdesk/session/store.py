"""
In-memory session state machine: the single source of truth for who is logged in.

Every login/logout/restore takes a fresh attempt number; only the current
attempt may change state or storage, so a slow, superseded call can never
clobber a newer outcome. Persisted writes are serialised through one lock and
re-check the attempt inside it.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Protocol, Set

from shipdesk.errors import AuthError, LoginSupersededError, LogoutRemoteError
from shipdesk.protocol import LOADING_STATES, SessionEvent, SessionState
from shipdesk.session.models import Session
from shipdesk.session.repository import PersistedSessionRepository

logger = logging.getLogger("shipdesk.session")


class AuthBackend(Protocol):
    async def login(self, email: str, password: str) -> Session: ...

    async def logout(self, token: str) -> None: ...


@dataclass(frozen=True)
class SessionTransition:
    event: SessionEvent
    previous_state: SessionState
    state: SessionState
    session: Optional[Session]
    previous_session: Optional[Session]


@dataclass(frozen=True)
class SessionView:
    is_authenticated: bool
    is_loading: bool
    session: Optional[Session]


TransitionHandler = Callable[[SessionTransition], Any]


class SessionStore:
    def __init__(self, *, repository: PersistedSessionRepository, auth: AuthBackend):
        self._repository = repository
        self._auth = auth
        self._state = SessionState.RESTORING
        self._session: Optional[Session] = None
        self._attempt = 0
        self._handlers: List[TransitionHandler] = []
        self._persist_lock = asyncio.Lock()
        self._remote_logouts: Set[asyncio.Task] = set()

    # Reads

    @property
    def state(self) -> SessionState:
        return self._state

    def current_session(self) -> Optional[Session]:
        return self._session

    def current_token(self) -> Optional[str]:
        return self._session.token if self._session else None

    def is_authenticated(self) -> bool:
        return self._state == SessionState.AUTHENTICATED and self._session is not None

    def is_loading(self) -> bool:
        return self._state in LOADING_STATES

    def snapshot(self) -> SessionView:
        return SessionView(
            is_authenticated=self.is_authenticated(),
            is_loading=self.is_loading(),
            session=self._session,
        )

    # Observers

    def on_transition(self, handler: TransitionHandler) -> Callable[[], None]:
        """
        Register a synchronous handler, called in registration order on every
        transition. Returns a function that unregisters it.
        """
        self._handlers.append(handler)

        def _unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return _unsubscribe

    def _transition(self, state: SessionState, event: SessionEvent, session: Optional[Session]) -> None:
        previous_state = self._state
        previous_session = self._session
        self._state = state
        self._session = session
        logger.debug("Session %s -> %s (%s)", previous_state.value, state.value, event.value)
        transition = SessionTransition(
            event=event,
            previous_state=previous_state,
            state=state,
            session=session,
            previous_session=previous_session,
        )
        for handler in list(self._handlers):
            try:
                handler(transition)
            except Exception:
                logger.exception("Session transition handler %r failed", handler)

    def _next_attempt(self) -> int:
        self._attempt += 1
        return self._attempt

    def _is_current(self, attempt: int) -> bool:
        return attempt == self._attempt

    # Restore

    def begin_restore(self) -> int:
        attempt = self._next_attempt()
        if self._state != SessionState.RESTORING:
            self._transition(SessionState.RESTORING, SessionEvent.STATE_CHANGED, self._session)
        return attempt

    async def discard_persisted(self, attempt: int) -> None:
        """Remove leftover persisted keys unless a newer attempt owns storage now."""
        async with self._persist_lock:
            if self._is_current(attempt):
                await self._repository.clear()

    def finish_restore(self, attempt: int, session: Optional[Session]) -> bool:
        """
        Settle a restore started with begin_restore(). Caches start empty, so a
        restored session is adopted without a cache reset.
        Returns False when a newer login/logout already took over.
        """
        if not self._is_current(attempt):
            logger.info("Ignoring stale restore result")
            return False
        if session is not None:
            self._transition(SessionState.AUTHENTICATED, SessionEvent.SESSION_RESTORED, session)
        else:
            self._transition(SessionState.UNAUTHENTICATED, SessionEvent.STATE_CHANGED, None)
        return True

    # Login / logout

    async def login(self, email: str, password: str) -> Session:
        attempt = self._next_attempt()

        # Drop whatever identity we hold before talking to the server.
        if self._session is not None:
            self._transition(SessionState.AUTHENTICATING, SessionEvent.SESSION_CLEARED, None)
        else:
            self._transition(SessionState.AUTHENTICATING, SessionEvent.STATE_CHANGED, None)
        async with self._persist_lock:
            if self._is_current(attempt):
                await self._repository.clear()

        try:
            session = await self._auth.login(email, password)
        except AuthError as e:
            if self._is_current(attempt):
                logger.info("Login failed: %s", e.message)
                self._transition(SessionState.UNAUTHENTICATED, SessionEvent.STATE_CHANGED, None)
            raise

        if not self._is_current(attempt):
            logger.info("Discarding superseded login for %s", session.user_id)
            raise LoginSupersededError()

        session = session.stamped()
        async with self._persist_lock:
            if not self._is_current(attempt):
                logger.info("Discarding superseded login for %s", session.user_id)
                raise LoginSupersededError()
            if not await self._repository.save(session):
                logger.warning("Session %s is held in memory only", session.session_id)
            # A newer attempt queued behind this lock will rewrite storage.
            if not self._is_current(attempt):
                raise LoginSupersededError()
            self._transition(SessionState.AUTHENTICATED, SessionEvent.SESSION_COMMITTED, session)
        logger.info("Logged in as %s (session %s)", session.user_id, session.session_id)
        return session

    async def logout(self) -> None:
        """
        Always ends logged out locally. The remote call runs in the background
        and its outcome is ignored.
        """
        attempt = self._next_attempt()
        session = self._session
        self._transition(SessionState.LOGGING_OUT, SessionEvent.STATE_CHANGED, session)
        if session is not None and session.token:
            self._spawn_remote_logout(session.token)

        async with self._persist_lock:
            if self._is_current(attempt):
                await self._repository.clear()

        if not self._is_current(attempt):
            logger.info("Logout superseded by a newer attempt")
            return
        self._transition(SessionState.UNAUTHENTICATED, SessionEvent.SESSION_CLEARED, None)
        logger.info("Logged out")

    def _spawn_remote_logout(self, token: str) -> None:
        task = asyncio.create_task(self._remote_logout(token))
        self._remote_logouts.add(task)
        task.add_done_callback(self._remote_logouts.discard)

    async def _remote_logout(self, token: str) -> None:
        try:
            await self._auth.logout(token)
        except LogoutRemoteError as e:
            logger.warning("Remote logout failed (ignored): %s", e.message)

    async def aclose(self) -> None:
        """Wait for outstanding remote logout calls."""
        if self._remote_logouts:
            await asyncio.gather(*list(self._remote_logouts), return_exceptions=True)
