from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Optional

import httpx
import pytest

from shipdesk.errors import AuthError, LogoutRemoteError, StorageError
from shipdesk.session.models import Session
from shipdesk.session.repository import PersistedSessionRepository
from shipdesk.session.store import SessionStore
from shipdesk.storage.kv import MemoryKeyValueStore

BASE_URL = "https://test.local/api"


def make_session(user_id: str = "u1", token: Optional[str] = None, **kw: Any) -> Session:
    return Session(
        user_id=user_id,
        display_name=kw.pop("display_name", f"User {user_id}"),
        email=kw.pop("email", f"{user_id}@example.com"),
        token=token or f"tok-{user_id}",
        **kw,
    )


class FakeAuth:
    """
    Scriptable auth backend for SessionStore tests.

    `gates[email]` (if set) is awaited before the login resolves, so tests
    decide the order in which overlapping logins settle.
    """

    def __init__(self):
        self.gates: Dict[str, asyncio.Event] = {}
        self.failures: Dict[str, AuthError] = {}
        self.logout_error: Optional[Exception] = None
        self.logout_gate: Optional[asyncio.Event] = None
        self.logged_out_tokens: List[str] = []
        self.login_calls: List[str] = []
        self.on_login = None

    async def login(self, email: str, password: str) -> Session:
        self.login_calls.append(email)
        if self.on_login is not None:
            await self.on_login(email)
        gate = self.gates.get(email)
        if gate is not None:
            await gate.wait()
        if email in self.failures:
            raise self.failures[email]
        if password != "secret":
            raise AuthError("Invalid credentials", status=401)
        user_id = email.split("@")[0]
        return Session(user_id=user_id, display_name=user_id.title(), email=email, token=f"tok-{user_id}")

    async def logout(self, token: str) -> None:
        if self.logout_gate is not None:
            await self.logout_gate.wait()
        self.logged_out_tokens.append(token)
        if self.logout_error is not None:
            raise self.logout_error


class FailingStore(MemoryKeyValueStore):
    async def get_item(self, key: str) -> Optional[str]:
        raise StorageError("disk on fire")

    async def set_item(self, key: str, value: str) -> None:
        raise StorageError("disk on fire")

    async def remove_item(self, key: str) -> None:
        raise StorageError("disk on fire")


class SlowStore(MemoryKeyValueStore):
    async def get_item(self, key: str) -> Optional[str]:
        await asyncio.sleep(10)
        return await super().get_item(key)


class GatedStore(MemoryKeyValueStore):
    """First get_item waits until `gate` is set."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        super().__init__(initial)
        self.gate = asyncio.Event()
        self._gated_once = False

    async def get_item(self, key: str) -> Optional[str]:
        if not self._gated_once:
            self._gated_once = True
            await self.gate.wait()
        return await super().get_item(key)


class FakeBackend:
    """
    In-process stand-in for the HTTP backend, served through httpx.MockTransport.
    Resource responses echo the bearer token they were requested with.
    """

    def __init__(self):
        self.users: Dict[str, Dict[str, Any]] = {
            "alice@example.com": {"_id": "alice", "name": "Alice", "typeRef": "cust-a"},
            "bob@example.com": {"_id": "bob", "name": "Bob", "typeRef": "cust-b"},
        }
        self.unverified = {"carol@example.com"}
        self.calls: List[str] = []
        self.requests: List[httpx.Request] = []
        self.logout_status = 200
        self.logout_raises = False
        self.yields = None  # optional callable returning how many times to yield per request

    def count(self, path: str) -> int:
        return sum(1 for c in self.calls if c == path)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.replace("/api", "", 1)
        self.calls.append(path)
        self.requests.append(request)
        if self.yields is not None:
            for _ in range(self.yields()):
                await asyncio.sleep(0)

        if path == "/users/login":
            body = json.loads(request.content or b"{}")
            email = body.get("email")
            if email in self.unverified:
                return httpx.Response(403, json={"message": "Email not verified", "code": "emailNotVerified"})
            user = self.users.get(email)
            if user is None or body.get("password") != "secret":
                return httpx.Response(401, json={"message": "Invalid email or password"})
            token = f"tok-{user['_id']}-{len(self.calls)}"
            return httpx.Response(200, json={**user, "email": email, "token": token})

        if path == "/users/logout":
            if self.logout_raises:
                raise httpx.ConnectError("unreachable", request=request)
            return httpx.Response(self.logout_status, json={"message": "bye"})

        auth = request.headers.get("Authorization", "")
        token = auth[len("Bearer "):] if auth.startswith("Bearer ") else None
        return httpx.Response(
            200,
            json={"path": path, "token": token, "params": dict(request.url.params), "n": len(self.calls)},
        )

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def storage() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture
def repository(storage) -> PersistedSessionRepository:
    return PersistedSessionRepository(storage, timeout_s=1.0)


@pytest.fixture
def fake_auth() -> FakeAuth:
    return FakeAuth()


@pytest.fixture
def store(repository, fake_auth) -> SessionStore:
    return SessionStore(repository=repository, auth=fake_auth)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
async def client(backend, storage):
    from shipdesk.client import ShipdeskClient

    c = ShipdeskClient(
        base_url=BASE_URL,
        storage=storage,
        storage_timeout_s=1.0,
        timeout_s=5.0,
        transport=backend.transport(),
        preserve_global_tags=False,
    )
    await c.startup()
    try:
        yield c
    finally:
        await c.aclose()
