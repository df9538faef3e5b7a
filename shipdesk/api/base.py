"""
Query-cache layer over the backend HTTP API.

GET queries are cached in the CacheRegistry under a tag; concurrent identical
queries share one request. reset_state() forgets in-flight requests, and a
request that was in flight when the state was reset never writes its result
into the registry.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Tuple, Type

import httpx
from pydantic import ValidationError

from shipdesk import config
from shipdesk.api.schemas import ErrorBody
from shipdesk.cache.registry import CacheRegistry, params_key
from shipdesk.cache.tags import CacheTag
from shipdesk.errors import ApiError

logger = logging.getLogger("shipdesk.api")

TokenGetter = Callable[[], Optional[str]]


def api_error(resp: httpx.Response, *, default: str, cls: Type[ApiError] = ApiError) -> ApiError:
    message, code = default, None
    try:
        body = ErrorBody.model_validate(resp.json())
        message = body.message or default
        code = body.code
    except (ValueError, ValidationError):
        pass
    return cls(message, status=resp.status_code, code=code)


def decode_body(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text


class BaseApi:
    def __init__(
        self,
        *,
        registry: CacheRegistry,
        token_getter: TokenGetter,
        owner_getter: Optional[TokenGetter] = None,
        base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or config.api_base_url()).rstrip("/")
        self._registry = registry
        self._token_getter = token_getter
        self._owner_getter = owner_getter
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=float(timeout_s) if timeout_s is not None else config.api_timeout_s(),
            transport=transport,
        )
        self._generation = 0
        self._inflight: Dict[Tuple[CacheTag, str], asyncio.Task] = {}

    @property
    def registry(self) -> CacheRegistry:
        return self._registry

    @property
    def inflight_count(self) -> int:
        return len(self._inflight)

    def _headers(self) -> Dict[str, str]:
        token = self._token_getter()
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        data: Optional[Mapping[str, Any]] = None,
        files: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        headers = self._headers()
        try:
            resp = await self._client.request(
                method, path, params=params, json=json, data=data, files=files, headers=headers
            )
        except httpx.HTTPError as e:
            raise ApiError(f"{method} {path} failed: {e}") from e
        if resp.status_code >= 400:
            raise api_error(resp, default=f"{method} {path} failed with HTTP {resp.status_code}")
        return decode_body(resp)

    async def query(
        self,
        tag: CacheTag | str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        force: bool = False,
    ) -> Any:
        """
        Cached GET. Served from the registry while the tag is fresh, otherwise
        fetched (or joined, if the same query is already in flight).
        """
        tag = CacheTag(tag)
        args = {"path": path, "params": dict(params or {})}
        if not force:
            entry = self._registry.get(tag, args)
            if entry is not None:
                return entry.data

        key = (tag, params_key(args))
        task = self._inflight.get(key)
        if task is None or force:
            task = asyncio.create_task(self._run_query(key, tag, path, args))
            self._inflight[key] = task
        return await asyncio.shield(task)

    async def _run_query(self, key: Tuple[CacheTag, str], tag: CacheTag, path: str, args: Dict[str, Any]) -> Any:
        # Captured together, before the first await, so they describe the same identity.
        epoch = self._registry.epoch(tag)
        generation = self._generation
        owner = self._owner_getter() if self._owner_getter else None
        try:
            data = await self.request("GET", path, params=args["params"] or None)
        finally:
            if self._inflight.get(key) is asyncio.current_task():
                self._inflight.pop(key, None)
        if generation != self._generation:
            logger.debug("Discarding %s result fetched before reset", tag.value)
            return data
        self._registry.put(tag, args, data, owner=owner, epoch=epoch)
        return data

    async def mutate(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: Optional[Mapping[str, Any]] = None,
        data: Optional[Mapping[str, Any]] = None,
        files: Optional[Mapping[str, Any]] = None,
        invalidates: Iterable[CacheTag | str] = (),
    ) -> Any:
        result = await self.request(method, path, params=params, json=json, data=data, files=files)
        tags = list(invalidates)
        if tags:
            self._registry.invalidate(tags)
        return result

    def reset_state(self) -> None:
        self._generation += 1
        dropped = len(self._inflight)
        self._inflight.clear()
        if dropped:
            logger.debug("Dropped %d in-flight queries", dropped)

    async def aclose(self) -> None:
        await self._client.aclose()
