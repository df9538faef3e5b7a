"""
Per-tag response cache with freshness tracking.

Each tag carries an epoch that is bumped on invalidation. A fetch records the
epoch it started under; if the tag was invalidated meanwhile, its result is
dropped instead of being stored.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from shipdesk.cache.tags import ALL_TAGS, CacheTag

logger = logging.getLogger("shipdesk.cache")


def params_key(params: Optional[Mapping[str, Any]]) -> str:
    if not params:
        return ""
    return json.dumps(dict(params), sort_keys=True, separators=(",", ":"), default=str)


@dataclass(frozen=True)
class CacheEntry:
    tag: CacheTag
    params_key: str
    data: Any
    owner: Optional[str]  # session_id the response was fetched under
    fetched_at: float


@dataclass
class _TagState:
    fresh: bool = False
    epoch: int = 0
    entries: Dict[str, CacheEntry] = field(default_factory=dict)


class CacheRegistry:
    def __init__(self, tags: Iterable[CacheTag] = ALL_TAGS):
        self._tags: Dict[CacheTag, _TagState] = {CacheTag(t): _TagState() for t in tags}

    def _state(self, tag: CacheTag | str) -> _TagState:
        t = CacheTag(tag)
        if t not in self._tags:
            raise KeyError(f"Unknown cache tag: {t.value}")
        return self._tags[t]

    @property
    def tags(self) -> List[CacheTag]:
        return list(self._tags.keys())

    def is_fresh(self, tag: CacheTag | str) -> bool:
        return self._state(tag).fresh

    def epoch(self, tag: CacheTag | str) -> int:
        return self._state(tag).epoch

    def get(self, tag: CacheTag | str, params: Optional[Mapping[str, Any]] = None) -> Optional[CacheEntry]:
        st = self._state(tag)
        if not st.fresh:
            return None
        return st.entries.get(params_key(params))

    def entries(self, tag: CacheTag | str) -> List[CacheEntry]:
        return list(self._state(tag).entries.values())

    def put(
        self,
        tag: CacheTag | str,
        params: Optional[Mapping[str, Any]],
        data: Any,
        *,
        owner: Optional[str],
        epoch: int,
    ) -> bool:
        """
        Store a fetched result. Returns False (and stores nothing) when the tag
        was invalidated after the fetch started.
        """
        st = self._state(tag)
        if epoch != st.epoch:
            logger.debug("Dropping result for %s fetched under epoch %s (now %s)", CacheTag(tag).value, epoch, st.epoch)
            return False
        key = params_key(params)
        st.entries[key] = CacheEntry(
            tag=CacheTag(tag),
            params_key=key,
            data=data,
            owner=owner,
            fetched_at=time.time(),
        )
        st.fresh = True
        return True

    def invalidate(self, tags: Iterable[CacheTag | str]) -> None:
        names = []
        for tag in tags:
            st = self._state(tag)
            st.fresh = False
            st.entries.clear()
            st.epoch += 1
            names.append(CacheTag(tag).value)
        if names:
            logger.debug("Invalidated tags: %s", ", ".join(names))

    def invalidate_all(self) -> None:
        self.invalidate(self._tags.keys())

    def stale_tags(self) -> List[CacheTag]:
        return [t for t, st in self._tags.items() if not st.fresh]
