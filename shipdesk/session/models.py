"""
Session data models and their persisted form.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, replace
from typing import Any, Dict, Optional

_last_session_id = 0


def new_session_id() -> str:
    """
    Millisecond wall-clock id, bumped when the clock has not advanced,
    so two commits in the same millisecond still get distinct ids.
    """
    global _last_session_id
    now = int(time.time() * 1000)
    if now <= _last_session_id:
        now = _last_session_id + 1
    _last_session_id = now
    return str(now)


@dataclass(frozen=True)
class Session:
    user_id: str
    display_name: str
    token: str
    email: str = ""
    selected_entity: Optional[Dict[str, Any]] = None
    type_ref: Optional[str] = None
    session_id: str = ""
    issued_at: float = 0.0

    def stamped(self, session_id: Optional[str] = None) -> "Session":
        """Copy of this session carrying a fresh session_id and issue time."""
        return replace(self, session_id=session_id or new_session_id(), issued_at=time.time())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "displayName": self.display_name,
            "email": self.email,
            "token": self.token,
            "selectedEntity": self.selected_entity,
            "typeRef": self.type_ref,
            "issuedAt": self.issued_at,
            "sessionId": self.session_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Session":
        entity = data.get("selectedEntity")
        return cls(
            user_id=str(data["userId"]),
            display_name=str(data.get("displayName") or ""),
            email=str(data.get("email") or ""),
            token=str(data["token"]),
            selected_entity=entity if isinstance(entity, dict) else None,
            type_ref=(str(data["typeRef"]) if data.get("typeRef") else None),
            session_id=str(data.get("sessionId") or ""),
            issued_at=float(data.get("issuedAt") or 0.0),
        )


@dataclass(frozen=True)
class PersistedSessionRecord:
    """
    What sits in storage under `auth_data`. Valid only when session_id matches
    the separately stored `session_id` marker.
    """

    session: Session

    @property
    def session_id(self) -> str:
        return self.session.session_id

    def to_json(self) -> str:
        return json.dumps(self.session.to_dict(), ensure_ascii=False)

    @classmethod
    def from_json(cls, raw: str) -> "PersistedSessionRecord":
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("auth_data is not an object")
        session = Session.from_dict(data)
        if not session.session_id or not session.token:
            raise ValueError("auth_data is missing sessionId or token")
        return cls(session=session)
