from __future__ import annotations

from enum import Enum


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    RESTORING = "restoring"
    LOGGING_OUT = "logging_out"


class SessionEvent(str, Enum):
    STATE_CHANGED = "state_changed"
    SESSION_COMMITTED = "session_committed"
    SESSION_CLEARED = "session_cleared"
    SESSION_RESTORED = "session_restored"


# States in which a consumer should show a spinner rather than a login form.
LOADING_STATES = frozenset(
    {SessionState.AUTHENTICATING, SessionState.RESTORING, SessionState.LOGGING_OUT}
)
