from __future__ import annotations

from typing import Optional

EMAIL_NOT_VERIFIED = "emailNotVerified"


class ShipdeskError(RuntimeError):
    pass


class ApiError(ShipdeskError):
    """
    Non-2xx response (or transport failure when status is None) from the backend.
    """

    def __init__(self, message: str, *, status: Optional[int] = None, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code


class AuthError(ApiError):
    """
    Login rejected by the server or the server could not be reached.
    """

    @property
    def email_not_verified(self) -> bool:
        return self.code == EMAIL_NOT_VERIFIED


class LoginSupersededError(AuthError):
    """
    A newer login/logout started before this login settled; its result was dropped.
    """

    def __init__(self, message: str = "Login superseded by a newer attempt"):
        super().__init__(message, code="superseded")


class LogoutRemoteError(ApiError):
    pass


class StorageError(ShipdeskError):
    pass
