"""
Auth endpoints. Kept apart from the query-cache layer: no bearer header on
login/register, and its own small result cache that is reset on identity change.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel, ValidationError

from shipdesk import config
from shipdesk.api.base import api_error, decode_body
from shipdesk.api.schemas import (
    ForgotPasswordRequest,
    LoginPayload,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    ResendOtpRequest,
    ResetPasswordRequest,
    VerifyEmailRequest,
)
from shipdesk.errors import ApiError, AuthError, LogoutRemoteError
from shipdesk.session.models import Session

logger = logging.getLogger("shipdesk.api.auth")


class AuthApi:
    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or config.api_base_url()).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=float(timeout_s) if timeout_s is not None else config.api_timeout_s(),
            transport=transport,
        )
        self._results: Dict[str, Any] = {}

    def last_result(self, endpoint: str) -> Any:
        return self._results.get(endpoint)

    def reset_state(self) -> None:
        self._results.clear()

    async def login(self, email: str, password: str) -> Session:
        body = LoginRequest(email=email, password=password).model_dump()
        try:
            resp = await self._client.post("/users/login", json=body)
        except httpx.HTTPError as e:
            logger.warning("Login request failed: %s", e)
            raise AuthError("Unable to reach the server") from e
        if resp.status_code >= 400:
            raise api_error(resp, default="Login failed", cls=AuthError)
        try:
            payload = LoginPayload.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise AuthError("Login failed: unexpected response", status=resp.status_code) from e
        self._results["login"] = {"userId": payload.id, "email": payload.email}
        return payload.to_session()

    async def logout(self, token: str) -> None:
        """
        An expired token (401) counts as logged out. Anything else that fails
        raises LogoutRemoteError.
        """
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        try:
            resp = await self._client.post("/users/logout", headers=headers)
        except httpx.HTTPError as e:
            raise LogoutRemoteError(f"Logout request failed: {e}") from e
        if resp.status_code == 401:
            self._results["logout"] = {"success": True, "message": "Logged out successfully"}
            return
        if resp.status_code >= 400:
            raise api_error(resp, default="Logout failed", cls=LogoutRemoteError)
        self._results["logout"] = decode_body(resp)

    async def _send(self, endpoint: str, method: str, path: str, body: BaseModel) -> MessageResponse:
        try:
            resp = await self._client.request(method, path, json=body.model_dump(exclude_none=True))
        except httpx.HTTPError as e:
            raise ApiError(f"{endpoint} failed: {e}") from e
        if resp.status_code >= 400:
            raise api_error(resp, default=f"{endpoint} failed")
        data = decode_body(resp)
        result = MessageResponse.model_validate(data) if isinstance(data, dict) else MessageResponse()
        self._results[endpoint] = result
        return result

    async def register(self, *, email: str, name: str, phone: Optional[str] = None) -> MessageResponse:
        return await self._send("register", "POST", "/users/register", RegisterRequest(email=email, name=name, phone=phone))

    async def forgot_password(self, *, email: str) -> MessageResponse:
        return await self._send("forgot_password", "POST", "/users/forgot-password", ForgotPasswordRequest(email=email))

    async def reset_password(self, *, email: str, otp: str, password: str, confirm_password: str) -> MessageResponse:
        body = ResetPasswordRequest(email=email, otp=otp, password=password, confirmPassword=confirm_password)
        return await self._send("reset_password", "POST", "/users/reset-password", body)

    async def verify_email(self, *, email: str, otp: str) -> MessageResponse:
        return await self._send("verify_email", "PUT", "/users/verify-email", VerifyEmailRequest(email=email, otp=otp))

    async def resend_otp(self, *, email: str) -> MessageResponse:
        return await self._send("resend_otp", "POST", "/users/verify-email/resend-otp", ResendOtpRequest(email=email))

    async def aclose(self) -> None:
        await self._client.aclose()
