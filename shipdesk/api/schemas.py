"""
Request/response bodies for the auth endpoints, validated with Pydantic.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from shipdesk.session.models import Session


class LoginRequest(BaseModel):
    email: str
    password: str


class RegisterRequest(BaseModel):
    email: str
    name: str
    phone: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: str


class ResetPasswordRequest(BaseModel):
    email: str
    otp: str
    password: str
    confirmPassword: str


class VerifyEmailRequest(BaseModel):
    email: str
    otp: str


class ResendOtpRequest(BaseModel):
    email: str


class ErrorBody(BaseModel):
    """Error payload returned by the backend on 4xx/5xx."""
    model_config = ConfigDict(extra="ignore")

    message: Optional[str] = None
    code: Optional[str] = None


class MessageResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    message: str = ""


class LoginPayload(BaseModel):
    """Body of a successful POST /users/login."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(alias="_id")
    token: str
    email: str = ""
    name: str = ""
    selectedEntity: Optional[Dict[str, Any]] = None
    typeRef: Optional[str] = None

    def to_session(self) -> Session:
        """Unstamped session; the store assigns session_id at commit time."""
        return Session(
            user_id=self.id,
            display_name=self.name,
            email=self.email,
            token=self.token,
            selected_entity=self.selectedEntity,
            type_ref=self.typeRef,
        )


class RatesRequest(BaseModel):
    """Body of POST /public/rates. `type` and `service` are lower-case on the wire."""
    destination: str
    type: str
    service: str
    weight: float


class ContactRequest(BaseModel):
    name: str
    phone: str
    description: str
    inquiryOf: str
    email: Optional[str] = None
    subject: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    userId: str
    previousPassword: str
    password: str
    confirmPassword: str


class DeleteProfileRequest(BaseModel):
    password: str
