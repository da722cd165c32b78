"""Request/response schemas for auth endpoints and the credential record."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    """
    Credentials for register and login.

    Field rules (length, charset, strength) are checked by
    app.services.validation so all violations come back together as a 400.
    """

    username: str = Field(default="", description="Username")
    password: str = Field(default="", description="Password (plain text; never stored)")


class SessionResponse(BaseModel):
    """Signed session token returned after successful login."""

    token: str = Field(..., description="JWT session token; send as 'Authorization: Bearer <token>'")
    expires: datetime = Field(..., description="Token expiry (UTC)")
    username: str
    role: str


class ValidationErrorsResponse(BaseModel):
    """Field validation messages, in rule order."""

    errors: list[str]


class CurrentUser(BaseModel):
    """Authenticated caller, taken from the verified token claims."""

    username: str
    role: str
    issued_at: datetime
    expires_at: datetime


class CredentialRecord(BaseModel):
    """Stored login account as seen by the auth core (store-agnostic)."""

    model_config = ConfigDict(from_attributes=True)

    id: int | None = None
    username: str
    password_hash: str
    email: str
    role: str
    created_at: datetime | None = None
