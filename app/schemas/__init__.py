"""Pydantic request/response schemas."""

from app.schemas.auth import (
    CredentialRecord,
    CurrentUser,
    LoginRequest,
    SessionResponse,
    ValidationErrorsResponse,
)
from app.schemas.health import HealthResponse
from app.schemas.users import UserResponse, UserWriteRequest

__all__ = [
    "CredentialRecord",
    "CurrentUser",
    "HealthResponse",
    "LoginRequest",
    "SessionResponse",
    "UserResponse",
    "UserWriteRequest",
    "ValidationErrorsResponse",
]
