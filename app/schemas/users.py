"""Request/response schemas for the /api/users directory endpoints."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UserWriteRequest(BaseModel):
    """Body for creating or updating a directory user."""

    name: str = Field(default="", description="Display name (letters and spaces)")
    email: str = Field(default="", description="Contact email")


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    created_at: datetime | None = None
