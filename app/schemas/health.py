"""Pydantic schemas for health check responses."""

from typing import Literal

from pydantic import BaseModel, Field

BootstrapState = Literal["complete", "disabled", "pending"]


class HealthResponse(BaseModel):
    """Liveness plus user-store reachability and startup bootstrap state."""

    status: Literal["ok"] = "ok"
    environment: str = Field(description="dev or prod")
    database: Literal["connected", "disconnected"]
    bootstrap: BootstrapState = Field(
        description="Whether migrations and the default admin seed ran at startup",
    )
