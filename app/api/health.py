"""Health check endpoint: user store connectivity and bootstrap state."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from app.api.auth import get_user_store
from app.core.config import settings
from app.repositories.user_store import UserStore
from app.schemas.health import HealthResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def get_health(
    request: Request,
    store: Annotated[UserStore, Depends(get_user_store)],
) -> HealthResponse:
    """
    Return service health status and user store connectivity.
    Used by load balancers and orchestrator readiness probes.
    """
    return HealthResponse(
        status="ok",
        environment=settings.APP_ENV,
        database="connected" if store.can_connect() else "disconnected",
        bootstrap=getattr(request.app.state, "bootstrap_state", "pending"),
    )
