"""Register/login routes and bearer-token auth dependencies (get_current_user, require_admin)."""

import logging
from functools import lru_cache
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.database import SessionLocal, run_migrations
from app.core.security import TokenService, get_token_service
from app.models import ROLE_ADMIN
from app.repositories.user_store import SqlUserStore, UserStore
from app.schemas.auth import (
    CurrentUser,
    LoginRequest,
    SessionResponse,
    ValidationErrorsResponse,
)
from app.services.auth import (
    AuthService,
    UnauthorizedError,
    UsernameTakenError,
    ValidationFailedError,
    authenticate_token,
)

logger = logging.getLogger(__name__)
router = APIRouter()
security = HTTPBearer(auto_error=False)

REGISTERED_MESSAGE = "User registered successfully"
# Routes whose malformed bodies are reported as 400 {errors}, like field rule violations.
CREDENTIAL_PATHS = frozenset({"/auth/register", "/auth/login"})


@lru_cache
def get_user_store() -> UserStore:
    """Dependency: process-wide SQL-backed credential store."""
    return SqlUserStore(SessionLocal, migrate=run_migrations)


def get_auth_service(
    store: Annotated[UserStore, Depends(get_user_store)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> AuthService:
    return AuthService(store, tokens)


def problem_response(exc: Exception) -> JSONResponse:
    """Generic 500 problem document carrying the error text."""
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        media_type="application/problem+json",
        content={
            "type": "https://tools.ietf.org/html/rfc9110#section-15.6.1",
            "title": "An error occurred while processing your request.",
            "status": status.HTTP_500_INTERNAL_SERVER_ERROR,
            "detail": str(exc),
        },
    )


def _request_error_message(error: dict) -> str:
    field = ".".join(
        part for part in error.get("loc", ())
        if isinstance(part, str) and part != "body"
    )
    message = error.get("msg", "Invalid value")
    return f"{field}: {message}" if field else message


async def credential_body_error_handler(
    request: Request, exc: RequestValidationError
) -> Response:
    """
    Report unparseable or mistyped register/login bodies as 400 {errors}.
    Other routes keep FastAPI's default 422 response.
    """
    if request.url.path not in CREDENTIAL_PATHS:
        return await request_validation_exception_handler(request, exc)
    errors = [_request_error_message(error) for error in exc.errors()]
    return JSONResponse(status_code=400, content={"errors": errors})


@router.post(
    "/register",
    response_class=PlainTextResponse,
    responses={400: {"model": ValidationErrorsResponse}},
)
def register(
    body: LoginRequest,
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> Response:
    """Create a User-role account. Returns a confirmation text on success."""
    try:
        auth.register(body.username, body.password)
    except ValidationFailedError as e:
        return JSONResponse(status_code=400, content={"errors": e.errors})
    except UsernameTakenError as e:
        return JSONResponse(status_code=400, content=e.message)
    except Exception as e:
        logger.exception("Registration failed: %s", e)
        return problem_response(e)
    return PlainTextResponse(REGISTERED_MESSAGE)


@router.post(
    "/login",
    response_model=SessionResponse,
    responses={400: {"model": ValidationErrorsResponse}, 401: {}},
)
def login(
    body: LoginRequest,
    auth: Annotated[AuthService, Depends(get_auth_service)],
) -> SessionResponse | JSONResponse:
    """
    Authenticate with username and password; returns a signed session token.
    Include the token in the Authorization header as: Bearer <token>
    """
    try:
        session = auth.login(body.username, body.password)
    except ValidationFailedError as e:
        return JSONResponse(status_code=400, content={"errors": e.errors})
    except UnauthorizedError as e:
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"detail": e.message},
            headers={"WWW-Authenticate": "Bearer"},
        )
    except Exception as e:
        logger.exception("Login failed: %s", e)
        return problem_response(e)
    return SessionResponse(
        token=session.token,
        expires=session.expires,
        username=session.username,
        role=session.role,
    )


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    tokens: Annotated[TokenService, Depends(get_token_service)],
) -> CurrentUser:
    """Dependency: require a valid Bearer token and return its claims. Raises 401 otherwise."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    try:
        claims = authenticate_token(tokens, credentials.credentials)
    except UnauthorizedError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        ) from e
    return CurrentUser(
        username=claims.subject,
        role=claims.role,
        issued_at=claims.issued_at,
        expires_at=claims.expires_at,
    )


def require_admin(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Dependency: require authenticated user with role 'Admin'. Raises 403 for non-admin."""
    if current_user.role != ROLE_ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return current_user


@router.get("/me", response_model=CurrentUser)
def me(current_user: Annotated[CurrentUser, Depends(get_current_user)]) -> CurrentUser:
    """Return the identity and role carried by the caller's token."""
    return current_user
