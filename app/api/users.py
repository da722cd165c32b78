"""Directory user CRUD (/api/users). Reads and writes need a token; delete needs Admin."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy import select
from sqlalchemy.orm import Session

from app.api.auth import get_current_user, require_admin
from app.core.database import get_db
from app.models import User
from app.schemas.auth import CurrentUser
from app.schemas.users import UserResponse, UserWriteRequest
from app.services.validation import validate_user_update

logger = logging.getLogger(__name__)
router = APIRouter()


def _not_found(user_id: int) -> PlainTextResponse:
    return PlainTextResponse(
        f"User with ID {user_id} not found", status_code=status.HTTP_404_NOT_FOUND
    )


def _invalid(body: UserWriteRequest) -> JSONResponse | None:
    outcome = validate_user_update(body.name, body.email)
    if outcome.is_valid:
        return None
    return JSONResponse(status_code=400, content={"errors": outcome.errors})


@router.get("", response_model=list[UserResponse])
def list_users(
    _user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> list[UserResponse]:
    users = db.scalars(select(User).order_by(User.id)).all()
    return [UserResponse.model_validate(u) for u in users]


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    _user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> UserResponse | Response:
    user = db.get(User, user_id)
    if user is None:
        return _not_found(user_id)
    return UserResponse.model_validate(user)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    body: UserWriteRequest,
    _user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    """Create a directory user; responds 201 with a Location header."""
    invalid = _invalid(body)
    if invalid is not None:
        return invalid
    user = User(name=body.name.strip(), email=body.email.strip())
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("Created directory user id=%s", user.id)
    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content=UserResponse.model_validate(user).model_dump(mode="json"),
        headers={"Location": f"/api/users/{user.id}"},
    )


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    body: UserWriteRequest,
    _user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> UserResponse | Response:
    invalid = _invalid(body)
    if invalid is not None:
        return invalid
    user = db.get(User, user_id)
    if user is None:
        return _not_found(user_id)
    user.name = body.name.strip()
    user.email = body.email.strip()
    db.commit()
    db.refresh(user)
    return UserResponse.model_validate(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    user = db.get(User, user_id)
    if user is None:
        return _not_found(user_id)
    db.delete(user)
    db.commit()
    logger.info("Directory user id=%s deleted by %s", user_id, admin.username)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
