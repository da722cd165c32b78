"""SQLAlchemy ORM models."""

from app.models.app_user import ROLE_ADMIN, ROLE_USER, AppUser
from app.models.base import Base
from app.models.user import User

__all__ = ["AppUser", "Base", "ROLE_ADMIN", "ROLE_USER", "User"]
