"""ORM model for credential records (registration, login and RBAC)."""

from sqlalchemy import Column, DateTime, Integer, String, func

from app.models.base import Base

ROLE_ADMIN = "Admin"
ROLE_USER = "User"


class AppUser(Base):
    """
    Credential record for JWT authentication and role-based access control.

    username and email are unique; the indexes are the authority when two
    registrations race for the same name.
    """

    __tablename__ = "app_users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(50), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    email = Column(String(100), nullable=False, unique=True, index=True)
    role = Column(String(32), nullable=False, default=ROLE_USER, server_default=ROLE_USER)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
