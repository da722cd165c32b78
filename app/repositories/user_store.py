"""
Credential record store: the interface the auth core consumes and two backends.

InMemoryUserStore keeps records in a lock-guarded dict (tests, local runs).
SqlUserStore persists to the app_users table; its unique indexes settle
concurrent registrations for the same username or email.
"""

import logging
import threading
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Protocol

from sqlalchemy import exists, select, text
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.models import AppUser
from app.schemas.auth import CredentialRecord

logger = logging.getLogger(__name__)


class UniqueConstraintViolation(Exception):
    """Raised by insert when a record with the same username or email already exists."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.message = message
        self.field = field
        super().__init__(message)


class StoreUnavailableError(Exception):
    """Raised when the backing store cannot be reached."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class UserStore(Protocol):
    """Keyed credential record collection, looked up by unique username."""

    def find_by_username(self, username: str) -> CredentialRecord | None: ...

    def exists_by_username(self, username: str) -> bool: ...

    def insert(self, record: CredentialRecord) -> CredentialRecord: ...

    def is_empty(self) -> bool: ...

    def apply_migrations(self) -> None: ...

    def can_connect(self) -> bool: ...


class InMemoryUserStore:
    """Process-local store. Uniqueness is checked and written under one lock."""

    def __init__(self, records: list[CredentialRecord] | None = None) -> None:
        self._lock = threading.Lock()
        self._by_username: dict[str, CredentialRecord] = {}
        self._next_id = 1
        for record in records or []:
            self.insert(record)

    def find_by_username(self, username: str) -> CredentialRecord | None:
        with self._lock:
            return self._by_username.get(username)

    def exists_by_username(self, username: str) -> bool:
        with self._lock:
            return username in self._by_username

    def insert(self, record: CredentialRecord) -> CredentialRecord:
        with self._lock:
            if record.username in self._by_username:
                raise UniqueConstraintViolation(
                    f"Username '{record.username}' already exists.", field="username"
                )
            if any(r.email == record.email for r in self._by_username.values()):
                raise UniqueConstraintViolation(
                    f"Email '{record.email}' already exists.", field="email"
                )
            stored = record.model_copy(
                update={
                    "id": self._next_id,
                    "created_at": record.created_at or datetime.now(UTC),
                }
            )
            self._next_id += 1
            self._by_username[stored.username] = stored
            return stored

    def is_empty(self) -> bool:
        with self._lock:
            return not self._by_username

    def apply_migrations(self) -> None:
        """Nothing to migrate in memory."""

    def can_connect(self) -> bool:
        return True

    def all(self) -> list[CredentialRecord]:
        with self._lock:
            return sorted(self._by_username.values(), key=lambda r: r.id or 0)


class SqlUserStore:
    """
    SQLAlchemy-backed store. Each call opens and closes its own session, so one
    instance can be shared by all request threads.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        migrate: Callable[[], None] | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._migrate = migrate

    def find_by_username(self, username: str) -> CredentialRecord | None:
        with self._session_factory() as session:
            user = session.scalars(
                select(AppUser).where(AppUser.username == username)
            ).first()
            return CredentialRecord.model_validate(user) if user is not None else None

    def exists_by_username(self, username: str) -> bool:
        with self._session_factory() as session:
            return bool(
                session.scalar(select(exists().where(AppUser.username == username)))
            )

    def insert(self, record: CredentialRecord) -> CredentialRecord:
        with self._session_factory() as session:
            user = AppUser(
                username=record.username,
                password_hash=record.password_hash,
                email=record.email,
                role=record.role,
            )
            session.add(user)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                if "unique" in str(e.orig).lower() or "duplicate" in str(e.orig).lower():
                    raise UniqueConstraintViolation(
                        f"Username '{record.username}' or its email already exists."
                    ) from e
                raise
            session.refresh(user)
            return CredentialRecord.model_validate(user)

    def is_empty(self) -> bool:
        with self._session_factory() as session:
            return session.scalars(select(AppUser.id).limit(1)).first() is None

    def apply_migrations(self) -> None:
        if self._migrate is None:
            logger.debug("No migration runner configured; skipping migrations.")
            return
        self._migrate()

    def can_connect(self) -> bool:
        """Run a trivial query; False (not an exception) when the database is unreachable."""
        try:
            with self._session_factory() as session:
                session.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.debug("User store connectivity check failed: %s", e)
            return False
