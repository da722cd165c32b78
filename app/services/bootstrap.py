"""
Startup bootstrap for the user store: wait for connectivity, migrate, seed admin.

Failure policy is fatal: once every attempt has failed, BootstrapError is
raised and the service does not start. There is no log-and-continue mode.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from tenacity import (
    RetryError,
    Retrying,
    before_sleep_log,
    stop_after_attempt,
    wait_fixed,
)

from app.core.security import hash_password
from app.models import ROLE_ADMIN
from app.repositories.user_store import (
    StoreUnavailableError,
    UniqueConstraintViolation,
    UserStore,
)
from app.schemas.auth import CredentialRecord
from app.services.auth import placeholder_email

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 10
DEFAULT_DELAY_SECONDS = 5.0


class BootstrapError(Exception):
    """Raised when the store is still unusable after the last attempt."""

    def __init__(self, message: str, attempts: int) -> None:
        self.message = message
        self.attempts = attempts
        super().__init__(message)


@dataclass(frozen=True)
class BootstrapResult:
    attempts: int
    admin_created: bool


def _connect_and_migrate(store: UserStore) -> None:
    logger.info("Checking user store connectivity and applying migrations...")
    if not store.can_connect():
        raise StoreUnavailableError("User store is not reachable.")
    store.apply_migrations()
    logger.info("Migrations applied successfully")


def _seed_admin(store: UserStore, username: str, password: str) -> bool:
    if not store.is_empty():
        return False
    record = CredentialRecord(
        username=username,
        password_hash=hash_password(password),
        email=placeholder_email(username),
        role=ROLE_ADMIN,
    )
    try:
        store.insert(record)
    except UniqueConstraintViolation:
        # Another instance seeded the same admin between is_empty and insert.
        logger.info("Default admin '%s' already created by another instance.", username)
        return False
    logger.info("Created default admin user '%s'.", username)
    return True


def bootstrap_store(
    store: UserStore,
    *,
    admin_username: str = "admin",
    admin_password: str,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    delay_seconds: float = DEFAULT_DELAY_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> BootstrapResult:
    """
    Bring the store to a usable state before serving requests.

    Connectivity and migration failures are retried up to max_attempts with a
    fixed delay between attempts. Seeding runs once, after they succeed, and
    only inserts the admin when the store holds no records. Safe to re-run.
    """
    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_fixed(delay_seconds),
        sleep=sleep,
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )
    attempts = 0

    def attempt() -> None:
        nonlocal attempts
        attempts += 1
        _connect_and_migrate(store)

    try:
        retrying(attempt)
    except RetryError as e:
        last = e.last_attempt.exception()
        logger.error(
            "User store bootstrap failed after %s attempts: %s", max_attempts, last
        )
        raise BootstrapError(
            f"User store unavailable after {max_attempts} attempts: {last}",
            attempts=max_attempts,
        ) from last

    admin_created = _seed_admin(store, admin_username, admin_password)
    return BootstrapResult(attempts=attempts, admin_created=admin_created)
