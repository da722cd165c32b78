"""Register and login use cases: validation, uniqueness, hashing, token issuance."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from app.core.security import (
    ClaimSet,
    TokenService,
    TokenVerificationError,
    hash_password,
    verify_password,
)
from app.models import ROLE_USER
from app.repositories.user_store import UniqueConstraintViolation, UserStore
from app.schemas.auth import CredentialRecord
from app.services.validation import (
    ValidationOutcome,
    validate_login_shape,
    validate_login_user,
)

logger = logging.getLogger(__name__)

# Registration does not collect an email; derive a unique placeholder instead.
PLACEHOLDER_EMAIL_DOMAIN = "example.com"

INVALID_CREDENTIALS_MESSAGE = "Invalid username or password."
INVALID_TOKEN_MESSAGE = "Invalid or expired token"

Validator = Callable[[str, str], ValidationOutcome]


class ValidationFailedError(Exception):
    """Raised when register/login input breaks one or more field rules."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        self.message = "; ".join(self.errors)
        super().__init__(self.message)


class UsernameTakenError(Exception):
    """Raised when registering a username that already exists."""

    def __init__(self, username: str) -> None:
        self.username = username
        self.message = "Username already exists"
        super().__init__(self.message)


class UnauthorizedError(Exception):
    """
    Raised for any failed authentication. The message is identical for unknown
    users, wrong passwords and bad tokens so callers learn nothing about which.
    """

    def __init__(self, message: str = INVALID_CREDENTIALS_MESSAGE) -> None:
        self.message = message
        super().__init__(message)


@dataclass(frozen=True)
class SessionResult:
    token: str
    expires: datetime
    username: str
    role: str


def placeholder_email(username: str) -> str:
    return f"{username}@{PLACEHOLDER_EMAIL_DOMAIN}"


class AuthService:
    """Stateless orchestrator over the user store, password hasher and token service."""

    def __init__(
        self,
        store: UserStore,
        tokens: TokenService,
        validator: Validator = validate_login_user,
        login_validator: Validator = validate_login_shape,
    ) -> None:
        self.store = store
        self.tokens = tokens
        self.validator = validator
        self.login_validator = login_validator

    @staticmethod
    def _validate(validator: Validator, username: str, password: str) -> None:
        outcome = validator(username, password)
        if not outcome.is_valid:
            raise ValidationFailedError(outcome.errors)

    def register(self, username: str, password: str) -> CredentialRecord:
        """
        Create a User-role account. The exists check is a fast path only; the
        store's unique constraint decides races between concurrent registrations.
        """
        self._validate(self.validator, username, password)
        if self.store.exists_by_username(username):
            raise UsernameTakenError(username)
        record = CredentialRecord(
            username=username,
            password_hash=hash_password(password),
            email=placeholder_email(username),
            role=ROLE_USER,
        )
        try:
            created = self.store.insert(record)
        except UniqueConstraintViolation as e:
            logger.info("Registration lost uniqueness race for username=%s", username)
            raise UsernameTakenError(username) from e
        logger.info("Registered user username=%s id=%s", created.username, created.id)
        return created

    def login(self, username: str, password: str) -> SessionResult:
        """Authenticate and issue a session token; raises UnauthorizedError on any mismatch."""
        self._validate(self.login_validator, username, password)
        record = self.store.find_by_username(username)
        if record is None:
            logger.debug("Login rejected: unknown username")
            raise UnauthorizedError()
        if not verify_password(password, record.password_hash):
            logger.debug("Login rejected: password mismatch for username=%s", username)
            raise UnauthorizedError()
        issued = self.tokens.issue(subject=record.username, role=record.role)
        logger.info("Issued session token for username=%s role=%s", record.username, record.role)
        return SessionResult(
            token=issued.token,
            expires=issued.expires_at,
            username=record.username,
            role=record.role,
        )

    def authenticate(self, token: str) -> ClaimSet:
        """Verify a bearer token without consulting the store."""
        return authenticate_token(self.tokens, token)


def authenticate_token(tokens: TokenService, token: str) -> ClaimSet:
    """Verify a token, collapsing every failure kind into UnauthorizedError."""
    try:
        return tokens.verify(token)
    except TokenVerificationError as e:
        logger.debug("Token rejected: kind=%s", e.kind.value)
        raise UnauthorizedError(INVALID_TOKEN_MESSAGE) from e
