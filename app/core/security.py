"""Password hashing and JWT session token issuance/verification."""

import base64
import enum
import hashlib
import hmac
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from functools import lru_cache
from typing import Any

import jwt

from app.core.config import get_settings

# Fixed validity window for session tokens.
DEFAULT_TOKEN_VALIDITY = timedelta(hours=2)

# Claims every accepted token must carry.
REQUIRED_CLAIMS = ["sub", "role", "iss", "aud", "iat", "exp"]


def hash_password(plain_password: str) -> str:
    """
    Hash a plain-text password for storage: base64 of SHA-256 over UTF-8 bytes.

    Deterministic (no salt), so the same password always yields the same digest.
    """
    digest = hashlib.sha256(plain_password.encode("utf-8")).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored digest (constant-time compare)."""
    if not isinstance(hashed, str):
        return False
    try:
        return hmac.compare_digest(
            hash_password(plain_password).encode("ascii"),
            hashed.encode("ascii"),
        )
    except UnicodeEncodeError:
        # Stored digests are always ASCII; anything else cannot match.
        return False


class SigningKeyMissingError(Exception):
    """Raised when the token signing key is empty or not configured."""

    def __init__(self, message: str = "JWT signing key is not configured.") -> None:
        self.message = message
        super().__init__(message)


class TokenErrorKind(str, enum.Enum):
    """Why a session token was rejected."""

    BAD_SIGNATURE = "bad_signature"
    EXPIRED = "expired"
    ISSUER_MISMATCH = "issuer_mismatch"
    AUDIENCE_MISMATCH = "audience_mismatch"
    MALFORMED = "malformed"


class TokenVerificationError(Exception):
    """Raised when a session token fails any verification check."""

    def __init__(self, kind: TokenErrorKind, message: str) -> None:
        self.kind = kind
        self.message = message
        super().__init__(message)


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime


@dataclass(frozen=True)
class ClaimSet:
    """Verified contents of a session token."""

    subject: str
    role: str
    issuer: str
    audience: str
    issued_at: datetime
    expires_at: datetime


class TokenService:
    """
    Issue and verify signed, time-bounded session tokens.

    Holds only the immutable signing key and binding claims, so one instance can
    be shared by every request thread. Verification never touches the user store.
    """

    def __init__(
        self,
        signing_key: str | None,
        issuer: str,
        audience: str,
        algorithm: str = "HS256",
        validity: timedelta = DEFAULT_TOKEN_VALIDITY,
    ) -> None:
        if not signing_key or not signing_key.strip():
            raise SigningKeyMissingError()
        self._key = signing_key
        self.issuer = issuer
        self.audience = audience
        self.algorithm = algorithm
        self.validity = validity

    @classmethod
    def from_settings(cls, settings: Any = None) -> "TokenService":
        settings = settings or get_settings()
        secret = settings.JWT_SECRET.get_secret_value() if settings.JWT_SECRET is not None else None
        return cls(
            signing_key=secret,
            issuer=settings.JWT_ISSUER,
            audience=settings.JWT_AUDIENCE,
            algorithm=settings.JWT_ALGORITHM,
            validity=timedelta(minutes=settings.JWT_EXPIRE_MINUTES),
        )

    def issue(self, subject: str, role: str, now: datetime | None = None) -> IssuedToken:
        """Create a token for subject/role, valid from now for the validity window."""
        # JWT timestamps are whole seconds; truncate so exp - iat == validity exactly.
        issued_at = (now or datetime.now(UTC)).replace(microsecond=0)
        expires_at = issued_at + self.validity
        payload: dict[str, Any] = {
            "sub": subject,
            "role": role,
            "iss": self.issuer,
            "aud": self.audience,
            "iat": issued_at,
            "exp": expires_at,
        }
        token = jwt.encode(payload, self._key, algorithm=self.algorithm)
        return IssuedToken(token=token, expires_at=expires_at)

    def verify(self, token: str) -> ClaimSet:
        """
        Check signature, expiry, issuer and audience; return the claim set.

        Raises TokenVerificationError on the first failed check.
        """
        try:
            payload = jwt.decode(
                token,
                self._key,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                audience=self.audience,
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError as e:
            raise TokenVerificationError(TokenErrorKind.EXPIRED, "Token has expired.") from e
        except jwt.InvalidSignatureError as e:
            raise TokenVerificationError(
                TokenErrorKind.BAD_SIGNATURE, "Token signature is invalid."
            ) from e
        except jwt.InvalidIssuerError as e:
            raise TokenVerificationError(
                TokenErrorKind.ISSUER_MISMATCH, "Token issuer does not match."
            ) from e
        except jwt.InvalidAudienceError as e:
            raise TokenVerificationError(
                TokenErrorKind.AUDIENCE_MISMATCH, "Token audience does not match."
            ) from e
        except jwt.PyJWTError as e:
            raise TokenVerificationError(TokenErrorKind.MALFORMED, f"Token is malformed: {e}") from e

        role = payload.get("role")
        if not isinstance(role, str) or not role:
            raise TokenVerificationError(TokenErrorKind.MALFORMED, "Token role claim is invalid.")
        return ClaimSet(
            subject=payload["sub"],
            role=role,
            issuer=payload["iss"],
            audience=payload["aud"],
            issued_at=datetime.fromtimestamp(payload["iat"], UTC),
            expires_at=datetime.fromtimestamp(payload["exp"], UTC),
        )


@lru_cache
def get_token_service() -> TokenService:
    """Return the process-wide token service (dependency; built once from settings)."""
    return TokenService.from_settings()
