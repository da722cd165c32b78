"""
Create a login account (e.g. an extra admin). Run from project root:
  python -m app.scripts.create_user USERNAME PASSWORD [role]
Example:
  python -m app.scripts.create_user ops_admin S3curePass Admin
"""
import argparse
import logging
import sys

from dotenv import load_dotenv

load_dotenv()

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.core.security import hash_password
from app.models import ROLE_ADMIN, ROLE_USER
from app.repositories.user_store import SqlUserStore, UniqueConstraintViolation, UserStore
from app.schemas.auth import CredentialRecord
from app.services.auth import placeholder_email
from app.services.validation import validate_login_user

logger = logging.getLogger(__name__)


def create_user(store: UserStore, username: str, password: str, role: str) -> int:
    """Validate and insert one account. Returns a process exit code."""
    outcome = validate_login_user(username, password)
    if not outcome.is_valid:
        for error in outcome.errors:
            print(error, file=sys.stderr)
        return 1
    record = CredentialRecord(
        username=username,
        password_hash=hash_password(password),
        email=placeholder_email(username),
        role=role,
    )
    try:
        store.insert(record)
    except UniqueConstraintViolation:
        print(f"User '{username}' already exists.", file=sys.stderr)
        return 1
    print(f"Created user '{username}' with role '{role}'.")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Create an Authgate login account.")
    parser.add_argument("username", help="Username (3-50 chars: letters, digits, underscore)")
    parser.add_argument("password", help="Password (6+ chars with upper, lower and digit)")
    parser.add_argument("role", nargs="?", default=ROLE_USER, choices=[ROLE_USER, ROLE_ADMIN])
    args = parser.parse_args(argv)

    logging.basicConfig(level=get_settings().LOG_LEVEL)
    store = SqlUserStore(SessionLocal)
    if not store.can_connect():
        logger.error("Database is not reachable; check DATABASE_URL.")
        return 1
    return create_user(store, args.username.strip(), args.password, args.role)


if __name__ == "__main__":
    sys.exit(main())
