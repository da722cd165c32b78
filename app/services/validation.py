"""Field validation for auth and directory payloads: plain rule functions, ordered messages."""

import re
from dataclasses import dataclass, field

USERNAME_MIN_LEN = 3
USERNAME_MAX_LEN = 50
PASSWORD_MIN_LEN = 6
NAME_MIN_LEN = 2
NAME_MAX_LEN = 100
EMAIL_MAX_LEN = 100

# Applied with fullmatch so a trailing newline cannot slip through.
USERNAME_PATTERN = re.compile(r"[a-zA-Z0-9_]+")
NAME_PATTERN = re.compile(r"[a-zA-Zа-яА-ЯёЁ ]+")
# Pragmatic local@domain.tld check; deliverability is not our concern.
EMAIL_PATTERN = re.compile(r"[^@\s]+@[^@\s]+\.[^@\s]+")


@dataclass
class ValidationOutcome:
    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def _username_errors(username: str) -> list[str]:
    if not username:
        return ["Username is required."]
    errors = []
    if len(username) < USERNAME_MIN_LEN:
        errors.append(f"Username must be at least {USERNAME_MIN_LEN} characters long.")
    if len(username) > USERNAME_MAX_LEN:
        errors.append(f"Username must be at most {USERNAME_MAX_LEN} characters long.")
    if not USERNAME_PATTERN.fullmatch(username):
        errors.append("Username may contain only letters, digits and underscores.")
    return errors


def _password_errors(password: str) -> list[str]:
    if not password:
        return ["Password is required."]
    errors = []
    if len(password) < PASSWORD_MIN_LEN:
        errors.append(f"Password must be at least {PASSWORD_MIN_LEN} characters long.")
    if not re.search(r"[A-Z]", password):
        errors.append("Password must contain at least one uppercase letter.")
    if not re.search(r"[a-z]", password):
        errors.append("Password must contain at least one lowercase letter.")
    if not re.search(r"[0-9]", password):
        errors.append("Password must contain at least one digit.")
    return errors


def validate_login_user(username: str, password: str) -> ValidationOutcome:
    """Registration rules: username format and password strength, username errors first."""
    return ValidationOutcome(errors=_username_errors(username) + _password_errors(password))


def validate_login_shape(username: str, password: str) -> ValidationOutcome:
    """
    Login rules: same username format, but the password only has to be present.

    Strength rules are not applied, so a weak wrong password fails as a
    credential mismatch (401) rather than a validation error.
    """
    errors = _username_errors(username)
    if not password:
        errors.append("Password is required.")
    return ValidationOutcome(errors=errors)


def validate_user_update(name: str, email: str) -> ValidationOutcome:
    """
    Rules for directory user create/update payloads.

    Checked on the stripped values, which is what the routes store.
    """
    errors: list[str] = []
    name = (name or "").strip()
    email = (email or "").strip()
    if not name:
        errors.append("Name is required.")
    else:
        if len(name) < NAME_MIN_LEN:
            errors.append(f"Name must be at least {NAME_MIN_LEN} characters long.")
        if len(name) > NAME_MAX_LEN:
            errors.append(f"Name must be at most {NAME_MAX_LEN} characters long.")
        if not NAME_PATTERN.fullmatch(name):
            errors.append("Name may contain only letters and spaces.")
    if not email:
        errors.append("Email is required.")
    else:
        if not EMAIL_PATTERN.fullmatch(email):
            errors.append("Email format is invalid.")
        if len(email) > EMAIL_MAX_LEN:
            errors.append(f"Email must be at most {EMAIL_MAX_LEN} characters long.")
    return ValidationOutcome(errors=errors)
