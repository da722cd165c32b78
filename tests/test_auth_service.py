"""Unit tests for AuthService register/login orchestration."""

import threading
import unittest
from datetime import timedelta
from unittest.mock import MagicMock

from app.core.security import TokenService, hash_password
from app.repositories.user_store import InMemoryUserStore, UniqueConstraintViolation
from app.services.auth import (
    INVALID_CREDENTIALS_MESSAGE,
    AuthService,
    UnauthorizedError,
    UsernameTakenError,
    ValidationFailedError,
)
from app.services.validation import ValidationOutcome

KEY = "auth-service-test-key-0123456789abcdef"


def _tokens() -> TokenService:
    return TokenService(KEY, issuer="authgate", audience="authgate-clients")


class TestRegister(unittest.TestCase):
    """register validates, checks uniqueness, hashes and stores a User-role record."""

    def setUp(self) -> None:
        self.store = InMemoryUserStore()
        self.auth = AuthService(self.store, _tokens())

    def test_success_persists_hashed_user(self) -> None:
        created = self.auth.register("alice", "Passw0rd")
        self.assertEqual(created.username, "alice")
        self.assertEqual(created.role, "User")
        self.assertEqual(created.email, "alice@example.com")
        stored = self.store.find_by_username("alice")
        self.assertEqual(stored.password_hash, hash_password("Passw0rd"))
        self.assertNotEqual(stored.password_hash, "Passw0rd")

    def test_invalid_input_aggregates_errors(self) -> None:
        with self.assertRaises(ValidationFailedError) as ctx:
            self.auth.register("a", "short")
        self.assertGreaterEqual(len(ctx.exception.errors), 2)
        self.assertTrue(self.store.is_empty())

    def test_duplicate_username(self) -> None:
        self.auth.register("alice", "Passw0rd")
        with self.assertRaises(UsernameTakenError) as ctx:
            self.auth.register("alice", "0therPass")
        self.assertEqual(ctx.exception.message, "Username already exists")
        self.assertEqual(len(self.store.all()), 1)

    def test_lost_race_translated_to_username_taken(self) -> None:
        store = MagicMock()
        store.exists_by_username.return_value = False
        store.insert.side_effect = UniqueConstraintViolation("duplicate")
        auth = AuthService(store, _tokens())
        with self.assertRaises(UsernameTakenError):
            auth.register("alice", "Passw0rd")

    def test_concurrent_registrations_one_winner(self) -> None:
        barrier = threading.Barrier(6)
        results: list[str] = []
        lock = threading.Lock()

        def worker() -> None:
            barrier.wait()
            try:
                self.auth.register("bob", "Passw0rd")
                outcome = "ok"
            except UsernameTakenError:
                outcome = "taken"
            with lock:
                results.append(outcome)

        threads = [threading.Thread(target=worker) for _ in range(6)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.assertEqual(sorted(results), ["ok"] + ["taken"] * 5)

    def test_custom_validator_is_used(self) -> None:
        validator = MagicMock(return_value=ValidationOutcome(errors=["nope"]))
        auth = AuthService(self.store, _tokens(), validator=validator)
        with self.assertRaises(ValidationFailedError) as ctx:
            auth.register("alice", "Passw0rd")
        self.assertEqual(ctx.exception.errors, ["nope"])
        validator.assert_called_once_with("alice", "Passw0rd")


class TestLogin(unittest.TestCase):
    """login returns a session for valid credentials and one opaque error otherwise."""

    def setUp(self) -> None:
        self.store = InMemoryUserStore()
        self.tokens = _tokens()
        self.auth = AuthService(self.store, self.tokens)
        self.auth.register("alice", "Passw0rd")

    def test_success_issues_verifiable_token(self) -> None:
        session = self.auth.login("alice", "Passw0rd")
        self.assertTrue(session.token)
        self.assertEqual(session.username, "alice")
        self.assertEqual(session.role, "User")
        claims = self.tokens.verify(session.token)
        self.assertEqual(claims.subject, "alice")
        self.assertEqual(claims.role, "User")
        self.assertEqual(session.expires - claims.issued_at, timedelta(hours=2))

    def test_wrong_password_and_unknown_user_are_identical(self) -> None:
        with self.assertRaises(UnauthorizedError) as wrong_pw:
            self.auth.login("alice", "wrong")
        with self.assertRaises(UnauthorizedError) as unknown:
            self.auth.login("mallory", "Passw0rd")
        self.assertEqual(wrong_pw.exception.message, INVALID_CREDENTIALS_MESSAGE)
        self.assertEqual(wrong_pw.exception.message, unknown.exception.message)
        self.assertIs(type(wrong_pw.exception), type(unknown.exception))

    def test_invalid_shape(self) -> None:
        with self.assertRaises(ValidationFailedError):
            self.auth.login("", "")

    def test_login_does_not_write(self) -> None:
        store = MagicMock(wraps=self.store)
        AuthService(store, self.tokens).login("alice", "Passw0rd")
        store.insert.assert_not_called()


class TestAuthenticate(unittest.TestCase):
    """authenticate verifies tokens without touching the store."""

    def test_valid_token(self) -> None:
        store = MagicMock()
        tokens = _tokens()
        auth = AuthService(store, tokens)
        claims = auth.authenticate(tokens.issue("alice", "Admin").token)
        self.assertEqual(claims.role, "Admin")
        self.assertEqual(store.method_calls, [])

    def test_any_failure_is_unauthorized(self) -> None:
        auth = AuthService(MagicMock(), _tokens())
        other = TokenService("different-key-0123456789abcdefghijkl", "authgate", "authgate-clients")
        for token in ("garbage", other.issue("alice", "User").token):
            with self.assertRaises(UnauthorizedError):
                auth.authenticate(token)
