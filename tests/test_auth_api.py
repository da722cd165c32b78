"""HTTP tests for /auth routes, bearer auth and the startup lifespan (in-memory store)."""

import unittest
from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

import app.main as main_module
from app.api.auth import get_user_store
from app.core.security import SigningKeyMissingError, TokenService, get_token_service
from app.main import app
from app.repositories.user_store import InMemoryUserStore

KEY = "api-test-signing-key-0123456789abcdefgh"


class AuthApiTestCase(unittest.TestCase):
    """Base: fresh in-memory store and token service wired through dependency overrides."""

    def setUp(self) -> None:
        self.store = InMemoryUserStore()
        self.tokens = TokenService(KEY, issuer="authgate", audience="authgate-clients")
        app.dependency_overrides[get_user_store] = lambda: self.store
        app.dependency_overrides[get_token_service] = lambda: self.tokens
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def register(self, username: str = "alice", password: str = "Passw0rd"):
        return self.client.post("/auth/register", json={"username": username, "password": password})

    def login(self, username: str = "alice", password: str = "Passw0rd"):
        return self.client.post("/auth/login", json={"username": username, "password": password})


class TestRegisterEndpoint(AuthApiTestCase):
    def test_register_success(self) -> None:
        resp = self.register()
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.text, "User registered successfully")
        self.assertTrue(self.store.exists_by_username("alice"))

    def test_register_validation_errors(self) -> None:
        resp = self.register("al", "weak")
        self.assertEqual(resp.status_code, 400)
        errors = resp.json()["errors"]
        self.assertIn("Username must be at least 3 characters long.", errors)
        self.assertIn("Password must contain at least one digit.", errors)

    def test_register_duplicate(self) -> None:
        self.register()
        resp = self.register()
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), "Username already exists")

    def test_register_missing_body_fields(self) -> None:
        resp = self.client.post("/auth/register", json={})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["errors"], ["Username is required.", "Password is required."])

    def test_register_username_with_trailing_newline(self) -> None:
        self.assertEqual(self.register().status_code, 200)
        resp = self.register("alice\n")
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(
            resp.json()["errors"], ["Username may contain only letters, digits and underscores."]
        )
        self.assertEqual([r.username for r in self.store.all()], ["alice"])

    def test_register_mistyped_fields(self) -> None:
        resp = self.client.post("/auth/register", json={"username": 123, "password": "Passw0rd"})
        self.assertEqual(resp.status_code, 400)
        errors = resp.json()["errors"]
        self.assertEqual(len(errors), 1)
        self.assertTrue(errors[0].startswith("username: "))
        self.assertEqual(self.store.all(), [])

    def test_register_malformed_json(self) -> None:
        resp = self.client.post(
            "/auth/register",
            content="{not json",
            headers={"Content-Type": "application/json"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertTrue(resp.json()["errors"])

    def test_unexpected_failure_is_problem(self) -> None:
        broken = MagicMock()
        broken.exists_by_username.side_effect = RuntimeError("connection reset")
        app.dependency_overrides[get_user_store] = lambda: broken
        resp = self.register()
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.headers["content-type"], "application/problem+json")
        body = resp.json()
        self.assertEqual(body["status"], 500)
        self.assertEqual(body["detail"], "connection reset")


class TestLoginEndpoint(AuthApiTestCase):
    def test_scenario_register_then_login(self) -> None:
        self.assertEqual(self.register().status_code, 200)
        resp = self.login()
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertTrue(body["token"])
        self.assertEqual(body["username"], "alice")
        self.assertEqual(body["role"], "User")
        self.assertIn("expires", body)
        self.assertEqual(self.login(password="wrong").status_code, 401)

    def test_wrong_password_and_unknown_user_look_the_same(self) -> None:
        self.register()
        wrong = self.login(password="Wr0ngPass")
        unknown = self.login(username="nobody")
        self.assertEqual(wrong.status_code, 401)
        self.assertEqual(unknown.status_code, 401)
        self.assertEqual(wrong.json(), unknown.json())
        self.assertEqual(wrong.headers.get("www-authenticate"), "Bearer")

    def test_login_validation(self) -> None:
        resp = self.login(username="bad name!", password="")
        self.assertEqual(resp.status_code, 400)
        self.assertIn("Password is required.", resp.json()["errors"])

    def test_login_null_fields(self) -> None:
        self.register()
        resp = self.client.post("/auth/login", json={"username": None, "password": None})
        self.assertEqual(resp.status_code, 400)
        errors = resp.json()["errors"]
        self.assertTrue(any(e.startswith("username: ") for e in errors))
        self.assertTrue(any(e.startswith("password: ") for e in errors))

    def test_login_store_failure_is_problem(self) -> None:
        broken = MagicMock()
        broken.find_by_username.side_effect = RuntimeError("store down")
        app.dependency_overrides[get_user_store] = lambda: broken
        resp = self.login()
        self.assertEqual(resp.status_code, 500)
        self.assertEqual(resp.json()["detail"], "store down")


class TestBearerAuth(AuthApiTestCase):
    def test_me_with_valid_token(self) -> None:
        self.register()
        token = self.login().json()["token"]
        resp = self.client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["username"], "alice")
        self.assertEqual(resp.json()["role"], "User")

    def test_me_without_token(self) -> None:
        resp = self.client.get("/auth/me")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.headers.get("www-authenticate"), "Bearer")

    def test_me_with_bad_tokens(self) -> None:
        foreign = TokenService("foreign-signing-key-0123456789abcdefgh", "authgate", "authgate-clients")
        for token in ("garbage", foreign.issue("alice", "Admin").token):
            resp = self.client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
            self.assertEqual(resp.status_code, 401)
            self.assertEqual(resp.json()["detail"], "Invalid or expired token")

    def test_verification_does_not_consult_store(self) -> None:
        token = self.tokens.issue("ghost", "User").token
        resp = self.client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["username"], "ghost")


class TestRootAndHealth(AuthApiTestCase):
    def test_root(self) -> None:
        resp = self.client.get("/")
        self.assertEqual(resp.status_code, 200)
        self.assertIn("Hello World", resp.text)

    def test_hello(self) -> None:
        self.assertEqual(self.client.get("/hello/Bob").text, "Hello Bob!")

    def test_health(self) -> None:
        resp = self.client.get("/health")
        self.assertEqual(resp.status_code, 200)
        body = resp.json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["database"], "connected")

    def test_lifespan_bootstraps_store(self) -> None:
        with (
            patch.object(main_module, "get_user_store", return_value=self.store),
            patch.object(main_module.settings, "BOOTSTRAP_ENABLED", True),
            patch.object(main_module.settings, "BOOTSTRAP_RETRY_DELAY_SEC", 0.0),
        ):
            with TestClient(app) as client:
                health = client.get("/health").json()
                admin = client.post(
                    "/auth/login", json={"username": "admin", "password": "Admin123"}
                )
        self.assertEqual(health["bootstrap"], "complete")
        self.assertEqual(admin.status_code, 200)
        self.assertEqual(admin.json()["role"], "Admin")

    def test_lifespan_with_bootstrap_disabled(self) -> None:
        with patch.object(main_module, "get_user_store") as store_factory:
            with TestClient(app) as client:
                health = client.get("/health").json()
        self.assertEqual(health["bootstrap"], "disabled")
        store_factory.assert_not_called()

    def test_lifespan_fails_without_signing_key(self) -> None:
        with patch.object(main_module, "get_token_service", side_effect=SigningKeyMissingError()):
            with self.assertRaises(SigningKeyMissingError):
                with TestClient(app):
                    pass
