import logging
import time

import pytest
from fastapi.testclient import TestClient

from task_api.errors import ConfigurationError
from task_api.main import create_app
from task_api.security import TOKEN_TTL_SECONDS, TokenService

from conftest import auth_headers, make_settings


def assert_user_shape(user: dict):
    assert set(user) == {"id", "name", "email"}
    assert isinstance(user["id"], str)


class TestStartup:
    def test_missing_secret_aborts_app_creation(self, monkeypatch):
        monkeypatch.delenv("JWT_SECRET", raising=False)
        with pytest.raises(ConfigurationError):
            create_app()

    def test_health(self, client):
        res = client.get("/api/health")
        assert res.status_code == 200
        assert res.json()["ok"] is True
        assert res.json()["backend"] in ("memory", "sqlite")


class TestRegister:
    def test_register_returns_token_and_public_user(self, client):
        res = client.post(
            "/api/auth/register", json={"name": "Alice", "email": "alice@x.com", "password": "secret1"}
        )
        assert res.status_code == 201
        body = res.json()
        assert isinstance(body["token"], str) and body["token"]
        assert_user_shape(body["user"])
        assert body["user"]["name"] == "Alice"
        assert body["user"]["email"] == "alice@x.com"
        assert "password" not in res.text
        assert "password_hash" not in res.text

    def test_email_is_stored_lower_case(self, register):
        body = register(email="Bob@Example.COM")
        assert body["user"]["email"] == "bob@example.com"

    def test_duplicate_email_case_insensitive(self, client, register):
        register(email="alice@x.com")
        res = client.post(
            "/api/auth/register", json={"name": "Other", "email": "ALICE@X.com", "password": "secret2"}
        )
        assert res.status_code == 400
        assert res.json() == {"error": "DuplicateEmail", "message": "Email already in use"}

    @pytest.mark.parametrize(
        "payload",
        [
            {"name": "A", "email": "a@example.com", "password": "secret1"},
            {"name": "x" * 81, "email": "a@example.com", "password": "secret1"},
            {"name": "Alice", "email": "not-an-email", "password": "secret1"},
            {"name": "Alice", "email": "a@example.com", "password": "short"},
            {"name": "Alice", "email": "a@example.com", "password": "p" * 73},
            {"name": "Alice", "email": "a@example.com"},
        ],
    )
    def test_invalid_input_is_rejected(self, client, payload):
        res = client.post("/api/auth/register", json=payload)
        assert res.status_code == 400
        body = res.json()
        assert body["error"] == "ValidationError"
        assert body["message"] == "Invalid input"
        assert isinstance(body["detail"], list) and body["detail"]

    def test_validation_detail_never_echoes_password(self, client):
        res = client.post(
            "/api/auth/register", json={"name": "Alice", "email": "a@example.com", "password": "tiny"}
        )
        assert res.status_code == 400
        assert "tiny" not in res.text


class TestLogin:
    def test_alice_scenario(self, client, register):
        created = register(name="Alice", email="alice@x.com", password="secret1")
        assert created["token"]

        res = client.post("/api/auth/login", json={"email": "alice@X.com", "password": "secret1"})
        assert res.status_code == 200
        body = res.json()
        assert body["user"] == created["user"]
        assert body["token"]

        res_wrong = client.post("/api/auth/login", json={"email": "alice@x.com", "password": "wrong"})
        assert res_wrong.status_code == 401
        assert res_wrong.json() == {"error": "InvalidCredentials", "message": "Invalid credentials"}

    def test_unknown_email_looks_like_wrong_password(self, client, register):
        register(email="alice@x.com")
        unknown = client.post("/api/auth/login", json={"email": "nobody@x.com", "password": "secret1"})
        wrong = client.post("/api/auth/login", json={"email": "alice@x.com", "password": "nope123"})
        assert unknown.status_code == wrong.status_code == 401
        assert unknown.json() == wrong.json()

    def test_login_token_grants_access(self, client, register):
        register(email="alice@x.com")
        token = client.post("/api/auth/login", json={"email": "alice@x.com", "password": "secret1"}).json()["token"]
        res = client.get("/api/users/me", headers=auth_headers(token))
        assert res.status_code == 200
        assert res.json()["user"]["email"] == "alice@x.com"

    def test_invalid_login_input(self, client):
        res = client.post("/api/auth/login", json={"email": "nope"})
        assert res.status_code == 400
        assert res.json()["error"] == "ValidationError"

    def test_logout_is_stateless(self, client):
        res = client.post("/api/auth/logout")
        assert res.status_code == 200
        assert res.json() == {"ok": True}


class TestAuthGateway:
    @pytest.mark.parametrize(
        "headers",
        [
            {},
            {"Authorization": ""},
            {"Authorization": "Bearer"},
            {"Authorization": "Bearer "},
            {"Authorization": "bearer abc"},
            {"Authorization": "Basic dXNlcjpwYXNz"},
            {"Authorization": "Bearer a b"},
            {"Authorization": "Bearer not-a-jwt"},
        ],
    )
    def test_rejects_missing_or_malformed_credentials(self, client, headers):
        res = client.get("/api/users/me", headers=headers)
        assert res.status_code == 401
        assert res.json() == {"error": "Unauthorized", "message": "Unauthorized"}
        assert res.headers["WWW-Authenticate"] == "Bearer"

    def test_expired_and_invalid_tokens_are_indistinguishable(self, client, register):
        user_id = register()["user"]["id"]
        issued = time.time() - TOKEN_TTL_SECONDS - 10
        expired = TokenService(make_settings(), clock=lambda: issued).issue(user_id)

        res_expired = client.get("/api/users/me", headers=auth_headers(expired))
        res_garbage = client.get("/api/users/me", headers=auth_headers("garbage"))
        assert res_expired.status_code == res_garbage.status_code == 401
        assert res_expired.json() == res_garbage.json()

    def test_token_signed_with_other_secret_rejected(self, client, register):
        user_id = register()["user"]["id"]
        forged = TokenService(make_settings(jwt_secret="attacker-secret-0123456789abcdef01234")).issue(user_id)
        res = client.get("/api/users/me", headers=auth_headers(forged))
        assert res.status_code == 401

    def test_rejection_happens_before_body_validation(self, client):
        res = client.put("/api/users/me", json={"name": "x"})
        assert res.status_code == 401

    def test_protects_task_routes(self, client):
        assert client.get("/api/tasks").status_code == 401
        assert client.post("/api/tasks", json={"title": "Buy milk"}).status_code == 401
        assert client.delete("/api/tasks/" + "0" * 32).status_code == 401


class TestProfile:
    def test_get_me(self, client, register):
        body = register(name="Alice", email="alice@x.com")
        res = client.get("/api/users/me", headers=auth_headers(body["token"]))
        assert res.status_code == 200
        assert res.json() == {"user": body["user"]}

    def test_token_for_deleted_account_is_not_found(self, client):
        ghost = TokenService(make_settings()).issue("f" * 32)
        res = client.get("/api/users/me", headers=auth_headers(ghost))
        assert res.status_code == 404
        assert res.json() == {"error": "NotFound", "message": "User not found"}

        res_put = client.put(
            "/api/users/me", json={"name": "Ghost", "email": "ghost@x.com"}, headers=auth_headers(ghost)
        )
        assert res_put.status_code == 404

    def test_update_me(self, client, register):
        body = register(name="Alice", email="alice@x.com")
        headers = auth_headers(body["token"])
        res = client.put("/api/users/me", json={"name": "Alice Smith", "email": "Alice.Smith@x.com"}, headers=headers)
        assert res.status_code == 200
        user = res.json()["user"]
        assert_user_shape(user)
        assert user["id"] == body["user"]["id"]
        assert user["name"] == "Alice Smith"
        assert user["email"] == "alice.smith@x.com"

        # New email logs in; old one no longer does
        assert client.post("/api/auth/login", json={"email": "alice.smith@x.com", "password": "secret1"}).status_code == 200
        assert client.post("/api/auth/login", json={"email": "alice@x.com", "password": "secret1"}).status_code == 401

    def test_update_keeping_own_email(self, client, register):
        body = register(name="Alice", email="alice@x.com")
        res = client.put(
            "/api/users/me", json={"name": "Alicia", "email": "ALICE@x.com"}, headers=auth_headers(body["token"])
        )
        assert res.status_code == 200
        assert res.json()["user"]["name"] == "Alicia"

    def test_update_to_someone_elses_email(self, client, register):
        register(name="Bob", email="bob@x.com")
        alice = register(name="Alice", email="alice@x.com")
        res = client.put(
            "/api/users/me", json={"name": "Alice", "email": "Bob@x.com"}, headers=auth_headers(alice["token"])
        )
        assert res.status_code == 400
        assert res.json()["error"] == "DuplicateEmail"

    def test_update_requires_both_fields(self, client, register):
        body = register()
        res = client.put("/api/users/me", json={"name": "Alice"}, headers=auth_headers(body["token"]))
        assert res.status_code == 400
        assert res.json()["error"] == "ValidationError"


class TestErrorEnvelope:
    def test_unknown_route_is_json_404(self, client):
        res = client.get("/api/nope")
        assert res.status_code == 404
        assert res.json() == {"error": "NotFound", "message": "Not found"}

    def test_unexpected_failure_is_generic_500(self):
        app = create_app(make_settings())

        @app.get("/boom")
        def boom():
            raise RuntimeError("database password is hunter2")

        res = TestClient(app, raise_server_exceptions=False).get("/boom")
        assert res.status_code == 500
        assert res.json() == {"error": "InternalError", "message": "Internal server error"}
        assert "hunter2" not in res.text

    def test_failed_request_is_still_logged(self, caplog):
        app = create_app(make_settings())

        @app.get("/boom")
        def boom():
            raise RuntimeError("kaboom")

        with caplog.at_level(logging.INFO, logger="taskmanager.api"):
            TestClient(app, raise_server_exceptions=False).get("/boom")

        lines = [r.getMessage() for r in caplog.records if r.name == "taskmanager.api"]
        assert any(line.startswith("GET /boom 500 ") for line in lines)
