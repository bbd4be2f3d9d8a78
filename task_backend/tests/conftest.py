"""
Shared fixtures: an isolated app per test, built from explicit Settings with a
low bcrypt cost so hashing stays fast. API tests run against both storage
backends.
"""
from __future__ import annotations

from typing import Callable, Dict

import pytest
from fastapi.testclient import TestClient

from task_api.main import create_app
from task_api.settings import Settings

TEST_SECRET = "test-signing-secret-0123456789abcdef0123456789"


def make_settings(**overrides) -> Settings:
    values = {"jwt_secret": TEST_SECRET, "bcrypt_rounds": 4}
    values.update(overrides)
    return Settings(**values)


def auth_headers(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture(params=["memory", "sqlite"])
def client(request, tmp_path) -> TestClient:
    settings = make_settings(
        persistence_backend=request.param,
        sqlite_db_path=str(tmp_path / "tasks.db"),
    )
    return TestClient(create_app(settings))


@pytest.fixture
def register(client: TestClient) -> Callable[..., dict]:
    """Register a user through the API and return the response body."""

    def _register(name: str = "Alice", email: str = "alice@example.com", password: str = "secret1") -> dict:
        res = client.post("/api/auth/register", json={"name": name, "email": email, "password": password})
        assert res.status_code == 201, res.text
        return res.json()

    return _register
