from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List

from .errors import ConfigurationError

BCRYPT_MIN_ROUNDS = 4
BCRYPT_MAX_ROUNDS = 16


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - JWT_SECRET: secret used to sign bearer tokens (required)
    - PERSISTENCE_BACKEND: 'memory' (default) or 'sqlite'
    - SQLITE_DB_PATH: path to sqlite db file. Default './data/tasks.db'
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - BCRYPT_ROUNDS: bcrypt cost factor, 4..16 (default: 12)
    - API_PREFIX: path prefix for all routes (default: '/api')
    - LOG_LEVEL: root logging level (default: INFO)
    """

    jwt_secret: str
    persistence_backend: str = "memory"
    sqlite_db_path: str = "./data/tasks.db"
    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])
    bcrypt_rounds: int = 12
    api_prefix: str = "/api"
    log_level: str = "INFO"


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


def _parse_rounds(value: str) -> int:
    try:
        rounds = int(value.strip())
    except ValueError as e:
        raise ConfigurationError(f"BCRYPT_ROUNDS must be an integer, got {value!r}") from e
    if not (BCRYPT_MIN_ROUNDS <= rounds <= BCRYPT_MAX_ROUNDS):
        raise ConfigurationError(
            f"BCRYPT_ROUNDS must be between {BCRYPT_MIN_ROUNDS} and {BCRYPT_MAX_ROUNDS}"
        )
    return rounds


def _normalize_prefix(value: str) -> str:
    prefix = value.strip().rstrip("/")
    if prefix and not prefix.startswith("/"):
        prefix = "/" + prefix
    return prefix


# PUBLIC_INTERFACE
def load_settings() -> Settings:
    """
    Return application settings loaded from environment variables.

    Called once at startup. Raises ConfigurationError when JWT_SECRET is
    missing or another value is unusable, which aborts application startup.
    """
    secret = (os.getenv("JWT_SECRET") or "").strip()
    if not secret:
        raise ConfigurationError("JWT_SECRET is missing")

    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "sqlite"}:
        # Fallback to memory if unsupported
        backend = "memory"

    return Settings(
        jwt_secret=secret,
        persistence_backend=backend,
        sqlite_db_path=_get_env("SQLITE_DB_PATH", "./data/tasks.db").strip(),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        bcrypt_rounds=_parse_rounds(_get_env("BCRYPT_ROUNDS", "12")),
        api_prefix=_normalize_prefix(_get_env("API_PREFIX", "/api")),
        log_level=_get_env("LOG_LEVEL", "INFO").strip().upper(),
    )
