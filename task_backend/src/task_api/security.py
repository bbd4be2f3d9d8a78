"""
Bearer tokens and password hashing.

Tokens are HS256 JWTs (PyJWT) carrying ``sub``, ``iat`` and ``exp``; they are
valid for seven days and cannot be revoked server-side. Passwords are hashed
with bcrypt using the cost factor from Settings.
"""
from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import bcrypt
import jwt

from .errors import ConfigurationError, InvalidTokenError
from .settings import Settings

logger = logging.getLogger("taskmanager.security")

ALGORITHM = "HS256"
TOKEN_TTL_SECONDS = 7 * 24 * 60 * 60

Clock = Callable[[], float]


# PUBLIC_INTERFACE
class TokenService:
    """Issue and verify signed, time-limited bearer tokens."""

    def __init__(self, settings: Settings, clock: Optional[Clock] = None) -> None:
        self._secret = settings.jwt_secret
        self._clock: Clock = clock or time.time

    def _require_secret(self) -> str:
        if not self._secret:
            raise ConfigurationError("JWT_SECRET is missing")
        return self._secret

    def issue(self, subject: str) -> str:
        """
        Return a signed token for subject that expires seven days from now.

        Raises:
            ConfigurationError: if no signing secret is configured.
        """
        secret = self._require_secret()
        issued_at = int(self._clock())
        payload = {
            "sub": subject,
            "iat": issued_at,
            "exp": issued_at + TOKEN_TTL_SECONDS,
        }
        return jwt.encode(payload, secret, algorithm=ALGORITHM)

    def verify(self, token: str) -> str:
        """
        Return the subject of a valid token.

        Raises:
            InvalidTokenError: for malformed tokens, bad signatures, expired
                tokens and tokens without a subject. The cause is logged at
                DEBUG level only and never distinguished to the caller.
        """
        secret = self._require_secret()
        try:
            payload = jwt.decode(
                token,
                secret,
                algorithms=[ALGORITHM],
                options={"require": ["sub", "iat", "exp"]},
            )
        except jwt.PyJWTError as e:
            logger.debug("token rejected: %s", e.__class__.__name__)
            raise InvalidTokenError() from None

        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            raise InvalidTokenError()
        return subject


# PUBLIC_INTERFACE
class PasswordHasher:
    """bcrypt hashing with a configurable cost factor."""

    def __init__(self, settings: Settings) -> None:
        self._rounds = settings.bcrypt_rounds

    def hash(self, plain: str) -> str:
        return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=self._rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if plain matches hashed. A malformed hash never matches."""
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            return False
