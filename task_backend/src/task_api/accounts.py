"""
Account flows: registration, login and the caller's own profile.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from .errors import DuplicateEmail, InvalidCredentials, NotFound
from .models import UserEntity
from .repositories import UserRepository
from .schemas import LoginRequest, ProfileUpdate, RegisterRequest, UserOut
from .security import PasswordHasher, TokenService

logger = logging.getLogger("taskmanager.accounts")


@dataclass(frozen=True)
class AuthResult:
    token: str
    user: UserOut


def public_user(user: UserEntity) -> UserOut:
    """Strip a stored user down to the fields clients may see."""
    return UserOut(id=user["id"], name=user["name"], email=user["email"])


# PUBLIC_INTERFACE
class AccountService:
    """Registration, login and profile operations over the credential store."""

    def __init__(self, users: UserRepository, hasher: PasswordHasher, tokens: TokenService) -> None:
        self._users = users
        self._hasher = hasher
        self._tokens = tokens

    def register(self, payload: RegisterRequest) -> AuthResult:
        """
        Create an account and return a token for it.

        Raises:
            DuplicateEmail: if the (lower-cased) email is already registered.
        """
        if self._users.get_by_email(payload.email) is not None:
            raise DuplicateEmail()

        password_hash = self._hasher.hash(payload.password)
        user = self._users.create(name=payload.name, email=payload.email, password_hash=password_hash)
        logger.info("registered user %s", user["id"])
        return AuthResult(token=self._tokens.issue(user["id"]), user=public_user(user))

    def login(self, payload: LoginRequest) -> AuthResult:
        """
        Check credentials and return a fresh token.

        Raises:
            InvalidCredentials: for an unknown email or a wrong password alike.
        """
        user = self._users.get_by_email(payload.email)
        if user is None or not self._hasher.verify(payload.password, user["password_hash"]):
            logger.warning("failed login attempt")
            raise InvalidCredentials()
        return AuthResult(token=self._tokens.issue(user["id"]), user=public_user(user))

    def logout(self) -> None:
        """Tokens are stateless; the client discards its copy."""
        return None

    def get_profile(self, subject: str) -> UserOut:
        user = self._users.get(subject)
        if user is None:
            raise NotFound("User not found")
        return public_user(user)

    def update_profile(self, subject: str, payload: ProfileUpdate) -> UserOut:
        """
        Replace the caller's name and email.

        Raises:
            DuplicateEmail: if a different user already owns the email.
            NotFound: if the subject no longer exists.
        """
        holder = self._users.get_by_email(payload.email)
        if holder is not None and holder["id"] != subject:
            raise DuplicateEmail()

        user = self._users.update(subject, name=payload.name, email=payload.email)
        if user is None:
            raise NotFound("User not found")
        logger.info("updated profile of user %s", subject)
        return public_user(user)
