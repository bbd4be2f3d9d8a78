from __future__ import annotations

from typing import Optional

from fastapi import Request

from .errors import InvalidTokenError, Unauthorized
from .security import TokenService

BEARER_SCHEME = "Bearer"


def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
    """
    Return the token from an ``Authorization: Bearer <token>`` header value,
    or None when the header is absent or not exactly of that shape.
    """
    if not authorization:
        return None
    parts = authorization.split(" ")
    if len(parts) != 2:
        return None
    scheme, token = parts
    if scheme != BEARER_SCHEME or not token:
        return None
    return token


def authenticate(authorization: Optional[str], tokens: TokenService) -> str:
    """
    Resolve the subject for an Authorization header value.

    Raises:
        Unauthorized: when the header is missing or malformed, or the token
            fails verification. The two cases are indistinguishable.
    """
    token = extract_bearer_token(authorization)
    if token is None:
        raise Unauthorized()
    try:
        return tokens.verify(token)
    except InvalidTokenError:
        raise Unauthorized() from None


# PUBLIC_INTERFACE
def require_subject(request: Request) -> str:
    """
    FastAPI dependency guarding protected routes.

    Verifies the bearer token from the Authorization header and stores the
    resolved subject on ``request.state.subject``. Any failure raises
    Unauthorized (401) before the route handler runs.

    Usage:
        @router.get("/users/me")
        def me(subject: str = Depends(require_subject)): ...
    """
    subject = authenticate(request.headers.get("Authorization"), request.app.state.token_service)
    request.state.subject = subject
    return subject
