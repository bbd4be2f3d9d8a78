"""
Error taxonomy for the task manager API.

AppError subclasses carry the HTTP status and a short client-facing message;
the exception handlers in main.py render them as
``{"error": <code>, "message": <message>}``. InvalidTokenError and
ConfigurationError are not HTTP errors: the auth gateway converts the former
into Unauthorized, and the latter aborts startup.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Optional


class ConfigurationError(RuntimeError):
    """Required process configuration is missing or unusable."""


class InvalidTokenError(Exception):
    """A bearer token could not be verified (malformed, bad signature or expired)."""

    def __init__(self) -> None:
        super().__init__("Invalid token")


# PUBLIC_INTERFACE
class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500
    code: str = "InternalError"
    message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message}


class ValidationError(AppError):
    status_code = 400
    code = "ValidationError"
    message = "Invalid input"

    def __init__(self, message: Optional[str] = None, details: Optional[List[Dict[str, Any]]] = None) -> None:
        super().__init__(message)
        self.details = details or []

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        if self.details:
            body["detail"] = self.details
        return body


class InvalidStatus(ValidationError):
    code = "InvalidStatus"
    message = "Invalid status"


class DuplicateEmail(AppError):
    status_code = 400
    code = "DuplicateEmail"
    message = "Email already in use"


class Unauthorized(AppError):
    status_code = 401
    code = "Unauthorized"
    message = "Unauthorized"


class InvalidCredentials(AppError):
    status_code = 401
    code = "InvalidCredentials"
    message = "Invalid credentials"


class NotFound(AppError):
    status_code = 404
    code = "NotFound"
    message = "Not found"


def validation_details(errors: Iterable[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """
    Reduce pydantic error dicts to JSON-safe ``{"loc", "msg", "type"}`` items.
    The raw ``ctx``/``input`` entries may hold exception objects or secrets.
    """
    return [
        {"loc": [str(p) for p in err.get("loc", ())], "msg": str(err.get("msg", "")), "type": str(err.get("type", ""))}
        for err in errors
    ]
