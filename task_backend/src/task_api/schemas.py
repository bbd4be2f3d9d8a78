from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from .models import TASK_STATUSES

NAME_MIN, NAME_MAX = 2, 80
EMAIL_MAX = 120
PASSWORD_MIN, PASSWORD_MAX_BYTES = 6, 72
TITLE_MIN, TITLE_MAX = 2, 120
DESCRIPTION_MAX = 2000


def _clean_name(v: str) -> str:
    s = v.strip()
    if not (NAME_MIN <= len(s) <= NAME_MAX):
        raise ValueError(f"name length must be between {NAME_MIN} and {NAME_MAX} characters")
    return s


def _clean_email(v: str) -> str:
    s = str(v).strip().lower()
    if len(s) > EMAIL_MAX:
        raise ValueError(f"email must be at most {EMAIL_MAX} characters")
    return s


def _clean_title(v: str) -> str:
    s = v.strip()
    if not (TITLE_MIN <= len(s) <= TITLE_MAX):
        raise ValueError(f"title length must be between {TITLE_MIN} and {TITLE_MAX} characters")
    return s


def _clean_description(v: str) -> str:
    s = v.strip()
    if len(s) > DESCRIPTION_MAX:
        raise ValueError(f"description must be at most {DESCRIPTION_MAX} characters")
    return s


# PUBLIC_INTERFACE
class RegisterRequest(BaseModel):
    """
    Body of POST /auth/register.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"name": "Alice", "email": "alice@example.com", "password": "secret1"}
        }
    )

    name: str = Field(..., description="Display name (2..80 characters)")
    email: EmailStr = Field(..., description="Email address, unique and case-insensitive")
    password: str = Field(..., description="Password (6..72 bytes)")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _clean_name(v)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _clean_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        """
        bcrypt only reads the first 72 bytes, so longer inputs are rejected
        instead of silently truncated.
        """
        if len(v) < PASSWORD_MIN:
            raise ValueError(f"password must be at least {PASSWORD_MIN} characters")
        if len(v.encode("utf-8")) > PASSWORD_MAX_BYTES:
            raise ValueError(f"password must be at most {PASSWORD_MAX_BYTES} bytes")
        return v


# PUBLIC_INTERFACE
class LoginRequest(BaseModel):
    """
    Body of POST /auth/login.
    """

    email: EmailStr = Field(..., description="Registered email address")
    password: str = Field(..., min_length=1, description="Account password")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _clean_email(v)


# PUBLIC_INTERFACE
class ProfileUpdate(BaseModel):
    """
    Body of PUT /users/me. Both fields are required.
    """

    model_config = ConfigDict(
        json_schema_extra={"example": {"name": "Alice Smith", "email": "alice@example.com"}}
    )

    name: str = Field(..., description="Display name (2..80 characters)")
    email: EmailStr = Field(..., description="Email address, unique and case-insensitive")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _clean_name(v)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return _clean_email(v)


# PUBLIC_INTERFACE
class UserOut(BaseModel):
    """
    Public view of a user. The password hash is never part of it.
    """

    id: str = Field(..., description="Unique identifier of the user")
    name: str = Field(..., description="Display name")
    email: str = Field(..., description="Email address")


class AuthResponse(BaseModel):
    token: str = Field(..., description="Signed bearer token, valid for 7 days")
    user: UserOut


class UserEnvelope(BaseModel):
    user: UserOut


# PUBLIC_INTERFACE
class TaskCreate(BaseModel):
    """
    Schema for creating a new task. Status membership is checked by the task
    service so that it surfaces as InvalidStatus.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy milk",
                "description": "Two litres, semi-skimmed",
                "status": "todo",
            }
        }
    )

    title: str = Field(..., description="Short title for the task (2..120 characters)")
    description: Optional[str] = Field(default=None, description="Optional description (up to 2000 characters)")
    status: Optional[str] = Field(default=None, description=f"One of: {', '.join(TASK_STATUSES)}")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return _clean_title(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _clean_description(v)


# PUBLIC_INTERFACE
class TaskUpdate(BaseModel):
    """
    Schema for updating an existing task.
    All fields are optional; only provided fields will be updated.
    """

    model_config = ConfigDict(json_schema_extra={"example": {"status": "done"}})

    title: Optional[str] = Field(default=None, description="Short title for the task (2..120 characters)")
    description: Optional[str] = Field(default=None, description="Description (up to 2000 characters)")
    status: Optional[str] = Field(default=None, description=f"One of: {', '.join(TASK_STATUSES)}")

    # Omitted fields keep their value; an explicit null is rejected.
    @field_validator("title", "description", "status", mode="before")
    @classmethod
    def reject_null(cls, v: object) -> object:
        if v is None:
            raise ValueError("must not be null")
        return v

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _clean_title(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _clean_description(v)


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """
    Schema returned by the API for a task.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "0f8fad5bd9cb469fa16570867728950e",
                "owner": "7c9e6679742540de944be07fc1f90ae7",
                "title": "Buy milk",
                "description": "",
                "status": "todo",
                "created_at": "2025-01-25T10:15:30.123456+00:00",
                "updated_at": "2025-01-25T10:15:30.123456+00:00",
            }
        }
    )

    id: str = Field(..., description="Unique identifier of the task")
    owner: str = Field(..., description="Identifier of the owning user")
    title: str = Field(..., description="Short title for the task")
    description: str = Field(..., description="Task description, '' when empty")
    status: str = Field(..., description=f"One of: {', '.join(TASK_STATUSES)}")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


class TaskEnvelope(BaseModel):
    task: TaskOut


class TaskListEnvelope(BaseModel):
    tasks: List[TaskOut]


class OkResponse(BaseModel):
    ok: bool = True


class HealthResponse(BaseModel):
    ok: bool = True
    backend: str
