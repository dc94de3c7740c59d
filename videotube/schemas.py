import math
import re
from datetime import datetime
from typing import Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from videotube.utils.auth import BCRYPT_MAX_PASSWORD_BYTES

T = TypeVar("T")

USERNAME_PATTERN = re.compile(r"^[a-z0-9_.]+$")


class CamelModel(BaseModel):
    """Base for every wire model: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def _strip_email(value):
    return value.strip() if isinstance(value, str) else value


def _check_password(value: str) -> str:
    if len(value.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes")
    return value


# ===== Envelope =====


class ApiResponse(CamelModel, Generic[T]):
    status_code: int = Field(..., description="HTTP status code of the response")
    data: T | None = Field(default=None, description="Response payload")
    message: str = Field(default="Success", description="Human readable message")
    success: bool = Field(default=True, description="False for every error response")

    @classmethod
    def ok(cls, data=None, message: str = "Success", status_code: int = 200):
        return cls(
            status_code=status_code,
            data=data,
            message=message,
            success=status_code < 400,
        )


class Page(CamelModel, Generic[T]):
    docs: list[T]
    total_docs: int
    limit: int
    page: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool

    @classmethod
    def build(cls, docs: list, total: int, page: int, limit: int):
        total_pages = math.ceil(total / limit) if total else 0
        return cls(
            docs=docs,
            total_docs=total,
            limit=limit,
            page=page,
            total_pages=total_pages,
            has_next_page=page < total_pages,
            has_prev_page=page > 1,
        )


# ===== Users =====


class UserRegister(CamelModel):
    username: str = Field(
        ..., min_length=3, max_length=50, description="Username for the new account"
    )
    email: EmailStr = Field(..., description="Email for the new account")
    full_name: str = Field(..., min_length=1, max_length=100, description="Display name")
    password: str = Field(
        ..., min_length=6, description="Password for the new account"
    )

    @field_validator("username")
    @classmethod
    def validate_username(cls, value: str) -> str:
        normalized = value.strip().lower()
        if not USERNAME_PATTERN.match(normalized):
            raise ValueError(
                "Username may only contain letters, digits, underscores and dots"
            )
        return normalized

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, value):
        return _strip_email(value)

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str) -> str:
        return value.lower()

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Full name is required")
        return normalized

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _check_password(value)


class UserLogin(CamelModel):
    username: str | None = Field(None, description="Username for login")
    email: str | None = Field(None, description="Email for login")
    password: str = Field(..., min_length=1, description="Password for login")

    @model_validator(mode="after")
    def require_identifier(self) -> "UserLogin":
        if not (self.username or "").strip() and not (self.email or "").strip():
            raise ValueError("Username or email is required")
        return self


class RefreshTokenRequest(CamelModel):
    refresh_token: str | None = Field(None, description="Refresh token when not sent as a cookie")


class ChangePasswordRequest(CamelModel):
    old_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=6)

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, value: str) -> str:
        return _check_password(value)


class UpdateAccountRequest(CamelModel):
    full_name: str | None = Field(None, min_length=1, max_length=100)
    email: EmailStr | None = None

    @field_validator("email", mode="before")
    @classmethod
    def strip_email(cls, value):
        return _strip_email(value)

    @field_validator("email")
    @classmethod
    def lower_email(cls, value: str | None) -> str | None:
        return value.lower() if value is not None else None

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if not normalized:
            raise ValueError("Full name must not be blank")
        return normalized

    @model_validator(mode="after")
    def require_change(self) -> "UpdateAccountRequest":
        if self.full_name is None and self.email is None:
            raise ValueError("At least one of fullName or email is required")
        return self


class UserResponse(CamelModel):
    id: UUID
    username: str
    email: str
    full_name: str
    avatar: str
    cover_image: str | None = None
    created_at: datetime
    updated_at: datetime


class LoginData(CamelModel):
    user: UserResponse
    access_token: str
    refresh_token: str


class TokenData(CamelModel):
    access_token: str
    refresh_token: str


# ===== Videos =====


class VideoOwner(CamelModel):
    id: UUID
    username: str
    full_name: str
    avatar: str


class VideoCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)

    @field_validator("title", "description")
    @classmethod
    def strip_text(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Must not be blank")
        return normalized


class VideoUpdate(CamelModel):
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, min_length=1)

    @field_validator("title", "description")
    @classmethod
    def strip_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        normalized = value.strip()
        if not normalized:
            raise ValueError("Must not be blank")
        return normalized


class VideoResponse(CamelModel):
    id: UUID
    owner_id: UUID
    owner: VideoOwner | None = None
    video_file: str
    thumbnail: str
    title: str
    description: str
    duration: float
    views: int
    is_published: bool
    created_at: datetime
    updated_at: datetime


class HealthStatus(CamelModel):
    status: str
    database: str
