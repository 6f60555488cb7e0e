"""Pydantic schemas for user payloads and responses."""

from __future__ import annotations

import datetime as dt
import re
import unicodedata

from pydantic import BaseModel, EmailStr, Field, field_validator

from intranet.core.sanitize import clean_email, clean_optional, clean_single_line
from intranet.models.enums import UserRole

MAX_NAME_LEN = 255
MAX_USERNAME_LEN = 80
MIN_PASSWORD_LEN = 8
_USERNAME_RE = re.compile(r"^[a-zA-Z0-9._-]+$")


def _check_password(value: str) -> str:
    if any(unicodedata.category(ch) == "Cc" for ch in value):
        raise ValueError("password_contains_control_chars")
    if not value.strip():
        raise ValueError("password_required")
    return value


def _check_username(value: str) -> str:
    cleaned = clean_single_line(value)
    if not _USERNAME_RE.match(cleaned):
        raise ValueError("invalid_username")
    return cleaned


class UserCreate(BaseModel):
    username: str = Field(min_length=2, max_length=MAX_USERNAME_LEN)
    email: EmailStr
    name: str = Field(min_length=1, max_length=MAX_NAME_LEN)
    password: str = Field(min_length=MIN_PASSWORD_LEN, max_length=128)
    department_id: str | None = None
    role: UserRole = UserRole.user

    @field_validator("username", mode="before")
    @classmethod
    def normalize_username(cls, value: str) -> str:
        return _check_username(value)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return clean_email(value)

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        return clean_single_line(value)

    @field_validator("department_id", mode="before")
    @classmethod
    def normalize_department(cls, value: str | None) -> str | None:
        return clean_optional(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _check_password(value)


class UserUpdate(BaseModel):
    username: str | None = Field(default=None, min_length=2, max_length=MAX_USERNAME_LEN)
    email: EmailStr | None = None
    name: str | None = Field(default=None, min_length=1, max_length=MAX_NAME_LEN)
    department_id: str | None = None
    role: UserRole | None = None
    is_active: bool | None = None

    @field_validator("username", mode="before")
    @classmethod
    def normalize_username(cls, value: str | None) -> str | None:
        return _check_username(value) if value is not None else None

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: str | None) -> str | None:
        return clean_email(value) if value is not None else None

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, value: str | None) -> str | None:
        return clean_single_line(value) if value is not None else None


class UserInvite(BaseModel):
    email: EmailStr
    name: str = Field(min_length=1, max_length=MAX_NAME_LEN)
    department_id: str | None = None
    role: UserRole = UserRole.user

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return clean_email(value)

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        return clean_single_line(value)


class PasswordReset(BaseModel):
    password: str = Field(min_length=MIN_PASSWORD_LEN, max_length=128)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        return _check_password(value)


class UserOut(BaseModel):
    id: str
    username: str
    email: EmailStr
    name: str
    role: UserRole
    department_id: str | None = None
    is_active: bool
    created_at: dt.datetime

    class Config:
        from_attributes = True


class UserBrief(BaseModel):
    id: str
    name: str
    department_id: str | None = None

    class Config:
        from_attributes = True
