"""Auth-related schemas (login, invite acceptance, token response)."""

from __future__ import annotations

import unicodedata

from pydantic import BaseModel, Field, field_validator

from intranet.core.sanitize import clean_single_line
from intranet.schemas.user import MIN_PASSWORD_LEN, UserOut, _check_username


class LoginRequest(BaseModel):
    login: str = Field(min_length=1, max_length=255, description="Username or email")
    password: str = Field(min_length=1, max_length=128)

    @field_validator("login", mode="before")
    @classmethod
    def normalize_login(cls, value: str) -> str:
        return clean_single_line(value)

    @field_validator("password")
    @classmethod
    def validate_password(cls, value: str) -> str:
        if any(unicodedata.category(ch) == "Cc" for ch in value):
            raise ValueError("password_contains_control_chars")
        return value


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class AcceptInviteRequest(BaseModel):
    token: str = Field(min_length=8, max_length=128)
    username: str = Field(min_length=2, max_length=80)
    password: str = Field(min_length=MIN_PASSWORD_LEN, max_length=128)

    @field_validator("token", mode="before")
    @classmethod
    def normalize_token(cls, value: str) -> str:
        return clean_single_line(value)

    @field_validator("username", mode="before")
    @classmethod
    def normalize_username(cls, value: str) -> str:
        return _check_username(value)


class MessageResponse(BaseModel):
    message: str
