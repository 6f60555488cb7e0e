"""Pydantic schemas for links, announcements and the department feed."""

from __future__ import annotations

import datetime as dt
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from intranet.core.sanitize import clean_multiline, clean_optional, clean_single_line

Severity = Literal["info", "success", "warning", "critical"]


class ExternalLinkCreate(BaseModel):
    title: str = Field(min_length=1, max_length=160)
    url: str = Field(min_length=1, max_length=1024)
    description: str | None = Field(default=None, max_length=2000)
    category: str = Field(default="Resources", max_length=80)
    icon: str | None = Field(default=None, max_length=40)
    order: int = 0

    @field_validator("title", "category", mode="before")
    @classmethod
    def normalize_text(cls, value: str) -> str:
        return clean_single_line(value)

    @field_validator("url", mode="before")
    @classmethod
    def normalize_url(cls, value: str) -> str:
        cleaned = clean_single_line(value)
        if not cleaned.lower().startswith(("http://", "https://")):
            raise ValueError("invalid_url")
        return cleaned


class ExternalLinkUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=160)
    url: str | None = Field(default=None, min_length=1, max_length=1024)
    description: str | None = None
    category: str | None = Field(default=None, max_length=80)
    icon: str | None = None
    order: int | None = None

    @field_validator("url", mode="before")
    @classmethod
    def normalize_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = clean_single_line(value)
        if not cleaned.lower().startswith(("http://", "https://")):
            raise ValueError("invalid_url")
        return cleaned


class ExternalLinkOut(BaseModel):
    id: str
    title: str
    url: str
    description: str | None = None
    category: str
    icon: str | None = None
    order: int
    created_at: dt.datetime

    class Config:
        from_attributes = True


class ReorderRequest(BaseModel):
    ids: list[str] = Field(min_length=1)


class AnnouncementCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1, max_length=20_000)
    severity: Severity = "info"
    department_id: str | None = None
    is_active: bool = True
    starts_at: dt.datetime | None = None
    ends_at: dt.datetime | None = None

    @field_validator("title", mode="before")
    @classmethod
    def normalize_title(cls, value: str) -> str:
        return clean_single_line(value)

    @field_validator("content", mode="before")
    @classmethod
    def normalize_content(cls, value: str) -> str:
        return clean_multiline(value)

    @field_validator("department_id", mode="before")
    @classmethod
    def normalize_department(cls, value: str | None) -> str | None:
        return clean_optional(value)

    @model_validator(mode="after")
    def check_window(self) -> "AnnouncementCreate":
        if self.starts_at and self.ends_at and self.ends_at <= self.starts_at:
            raise ValueError("ends_at_before_starts_at")
        return self


class AnnouncementUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    content: str | None = Field(default=None, min_length=1, max_length=20_000)
    severity: Severity | None = None
    is_active: bool | None = None
    starts_at: dt.datetime | None = None
    ends_at: dt.datetime | None = None


class AnnouncementOut(BaseModel):
    id: str
    title: str
    content: str
    severity: str
    department_id: str | None = None
    author_id: str | None = None
    is_active: bool
    starts_at: dt.datetime | None = None
    ends_at: dt.datetime | None = None
    created_at: dt.datetime

    class Config:
        from_attributes = True


class PostCreate(BaseModel):
    content: str = Field(min_length=1, max_length=5000)
    department_id: str | None = None

    @field_validator("content", mode="before")
    @classmethod
    def normalize_content(cls, value: str) -> str:
        return clean_multiline(value)


class PostUpdate(BaseModel):
    content: str = Field(min_length=1, max_length=5000)

    @field_validator("content", mode="before")
    @classmethod
    def normalize_content(cls, value: str) -> str:
        return clean_multiline(value)


class PostOut(BaseModel):
    id: str
    author_id: str | None = None
    department_id: str | None = None
    content: str
    hashtags: list[str] = Field(default_factory=list)
    like_count: int = 0
    comment_count: int = 0
    created_at: dt.datetime


class PostCommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=2000)

    @field_validator("content", mode="before")
    @classmethod
    def normalize_content(cls, value: str) -> str:
        return clean_multiline(value)


class PostCommentOut(BaseModel):
    id: str
    post_id: str
    author_id: str | None = None
    content: str
    created_at: dt.datetime

    class Config:
        from_attributes = True


class LikeResponse(BaseModel):
    liked: bool
    like_count: int
