"""Pydantic schemas for books, pages, comments, versions and moves."""

from __future__ import annotations

import datetime as dt
from typing import Any

from pydantic import BaseModel, Field, field_validator

from intranet.core.sanitize import clean_multiline, clean_optional, clean_single_line
from intranet.models.enums import PageStatus, PageType

MAX_TITLE_LEN = 255
MAX_CONTENT_LEN = 1_000_000


class BookCreate(BaseModel):
    title: str = Field(min_length=1, max_length=MAX_TITLE_LEN)
    description: str | None = Field(default=None, max_length=4000)
    parent_id: str | None = None

    @field_validator("title", mode="before")
    @classmethod
    def normalize_title(cls, value: str) -> str:
        return clean_single_line(value)

    @field_validator("description", mode="before")
    @classmethod
    def normalize_description(cls, value: str | None) -> str | None:
        return clean_multiline(value) or None


class BookUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=MAX_TITLE_LEN)
    description: str | None = None
    parent_id: str | None = None
    version: int | None = Field(default=None, ge=1)

    @field_validator("title", mode="before")
    @classmethod
    def normalize_title(cls, value: str | None) -> str | None:
        return clean_single_line(value) if value is not None else None


class BookOut(BaseModel):
    id: str
    title: str
    description: str | None = None
    author_id: str | None = None
    parent_id: str | None = None
    version: int
    created_at: dt.datetime
    updated_at: dt.datetime | None = None

    class Config:
        from_attributes = True


class PageCreate(BaseModel):
    title: str = Field(min_length=1, max_length=MAX_TITLE_LEN)
    content: str | None = Field(default=None, max_length=MAX_CONTENT_LEN)
    book_id: str | None = None
    parent_id: str | None = None
    order: int = 0
    type: PageType = PageType.page
    status: PageStatus = PageStatus.draft

    @field_validator("title", mode="before")
    @classmethod
    def normalize_title(cls, value: str) -> str:
        return clean_single_line(value)

    @field_validator("book_id", "parent_id", mode="before")
    @classmethod
    def normalize_ids(cls, value: str | None) -> str | None:
        return clean_optional(value)


class PageUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=MAX_TITLE_LEN)
    content: str | None = Field(default=None, max_length=MAX_CONTENT_LEN)
    order: int | None = None
    parent_id: str | None = None
    status: PageStatus | None = None
    version: int | None = Field(default=None, ge=1)

    @field_validator("title", mode="before")
    @classmethod
    def normalize_title(cls, value: str | None) -> str | None:
        return clean_single_line(value) if value is not None else None


class PageOut(BaseModel):
    id: str
    book_id: str | None = None
    parent_id: str | None = None
    title: str
    content: str | None = None
    order: int
    type: PageType
    status: PageStatus
    reviewer_id: str | None = None
    author_id: str | None = None
    version: int
    moved_at: dt.datetime | None = None
    created_at: dt.datetime
    updated_at: dt.datetime | None = None

    class Config:
        from_attributes = True


class PageTransition(BaseModel):
    status: PageStatus
    version: int | None = Field(default=None, ge=1)


class PageCommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=10_000)

    @field_validator("content", mode="before")
    @classmethod
    def normalize_content(cls, value: str) -> str:
        return clean_multiline(value)


class PageCommentOut(BaseModel):
    id: str
    page_id: str
    user_id: str | None = None
    content: str
    created_at: dt.datetime

    class Config:
        from_attributes = True


class MoveRequest(BaseModel):
    parent_id: str | None = None
    version: int | None = Field(default=None, ge=1)


class VersionCreate(BaseModel):
    change_description: str | None = Field(default=None, max_length=255)

    @field_validator("change_description", mode="before")
    @classmethod
    def normalize_description(cls, value: str | None) -> str | None:
        return clean_optional(value)


class PageVersionOut(BaseModel):
    id: str
    page_id: str
    version_number: int
    title: str
    content: str | None = None
    status: str
    author_id: str | None = None
    change_description: str | None = None
    is_archived: bool
    created_at: dt.datetime

    class Config:
        from_attributes = True


class BookVersionOut(BaseModel):
    id: str
    book_id: str
    version_number: int
    title: str
    description: str | None = None
    author_id: str | None = None
    change_description: str | None = None
    is_archived: bool
    created_at: dt.datetime

    class Config:
        from_attributes = True


class DocumentActivityOut(BaseModel):
    id: str
    target_type: str
    target_id: str
    action: str
    user_id: str | None = None
    details: dict[str, Any] | None = None
    created_at: dt.datetime

    class Config:
        from_attributes = True
