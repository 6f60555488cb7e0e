"""Pydantic schemas for notifications."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field, field_validator, model_validator

from intranet.core.sanitize import clean_multiline, clean_single_line

ALLOWED_SEVERITIES = {"info", "success", "warning", "critical"}


class NotificationOut(BaseModel):
    id: str
    user_id: str
    title: str
    body: str | None = None
    severity: str
    link: str | None = None
    source: str | None = None
    target_id: str | None = None
    is_read: bool = False
    created_at: dt.datetime
    read_at: dt.datetime | None = None

    class Config:
        from_attributes = True


class NotificationBroadcast(BaseModel):
    """Announcement-style alert sent to listed users or to a whole department."""

    user_ids: list[str] = Field(default_factory=list, max_length=500)
    department_id: str | None = None
    title: str = Field(..., min_length=1, max_length=255)
    body: str | None = Field(default=None, max_length=5000)
    severity: str = Field(default="info", max_length=16)
    link: str | None = Field(default=None, max_length=512)
    target_id: str | None = Field(default=None, max_length=36)

    @field_validator("title", mode="before")
    @classmethod
    def normalize_title(cls, value: str) -> str:
        return clean_single_line(value)

    @field_validator("body", mode="before")
    @classmethod
    def normalize_body(cls, value: str | None) -> str | None:
        cleaned = clean_multiline(value)
        return cleaned or None

    @field_validator("link", "target_id", "department_id", mode="before")
    @classmethod
    def normalize_optional(cls, value: str | None) -> str | None:
        cleaned = clean_single_line(value)
        return cleaned or None

    @field_validator("severity", mode="before")
    @classmethod
    def normalize_severity(cls, value: str | None) -> str:
        normalized = clean_single_line(value or "info").lower()
        if normalized not in ALLOWED_SEVERITIES:
            return "info"
        return normalized

    @model_validator(mode="after")
    def check_audience(self) -> "NotificationBroadcast":
        if not self.user_ids and not self.department_id:
            raise ValueError("recipients_required")
        return self


class NotificationBroadcastOut(BaseModel):
    sent: int


class NotificationUnreadCountOut(BaseModel):
    count: int
    by_source: dict[str, int] = Field(default_factory=dict)
