"""Pydantic schemas for tickets, comments, activity and SLA info."""

from __future__ import annotations

import datetime as dt
from typing import Any

from pydantic import BaseModel, Field, field_validator

from intranet.core.sanitize import clean_multiline, clean_optional, clean_single_line
from intranet.models.enums import TicketPriority, TicketSource

MAX_TITLE_LEN = 255
MAX_DESCRIPTION_LEN = 20_000
MAX_COMMENT_LEN = 10_000


class TicketCreate(BaseModel):
    helpdesk_id: str
    title: str = Field(min_length=1, max_length=MAX_TITLE_LEN)
    description: str | None = Field(default=None, max_length=MAX_DESCRIPTION_LEN)
    priority: TicketPriority = TicketPriority.medium
    state_id: str | None = None
    department_id: str | None = None
    sub_department_id: str | None = None
    assigned_to: str | None = None
    form_category_id: str | None = None
    ticket_type: str = Field(default="request", max_length=32)
    source: TicketSource = TicketSource.web
    custom_fields: dict[str, Any] = Field(default_factory=dict)
    ai_routing_confidence: float | None = Field(default=None, ge=0, le=1)
    ai_suggested_assignee_id: str | None = None

    @field_validator("title", mode="before")
    @classmethod
    def normalize_title(cls, value: str) -> str:
        return clean_single_line(value)

    @field_validator("description", mode="before")
    @classmethod
    def normalize_description(cls, value: str | None) -> str | None:
        return clean_multiline(value) or None

    @field_validator("state_id", "department_id", "sub_department_id", "assigned_to", "form_category_id", mode="before")
    @classmethod
    def normalize_ids(cls, value: str | None) -> str | None:
        return clean_optional(value)


class TicketUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=MAX_TITLE_LEN)
    description: str | None = Field(default=None, max_length=MAX_DESCRIPTION_LEN)
    priority: TicketPriority | None = None
    state_id: str | None = None
    department_id: str | None = None
    sub_department_id: str | None = None
    assigned_to: str | None = None
    form_category_id: str | None = None
    ticket_type: str | None = Field(default=None, max_length=32)
    custom_fields: dict[str, Any] | None = None
    version: int | None = Field(default=None, ge=1)

    @field_validator("title", mode="before")
    @classmethod
    def normalize_title(cls, value: str | None) -> str | None:
        return clean_single_line(value) if value is not None else None

    @field_validator("description", mode="before")
    @classmethod
    def normalize_description(cls, value: str | None) -> str | None:
        return clean_multiline(value) if value is not None else None


class TicketOut(BaseModel):
    id: str
    helpdesk_id: str
    title: str
    description: str | None = None
    priority: TicketPriority
    state_id: str | None = None
    assigned_to: str | None = None
    created_by: str | None = None
    department_id: str | None = None
    sub_department_id: str | None = None
    form_category_id: str | None = None
    ticket_type: str
    source: str
    custom_fields: dict[str, Any] = Field(default_factory=dict)
    ai_routing_confidence: float | None = None
    ai_suggested_assignee_id: str | None = None
    first_response_due_at: dt.datetime | None = None
    resolution_due_at: dt.datetime | None = None
    first_responded_at: dt.datetime | None = None
    resolved_at: dt.datetime | None = None
    escalation_level: int = 0
    version: int
    created_at: dt.datetime
    updated_at: dt.datetime | None = None

    class Config:
        from_attributes = True


class TicketCommentCreate(BaseModel):
    content: str = Field(min_length=1, max_length=MAX_COMMENT_LEN)
    is_internal: bool = False

    @field_validator("content", mode="before")
    @classmethod
    def normalize_content(cls, value: str) -> str:
        return clean_multiline(value)


class TicketCommentOut(BaseModel):
    id: str
    ticket_id: str
    user_id: str | None = None
    content: str
    is_internal: bool
    source: str
    created_at: dt.datetime

    class Config:
        from_attributes = True


class TicketActivityOut(BaseModel):
    id: str
    ticket_id: str
    action: str
    actor_id: str | None = None
    details: dict[str, Any] | None = None
    created_at: dt.datetime

    class Config:
        from_attributes = True


class TicketSlaOut(BaseModel):
    ticket_id: str
    status: str
    first_response_due_at: dt.datetime | None = None
    resolution_due_at: dt.datetime | None = None
    first_responded_at: dt.datetime | None = None
    resolved_at: dt.datetime | None = None
    remaining_minutes: int | None = None
    escalation_level: int = 0


class RelatedDocumentOut(BaseModel):
    id: str
    title: str
    content: str = ""
    book_id: str | None = None
    status: str | None = None
    similarity: float
