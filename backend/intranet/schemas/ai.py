"""Schemas for AI routing requests and suggestions."""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from intranet.core.sanitize import clean_multiline, clean_single_line
from intranet.models.enums import TicketPriority
from intranet.schemas.ticket import TicketOut

MAX_DESCRIPTION_LEN = 8000


class AnalyzeTicketRequest(BaseModel):
    description: str = Field(min_length=1, max_length=MAX_DESCRIPTION_LEN)

    @field_validator("description", mode="before")
    @classmethod
    def normalize_description(cls, value: str) -> str:
        return clean_multiline(value)


class RelatedItem(BaseModel):
    id: str
    title: str
    similarity: float


class RoutingSuggestionOut(BaseModel):
    department_id: str | None = None
    sub_department_id: str | None = None
    assignee_id: str | None = None
    confidence: float = Field(ge=0.0, le=1.0)
    reason: str
    related_tickets: list[RelatedItem] = Field(default_factory=list)
    related_docs: list[RelatedItem] = Field(default_factory=list)
    confidence_label: str | None = None
    confidence_color: str | None = None


class QuickTicketRequest(BaseModel):
    """A quick ticket as drafted by the requester, with the suggestion they saw."""

    description: str = Field(min_length=1, max_length=MAX_DESCRIPTION_LEN)
    title: str = Field(default="", max_length=255)
    priority: TicketPriority = TicketPriority.medium
    department_id: str | None = None
    sub_department_id: str | None = None
    assignee_id: str | None = None
    form_category_id: str | None = None
    suggestion: RoutingSuggestionOut | None = None

    @field_validator("description", mode="before")
    @classmethod
    def normalize_description(cls, value: str) -> str:
        return clean_multiline(value)

    @field_validator("title", mode="before")
    @classmethod
    def normalize_title(cls, value: str | None) -> str:
        return clean_single_line(value)


class QuickTicketOut(TicketOut):
    """The created ticket plus whether the requester replaced the suggested assignee."""

    assignee_overridden: bool = False
