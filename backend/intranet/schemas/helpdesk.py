"""Pydantic schemas for helpdesk configuration."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, EmailStr, Field, HttpUrl, field_validator

from intranet.core.sanitize import clean_color, clean_email, clean_list, clean_multiline, clean_optional, clean_single_line
from intranet.models.enums import ConditionOperator, EscalationTrigger, LogicOperator, TicketPriority

KNOWN_WEBHOOK_EVENTS = {"ticket.created", "ticket.updated"}


def normalize_webhook_events(value: list[str] | str | None) -> list[str]:
    events = clean_list(value, max_items=len(KNOWN_WEBHOOK_EVENTS))
    unknown = [event for event in events if event not in KNOWN_WEBHOOK_EVENTS]
    if unknown:
        raise ValueError(f"unknown_webhook_events: {','.join(unknown)}")
    return events


class HelpdeskCreate(BaseModel):
    department_id: str
    name: str = Field(min_length=2, max_length=160)
    description: str | None = Field(default=None, max_length=4000)
    enabled: bool = True
    public_access: bool = False

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        return clean_single_line(value)

    @field_validator("description", mode="before")
    @classmethod
    def normalize_description(cls, value: str | None) -> str | None:
        return clean_multiline(value) or None


class HelpdeskUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=160)
    description: str | None = None
    enabled: bool | None = None
    public_access: bool | None = None


class SlaStateOut(BaseModel):
    id: str
    helpdesk_id: str
    name: str
    description: str | None = None
    color: str
    order: int
    is_default: bool
    is_final: bool
    target_hours: float | None = None

    class Config:
        from_attributes = True


class HelpdeskOut(BaseModel):
    id: str
    department_id: str
    name: str
    description: str | None = None
    enabled: bool
    public_access: bool
    created_at: dt.datetime | None = None
    sla_states: list[SlaStateOut] = Field(default_factory=list)

    class Config:
        from_attributes = True


class SlaStateCreate(BaseModel):
    name: str = Field(min_length=1, max_length=80)
    description: str | None = None
    color: str = "#3b82f6"
    order: int = 0
    is_default: bool = False
    is_final: bool = False
    target_hours: float | None = Field(default=None, gt=0)

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        return clean_single_line(value)

    @field_validator("color", mode="before")
    @classmethod
    def normalize_color(cls, value: str | None) -> str:
        return clean_color(value)


class SlaStateUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=80)
    description: str | None = None
    color: str | None = None
    order: int | None = None
    is_default: bool | None = None
    is_final: bool | None = None
    target_hours: float | None = Field(default=None, gt=0)

    @field_validator("color", mode="before")
    @classmethod
    def normalize_color(cls, value: str | None) -> str | None:
        return clean_color(value) if value else None


class SlaStateReorder(BaseModel):
    ids: list[str] = Field(min_length=1)


class SlaPolicyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: str | None = None
    priority: TicketPriority = TicketPriority.medium
    first_response_hours: float = Field(gt=0)
    resolution_hours: float = Field(gt=0)
    enabled: bool = True


class SlaPolicyUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    priority: TicketPriority | None = None
    first_response_hours: float | None = Field(default=None, gt=0)
    resolution_hours: float | None = Field(default=None, gt=0)
    enabled: bool | None = None


class SlaPolicyOut(BaseModel):
    id: str
    helpdesk_id: str
    name: str
    description: str | None = None
    priority: TicketPriority
    first_response_hours: float
    resolution_hours: float
    enabled: bool

    class Config:
        from_attributes = True


class EscalationConditionCreate(BaseModel):
    field: str = Field(min_length=1, max_length=80)
    operator: ConditionOperator
    value: str | None = Field(default=None, max_length=2000)
    logic_operator: LogicOperator = LogicOperator.and_
    order: int | None = None

    @field_validator("field", mode="before")
    @classmethod
    def normalize_field(cls, value: str) -> str:
        return clean_single_line(value)


class EscalationConditionUpdate(BaseModel):
    field: str | None = None
    operator: ConditionOperator | None = None
    value: str | None = None
    logic_operator: LogicOperator | None = None
    order: int | None = None


class EscalationConditionOut(BaseModel):
    id: str
    rule_id: str
    field: str
    operator: ConditionOperator
    value: str | None = None
    logic_operator: LogicOperator
    order: int

    class Config:
        from_attributes = True


class EscalationRuleCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: str | None = None
    trigger_type: EscalationTrigger = EscalationTrigger.time_based
    trigger_hours: float | None = Field(default=None, ge=0)
    priority: TicketPriority | None = None
    ticket_type: str | None = None
    from_state_id: str | None = None
    target_department_id: str | None = None
    target_user_id: str | None = None
    notify_managers: bool = True
    enabled: bool = True
    order: int = 0
    conditions: list[EscalationConditionCreate] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        return clean_single_line(value)

    @field_validator("ticket_type", mode="before")
    @classmethod
    def normalize_ticket_type(cls, value: str | None) -> str | None:
        return clean_optional(value)


class EscalationRuleUpdate(BaseModel):
    name: str | None = None
    description: str | None = None
    trigger_type: EscalationTrigger | None = None
    trigger_hours: float | None = Field(default=None, ge=0)
    priority: TicketPriority | None = None
    ticket_type: str | None = None
    from_state_id: str | None = None
    target_department_id: str | None = None
    target_user_id: str | None = None
    notify_managers: bool | None = None
    enabled: bool | None = None
    order: int | None = None


class EscalationRuleOut(BaseModel):
    id: str
    helpdesk_id: str
    name: str
    description: str | None = None
    trigger_type: EscalationTrigger
    trigger_hours: float | None = None
    priority: TicketPriority | None = None
    ticket_type: str | None = None
    from_state_id: str | None = None
    target_department_id: str | None = None
    target_user_id: str | None = None
    notify_managers: bool
    enabled: bool
    order: int
    conditions: list[EscalationConditionOut] = Field(default_factory=list)

    class Config:
        from_attributes = True


class EscalationRunRequest(BaseModel):
    dry_run: bool = False
    batch_size: int = Field(default=200, ge=1, le=2000)


class InboundEmailConfigCreate(BaseModel):
    email_address: EmailStr
    provider: str = Field(default="custom", max_length=32)
    enabled: bool = False
    auto_create_tickets: bool = True
    default_priority: TicketPriority = TicketPriority.medium

    @field_validator("email_address", mode="before")
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return clean_email(value)


class InboundEmailConfigUpdate(BaseModel):
    email_address: EmailStr | None = None
    provider: str | None = None
    enabled: bool | None = None
    auto_create_tickets: bool | None = None
    default_priority: TicketPriority | None = None


class InboundEmailConfigOut(BaseModel):
    id: str
    helpdesk_id: str
    email_address: str
    provider: str
    enabled: bool
    auto_create_tickets: bool
    default_priority: TicketPriority

    class Config:
        from_attributes = True


class InboundEmail(BaseModel):
    from_address: EmailStr
    subject: str = Field(default="", max_length=255)
    body: str = Field(default="", max_length=100_000)
    message_id: str | None = Field(default=None, max_length=255)
    in_reply_to: str | None = Field(default=None, max_length=255)
    references: list[str] = Field(default_factory=list)

    @field_validator("from_address", mode="before")
    @classmethod
    def normalize_from(cls, value: str) -> str:
        return clean_email(value)

    @field_validator("subject", mode="before")
    @classmethod
    def normalize_subject(cls, value: str | None) -> str:
        return clean_single_line(value)

    @field_validator("references", mode="before")
    @classmethod
    def normalize_references(cls, value: list[str] | str | None) -> list[str]:
        if isinstance(value, str):
            value = value.split()
        return clean_list(value, max_items=100)


class WebhookCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    url: HttpUrl
    secret: str | None = Field(default=None, max_length=255)
    events: list[str] = Field(default_factory=lambda: sorted(KNOWN_WEBHOOK_EVENTS))
    enabled: bool = True
    retry_count: int = Field(default=3, ge=0, le=10)
    timeout_seconds: int = Field(default=30, ge=1, le=120)

    @field_validator("events", mode="before")
    @classmethod
    def normalize_events(cls, value: list[str] | str | None) -> list[str]:
        return normalize_webhook_events(value)


class WebhookUpdate(BaseModel):
    name: str | None = None
    url: HttpUrl | None = None
    secret: str | None = None
    events: list[str] | None = None
    enabled: bool | None = None
    retry_count: int | None = Field(default=None, ge=0, le=10)
    timeout_seconds: int | None = Field(default=None, ge=1, le=120)


class WebhookOut(BaseModel):
    id: str
    helpdesk_id: str
    name: str
    url: str
    events: str
    enabled: bool
    retry_count: int
    timeout_seconds: int
    last_triggered_at: dt.datetime | None = None
    has_secret: bool = False

    class Config:
        from_attributes = True
