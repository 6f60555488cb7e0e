"""Helpdesk configuration: SLA states, policies, escalation, email intake and webhooks."""

from __future__ import annotations

import datetime as dt

from sqlalchemy import Boolean, DateTime, Enum, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from intranet.db.base import Base, new_id, utcnow
from intranet.models.enums import (
    ConditionOperator,
    EscalationTrigger,
    LogicOperator,
    TicketPriority,
)


def _enum(enum_cls, name: str) -> Enum:
    return Enum(enum_cls, name=name, values_callable=lambda x: [e.value for e in x])


class Helpdesk(Base):
    __tablename__ = "helpdesks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    department_id: Mapped[str] = mapped_column(
        ForeignKey("departments.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(160), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    public_access: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    sla_states: Mapped[list[SlaState]] = relationship(
        "SlaState",
        back_populates="helpdesk",
        cascade="all, delete-orphan",
        order_by="SlaState.order",
    )


class SlaState(Base):
    __tablename__ = "sla_states"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    helpdesk_id: Mapped[str] = mapped_column(ForeignKey("helpdesks.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(80), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    color: Mapped[str] = mapped_column(String(16), default="#3b82f6", nullable=False)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_final: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    target_hours: Mapped[float | None] = mapped_column(Float, nullable=True)

    helpdesk: Mapped[Helpdesk] = relationship("Helpdesk", back_populates="sla_states")


class SlaPolicy(Base):
    __tablename__ = "sla_policies"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    helpdesk_id: Mapped[str] = mapped_column(ForeignKey("helpdesks.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[TicketPriority] = mapped_column(_enum(TicketPriority, "ticket_priority"), default=TicketPriority.medium)
    first_response_hours: Mapped[float] = mapped_column(Float, nullable=False)
    resolution_hours: Mapped[float] = mapped_column(Float, nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class EscalationRule(Base):
    __tablename__ = "escalation_rules"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    helpdesk_id: Mapped[str] = mapped_column(ForeignKey("helpdesks.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    trigger_type: Mapped[EscalationTrigger] = mapped_column(
        _enum(EscalationTrigger, "escalation_trigger"), default=EscalationTrigger.time_based
    )
    trigger_hours: Mapped[float | None] = mapped_column(Float, nullable=True)
    priority: Mapped[TicketPriority | None] = mapped_column(_enum(TicketPriority, "ticket_priority"), nullable=True)
    ticket_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    from_state_id: Mapped[str | None] = mapped_column(ForeignKey("sla_states.id", ondelete="SET NULL"), nullable=True)
    target_department_id: Mapped[str | None] = mapped_column(
        ForeignKey("departments.id", ondelete="SET NULL"), nullable=True
    )
    target_user_id: Mapped[str | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    notify_managers: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    conditions: Mapped[list[EscalationCondition]] = relationship(
        "EscalationCondition",
        back_populates="rule",
        cascade="all, delete-orphan",
        order_by="EscalationCondition.order",
    )


class EscalationCondition(Base):
    __tablename__ = "escalation_conditions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    rule_id: Mapped[str] = mapped_column(ForeignKey("escalation_rules.id", ondelete="CASCADE"), index=True)
    field: Mapped[str] = mapped_column(String(80), nullable=False)
    operator: Mapped[ConditionOperator] = mapped_column(_enum(ConditionOperator, "condition_operator"), nullable=False)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)
    logic_operator: Mapped[LogicOperator] = mapped_column(
        _enum(LogicOperator, "logic_operator"), default=LogicOperator.and_
    )
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    rule: Mapped[EscalationRule] = relationship("EscalationRule", back_populates="conditions")


class InboundEmailConfig(Base):
    __tablename__ = "inbound_email_configs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    helpdesk_id: Mapped[str] = mapped_column(ForeignKey("helpdesks.id", ondelete="CASCADE"), unique=True)
    email_address: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    provider: Mapped[str] = mapped_column(String(32), default="custom", nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    auto_create_tickets: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    default_priority: Mapped[TicketPriority] = mapped_column(
        _enum(TicketPriority, "ticket_priority"), default=TicketPriority.medium
    )
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class HelpdeskWebhook(Base):
    __tablename__ = "helpdesk_webhooks"
    __table_args__ = (UniqueConstraint("helpdesk_id", "url", name="uq_helpdesk_webhooks_url"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    helpdesk_id: Mapped[str] = mapped_column(ForeignKey("helpdesks.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    url: Mapped[str] = mapped_column(String(1024), nullable=False)
    secret: Mapped[str | None] = mapped_column(String(255), nullable=True)
    events: Mapped[str] = mapped_column(String(255), default="ticket.created,ticket.updated", nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    retry_count: Mapped[int] = mapped_column(Integer, default=3, nullable=False)
    timeout_seconds: Mapped[int] = mapped_column(Integer, default=30, nullable=False)
    last_triggered_at: Mapped[dt.datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
