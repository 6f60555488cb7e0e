"""Ticket intake form categories and custom field definitions."""

from __future__ import annotations

import datetime as dt
from typing import Any

from sqlalchemy import Boolean, DateTime, Enum, Float, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from intranet.db.base import Base, new_id, utcnow
from intranet.models.enums import FieldType, FieldWidth


class TicketFormCategory(Base):
    __tablename__ = "ticket_form_categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    helpdesk_id: Mapped[str] = mapped_column(ForeignKey("helpdesks.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon: Mapped[str] = mapped_column(String(40), default="layers", nullable=False)
    color: Mapped[str] = mapped_column(String(16), default="#3b82f6", nullable=False)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class TicketFormField(Base):
    __tablename__ = "ticket_form_fields"
    __table_args__ = (
        UniqueConstraint("helpdesk_id", "form_category_id", "name", name="uq_ticket_form_fields_scope_name"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    helpdesk_id: Mapped[str] = mapped_column(ForeignKey("helpdesks.id", ondelete="CASCADE"), index=True)
    form_category_id: Mapped[str | None] = mapped_column(
        ForeignKey("ticket_form_categories.id", ondelete="CASCADE"), nullable=True, index=True
    )
    name: Mapped[str] = mapped_column(String(80), nullable=False)
    label: Mapped[str] = mapped_column(String(160), nullable=False)
    field_type: Mapped[FieldType] = mapped_column(
        Enum(FieldType, name="field_type", values_callable=lambda x: [e.value for e in x]),
        default=FieldType.text,
    )
    placeholder: Mapped[str | None] = mapped_column(String(255), nullable=True)
    help_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    options: Mapped[list[str] | None] = mapped_column(JSONB, nullable=True)
    default_value: Mapped[Any | None] = mapped_column(JSONB, nullable=True)
    order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    show_on_create: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    show_on_edit: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    conditional_field: Mapped[str | None] = mapped_column(String(80), nullable=True)
    conditional_value: Mapped[str | None] = mapped_column(String(255), nullable=True)
    min_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    max_value: Mapped[float | None] = mapped_column(Float, nullable=True)
    validation_pattern: Mapped[str | None] = mapped_column(String(255), nullable=True)
    width: Mapped[FieldWidth] = mapped_column(
        Enum(FieldWidth, name="field_width", values_callable=lambda x: [e.value for e in x]),
        default=FieldWidth.full,
    )
    internal_only: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
