"""Department, hierarchy edge and manager models."""

from __future__ import annotations

import datetime as dt

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from intranet.db.base import Base, new_id, utcnow
from intranet.models.enums import HierarchyType


class Department(Base):
    __tablename__ = "departments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    head_id: Mapped[str | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL", use_alter=True), nullable=True)
    color: Mapped[str] = mapped_column(String(16), default="#3b82f6", nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class DepartmentHierarchy(Base):
    __tablename__ = "department_hierarchy"
    __table_args__ = (
        UniqueConstraint("parent_department_id", "child_department_id", name="uq_department_hierarchy_edge"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    # A null parent still marks the child as non-root.
    parent_department_id: Mapped[str | None] = mapped_column(
        ForeignKey("departments.id", ondelete="CASCADE"), nullable=True, index=True
    )
    child_department_id: Mapped[str] = mapped_column(
        ForeignKey("departments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    hierarchy_type: Mapped[HierarchyType] = mapped_column(
        Enum(HierarchyType, name="hierarchy_type", values_callable=lambda x: [e.value for e in x]),
        default=HierarchyType.subdivision,
    )
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class DepartmentManager(Base):
    __tablename__ = "department_managers"
    __table_args__ = (UniqueConstraint("department_id", "user_id", name="uq_department_managers_member"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    department_id: Mapped[str] = mapped_column(ForeignKey("departments.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), index=True)
    role: Mapped[str] = mapped_column(String(32), default="manager", nullable=False)
    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
