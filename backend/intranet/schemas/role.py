"""Pydantic schemas for custom roles, permissions and assignments."""

from __future__ import annotations

import datetime as dt
from typing import Any

from pydantic import BaseModel, Field, field_validator

from intranet.core.sanitize import clean_list, clean_multiline, clean_single_line


class RoleCreate(BaseModel):
    name: str = Field(min_length=2, max_length=80)
    description: str | None = Field(default=None, max_length=2000)
    permissions: list[str] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        return clean_single_line(value)

    @field_validator("description", mode="before")
    @classmethod
    def normalize_description(cls, value: str | None) -> str | None:
        return clean_multiline(value) or None

    @field_validator("permissions", mode="before")
    @classmethod
    def normalize_permissions(cls, value: list[str] | None) -> list[str]:
        return clean_list(value, item_max_length=80)


class RoleUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=80)
    description: str | None = Field(default=None, max_length=2000)

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, value: str | None) -> str | None:
        return clean_single_line(value) if value is not None else None


class RolePermissionsUpdate(BaseModel):
    permissions: list[str]

    @field_validator("permissions", mode="before")
    @classmethod
    def normalize_permissions(cls, value: list[str]) -> list[str]:
        return clean_list(value, item_max_length=80)


class RoleOut(BaseModel):
    id: str
    name: str
    description: str | None = None
    is_system: bool
    permissions: list[str] = Field(default_factory=list)
    created_at: dt.datetime

    @field_validator("permissions", mode="before")
    @classmethod
    def flatten_permissions(cls, value: Any) -> list[str]:
        return sorted(getattr(item, "permission", item) for item in value or [])

    class Config:
        from_attributes = True


class RoleAssignmentCreate(BaseModel):
    role_id: str


class RoleAssignmentOut(BaseModel):
    id: str
    user_id: str
    role_id: str
    assigned_by: str | None = None
    created_at: dt.datetime

    class Config:
        from_attributes = True


class PermissionOut(BaseModel):
    key: str
    description: str


class AuditLogOut(BaseModel):
    id: str
    actor_id: str | None = None
    action: str
    entity_type: str
    entity_id: str | None = None
    details: dict[str, Any] | None = None
    created_at: dt.datetime

    class Config:
        from_attributes = True
