"""Pydantic schemas for departments, hierarchy edges and managers."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field, field_validator

from intranet.core.sanitize import clean_color, clean_multiline, clean_single_line
from intranet.models.enums import HierarchyType


class DepartmentCreate(BaseModel):
    name: str = Field(min_length=2, max_length=120)
    description: str | None = Field(default=None, max_length=4000)
    head_id: str | None = None
    color: str = "#3b82f6"

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        return clean_single_line(value)

    @field_validator("description", mode="before")
    @classmethod
    def normalize_description(cls, value: str | None) -> str | None:
        return clean_multiline(value) or None

    @field_validator("color", mode="before")
    @classmethod
    def normalize_color(cls, value: str | None) -> str:
        return clean_color(value)


class DepartmentUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=2, max_length=120)
    description: str | None = None
    head_id: str | None = None
    color: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, value: str | None) -> str | None:
        return clean_single_line(value) if value is not None else None

    @field_validator("color", mode="before")
    @classmethod
    def normalize_color(cls, value: str | None) -> str | None:
        return clean_color(value) if value else None


class DepartmentOut(BaseModel):
    id: str
    name: str
    description: str | None = None
    head_id: str | None = None
    color: str
    created_at: dt.datetime | None = None

    class Config:
        from_attributes = True


class HierarchyEdgeCreate(BaseModel):
    parent_department_id: str | None = None
    child_department_id: str
    hierarchy_type: HierarchyType = HierarchyType.subdivision


class HierarchyEdgeOut(BaseModel):
    id: str
    parent_department_id: str | None = None
    child_department_id: str
    hierarchy_type: HierarchyType

    class Config:
        from_attributes = True


class ManagerCreate(BaseModel):
    user_id: str
    role: str = Field(default="manager", max_length=32)
    is_primary: bool = False


class ManagerOut(BaseModel):
    id: str
    department_id: str
    user_id: str
    role: str
    is_primary: bool

    class Config:
        from_attributes = True
