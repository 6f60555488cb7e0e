"""Shared enum values used by the database models and schemas."""

from __future__ import annotations

import enum


class UserRole(str, enum.Enum):
    admin = "admin"
    agent = "agent"
    user = "user"
    viewer = "viewer"


class TicketPriority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


class TicketSource(str, enum.Enum):
    web = "web"
    email = "email"
    api = "api"
    quick = "quick"


class FieldType(str, enum.Enum):
    text = "text"
    textarea = "textarea"
    number = "number"
    email = "email"
    phone = "phone"
    date = "date"
    select = "select"
    checkbox = "checkbox"


class FieldWidth(str, enum.Enum):
    full = "full"
    half = "half"
    third = "third"


class EscalationTrigger(str, enum.Enum):
    time_based = "time_based"
    sla_breach = "sla_breach"
    first_response_breach = "first_response_breach"


class ConditionOperator(str, enum.Enum):
    equals = "equals"
    not_equals = "not_equals"
    contains = "contains"
    not_contains = "not_contains"
    greater_than = "greater_than"
    less_than = "less_than"
    in_ = "in"
    is_empty = "is_empty"


class LogicOperator(str, enum.Enum):
    and_ = "and"
    or_ = "or"


class PageType(str, enum.Enum):
    page = "page"
    folder = "folder"
    file = "file"


class PageStatus(str, enum.Enum):
    draft = "draft"
    in_review = "in_review"
    published = "published"


class HierarchyType(str, enum.Enum):
    subdivision = "subdivision"
    team = "team"


class SettingScope(str, enum.Enum):
    global_ = "global"
    department = "department"
    user = "user"
