"""Schemas for global and department settings."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field, field_validator

MAX_SETTING_KEY_LEN = 120
MAX_SETTING_VALUE_LEN = 10_000


def _check_values(values: dict[str, str]) -> dict[str, str]:
    for key, value in values.items():
        if not key or len(key) > MAX_SETTING_KEY_LEN:
            raise ValueError("invalid_setting_key")
        if not isinstance(value, str) or len(value) > MAX_SETTING_VALUE_LEN:
            raise ValueError("setting_value_must_be_string")
    return values


class SettingValue(BaseModel):
    value: str = Field(max_length=MAX_SETTING_VALUE_LEN)


class SettingOut(BaseModel):
    key: str
    value: str


class SettingsBulkUpdate(BaseModel):
    values: dict[str, str]

    @field_validator("values")
    @classmethod
    def validate_values(cls, value: dict[str, str]) -> dict[str, str]:
        return _check_values(value)


class SettingsAuditOut(BaseModel):
    id: str
    scope: str
    scope_id: str | None = None
    key: str
    old_value: str | None = None
    new_value: str | None = None
    changed_by: str | None = None
    created_at: dt.datetime

    class Config:
        from_attributes = True
