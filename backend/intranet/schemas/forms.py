"""Pydantic schemas for intake form categories and typed custom field definitions."""

from __future__ import annotations

import datetime as dt
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, field_validator, model_validator

from intranet.core.sanitize import clean_color, clean_field_name, clean_list, clean_multiline, clean_optional, clean_single_line
from intranet.models.enums import FieldType, FieldWidth

MAX_OPTIONS = 50


class FormCategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: str | None = Field(default=None, max_length=2000)
    icon: str = Field(default="layers", max_length=40)
    color: str = "#3b82f6"
    order: int = 0
    enabled: bool = True

    @field_validator("name", "icon", mode="before")
    @classmethod
    def normalize_text(cls, value: str) -> str:
        return clean_single_line(value)

    @field_validator("description", mode="before")
    @classmethod
    def normalize_description(cls, value: str | None) -> str | None:
        return clean_multiline(value) or None

    @field_validator("color", mode="before")
    @classmethod
    def normalize_color(cls, value: str | None) -> str:
        return clean_color(value)


class FormCategoryUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=120)
    description: str | None = None
    icon: str | None = None
    color: str | None = None
    order: int | None = None
    enabled: bool | None = None

    @field_validator("color", mode="before")
    @classmethod
    def normalize_color(cls, value: str | None) -> str | None:
        return clean_color(value) if value else None


class FormCategoryOut(BaseModel):
    id: str
    helpdesk_id: str
    name: str
    description: str | None = None
    icon: str
    color: str
    order: int
    enabled: bool

    class Config:
        from_attributes = True


class VisibilityRule(BaseModel):
    """Show a field only while another field's value equals ``equals``."""

    field: str = Field(min_length=1, max_length=80)
    equals: str = Field(max_length=255)

    def applies(self, values: dict[str, Any]) -> bool:
        return _value_as_text(values.get(self.field)) == self.equals


def _value_as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class _FieldSpecBase(BaseModel):
    name: str = Field(min_length=1, max_length=80)
    label: str = Field(min_length=1, max_length=160)
    form_category_id: str | None = None
    placeholder: str | None = Field(default=None, max_length=255)
    help_text: str | None = Field(default=None, max_length=2000)
    required: bool = False
    default_value: Any | None = None
    order: int = 0
    enabled: bool = True
    show_on_create: bool = True
    show_on_edit: bool = True
    width: FieldWidth = FieldWidth.full
    internal_only: bool = False
    visible_when: VisibilityRule | None = None

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, value: str) -> str:
        return clean_field_name(value)

    @field_validator("label", mode="before")
    @classmethod
    def normalize_label(cls, value: str) -> str:
        return clean_single_line(value)

    @field_validator("placeholder", "help_text", "form_category_id", mode="before")
    @classmethod
    def normalize_optional(cls, value: str | None) -> str | None:
        return clean_optional(value)


class TextFieldSpec(_FieldSpecBase):
    field_type: Literal["text", "textarea"]
    validation_pattern: str | None = Field(default=None, max_length=255)


class EmailFieldSpec(_FieldSpecBase):
    field_type: Literal["email"]


class PhoneFieldSpec(_FieldSpecBase):
    field_type: Literal["phone"]
    validation_pattern: str | None = Field(default=None, max_length=255)


class NumberFieldSpec(_FieldSpecBase):
    field_type: Literal["number"]
    min_value: float | None = None
    max_value: float | None = None

    @model_validator(mode="after")
    def check_bounds(self) -> "NumberFieldSpec":
        if self.min_value is not None and self.max_value is not None and self.min_value > self.max_value:
            raise ValueError("min_value_greater_than_max_value")
        return self


class DateFieldSpec(_FieldSpecBase):
    field_type: Literal["date"]


class SelectFieldSpec(_FieldSpecBase):
    field_type: Literal["select"]
    options: list[str] = Field(min_length=1, max_length=MAX_OPTIONS)

    @field_validator("options", mode="before")
    @classmethod
    def normalize_options(cls, value: list[str] | str | None) -> list[str]:
        return clean_list(value, max_items=MAX_OPTIONS, item_max_length=255)


class CheckboxFieldSpec(_FieldSpecBase):
    field_type: Literal["checkbox"]


FieldDefinition = Annotated[
    Union[
        TextFieldSpec,
        EmailFieldSpec,
        PhoneFieldSpec,
        NumberFieldSpec,
        DateFieldSpec,
        SelectFieldSpec,
        CheckboxFieldSpec,
    ],
    Field(discriminator="field_type"),
]

field_definition_adapter: TypeAdapter[FieldDefinition] = TypeAdapter(FieldDefinition)


class FormFieldUpdate(BaseModel):
    """Partial update; the merged result is re-validated as a FieldDefinition."""

    label: str | None = None
    field_type: FieldType | None = None
    form_category_id: str | None = None
    placeholder: str | None = None
    help_text: str | None = None
    required: bool | None = None
    default_value: Any | None = None
    options: list[str] | None = None
    order: int | None = None
    enabled: bool | None = None
    show_on_create: bool | None = None
    show_on_edit: bool | None = None
    width: FieldWidth | None = None
    internal_only: bool | None = None
    min_value: float | None = None
    max_value: float | None = None
    validation_pattern: str | None = None
    visible_when: VisibilityRule | None = None


class FormFieldOut(BaseModel):
    id: str
    helpdesk_id: str
    form_category_id: str | None = None
    name: str
    label: str
    field_type: FieldType
    placeholder: str | None = None
    help_text: str | None = None
    required: bool
    options: list[str] | None = None
    default_value: Any | None = None
    order: int
    enabled: bool
    show_on_create: bool
    show_on_edit: bool
    conditional_field: str | None = None
    conditional_value: str | None = None
    min_value: float | None = None
    max_value: float | None = None
    validation_pattern: str | None = None
    width: FieldWidth
    internal_only: bool
    created_at: dt.datetime | None = None

    class Config:
        from_attributes = True


class IntakePlanOut(BaseModel):
    helpdesk_id: str
    categories: list[FormCategoryOut]
    skip_category_step: bool
    auto_selected_category_id: str | None = None
    fields: list[FormFieldOut]
