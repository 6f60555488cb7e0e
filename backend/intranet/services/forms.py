"""Form categories, typed custom fields, visibility and submission validation."""

from __future__ import annotations

import datetime as dt
import logging
import math
import re
from typing import Any, Iterable

from pydantic import ValidationError
from sqlalchemy.orm import Session

from intranet.core.exceptions import BadRequestError, InvalidFormSubmissionError, NotFoundError
from intranet.models.enums import FieldType
from intranet.models.forms import TicketFormCategory, TicketFormField
from intranet.schemas.forms import (
    FieldDefinition,
    FormCategoryCreate,
    FormCategoryUpdate,
    FormFieldUpdate,
    VisibilityRule,
    field_definition_adapter,
)

logger = logging.getLogger(__name__)

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PHONE_RE = re.compile(r"^\+?[0-9 ().-]{5,32}$")
_TRUE_TOKENS = {"true", "1", "yes", "on"}
_FALSE_TOKENS = {"false", "0", "no", "off", ""}


def _kind(field: Any) -> str:
    value = field.field_type
    return value.value if hasattr(value, "value") else str(value)


def visibility_rule_for(field: Any) -> VisibilityRule | None:
    """Works for stored rows (conditional_* columns) and FieldDefinition objects."""
    rule = getattr(field, "visible_when", None)
    if rule is not None:
        return rule
    source = getattr(field, "conditional_field", None)
    if not source:
        return None
    return VisibilityRule(field=source, equals=getattr(field, "conditional_value", None) or "")


def is_field_visible(field: Any, values: dict[str, Any]) -> bool:
    rule = visibility_rule_for(field)
    return rule is None or rule.applies(values)


def requester_fields(fields: Iterable[Any]) -> list[Any]:
    """Enabled, create-time fields a requester may see, in display order."""
    visible = [
        field
        for field in fields
        if getattr(field, "enabled", True)
        and getattr(field, "show_on_create", True)
        and not getattr(field, "internal_only", False)
    ]
    return sorted(visible, key=lambda field: (field.order or 0, field.name))


def active_fields(fields: Iterable[Any], category_id: str | None) -> list[Any]:
    """Fields of the selected category, or helpdesk-level fields when none is selected."""
    return requester_fields(field for field in fields if (field.form_category_id or None) == category_id)


def field_definition_from_row(row: TicketFormField) -> FieldDefinition:
    payload = {
        "name": row.name,
        "label": row.label,
        "field_type": _kind(row),
        "form_category_id": row.form_category_id,
        "placeholder": row.placeholder,
        "help_text": row.help_text,
        "required": bool(row.required),
        "default_value": row.default_value,
        "order": row.order or 0,
        "enabled": bool(row.enabled),
        "show_on_create": bool(row.show_on_create),
        "show_on_edit": bool(row.show_on_edit),
        "width": row.width,
        "internal_only": bool(row.internal_only),
        "options": row.options,
        "min_value": row.min_value,
        "max_value": row.max_value,
        "validation_pattern": row.validation_pattern,
    }
    if row.conditional_field:
        payload["visible_when"] = {"field": row.conditional_field, "equals": row.conditional_value or ""}
    return field_definition_adapter.validate_python(payload)


def _columns_from_definition(definition: FieldDefinition) -> dict[str, Any]:
    rule = definition.visible_when
    return {
        "name": definition.name,
        "label": definition.label,
        "field_type": FieldType(definition.field_type),
        "form_category_id": definition.form_category_id,
        "placeholder": definition.placeholder,
        "help_text": definition.help_text,
        "required": definition.required,
        "default_value": definition.default_value,
        "order": definition.order,
        "enabled": definition.enabled,
        "show_on_create": definition.show_on_create,
        "show_on_edit": definition.show_on_edit,
        "width": definition.width,
        "internal_only": definition.internal_only,
        "options": getattr(definition, "options", None),
        "min_value": getattr(definition, "min_value", None),
        "max_value": getattr(definition, "max_value", None),
        "validation_pattern": getattr(definition, "validation_pattern", None),
        "conditional_field": rule.field if rule else None,
        "conditional_value": rule.equals if rule else None,
    }


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip()) or value == []


def _coerce_value(field: Any, value: Any) -> Any:
    """Return the normalized value or raise ValueError with a short reason."""
    kind = _kind(field)
    if kind == "checkbox":
        if isinstance(value, bool):
            return value
        token = str(value).strip().lower()
        if token in _TRUE_TOKENS:
            return True
        if token in _FALSE_TOKENS:
            return False
        raise ValueError("invalid_boolean")
    if kind == "number":
        if isinstance(value, bool):
            raise ValueError("invalid_number")
        try:
            number = float(value)
        except (TypeError, ValueError) as exc:
            raise ValueError("invalid_number") from exc
        if not math.isfinite(number):
            raise ValueError("invalid_number")
        if field.min_value is not None and number < field.min_value:
            raise ValueError("below_minimum")
        if field.max_value is not None and number > field.max_value:
            raise ValueError("above_maximum")
        return int(number) if number.is_integer() else number
    if kind == "date":
        try:
            return dt.date.fromisoformat(str(value).strip()).isoformat()
        except ValueError as exc:
            raise ValueError("invalid_date") from exc

    text = str(value).strip()
    if kind == "select":
        if text not in (field.options or []):
            raise ValueError("invalid_option")
        return text
    if kind == "email" and not _EMAIL_RE.match(text):
        raise ValueError("invalid_email")
    if kind == "phone" and not _PHONE_RE.match(text):
        raise ValueError("invalid_phone")
    pattern = getattr(field, "validation_pattern", None)
    if pattern:
        try:
            matched = re.fullmatch(pattern, text) is not None
        except re.error:
            logger.warning("Ignoring invalid validation pattern on field %s: %r", field.name, pattern)
            matched = True
        if not matched:
            raise ValueError("pattern_mismatch")
    return text


def validate_custom_fields(fields: Iterable[Any], values: dict[str, Any] | None) -> dict[str, Any]:
    """Validate submitted values against field definitions.

    Unknown keys and values of hidden fields are dropped; hidden fields are
    never required. Raises InvalidFormSubmissionError with per-field reasons.
    """
    submitted = dict(values or {})
    ordered = sorted(fields, key=lambda field: (field.order or 0, field.name))
    for field in ordered:
        if _is_blank(submitted.get(field.name)) and getattr(field, "default_value", None) is not None:
            submitted[field.name] = field.default_value

    cleaned: dict[str, Any] = {}
    errors: dict[str, str] = {}
    for field in ordered:
        if not is_field_visible(field, submitted):
            continue
        raw = submitted.get(field.name)
        if _is_blank(raw):
            if field.required:
                errors[field.name] = "required"
            continue
        try:
            value = _coerce_value(field, raw)
        except ValueError as exc:
            errors[field.name] = str(exc)
            continue
        if _kind(field) == "checkbox" and field.required and value is not True:
            errors[field.name] = "required"
            continue
        cleaned[field.name] = value
    if errors:
        raise InvalidFormSubmissionError(errors)
    return cleaned


# ----- persistence -----


def _category_in_helpdesk(db: Session, helpdesk_id: str, category_id: str | None) -> TicketFormCategory | None:
    if not category_id:
        return None
    category = db.get(TicketFormCategory, category_id)
    if not category:
        raise NotFoundError("form_category_not_found", details={"form_category_id": category_id})
    if category.helpdesk_id != helpdesk_id:
        raise BadRequestError(
            "category_not_in_helpdesk",
            details={"form_category_id": category_id, "helpdesk_id": helpdesk_id},
        )
    return category


def ensure_category_in_helpdesk(db: Session, helpdesk_id: str, category_id: str | None) -> TicketFormCategory | None:
    return _category_in_helpdesk(db, helpdesk_id, category_id)


def list_categories(db: Session, helpdesk_id: str) -> list[TicketFormCategory]:
    return (
        db.query(TicketFormCategory)
        .filter(TicketFormCategory.helpdesk_id == helpdesk_id)
        .order_by(TicketFormCategory.order.asc(), TicketFormCategory.name.asc())
        .all()
    )


def get_category(db: Session, category_id: str) -> TicketFormCategory:
    category = db.get(TicketFormCategory, category_id)
    if not category:
        raise NotFoundError("form_category_not_found", details={"form_category_id": category_id})
    return category


def create_category(db: Session, helpdesk_id: str, payload: FormCategoryCreate) -> TicketFormCategory:
    category = TicketFormCategory(helpdesk_id=helpdesk_id, **payload.model_dump())
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def update_category(db: Session, category_id: str, payload: FormCategoryUpdate) -> TicketFormCategory:
    category = get_category(db, category_id)
    for key, value in payload.model_dump(exclude_unset=True).items():
        setattr(category, key, value)
    db.commit()
    db.refresh(category)
    return category


def delete_category(db: Session, category_id: str) -> None:
    category = get_category(db, category_id)
    db.delete(category)
    db.commit()


def list_fields(db: Session, helpdesk_id: str, *, category_id: str | None = None, helpdesk_only: bool = False) -> list[TicketFormField]:
    query = db.query(TicketFormField).filter(TicketFormField.helpdesk_id == helpdesk_id)
    if category_id:
        query = query.filter(TicketFormField.form_category_id == category_id)
    elif helpdesk_only:
        query = query.filter(TicketFormField.form_category_id.is_(None))
    return query.order_by(TicketFormField.order.asc(), TicketFormField.name.asc()).all()


def get_field(db: Session, field_id: str) -> TicketFormField:
    field = db.get(TicketFormField, field_id)
    if not field:
        raise NotFoundError("form_field_not_found", details={"form_field_id": field_id})
    return field


def create_field(db: Session, helpdesk_id: str, definition: FieldDefinition) -> TicketFormField:
    _category_in_helpdesk(db, helpdesk_id, definition.form_category_id)
    field = TicketFormField(helpdesk_id=helpdesk_id, **_columns_from_definition(definition))
    db.add(field)
    db.commit()
    db.refresh(field)
    logger.info("Form field created: helpdesk=%s name=%s type=%s", helpdesk_id, field.name, definition.field_type)
    return field


def update_field(db: Session, field_id: str, payload: FormFieldUpdate) -> TicketFormField:
    field = get_field(db, field_id)
    current = field_definition_from_row(field).model_dump()
    changes = payload.model_dump(exclude_unset=True)
    if "field_type" in changes and changes["field_type"] is not None:
        changes["field_type"] = changes["field_type"].value
    current.update(changes)
    try:
        definition = field_definition_adapter.validate_python(current)
    except ValidationError as exc:
        raise BadRequestError("invalid_field_definition", details={"errors": exc.errors(include_url=False)}) from exc
    _category_in_helpdesk(db, field.helpdesk_id, definition.form_category_id)
    for key, value in _columns_from_definition(definition).items():
        setattr(field, key, value)
    db.commit()
    db.refresh(field)
    return field


def delete_field(db: Session, field_id: str) -> None:
    field = get_field(db, field_id)
    db.delete(field)
    db.commit()
