"""Global and department settings with defaults, overrides and an audit trail."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from intranet.core.exceptions import NotFoundError
from intranet.models.settings import DepartmentSetting, SettingsAudit, SystemSetting
from intranet.models.enums import SettingScope
from intranet.services.departments import get_department

logger = logging.getLogger(__name__)

SETTING_DEFAULTS: dict[str, str] = {
    "companyName": "Intranet",
    "platformName": "Intranet",
    "logoUrl": "",
    "faviconUrl": "",
    "primaryColor": "#3b82f6",
    "defaultTheme": "system",
    "allowUserThemeOverride": "true",
    "defaultTimezone": "UTC",
    "defaultLanguage": "en",
    "dateFormat": "DD/MM/YYYY",
    "timeFormat": "24h",
    "emailNotificationsEnabled": "true",
    "emailDigestFrequency": "daily",
    "inAppNotificationsEnabled": "true",
    "ticketRetentionDays": "365",
    "versionRetentionDays": "730",
    "searchHistoryRetentionDays": "90",
}

_BRANDING_KEYS = {"companyName", "platformName", "logoUrl", "faviconUrl", "primaryColor", "defaultTheme", "allowUserThemeOverride"}
_LOCALIZATION_KEYS = {"defaultTimezone", "defaultLanguage", "dateFormat", "timeFormat"}


def setting_category(key: str) -> str:
    if key.startswith("email") or key.startswith("inApp"):
        return "notifications"
    if key in _BRANDING_KEYS:
        return "branding"
    if key in _LOCALIZATION_KEYS:
        return "localization"
    if key.endswith("RetentionDays"):
        return "retention"
    return "general"


def merge_settings(*layers: dict[str, str]) -> dict[str, str]:
    """Later layers override earlier ones."""
    merged: dict[str, str] = {}
    for layer in layers:
        merged.update(layer)
    return merged


def _audit(
    db: Session,
    scope: SettingScope,
    key: str,
    old_value: str | None,
    new_value: str | None,
    *,
    scope_id: str | None = None,
    changed_by: str | None = None,
) -> None:
    db.add(
        SettingsAudit(
            scope=scope.value,
            scope_id=scope_id,
            key=key,
            old_value=old_value,
            new_value=new_value,
            changed_by=changed_by,
        )
    )


# ----- global -----


def stored_system_settings(db: Session) -> dict[str, str]:
    return {row.key: row.value for row in db.query(SystemSetting).all()}


def get_system_settings(db: Session) -> dict[str, str]:
    return merge_settings(SETTING_DEFAULTS, stored_system_settings(db))


def get_system_setting(db: Session, key: str) -> dict[str, str]:
    row = db.get(SystemSetting, key)
    if row:
        return {"key": key, "value": row.value}
    if key in SETTING_DEFAULTS:
        return {"key": key, "value": SETTING_DEFAULTS[key]}
    raise NotFoundError("setting_not_found", details={"key": key})


def set_system_setting(db: Session, key: str, value: str, *, actor_id: str | None, commit: bool = True) -> SystemSetting:
    row = db.get(SystemSetting, key)
    old_value = row.value if row else None
    if row is None:
        row = SystemSetting(key=key, value=value, category=setting_category(key), updated_by=actor_id)
        db.add(row)
    else:
        row.value = value
        row.updated_by = actor_id
    if old_value != value:
        _audit(db, SettingScope.global_, key, old_value, value, changed_by=actor_id)
    if commit:
        db.commit()
        db.refresh(row)
    return row


def set_system_settings(db: Session, values: dict[str, str], *, actor_id: str | None) -> dict[str, str]:
    for key, value in values.items():
        set_system_setting(db, key, value, actor_id=actor_id, commit=False)
    db.commit()
    logger.info("Updated %s system settings", len(values))
    return get_system_settings(db)


# ----- department -----


def get_department_settings(db: Session, department_id: str) -> dict[str, str]:
    get_department(db, department_id)
    rows = db.query(DepartmentSetting).filter(DepartmentSetting.department_id == department_id).all()
    return {row.key: row.value for row in rows}


def set_department_setting(
    db: Session, department_id: str, key: str, value: str, *, actor_id: str | None, commit: bool = True
) -> DepartmentSetting:
    row = (
        db.query(DepartmentSetting)
        .filter(DepartmentSetting.department_id == department_id, DepartmentSetting.key == key)
        .first()
    )
    old_value = row.value if row else None
    if row is None:
        row = DepartmentSetting(department_id=department_id, key=key, value=value, updated_by=actor_id)
        db.add(row)
    else:
        row.value = value
        row.updated_by = actor_id
    if old_value != value:
        _audit(db, SettingScope.department, key, old_value, value, scope_id=department_id, changed_by=actor_id)
    if commit:
        db.commit()
        db.refresh(row)
    return row


def set_department_settings(
    db: Session, department_id: str, values: dict[str, str], *, actor_id: str | None
) -> dict[str, str]:
    get_department(db, department_id)
    for key, value in values.items():
        set_department_setting(db, department_id, key, value, actor_id=actor_id, commit=False)
    db.commit()
    return get_department_settings(db, department_id)


def effective_department_settings(db: Session, department_id: str) -> dict[str, str]:
    """Defaults, then global values, then the department's overrides."""
    department_values = get_department_settings(db, department_id)
    return merge_settings(SETTING_DEFAULTS, stored_system_settings(db), department_values)


# ----- audit -----


def list_settings_audit(
    db: Session,
    *,
    scope: str | None = None,
    scope_id: str | None = None,
    changed_by: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[SettingsAudit]:
    query = db.query(SettingsAudit)
    if scope:
        query = query.filter(SettingsAudit.scope == scope)
    if scope_id:
        query = query.filter(SettingsAudit.scope_id == scope_id)
    if changed_by:
        query = query.filter(SettingsAudit.changed_by == changed_by)
    return query.order_by(SettingsAudit.created_at.desc()).offset(offset).limit(limit).all()
