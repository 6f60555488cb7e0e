"""Global and department settings endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from intranet.core.deps import get_current_user, require_permission
from intranet.core.rate_limit import rate_limit
from intranet.db.session import get_db
from intranet.models.user import User
from intranet.schemas.settings import SettingOut, SettingsAuditOut, SettingsBulkUpdate, SettingValue
from intranet.services import settings as service

router = APIRouter(dependencies=[Depends(rate_limit()), Depends(get_current_user)])


@router.get("/system-settings")
def get_system_settings(db: Session = Depends(get_db)) -> dict[str, str]:
    return service.get_system_settings(db)


@router.patch("/system-settings")
def patch_system_settings(
    payload: SettingsBulkUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("manage_settings")),
) -> dict[str, str]:
    return service.set_system_settings(db, payload.values, actor_id=current_user.id)


@router.get("/settings/{key}", response_model=SettingOut)
def get_setting(key: str, db: Session = Depends(get_db)) -> SettingOut:
    return SettingOut(**service.get_system_setting(db, key))


@router.patch("/settings/{key}", response_model=SettingOut)
def patch_setting(
    key: str,
    payload: SettingValue,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("manage_settings")),
) -> SettingOut:
    row = service.set_system_setting(db, key, payload.value, actor_id=current_user.id)
    return SettingOut(key=row.key, value=row.value)


@router.get("/departments/{department_id}/settings")
def get_department_settings(department_id: str, db: Session = Depends(get_db)) -> dict[str, str]:
    return service.get_department_settings(db, department_id)


@router.patch("/departments/{department_id}/settings")
def patch_department_settings(
    department_id: str,
    payload: SettingsBulkUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("manage_settings")),
) -> dict[str, str]:
    return service.set_department_settings(db, department_id, payload.values, actor_id=current_user.id)


@router.get("/departments/{department_id}/settings/effective")
def get_effective_department_settings(department_id: str, db: Session = Depends(get_db)) -> dict[str, str]:
    return service.effective_department_settings(db, department_id)


@router.get(
    "/settings-audit",
    response_model=list[SettingsAuditOut],
    dependencies=[Depends(require_permission("manage_settings"))],
)
def get_settings_audit(
    scope: str | None = Query(default=None),
    scope_id: str | None = Query(default=None),
    changed_by: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
) -> list[SettingsAuditOut]:
    rows = service.list_settings_audit(db, scope=scope, scope_id=scope_id, changed_by=changed_by, limit=limit, offset=offset)
    return [SettingsAuditOut.model_validate(row) for row in rows]
