"""Custom roles, the permission catalog and the admin audit log."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from intranet.core.deps import get_current_user, require_permission
from intranet.core.rate_limit import rate_limit
from intranet.db.session import get_db
from intranet.models.user import User
from intranet.schemas.role import AuditLogOut, PermissionOut, RoleCreate, RoleOut, RolePermissionsUpdate, RoleUpdate
from intranet.services import roles as service
from intranet.services.audit import list_audit_logs

_manage = require_permission("manage_roles")

router = APIRouter(dependencies=[Depends(rate_limit()), Depends(get_current_user), Depends(_manage)])


@router.get("/permissions", response_model=list[PermissionOut])
def get_permissions() -> list[PermissionOut]:
    return [PermissionOut(**item) for item in service.permission_catalog()]


@router.get("/roles", response_model=list[RoleOut])
def get_roles(db: Session = Depends(get_db)) -> list[RoleOut]:
    return [RoleOut.model_validate(role) for role in service.list_roles(db)]


@router.post("/roles", response_model=RoleOut, status_code=status.HTTP_201_CREATED)
def post_role(payload: RoleCreate, db: Session = Depends(get_db), current_user: User = Depends(_manage)) -> RoleOut:
    return RoleOut.model_validate(service.create_role(db, payload, actor_id=current_user.id))


@router.get("/roles/{role_id}", response_model=RoleOut)
def get_role(role_id: str, db: Session = Depends(get_db)) -> RoleOut:
    return RoleOut.model_validate(service.get_role(db, role_id))


@router.patch("/roles/{role_id}", response_model=RoleOut)
def patch_role(
    role_id: str,
    payload: RoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(_manage),
) -> RoleOut:
    return RoleOut.model_validate(service.update_role(db, role_id, payload, actor_id=current_user.id))


@router.delete("/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response, response_model=None)
def remove_role(role_id: str, db: Session = Depends(get_db), current_user: User = Depends(_manage)) -> Response:
    service.delete_role(db, role_id, actor_id=current_user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/roles/{role_id}/permissions", response_model=list[str])
def get_role_permissions(role_id: str, db: Session = Depends(get_db)) -> list[str]:
    return sorted(service.get_role(db, role_id).permission_keys)


@router.put("/roles/{role_id}/permissions", response_model=RoleOut)
def put_role_permissions(
    role_id: str,
    payload: RolePermissionsUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(_manage),
) -> RoleOut:
    return RoleOut.model_validate(service.set_role_permissions(db, role_id, payload.permissions, actor_id=current_user.id))


@router.get("/audit-logs", response_model=list[AuditLogOut])
def get_audit_logs(
    actor_id: str | None = Query(default=None),
    entity_type: str | None = Query(default=None),
    entity_id: str | None = Query(default=None),
    limit: int = Query(default=100, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
) -> list[AuditLogOut]:
    rows = list_audit_logs(db, actor_id=actor_id, entity_type=entity_type, entity_id=entity_id, limit=limit, offset=offset)
    return [AuditLogOut.model_validate(row) for row in rows]
