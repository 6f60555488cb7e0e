"""Custom roles, their permission grants and user assignments."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from intranet.core.exceptions import BadRequestError, ConflictError, NotFoundError
from intranet.core.rbac import PERMISSION_CATALOG
from intranet.models.role import Role, RolePermission, UserRoleAssignment
from intranet.schemas.role import RoleCreate, RoleUpdate
from intranet.services.audit import record_audit
from intranet.services.users import get_user

logger = logging.getLogger(__name__)


def permission_catalog() -> list[dict[str, str]]:
    return [{"key": key, "description": description} for key, description in PERMISSION_CATALOG.items()]


def validate_permissions(permissions: list[str]) -> list[str]:
    unknown = sorted(set(permissions) - set(PERMISSION_CATALOG))
    if unknown:
        raise BadRequestError("unknown_permissions", details={"permissions": unknown})
    return sorted(set(permissions))


def list_roles(db: Session) -> list[Role]:
    return db.query(Role).order_by(Role.name.asc()).all()


def get_role(db: Session, role_id: str) -> Role:
    role = db.get(Role, role_id)
    if not role:
        raise NotFoundError("role_not_found", details={"role_id": role_id})
    return role


def _ensure_name_free(db: Session, name: str, *, exclude_id: str | None = None) -> None:
    existing = db.query(Role).filter(Role.name == name).first()
    if existing and existing.id != exclude_id:
        raise ConflictError("role_name_exists", details={"name": name})


def _assignment_count(db: Session, role_id: str) -> int:
    return db.query(UserRoleAssignment).filter(UserRoleAssignment.role_id == role_id).count()


def create_role(db: Session, payload: RoleCreate, *, actor_id: str | None) -> Role:
    _ensure_name_free(db, payload.name)
    permissions = validate_permissions(payload.permissions)
    role = Role(name=payload.name, description=payload.description, is_system=False)
    role.permissions = [RolePermission(permission=key) for key in permissions]
    db.add(role)
    db.flush()
    record_audit(db, "role.created", "role", role.id, actor_id=actor_id, details={"name": role.name, "permissions": permissions})
    db.commit()
    db.refresh(role)
    logger.info("Role created: %s", role.name)
    return role


def update_role(db: Session, role_id: str, payload: RoleUpdate, *, actor_id: str | None) -> Role:
    role = get_role(db, role_id)
    changes = payload.model_dump(exclude_unset=True)
    if role.is_system and "name" in changes and changes["name"] != role.name:
        raise BadRequestError("system_role_immutable", details={"role_id": role.id})
    if "name" in changes:
        _ensure_name_free(db, changes["name"], exclude_id=role.id)
    for key, value in changes.items():
        setattr(role, key, value)
    record_audit(
        db,
        "role.updated",
        "role",
        role.id,
        actor_id=actor_id,
        details={"fields": sorted(changes), "affected_users": _assignment_count(db, role.id)},
    )
    db.commit()
    db.refresh(role)
    return role


def delete_role(db: Session, role_id: str, *, actor_id: str | None) -> None:
    role = get_role(db, role_id)
    if role.is_system:
        raise BadRequestError("system_role_cannot_be_deleted", details={"role_id": role.id})
    record_audit(
        db,
        "role.deleted",
        "role",
        role.id,
        actor_id=actor_id,
        details={"name": role.name, "affected_users": _assignment_count(db, role.id)},
    )
    db.delete(role)
    db.commit()
    logger.info("Role deleted: %s", role.name)


def set_role_permissions(db: Session, role_id: str, permissions: list[str], *, actor_id: str | None) -> Role:
    role = get_role(db, role_id)
    if role.is_system:
        raise BadRequestError("system_role_immutable", details={"role_id": role.id})
    keys = validate_permissions(permissions)
    before = sorted(role.permission_keys)
    role.permissions = [RolePermission(permission=key) for key in keys]
    record_audit(
        db,
        "role.permissions_updated",
        "role",
        role.id,
        actor_id=actor_id,
        details={"before": before, "after": keys, "affected_users": _assignment_count(db, role.id)},
    )
    db.commit()
    db.refresh(role)
    return role


def list_user_roles(db: Session, user_id: str) -> list[Role]:
    get_user(db, user_id)
    return (
        db.query(Role)
        .join(UserRoleAssignment, UserRoleAssignment.role_id == Role.id)
        .filter(UserRoleAssignment.user_id == user_id)
        .order_by(Role.name.asc())
        .all()
    )


def assign_role(db: Session, user_id: str, role_id: str, *, actor_id: str | None) -> UserRoleAssignment:
    user = get_user(db, user_id)
    role = get_role(db, role_id)
    existing = (
        db.query(UserRoleAssignment)
        .filter(UserRoleAssignment.user_id == user.id, UserRoleAssignment.role_id == role.id)
        .first()
    )
    if existing:
        return existing
    assignment = UserRoleAssignment(user_id=user.id, role_id=role.id, assigned_by=actor_id)
    db.add(assignment)
    record_audit(db, "user.role_assigned", "user", user.id, actor_id=actor_id, details={"role_id": role.id, "role_name": role.name})
    db.commit()
    db.refresh(assignment)
    return assignment


def remove_role(db: Session, user_id: str, role_id: str, *, actor_id: str | None) -> None:
    assignment = (
        db.query(UserRoleAssignment)
        .filter(UserRoleAssignment.user_id == user_id, UserRoleAssignment.role_id == role_id)
        .first()
    )
    if not assignment:
        raise NotFoundError("role_assignment_not_found", details={"user_id": user_id, "role_id": role_id})
    db.delete(assignment)
    record_audit(db, "user.role_removed", "user", user_id, actor_id=actor_id, details={"role_id": role_id})
    db.commit()
