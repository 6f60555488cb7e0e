"""Admin audit log for user and role changes."""

from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Session

from intranet.models.role import AuditLog


def record_audit(
    db: Session,
    action: str,
    entity_type: str,
    entity_id: str | None,
    *,
    actor_id: str | None,
    details: dict[str, Any] | None = None,
) -> AuditLog:
    """Add an audit row to the current unit of work; caller commits."""
    entry = AuditLog(actor_id=actor_id, action=action, entity_type=entity_type, entity_id=entity_id, details=details)
    db.add(entry)
    return entry


def list_audit_logs(
    db: Session,
    *,
    actor_id: str | None = None,
    entity_type: str | None = None,
    entity_id: str | None = None,
    limit: int = 100,
    offset: int = 0,
) -> list[AuditLog]:
    query = db.query(AuditLog)
    if actor_id:
        query = query.filter(AuditLog.actor_id == actor_id)
    if entity_type:
        query = query.filter(AuditLog.entity_type == entity_type)
    if entity_id:
        query = query.filter(AuditLog.entity_id == entity_id)
    return query.order_by(AuditLog.created_at.desc()).offset(offset).limit(limit).all()
