"""Notifications API endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Body, Depends, Path, Query
from sqlalchemy.orm import Session

from intranet.core.deps import get_current_user, require_permission
from intranet.core.exceptions import NotFoundError
from intranet.core.rate_limit import rate_limit
from intranet.db.session import get_db
from intranet.models.user import User
from intranet.schemas.notification import (
    NotificationBroadcast,
    NotificationBroadcastOut,
    NotificationOut,
    NotificationUnreadCountOut,
)
from intranet.services.departments import department_members, get_department
from intranet.services.notifications_service import (
    list_notifications,
    mark_all_notifications_as_read,
    mark_notification_as_read,
    notify_users,
    unread_counts,
)

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(rate_limit())])


@router.get("/", response_model=list[NotificationOut])
def get_notifications(
    unread_only: bool = Query(default=False),
    source: str | None = Query(default=None, max_length=32),
    target_id: str | None = Query(default=None, max_length=36),
    limit: int = Query(default=20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> list[NotificationOut]:
    records = list_notifications(
        db,
        user_id=current_user.id,
        unread_only=unread_only,
        source=source,
        target_id=target_id,
        limit=limit,
    )
    return [NotificationOut.model_validate(record) for record in records]


@router.get("/unread-count", response_model=NotificationUnreadCountOut)
def get_unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> NotificationUnreadCountOut:
    by_source = unread_counts(db, user_id=current_user.id)
    return NotificationUnreadCountOut(count=sum(by_source.values()), by_source=by_source)


@router.post("/broadcast", response_model=NotificationBroadcastOut)
def broadcast_notification(
    payload: NotificationBroadcast = Body(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission("manage_content")),
) -> NotificationBroadcastOut:
    recipients = list(payload.user_ids)
    if payload.department_id:
        get_department(db, payload.department_id)
        recipients.extend(member.id for member in department_members(db, payload.department_id))
    for user_id in payload.user_ids:
        if not db.get(User, user_id):
            raise NotFoundError("user_not_found", details={"user_id": user_id})
    records = notify_users(
        db,
        recipients,
        title=payload.title,
        body=payload.body,
        severity=payload.severity,
        link=payload.link,
        source="announcement",
        target_id=payload.target_id,
    )
    db.commit()
    logger.info("User %s broadcast '%s' to %s recipients", current_user.id, payload.title, len(records))
    return NotificationBroadcastOut(sent=len(records))


@router.post("/{notification_id}/read", response_model=NotificationOut)
def read_notification(
    notification_id: str = Path(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> NotificationOut:
    record = mark_notification_as_read(db, user_id=current_user.id, notification_id=notification_id)
    if not record:
        raise NotFoundError("notification_not_found", details={"notification_id": notification_id})
    return NotificationOut.model_validate(record)


@router.post("/read-all")
def read_all_notifications(
    source: str | None = Query(default=None, max_length=32),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, int]:
    return {"updated": mark_all_notifications_as_read(db, user_id=current_user.id, source=source)}
